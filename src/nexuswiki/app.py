"""Application wiring: logging setup and the shared wiki service."""

import logging
from functools import lru_cache
from typing import Optional

from nexuswiki.cache import AllPagesCache
from nexuswiki.changelog import ChangeLog
from nexuswiki.config import Config, load_settings
from nexuswiki.repository import PageRepository
from nexuswiki.service import WikiService

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once, at the level from settings unless given."""
    if level is None:
        level = load_settings().logging.level
    logging.basicConfig(
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        level=getattr(logging, level.upper(), logging.WARNING),
    )


def create_wiki_service(settings: Config) -> WikiService:
    """Build a repository, change log and service for a content root."""
    settings.content_root.mkdir(parents=True, exist_ok=True)
    cache = AllPagesCache(ttl_seconds=settings.all_pages_ttl_seconds)
    repository = PageRepository(
        settings.db_path,
        cache,
        timeout=settings.storage.busy_timeout_seconds,
        chunk_size=settings.chunk_size,
    )
    change_log = ChangeLog(settings.db_path, timeout=settings.storage.busy_timeout_seconds)
    logger.info(f"Wiki database at {settings.db_path}")
    return WikiService(repository, change_log, home_page_name=settings.home_page_name)


@lru_cache(maxsize=1)
def get_wiki_service() -> WikiService:
    """Get the process-wide wiki service.

    The service, and with it the page listing cache, is shared by every
    request. Use get_wiki_service.cache_clear() to rebuild it.
    """
    return create_wiki_service(load_settings())
