# src/nexuswiki/config.py
"""Configuration system for the wiki engine.

This module handles loading settings from environment variables and INI files,
providing sensible defaults, and computing derived paths inside the content
root directory.
"""

from configparser import ConfigParser
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
import os

from nexuswiki.constants import (
    ALL_PAGES_CACHE_MINUTES,
    BUSY_TIMEOUT_SECONDS,
    CHUNK_SIZE_KB,
    DEFAULT_DB_FILENAME,
    HOME_PAGE_NAME,
)


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# Schema: section -> key -> (type, default, min, max, description)
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "wiki": {
        "home_page_name": (str, HOME_PAGE_NAME, None, None, "Undeletable landing page"),
    },
    "cache": {
        "all_pages_ttl_minutes": (
            int,
            ALL_PAGES_CACHE_MINUTES,
            1,
            1440,
            "Lifetime of the cached page listing",
        ),
    },
    "storage": {
        "db_filename": (str, DEFAULT_DB_FILENAME, None, None, "SQLite file in content root"),
        "busy_timeout_seconds": (
            float,
            BUSY_TIMEOUT_SECONDS,
            0.0,
            300.0,
            "Wait time for a locked database",
        ),
        "chunk_size_kb": (int, CHUNK_SIZE_KB, 1, 16384, "Attachment chunk size"),
    },
    "logging": {
        "level": (str, "WARNING", None, None, "Minimum log level"),
    },
}


@dataclass(frozen=True)
class WikiConfig:
    """Wiki-level configuration."""

    home_page_name: str


@dataclass(frozen=True)
class CacheConfig:
    """Listing cache configuration."""

    all_pages_ttl_minutes: int


@dataclass(frozen=True)
class StorageConfig:
    """Embedded database configuration."""

    db_filename: str
    busy_timeout_seconds: float
    chunk_size_kb: int


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str


def _load_section(
    parser: ConfigParser, section: str, schema: dict[str, tuple[type, Any, Any, Any, str]]
) -> dict[str, Any]:
    """Load and validate a configuration section.

    Args:
        parser: ConfigParser instance with loaded config
        section: Section name to load
        schema: Schema definition for the section

    Returns:
        Dictionary of validated configuration values

    Raises:
        ConfigError: If validation fails
    """
    result = {}

    for key, (typ, default, min_val, max_val, _) in schema.items():
        if parser.has_option(section, key):
            raw_value = parser.get(section, key)
            value: bool | int | float | str
            try:
                if typ is bool:
                    value = raw_value.lower() in ("true", "1", "yes", "on")
                elif typ is int:
                    value = int(raw_value)
                elif typ is float:
                    value = float(raw_value)
                else:
                    value = raw_value.strip()
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {raw_value!r} (expected {typ.__name__})"
                ) from e
        else:
            value = default

        if typ in (int, float) and value is not None:
            if min_val is not None and value < min_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but minimum is {min_val}"
                )
            if max_val is not None and value > max_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but maximum is {max_val}"
                )

        result[key] = value

    return result


def _defaults(section: str) -> dict[str, Any]:
    return {key: default for key, (_, default, _, _, _) in CONFIG_SCHEMA[section].items()}


def _load_config(config_path: Optional[Path] = None) -> "Config":
    """Load configuration from an INI file (internal use only).

    Returns a Config with a placeholder content_root that load_settings()
    replaces with the directory from the WIKI_CONTENT_ROOT environment variable.

    Args:
        config_path: Path to config file. If None, uses defaults from schema.

    Returns:
        Config object with all sections populated (content_root is placeholder)

    Raises:
        ConfigError: If validation fails
    """
    parser = ConfigParser()

    if config_path and config_path.exists():
        parser.read(config_path)

    wiki = WikiConfig(**_load_section(parser, "wiki", CONFIG_SCHEMA["wiki"]))
    cache = CacheConfig(**_load_section(parser, "cache", CONFIG_SCHEMA["cache"]))
    storage = StorageConfig(**_load_section(parser, "storage", CONFIG_SCHEMA["storage"]))
    logging_config = LoggingConfig(**_load_section(parser, "logging", CONFIG_SCHEMA["logging"]))

    if not wiki.home_page_name:
        raise ConfigError("Value for [wiki].home_page_name must not be empty")

    return Config(
        content_root=Path("."),  # Placeholder, will be overwritten
        wiki=wiki,
        cache=cache,
        storage=storage,
        logging=logging_config,
    )


@dataclass(frozen=True)
class Config:
    """Complete application configuration."""

    content_root: Path

    # Section configs - defaults set in __post_init__, type: ignore needed because
    # frozen dataclass doesn't allow proper initialization pattern
    wiki: WikiConfig = None  # type: ignore[assignment]
    cache: CacheConfig = None  # type: ignore[assignment]
    storage: StorageConfig = None  # type: ignore[assignment]
    logging: LoggingConfig = None  # type: ignore[assignment]

    def __post_init__(self):
        """Initialize section configs with defaults if not provided."""
        # Since frozen=True, we need to use object.__setattr__
        if self.wiki is None:
            object.__setattr__(self, "wiki", WikiConfig(**_defaults("wiki")))
        if self.cache is None:
            object.__setattr__(self, "cache", CacheConfig(**_defaults("cache")))
        if self.storage is None:
            object.__setattr__(self, "storage", StorageConfig(**_defaults("storage")))
        if self.logging is None:
            object.__setattr__(self, "logging", LoggingConfig(**_defaults("logging")))

    @property
    def db_path(self) -> Path:
        """Path to the SQLite database file."""
        return self.content_root / self.storage.db_filename

    @property
    def config_path(self) -> Path:
        """Path to the optional config.ini file."""
        return self.content_root / "config.ini"

    @property
    def home_page_name(self) -> str:
        """Name of the page that can never be deleted."""
        return self.wiki.home_page_name

    @property
    def all_pages_ttl_seconds(self) -> float:
        """Listing cache lifetime in seconds."""
        return self.cache.all_pages_ttl_minutes * 60.0

    @property
    def chunk_size(self) -> int:
        """Attachment chunk size in bytes."""
        return self.storage.chunk_size_kb * 1024


@lru_cache(maxsize=1)
def load_settings() -> Config:
    """Load settings from environment variables and config file.

    Settings are cached for the lifetime of the application.
    Use load_settings.cache_clear() to reload settings.

    Returns:
        Config object populated from environment variables and config file.

    Raises:
        ValueError: If WIKI_CONTENT_ROOT is not set.
        ConfigError: If the config file contains invalid values.
    """
    content_root_str = os.getenv("WIKI_CONTENT_ROOT")
    if not content_root_str:
        raise ValueError("WIKI_CONTENT_ROOT environment variable must be set")

    content_root = Path(content_root_str)

    config_file = content_root / "config.ini"
    try:
        config_exists = config_file.exists()
    except PermissionError:
        config_exists = False
    base_config = _load_config(config_file if config_exists else None)

    wiki = base_config.wiki
    home_page_env = os.getenv("WIKI_HOME_PAGE")
    if home_page_env:
        wiki = WikiConfig(home_page_name=home_page_env.strip())

    logging_config = base_config.logging
    log_level_env = os.getenv("WIKI_LOG_LEVEL")
    if log_level_env:
        logging_config = LoggingConfig(level=log_level_env.strip().upper())

    return Config(
        content_root=content_root,
        wiki=wiki,
        cache=base_config.cache,
        storage=base_config.storage,
        logging=logging_config,
    )
