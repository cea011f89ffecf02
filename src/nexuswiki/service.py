"""Wiki service: what a request handler does around the repository.

Handlers validate the form, call the repository, log the outcome and record
the action in the change history. Rendering, routing and CSRF checks stay
with the HTTP layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Callable, Optional

from nexuswiki.changelog import ChangeLog
from nexuswiki.constants import (
    CHANGE_CREATE_PAGE,
    CHANGE_DELETE_ATTACHMENT,
    CHANGE_DELETE_PAGE,
    CHANGE_EDIT_PAGE,
    HOME_PAGE_NAME,
)
from nexuswiki.naming import kebab_to_title, to_kebab_case
from nexuswiki.repository import PageRepository
from nexuswiki.schemas import ChangeRecord, FileInfo, OperationResult, Page, PageInput
from nexuswiki.validation import validate_page_input

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveOutcome:
    """Result of a page form submission."""

    ok: bool
    page: Optional[Page] = None
    errors: dict[str, list[str]] = field(default_factory=dict)
    error: Optional[BaseException] = None
    reason: Optional[str] = None

    @property
    def is_invalid(self) -> bool:
        """True when the form was rejected before anything was saved."""
        return bool(self.errors)


class WikiService:
    """Entry point for the HTTP layer."""

    def __init__(
        self,
        repository: PageRepository,
        change_log: ChangeLog,
        home_page_name: str = HOME_PAGE_NAME,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.repository = repository
        self.change_log = change_log
        self.home_page_name = home_page_name
        self._now = now

    def _record(self, name: str) -> None:
        self.change_log.add_change_record(ChangeRecord(name=name, date=self._now()))

    def _log_failure(self, result: OperationResult, message: str) -> None:
        if result.error is not None:
            logger.error(message, exc_info=result.error)
        else:
            logger.error(message)

    # Reads

    def home_page(self) -> Optional[Page]:
        return self.repository.get_page(self.home_page_name)

    def get_page(self, name: str) -> Optional[Page]:
        return self.repository.get_page(name)

    def list_pages(self) -> list[Page]:
        """All pages sorted by name, as shown in the sidebar."""
        return sorted(self.repository.list_all_pages(), key=lambda page: page.name)

    def search(self, term: str) -> list[Page]:
        """Search results sorted by name."""
        return sorted(self.repository.search(term), key=lambda page: page.name)

    def history(self) -> list[ChangeRecord]:
        return self.change_log.get_change_history()

    def page_title(self, page_name: str) -> str:
        """Display title of a page, e.g. for headings and markdown links."""
        return kebab_to_title(page_name)

    def get_attachment(self, file_id: str) -> Optional[tuple[FileInfo, bytes]]:
        """Attachment metadata and content for download. None if not found."""
        found = self.repository.get_file(file_id)
        if found is not None:
            meta, _ = found
            logger.info(f"Attachment {meta.id} - {meta.filename}")
        return found

    # Writes

    def new_page(self, title: Optional[str]) -> Optional[str]:
        """Turn a title into the slug a new page will be edited under.

        Returns None when no title was given. The page itself is created by
        the first ``save_page`` for that slug.
        """
        if not title:
            return None
        slug = to_kebab_case(title)
        self._record(CHANGE_CREATE_PAGE.format(name=title))
        return slug

    def save_page(self, page_name: str, page_input: PageInput) -> SaveOutcome:
        """Validate and save a page form posted to ``page_name``."""
        errors = validate_page_input(page_input, page_name, self.home_page_name)
        if errors:
            logger.warning(f"Page form for '{page_name}' is invalid: {errors}")
            return SaveOutcome(ok=False, errors=errors)

        result = self.repository.save_page(page_input)
        if not result.ok:
            self._log_failure(result, "Problem in saving page.")
            return SaveOutcome(ok=False, error=result.error, reason=result.reason)

        logger.info(f"Saved page '{self.page_title(result.page.name)}' (id {result.page.id})")
        self._record(CHANGE_EDIT_PAGE.format(name=page_name))
        return SaveOutcome(ok=True, page=result.page)

    def delete_page(self, page_id: Optional[int]) -> OperationResult:
        if page_id is None:
            logger.warning("Unable to delete page because form Id is missing.")
            return OperationResult.rejected("Page id is missing")

        result = self.repository.delete_page(page_id, self.home_page_name)
        if not result.ok:
            self._log_failure(result, f"Unable to delete page with id {page_id}.")
            return result

        self._record(CHANGE_DELETE_PAGE)
        return result

    def delete_attachment(self, page_id: Optional[int], file_id: Optional[str]) -> OperationResult:
        if not file_id:
            logger.warning("Unable to delete attachment because form Id is missing.")
            return OperationResult.rejected("Attachment id is missing")
        if page_id is None:
            logger.warning("Unable to delete attachment because form PageId is missing.")
            return OperationResult.rejected("Page id is missing")

        result = self.repository.delete_attachment(page_id, file_id)
        if not result.ok:
            self._log_failure(result, f"Unable to delete page attachment with id {file_id}")
            return result

        self._record(CHANGE_DELETE_ATTACHMENT)
        return result
