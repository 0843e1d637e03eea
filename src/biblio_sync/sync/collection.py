"""Canonical bibliography list with pagination, search and CRUD."""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union

from ..client.bibliography import BibliographyApi
from ..client.errors import BiblioError, PreconditionError
from ..config.settings import Settings, settings as default_settings
from ..core.models import (
    BibliographyDraft,
    BibliographyListResponse,
    BibliographyRecord,
    FilterCriteria,
    PageCursor,
)
from ..utils.logging import get_logger
from .events import Signal

logger = get_logger(__name__)

SearchKey = Tuple[str, Optional[FilterCriteria]]


class ListState(Enum):
    """Lifecycle of the list-loading requests."""
    IDLE = "idle"
    LOADING = "loading"
    POPULATED = "populated"  # Includes an empty but successful result
    ERRORED = "errored"      # Never retried automatically


class RemoteCollection:
    """
    Single owner of the canonical record list and its page cursor.

    All list changes go through the methods below; consumers read
    ``records`` and subscribe to ``records_changed`` (called with the new
    tuple of records) and ``state_changed`` (called with the collection).

    List loads (``load_page``, ``load_next``, ``refresh``, ``search``)
    record remote failures in ``error`` and return normally. Mutations
    (``create``, ``update``, ``delete``) and ``get`` record the failure
    and re-raise it. Precondition failures are recorded and raised
    everywhere, before any request is sent.

    After ``search`` the list holds a search result set: ``load_next``
    appends the following page of the same search, never a page of the
    plain list. A successful ``load_page(1)`` or ``refresh`` and any
    ``reset`` return to the plain list.

    Each replacing load (page 1, refresh, search) starts a new generation;
    a response belonging to an older generation is dropped so a slow
    superseded request cannot overwrite newer results.
    """

    def __init__(
        self,
        api: BibliographyApi,
        page_size: Optional[int] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.api = api
        self.config = config or default_settings
        self.page_size = page_size or self.config.page_size

        self.records_changed = Signal("records_changed")
        self.state_changed = Signal("state_changed")

        self._records: List[BibliographyRecord] = []
        self._cursor = PageCursor()
        self._error: Optional[str] = None
        self._state = ListState.IDLE
        self._in_flight = 0
        self._generation = 0
        # (query, criteria) of the search the list currently holds
        self._active_search: Optional[SearchKey] = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def records(self) -> Tuple[BibliographyRecord, ...]:
        return tuple(self._records)

    @property
    def cursor(self) -> PageCursor:
        return self._cursor

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def state(self) -> ListState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def current_page(self) -> int:
        return self._cursor.current_page

    @property
    def total_pages(self) -> int:
        return self._cursor.total_pages

    @property
    def total_count(self) -> int:
        return self._cursor.total_count

    @property
    def has_next_page(self) -> bool:
        return self._cursor.has_next_page

    @property
    def has_previous_page(self) -> bool:
        return self._cursor.has_previous_page

    # ------------------------------------------------------------------
    # Internal bookkeeping
    # ------------------------------------------------------------------

    @contextmanager
    def _busy(self) -> Iterator[None]:
        self._in_flight += 1
        self.state_changed.emit(self)
        try:
            yield
        finally:
            self._in_flight -= 1
            self.state_changed.emit(self)

    def _set_records(self, records: List[BibliographyRecord]) -> None:
        self._records = records
        self.records_changed.emit(self.records)

    def _record_error(self, error: BiblioError) -> None:
        self._error = error.message
        self.state_changed.emit(self)

    def _start_list_load(self, replace: bool) -> int:
        if replace:
            self._generation += 1
        self._error = None
        self._state = ListState.LOADING
        return self._generation

    def _is_stale(self, generation: int, what: str) -> bool:
        if generation != self._generation:
            logger.debug(
                f"Discarding superseded {what}",
                extra={"generation": generation, "current_generation": self._generation},
            )
            return True
        return False

    def _finish_list_load(
        self,
        generation: int,
        response: BibliographyListResponse,
        append: bool,
        search: Optional[SearchKey] = None,
    ) -> None:
        if self._is_stale(generation, "response"):
            return
        if not append:
            self._active_search = search
        page = response.data
        records = self._records + page.bibliographies if append else list(page.bibliographies)
        self._cursor = page.pagination.to_cursor()
        self._state = ListState.POPULATED
        self._set_records(records)
        logger.debug(
            "List updated",
            extra={
                "received": len(page.bibliographies),
                "held": len(records),
                "page": self._cursor.current_page,
                "total_count": self._cursor.total_count,
            },
        )

    def _fail_list_load(self, generation: int, error: BiblioError) -> None:
        if self._is_stale(generation, "failure"):
            return
        self._state = ListState.ERRORED
        self._record_error(error)

    # ------------------------------------------------------------------
    # List loading
    # ------------------------------------------------------------------

    @property
    def active_query(self) -> Optional[str]:
        """Query of the search the list holds, or None for the plain list."""
        return self._active_search[0] if self._active_search is not None else None

    async def _load(self, page: int, search: Optional[SearchKey]) -> None:
        """Fetch ``page`` of the plain list (``search`` None) or of a search."""
        generation = self._start_list_load(replace=page == 1)
        with self._busy():
            try:
                if search is None:
                    response = await self.api.fetch_page(page, self.page_size)
                else:
                    query, criteria = search
                    response = await self.api.search(query, page, self.page_size, criteria)
            except BiblioError as e:
                logger.warning(
                    f"Failed to load page {page}: {e}",
                    extra={"query": search[0] if search else None},
                )
                self._fail_list_load(generation, e)
                return
            self._finish_list_load(generation, response, append=page > 1, search=search)

    async def load_page(self, page: int) -> None:
        """Fetch ``page``; page 1 replaces the list with the plain list.

        Later pages append and continue whatever the list currently holds,
        so a search result set is only ever extended with search pages.
        """
        if page < 1:
            error = PreconditionError("Page numbers start at 1")
            self._record_error(error)
            raise error
        await self._load(page, None if page == 1 else self._active_search)

    async def load_next(self) -> None:
        """Append the next page of the current list or search.

        No-op without a next page or while loading.
        """
        if not self.has_next_page or self.is_loading:
            return
        await self.load_page(self.current_page + 1)

    async def refresh(self) -> None:
        """Reset to page 1 of the plain list and replace the list."""
        self._cursor = self._cursor.model_copy(update={"current_page": 1})
        await self.load_page(1)

    async def search(self, query: str, criteria: Optional[FilterCriteria] = None) -> None:
        """Replace the list and cursor with page 1 of the remote search."""
        await self._load(1, (query, criteria))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, draft: Union[BibliographyDraft, BibliographyRecord]) -> BibliographyRecord:
        """Create a record; the server copy is inserted at the front.

        The cursor counts are left as they are; a later ``refresh`` brings
        them back in line with the server.
        """
        if isinstance(draft, BibliographyDraft) and not draft.is_valid:
            error = PreconditionError("Title and author are required")
            self._record_error(error)
            raise error
        with self._busy():
            try:
                created = await self.api.create(draft.to_payload())
            except BiblioError as e:
                self._record_error(e)
                raise
        self._error = None
        self._set_records([created] + self._records)
        logger.info("Bibliography created", extra={"record_id": created.id})
        return created

    async def update(self, record: BibliographyRecord) -> BibliographyRecord:
        """Replace ``record`` on the server and in the list (matched by id)."""
        if not record.id:
            error = PreconditionError("Cannot update a bibliography that has not been created")
            self._record_error(error)
            raise error
        with self._busy():
            try:
                updated = await self.api.update(record.id, record.to_payload())
            except BiblioError as e:
                self._record_error(e)
                raise
        self._error = None
        self._set_records([updated if r.id == record.id else r for r in self._records])
        logger.info("Bibliography updated", extra={"record_id": record.id})
        return updated

    async def delete(self, record_id: str) -> None:
        """Delete on the server, then drop every local entry with that id."""
        if not record_id:
            error = PreconditionError("A bibliography id is required")
            self._record_error(error)
            raise error
        with self._busy():
            try:
                await self.api.delete(record_id)
            except BiblioError as e:
                self._record_error(e)
                raise
        self._error = None
        remaining = [r for r in self._records if r.id != record_id]
        if len(remaining) != len(self._records):
            self._set_records(remaining)
        else:
            self.state_changed.emit(self)
        logger.info("Bibliography deleted", extra={"record_id": record_id})

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def get(self, record_id: str) -> BibliographyRecord:
        """Fetch one record from the server; the list is not modified."""
        try:
            return await self.api.fetch_one(record_id)
        except BiblioError as e:
            self._record_error(e)
            raise

    def lookup(self, record_id: str) -> Optional[BibliographyRecord]:
        """Find a record in the already-loaded list, without I/O."""
        return next((r for r in self._records if r.id == record_id), None)

    def contains(self, record_id: str) -> bool:
        return self.lookup(record_id) is not None

    def clear_error(self) -> None:
        self._error = None
        self.state_changed.emit(self)

    def reset(self) -> None:
        """Forget everything, e.g. after sign-out. In-flight loads are dropped."""
        self._generation += 1
        self._cursor = PageCursor()
        self._active_search = None
        self._error = None
        self._state = ListState.IDLE
        self._set_records([])
        self.state_changed.emit(self)
