"""Derive the visible list from the canonical list, query and filters."""

from typing import Callable, List, Optional, Tuple, Union

from ..config.settings import Settings, settings as default_settings
from ..core.filters import apply_filters
from ..core.models import BibliographyDraft, BibliographyRecord, FilterCriteria
from ..utils.logging import get_logger
from .collection import ListState, RemoteCollection
from .debounce import Debouncer
from .events import Signal

logger = get_logger(__name__)


class ListProjector:
    """
    View-facing projection over a :class:`RemoteCollection`.

    Query and criteria form one combined signal. Each change restarts a
    debounce countdown; once it elapses, an empty query refreshes page 1
    and filters locally, a non-empty query runs the remote search with the
    criteria and shows its result set verbatim.

    The projector never writes the canonical list; mutations are passed
    through to the collection and come back via ``records_changed``.
    """

    def __init__(
        self,
        collection: RemoteCollection,
        debounce_seconds: Optional[float] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.collection = collection
        self.config = config or default_settings
        delay = self.config.search_debounce_seconds if debounce_seconds is None else debounce_seconds

        self.visible_changed = Signal("visible_changed")

        self._query = ""
        self._criteria = FilterCriteria()
        self._visible: List[BibliographyRecord] = []
        self._debouncer: Debouncer[Tuple[str, FilterCriteria]] = Debouncer(delay, self._reconcile)
        self._subscriptions: List[Callable[[], None]] = [
            collection.records_changed.connect(self._on_records_changed),
        ]
        self._recompute()

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    @property
    def query(self) -> str:
        return self._query

    @property
    def criteria(self) -> FilterCriteria:
        return self._criteria

    def set_query(self, text: str) -> None:
        if text == self._query:
            return
        self._query = text
        self._schedule()

    def set_criteria(self, criteria: FilterCriteria) -> None:
        if criteria == self._criteria:
            return
        self._criteria = criteria
        self._schedule()

    def _schedule(self) -> None:
        self._debouncer.trigger((self._query, self._criteria))

    async def _reconcile(self, signal: Tuple[str, FilterCriteria]) -> None:
        query, criteria = signal
        query = query.strip()
        if query:
            logger.debug("Running remote search", extra={"query": query, "filters": criteria.summary()})
            await self.collection.search(query, criteria)
        else:
            await self.collection.refresh()
        # A failed fetch emits nothing, so apply the settled filters anyway
        self._recompute()

    def _on_records_changed(self, records: Tuple[BibliographyRecord, ...]) -> None:
        self._recompute()

    def _recompute(self) -> None:
        records = self.collection.records
        if self._query.strip():
            visible = list(records)
        else:
            visible = apply_filters(records, self._criteria)
        self._visible = visible
        self.visible_changed.emit(tuple(visible))

    async def submit(self, query: str, criteria: Optional[FilterCriteria] = None) -> None:
        """Set the inputs and reconcile right away, skipping the quiet period."""
        self._debouncer.cancel()
        self._query = query
        if criteria is not None:
            self._criteria = criteria
        await self._reconcile((self._query, self._criteria))

    async def wait_idle(self) -> None:
        """Wait for the pending debounced fetch (if any) to settle."""
        await self._debouncer.wait_idle()

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    @property
    def visible_records(self) -> Tuple[BibliographyRecord, ...]:
        return tuple(self._visible)

    @property
    def result_count(self) -> int:
        return len(self._visible)

    @property
    def has_results(self) -> bool:
        return bool(self._visible)

    @property
    def has_active_filters(self) -> bool:
        return not self._criteria.is_empty

    @property
    def filter_summary(self) -> str:
        return self._criteria.summary()

    @property
    def is_loading(self) -> bool:
        return self.collection.is_loading

    @property
    def error(self) -> Optional[str]:
        return self.collection.error

    @property
    def state(self) -> ListState:
        return self.collection.state

    @property
    def total_count(self) -> int:
        return self.collection.total_count

    @property
    def has_next_page(self) -> bool:
        return self.collection.has_next_page

    @property
    def can_load_more(self) -> bool:
        """Whether a "load more" control should be offered."""
        return self.collection.has_next_page and not self.collection.is_loading

    def local_search(self, text: str) -> List[BibliographyRecord]:
        """Search-as-you-type over the loaded records, without any request."""
        return apply_filters(self.collection.records, self._criteria, query=text)

    # ------------------------------------------------------------------
    # Filter management
    # ------------------------------------------------------------------

    def add_year_filter(self, year: int) -> None:
        self.set_criteria(self._criteria.with_year(year))

    def add_author_filter(self, author: str) -> None:
        self.set_criteria(self._criteria.with_author(author))

    def remove_author_filter(self, author: str) -> None:
        self.set_criteria(self._criteria.without_author(author))

    def add_keyword_filter(self, keyword: str) -> None:
        self.set_criteria(self._criteria.with_keyword(keyword))

    def remove_keyword_filter(self, keyword: str) -> None:
        self.set_criteria(self._criteria.without_keyword(keyword))

    def clear_filters(self) -> None:
        self._criteria = FilterCriteria()
        self._schedule()

    def clear_search(self) -> None:
        self._query = ""
        self._schedule()

    # ------------------------------------------------------------------
    # Passthroughs
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Initial load of page 1."""
        await self.collection.refresh()

    async def refresh(self) -> None:
        await self.collection.refresh()

    async def load_next(self) -> None:
        await self.collection.load_next()

    async def create(self, draft: Union[BibliographyDraft, BibliographyRecord]) -> BibliographyRecord:
        return await self.collection.create(draft)

    async def update(self, record: BibliographyRecord) -> BibliographyRecord:
        return await self.collection.update(record)

    async def delete(self, record_id: str) -> None:
        await self.collection.delete(record_id)

    def lookup(self, record_id: str) -> Optional[BibliographyRecord]:
        return self.collection.lookup(record_id)

    def clear_error(self) -> None:
        self.collection.clear_error()

    def close(self) -> None:
        """Stop the pending countdown and detach from the collection."""
        self._debouncer.cancel()
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
