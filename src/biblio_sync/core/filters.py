"""Local filtering of the canonical list.

Used only when no free-text query is active; with a query the server has
already filtered and its result set is shown as-is.
"""

from typing import Iterable, List, Optional

from .models import BibliographyRecord, FilterCriteria

SECONDARY_FIELDS = (
    "language_published",
    "language_researched",
    "country_of_research",
    "language_family",
    "source",
)


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle.casefold() in haystack.casefold()


def matches_query(record: BibliographyRecord, query: str) -> bool:
    """Case-insensitive substring match over the searchable text fields."""
    query = query.strip()
    if not query:
        return True
    return any(
        _contains(value, query)
        for value in (record.title, record.author, record.keywords, record.publication, record.source)
    )


def matches_criteria(record: BibliographyRecord, criteria: FilterCriteria) -> bool:
    """True iff ``record`` satisfies every set field of ``criteria``."""
    if criteria.year is not None and record.year != criteria.year:
        return False

    if criteria.year_from is not None or criteria.year_to is not None:
        if record.year is None:
            return False
        if criteria.year_from is not None and record.year < criteria.year_from:
            return False
        if criteria.year_to is not None and record.year > criteria.year_to:
            return False

    if criteria.authors and not any(_contains(record.author, a) for a in criteria.authors):
        return False

    if criteria.journals and record.publication not in criteria.journals:
        return False

    if criteria.keywords and not any(_contains(record.keywords, k) for k in criteria.keywords):
        return False

    for field in SECONDARY_FIELDS:
        wanted = getattr(criteria, field)
        if wanted is not None and getattr(record, field) != wanted:
            return False

    # Records whose creation time never parsed are left to the server
    if record.created_at is not None:
        if criteria.date_from is not None and record.created_at < criteria.date_from:
            return False
        if criteria.date_to is not None and record.created_at > criteria.date_to:
            return False

    return True


def apply_filters(
    records: Iterable[BibliographyRecord],
    criteria: FilterCriteria,
    query: str = "",
) -> List[BibliographyRecord]:
    """Return the records passing both the text query and the criteria, in order."""
    if criteria.is_empty and not query.strip():
        return list(records)
    return [r for r in records if matches_query(r, query) and matches_criteria(r, criteria)]
