"""Domain models, normalization and the local filter predicate."""

from .models import (
    BibliographyRecord,
    BibliographyDraft,
    FilterCriteria,
    PageCursor,
    Pagination,
    BibliographyPage,
    BibliographyListResponse,
    BibliographyItemResponse,
)
from .filters import apply_filters, matches_criteria, matches_query

__all__ = [
    "BibliographyRecord",
    "BibliographyDraft",
    "FilterCriteria",
    "PageCursor",
    "Pagination",
    "BibliographyPage",
    "BibliographyListResponse",
    "BibliographyItemResponse",
    "apply_filters",
    "matches_criteria",
    "matches_query",
]
