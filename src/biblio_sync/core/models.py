"""Core domain models for bibliography records, filters and pagination."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .normalization import (
    clean_text,
    format_timestamp,
    normalize_code,
    parse_timestamp,
    parse_year,
    split_keywords,
)

# Fields the server assigns; never sent back in a create/update body
SERVER_FIELDS = {"id", "created_at", "updated_at"}

OPTIONAL_TEXT_FIELDS = (
    "publication",
    "biblio_name",
    "publisher",
    "source",
    "keywords",
    "language_published",
    "language_researched",
    "country_of_research",
    "language_family",
    "url",
    "date_of_entry",
)


class BibliographyRecord(BaseModel):
    """One bibliographic entry as held in the canonical list.

    Two records compare equal iff both carry a server identifier and the
    identifiers match. A record without an identifier is only equal to
    itself.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, alias="_id", description="Server-assigned identifier")

    title: str
    author: str = Field(..., description="Flat author string, e.g. 'Doe, J.; Smith, A.'")
    year: Optional[int] = None
    publication: Optional[str] = Field(None, description="Venue / journal name")
    biblio_name: Optional[str] = None
    publisher: Optional[str] = None
    source: Optional[str] = None
    keywords: Optional[str] = Field(None, description="Comma-joined keyword string")

    language_published: Optional[str] = None
    language_researched: Optional[str] = None
    country_of_research: Optional[str] = None
    language_family: Optional[str] = None
    isbn: Optional[str] = None
    issn: Optional[str] = None

    url: Optional[str] = None
    date_of_entry: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return str(v).strip() or None

    @field_validator("title", "author")
    @classmethod
    def _required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, v: Any) -> Optional[int]:
        return parse_year(v)

    @field_validator(*OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def _clean_optional(cls, v: Any) -> Optional[str]:
        return clean_text(v)

    @field_validator("isbn", "issn", mode="before")
    @classmethod
    def _normalize_codes(cls, v: Any) -> Optional[str]:
        """ISBN/ISSN arrive as either strings or bare JSON numbers."""
        return normalize_code(v)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_timestamps(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BibliographyRecord):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id) if self.id is not None else id(self)

    @property
    def year_display(self) -> str:
        return str(self.year) if self.year is not None else "N/A"

    @property
    def keywords_display(self) -> str:
        return self.keywords or "N/A"

    def keyword_list(self) -> List[str]:
        return split_keywords(self.keywords)

    def to_payload(self) -> Dict[str, Any]:
        """Wire body for create/update: populated fields only, no server fields."""
        data = self.model_dump(exclude=SERVER_FIELDS, exclude_none=True)
        return {k: v for k, v in data.items() if v != ""}


class BibliographyDraft(BaseModel):
    """A record under construction, as typed into a form.

    Every field is kept as text until the draft is turned into a request
    body; only title and author are required.
    """

    model_config = ConfigDict(validate_assignment=True)

    title: str = ""
    author: str = ""
    year: str = ""
    publication: str = ""
    biblio_name: str = ""
    publisher: str = ""
    source: str = ""
    keywords: str = ""
    language_published: str = ""
    language_researched: str = ""
    country_of_research: str = ""
    language_family: str = ""
    isbn: str = ""
    issn: str = ""
    url: str = ""
    date_of_entry: str = ""

    @property
    def is_valid(self) -> bool:
        return bool(self.title.strip()) and bool(self.author.strip())

    @classmethod
    def from_record(cls, record: BibliographyRecord) -> "BibliographyDraft":
        """Pre-fill a draft from an existing record for editing."""
        values = record.model_dump(exclude=SERVER_FIELDS, exclude_none=True)
        return cls(**{k: str(v) for k, v in values.items()})

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for name in type(self).model_fields:
            value = getattr(self, name).strip()
            if not value:
                continue
            if name == "year":
                year = parse_year(value)
                if year is not None:
                    payload["year"] = year
                continue
            payload[name] = value
        return payload

    def apply_to(self, record: BibliographyRecord) -> BibliographyRecord:
        """Build the full replacement of ``record`` from this draft."""
        return BibliographyRecord(
            id=record.id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            **self.to_payload(),
        )


class FilterCriteria(BaseModel):
    """Structured narrowing of the list.

    Immutable: every change produces a new instance. Values inside a
    list-valued field are OR-ed, distinct fields are AND-ed.
    """

    model_config = ConfigDict(frozen=True)

    year: Optional[int] = None
    year_from: Optional[int] = None
    year_to: Optional[int] = None
    authors: Tuple[str, ...] = ()
    journals: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    language_published: Optional[str] = None
    language_researched: Optional[str] = None
    country_of_research: Optional[str] = None
    language_family: Optional[str] = None
    source: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @field_validator("authors", "journals", "keywords", mode="before")
    @classmethod
    def _clean_terms(cls, v: Any) -> Tuple[str, ...]:
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        terms: List[str] = []
        for term in v:
            term = str(term).strip()
            if term and term not in terms:
                terms.append(term)
        return tuple(terms)

    @field_validator(
        "language_published",
        "language_researched",
        "country_of_research",
        "language_family",
        "source",
        mode="before",
    )
    @classmethod
    def _clean_exact(cls, v: Any) -> Optional[str]:
        return clean_text(v)

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _parse_dates(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @property
    def is_empty(self) -> bool:
        return all(not value for value in self.model_dump().values())

    def with_year(self, year: Optional[int]) -> "FilterCriteria":
        return self.model_copy(update={"year": year})

    def with_author(self, author: str) -> "FilterCriteria":
        return self._add("authors", author)

    def without_author(self, author: str) -> "FilterCriteria":
        return self._remove("authors", author)

    def with_journal(self, journal: str) -> "FilterCriteria":
        return self._add("journals", journal)

    def without_journal(self, journal: str) -> "FilterCriteria":
        return self._remove("journals", journal)

    def with_keyword(self, keyword: str) -> "FilterCriteria":
        return self._add("keywords", keyword)

    def without_keyword(self, keyword: str) -> "FilterCriteria":
        return self._remove("keywords", keyword)

    def _add(self, field: str, term: str) -> "FilterCriteria":
        term = term.strip()
        current: Tuple[str, ...] = getattr(self, field)
        if not term or term in current:
            return self
        return self.model_copy(update={field: current + (term,)})

    def _remove(self, field: str, term: str) -> "FilterCriteria":
        current: Tuple[str, ...] = getattr(self, field)
        return self.model_copy(update={field: tuple(t for t in current if t != term)})

    def summary(self) -> str:
        """One-line description of the active filters."""
        parts: List[str] = []
        if self.year is not None:
            parts.append(f"Year: {self.year}")
        if self.year_from is not None or self.year_to is not None:
            parts.append(f"Years: {self.year_from or '…'}-{self.year_to or '…'}")
        if self.authors:
            parts.append(f"Authors: {', '.join(self.authors)}")
        if self.journals:
            parts.append(f"Journals: {', '.join(self.journals)}")
        if self.keywords:
            parts.append(f"Keywords: {', '.join(self.keywords)}")
        return " • ".join(parts)

    def to_query_params(self) -> Dict[str, str]:
        """Serialize the set fields for the search endpoint."""
        params: Dict[str, str] = {}
        for name, value in self:
            if value is None or value == ():
                continue
            if isinstance(value, tuple):
                params[name] = ",".join(value)
            elif isinstance(value, datetime):
                params[name] = format_timestamp(value)
            else:
                params[name] = str(value)
        return params


class PageCursor(BaseModel):
    """Pagination bookkeeping for the canonical list."""

    current_page: int = 1
    total_pages: int = 1
    total_count: int = 0
    has_next_page: bool = False
    has_previous_page: bool = False


class Pagination(BaseModel):
    """Wire form of the pagination object (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_page: int = Field(1, ge=1)
    total_count: int = Field(0, ge=0)
    total_pages: int = Field(0, ge=0)
    has_next_page: bool = False
    has_previous_page: bool = False

    def to_cursor(self) -> PageCursor:
        return PageCursor(
            current_page=self.current_page,
            total_pages=self.total_pages,
            total_count=self.total_count,
            has_next_page=self.has_next_page,
            has_previous_page=self.has_previous_page,
        )


class BibliographyPage(BaseModel):
    bibliographies: List[BibliographyRecord]
    pagination: Pagination
    search: Optional[Dict[str, Any]] = Field(None, description="Echoed search descriptor")


class BibliographyListResponse(BaseModel):
    """Envelope returned by the list and search endpoints."""
    success: bool = True
    data: BibliographyPage


class BibliographyItemResponse(BaseModel):
    """Envelope returned by get/create/update."""
    success: bool = True
    data: BibliographyRecord
    timestamp: Optional[str] = None
