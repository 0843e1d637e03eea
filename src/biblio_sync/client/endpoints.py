"""Request descriptors for the bibliography collection endpoints."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import quote

from ..core.models import FilterCriteria

COLLECTION_PATH = "/bibliography"
SEARCH_PATH = "/bibliography/search"


@dataclass(frozen=True)
class Endpoint:
    """Method, path and payload of one API call."""
    method: str
    path: str
    params: Dict[str, Any] = field(default_factory=dict)
    json: Optional[Dict[str, Any]] = None
    expects_body: bool = True

    @property
    def name(self) -> str:
        return f"{self.method} {self.path}"


def _item_path(record_id: str) -> str:
    return f"{COLLECTION_PATH}/{quote(record_id, safe='')}"


def list_page(page: int, limit: int) -> Endpoint:
    return Endpoint("GET", COLLECTION_PATH, params={"page": page, "limit": limit})


def search(query: str, page: int, limit: int, criteria: Optional[FilterCriteria] = None) -> Endpoint:
    params: Dict[str, Any] = {"q": query, "page": page, "limit": limit}
    if criteria is not None:
        params.update(criteria.to_query_params())
    return Endpoint("GET", SEARCH_PATH, params=params)


def get_one(record_id: str) -> Endpoint:
    return Endpoint("GET", _item_path(record_id))


def create(payload: Dict[str, Any]) -> Endpoint:
    return Endpoint("POST", COLLECTION_PATH, json=payload)


def update(record_id: str, payload: Dict[str, Any]) -> Endpoint:
    return Endpoint("PUT", _item_path(record_id), json=payload)


def delete(record_id: str) -> Endpoint:
    return Endpoint("DELETE", _item_path(record_id), expects_body=False)
