"""Typed calls against the bibliography collection API."""

from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..core.models import (
    BibliographyItemResponse,
    BibliographyListResponse,
    BibliographyRecord,
    FilterCriteria,
)
from ..utils.logging import get_logger
from . import endpoints
from .errors import DecodingError
from .transport import ApiClient

logger = get_logger(__name__)


class BibliographyApi:
    """Send collection requests and decode their envelopes into models."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    def _parse_list(self, payload: Any) -> BibliographyListResponse:
        try:
            return BibliographyListResponse.model_validate(payload)
        except ValidationError as e:
            logger.error("List response did not match expected shape", extra={"errors": e.errors()})
            raise DecodingError() from e

    def _parse_item(self, payload: Any) -> BibliographyRecord:
        try:
            # Some deployments answer with the bare record, others wrap it
            if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
                return BibliographyItemResponse.model_validate(payload).data
            return BibliographyRecord.model_validate(payload)
        except ValidationError as e:
            logger.error("Item response did not match expected shape", extra={"errors": e.errors()})
            raise DecodingError() from e

    async def fetch_page(self, page: int, limit: int) -> BibliographyListResponse:
        payload = await self.api.send(endpoints.list_page(page, limit))
        return self._parse_list(payload)

    async def search(
        self,
        query: str,
        page: int,
        limit: int,
        criteria: Optional[FilterCriteria] = None,
    ) -> BibliographyListResponse:
        payload = await self.api.send(endpoints.search(query, page, limit, criteria))
        return self._parse_list(payload)

    async def fetch_one(self, record_id: str) -> BibliographyRecord:
        payload = await self.api.send(endpoints.get_one(record_id))
        return self._parse_item(payload)

    async def create(self, body: Dict[str, Any]) -> BibliographyRecord:
        payload = await self.api.send(endpoints.create(body))
        return self._parse_item(payload)

    async def update(self, record_id: str, body: Dict[str, Any]) -> BibliographyRecord:
        payload = await self.api.send(endpoints.update(record_id, body))
        return self._parse_item(payload)

    async def delete(self, record_id: str) -> None:
        await self.api.send(endpoints.delete(record_id))
