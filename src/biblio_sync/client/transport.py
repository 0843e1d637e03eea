"""HTTP transport for the bibliography API with error classification."""

from typing import Any, Dict, Optional
import httpx
from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from ..config.settings import Settings, settings as default_settings
from ..utils.logging import get_logger
from .endpoints import Endpoint
from .errors import DecodingError, classify_error, error_for_status
from .session import TokenProvider

logger = get_logger(__name__)


class ApiClient:
    """Thin async wrapper around one ``httpx.AsyncClient``.

    Attaches the bearer token when the token provider has one, enforces
    the request timeout, and turns every failure into a ``BiblioError``.
    Only connection-establishment failures are ever retried, and only
    when ``connect_retries`` is set.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        token_provider: Optional[TokenProvider] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or default_settings
        self.token_provider = token_provider
        self.client = client or httpx.AsyncClient(
            base_url=self.config.api_base_url,
            timeout=self.config.request_timeout,
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            headers=self._build_headers(),
        )
        self._requests_sent = 0

    def _build_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        }

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider.get_access_token() if self.token_provider else None
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _request(self, endpoint: Endpoint) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.connect_retries + 1),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
            retry=retry_if_exception_type(httpx.ConnectError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self.client.request(
                    endpoint.method,
                    endpoint.path,
                    params=endpoint.params or None,
                    json=endpoint.json,
                    headers=self._auth_headers(),
                )
        raise AssertionError("unreachable")  # pragma: no cover

    async def send(self, endpoint: Endpoint) -> Any:
        """Send ``endpoint`` and return its decoded JSON body.

        Returns None for endpoints that expect no body (DELETE).

        Raises:
            BiblioError: classified failure
        """
        logger.debug("Sending request", extra={"endpoint": endpoint.name, "params": endpoint.params})
        self._requests_sent += 1
        try:
            response = await self._request(endpoint)
        except Exception as e:
            # Anything unrecognised (e.g. sending on a closed client) ends up as UnknownNetworkError
            error = classify_error(e)
            logger.warning(
                f"Request failed: {error}",
                extra={"endpoint": endpoint.name, "error_type": error.error_type.value, "cause": repr(e)},
            )
            raise error from e

        status_error = error_for_status(response.status_code)
        if status_error is not None:
            logger.warning(
                f"HTTP error: {response.status_code}",
                extra={"endpoint": endpoint.name, "error_type": status_error.error_type.value},
            )
            raise status_error

        if not endpoint.expects_body:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(
                "Failed to decode response",
                extra={"endpoint": endpoint.name, "body": response.text[:500]},
            )
            raise DecodingError() from e

    @property
    def requests_sent(self) -> int:
        return self._requests_sent

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
