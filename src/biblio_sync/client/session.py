"""Access-token seam to the external auth/session component."""

from typing import Optional, Protocol

from ..utils.logging import get_logger

logger = get_logger(__name__)


class TokenProvider(Protocol):
    """Anything that can hand out the currently valid bearer token."""

    def get_access_token(self) -> Optional[str]:
        ...


class AccessTokenStore:
    """In-memory holder for the bearer token.

    The session component sets the token after sign-in and clears it on
    sign-out. No token means requests go out unauthenticated.
    """

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token or None

    def set_access_token(self, token: str) -> None:
        self._token = token or None
        logger.debug("Access token updated", extra={"authenticated": self._token is not None})

    def clear_access_token(self) -> None:
        self._token = None
        logger.debug("Access token cleared")

    def get_access_token(self) -> Optional[str]:
        return self._token
