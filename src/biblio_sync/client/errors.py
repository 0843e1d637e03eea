"""Error taxonomy for the bibliography API and its classification."""

from enum import Enum
from typing import Optional

import httpx
from pydantic import ValidationError


class ErrorType(Enum):
    """Client-observable failure categories."""
    INVALID_URL = "invalid_url"          # Bad request construction - programming error
    NO_CONNECTIVITY = "no_connectivity"  # Connect failure, timeout
    UNAUTHORIZED = "unauthorized"        # 401
    FORBIDDEN = "forbidden"              # 403
    NOT_FOUND = "not_found"              # 404
    SERVER = "server"                    # 5xx
    HTTP_STATUS = "http_status"          # Any other non-2xx
    DECODING = "decoding"                # Payload did not match expected shape
    PRECONDITION = "precondition"        # Local validation, raised before any I/O
    UNKNOWN = "unknown"


class BiblioError(Exception):
    """Base class; ``str(error)`` is the message shown to the user."""

    error_type: ErrorType = ErrorType.UNKNOWN
    default_message = "Unknown error occurred"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidURLError(BiblioError):
    error_type = ErrorType.INVALID_URL
    default_message = "Invalid URL"


class NoConnectivityError(BiblioError):
    error_type = ErrorType.NO_CONNECTIVITY
    default_message = "No internet connection"


class UnauthorizedError(BiblioError):
    error_type = ErrorType.UNAUTHORIZED
    default_message = "Unauthorized access"


class ForbiddenError(BiblioError):
    error_type = ErrorType.FORBIDDEN
    default_message = "Access forbidden"


class NotFoundError(BiblioError):
    error_type = ErrorType.NOT_FOUND
    default_message = "Resource not found"


class ServerError(BiblioError):
    error_type = ErrorType.SERVER
    default_message = "Server error"


class HTTPStatusError(BiblioError):
    error_type = ErrorType.HTTP_STATUS

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP error: {status_code}")


class DecodingError(BiblioError):
    error_type = ErrorType.DECODING
    default_message = "Failed to decode response"


class PreconditionError(BiblioError):
    """Local validation failure; never reaches the network."""
    error_type = ErrorType.PRECONDITION
    default_message = "Invalid request"


class UnknownNetworkError(BiblioError):
    error_type = ErrorType.UNKNOWN


def error_for_status(status_code: int) -> Optional[BiblioError]:
    """Map an HTTP status to an error, or None for 2xx."""
    if 200 <= status_code < 300:
        return None
    if status_code == 401:
        return UnauthorizedError()
    if status_code == 403:
        return ForbiddenError()
    if status_code == 404:
        return NotFoundError()
    if 500 <= status_code < 600:
        return ServerError()
    return HTTPStatusError(status_code)


def classify_error(error: Exception) -> BiblioError:
    """
    Convert a transport or decoding exception into the taxonomy.

    Args:
        error: Exception raised while sending a request or decoding its body

    Returns:
        The matching BiblioError (the input itself if already classified)
    """
    if isinstance(error, BiblioError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        return error_for_status(error.response.status_code) or UnknownNetworkError()

    if isinstance(error, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return InvalidURLError()

    # Timeouts subclass TransportError too, so check them first
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError)):
        return NoConnectivityError()

    if isinstance(error, (ValidationError, ValueError)):
        return DecodingError()

    return UnknownNetworkError()
