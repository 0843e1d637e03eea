"""HTTP access to the remote bibliography collection.

* :class:`ApiClient`: one ``httpx.AsyncClient`` with bearer-token
  injection, timeouts and error classification.
* :class:`BibliographyApi`: typed list/search/get/create/update/delete
  calls returning pydantic models.
* :class:`AccessTokenStore`: holder for the token handed over by the
  session component.
"""

from .errors import (
    BiblioError,
    ErrorType,
    InvalidURLError,
    NoConnectivityError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    ServerError,
    HTTPStatusError,
    DecodingError,
    PreconditionError,
    UnknownNetworkError,
    classify_error,
)
from .session import AccessTokenStore, TokenProvider
from .transport import ApiClient
from .bibliography import BibliographyApi

__all__ = [
    "BiblioError",
    "ErrorType",
    "InvalidURLError",
    "NoConnectivityError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ServerError",
    "HTTPStatusError",
    "DecodingError",
    "PreconditionError",
    "UnknownNetworkError",
    "classify_error",
    "AccessTokenStore",
    "TokenProvider",
    "ApiClient",
    "BibliographyApi",
]
