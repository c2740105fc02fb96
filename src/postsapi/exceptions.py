"""Exception hierarchy and transport-failure classification for the posts client."""

import asyncio
from enum import Enum
from typing import Any

import aiohttp


class ErrorKind(Enum):
    """Closed set of failure kinds a caller can branch on."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    SERVER = "server"
    BAD_REQUEST = "bad_request"
    CANCELLED = "cancelled"
    UNCLASSIFIED = "unclassified"


class PostsError(Exception):
    """Base exception for all posts client errors."""


class ClassifiedError(PostsError):
    """A failure mapped onto one :class:`ErrorKind`.

    Instances are treated as immutable once raised: interceptors forward them
    unchanged or replace them, never edit them.
    """

    kind = ErrorKind.UNCLASSIFIED
    default_message = "Request failed"

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        data: Any = None,
    ):
        self.message = message or self.default_message
        self.status_code = status_code
        self.data = data
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        """Whether a replay of the same request may succeed."""
        if self.kind in (ErrorKind.NETWORK, ErrorKind.TIMEOUT):
            return True
        return self.status_code is not None and self.status_code >= 500

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"message={self.message!r}, status_code={self.status_code!r})"
        )


class NetworkError(ClassifiedError):
    """Connection could not be established (DNS, refused, reset)."""

    kind = ErrorKind.NETWORK
    default_message = "No internet connection"


class RequestTimeoutError(ClassifiedError):
    """Connect, send or receive timed out."""

    kind = ErrorKind.TIMEOUT
    default_message = "Request timeout"


class UnauthorizedError(ClassifiedError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Unauthorized - Please login again"

    def __init__(self, message: str | None = None, data: Any = None):
        super().__init__(message, status_code=401, data=data)


class ForbiddenError(ClassifiedError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Forbidden - No permission"

    def __init__(self, message: str | None = None, data: Any = None):
        super().__init__(message, status_code=403, data=data)


class NotFoundError(ClassifiedError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"

    def __init__(self, message: str | None = None, data: Any = None):
        super().__init__(message, status_code=404, data=data)


class ServerError(ClassifiedError):
    kind = ErrorKind.SERVER
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int = 500, data: Any = None):
        super().__init__(message, status_code=status_code, data=data)


class BadRequestError(ClassifiedError):
    kind = ErrorKind.BAD_REQUEST
    default_message = "Bad request"

    def __init__(self, message: str | None = None, data: Any = None):
        super().__init__(message, status_code=400, data=data)


class RequestCancelledError(ClassifiedError):
    kind = ErrorKind.CANCELLED
    default_message = "Request was cancelled"


class UnclassifiedError(ClassifiedError):
    """Unexpected status or local failure; ``status_code`` may be ``None``."""


_SERVER_MESSAGES = {
    500: "Internal server error",
    502: "Bad gateway",
    503: "Service unavailable",
}


def classify_status(status_code: int, body: Any = None) -> ClassifiedError:
    """Map a completed non-2xx response onto the taxonomy."""
    if status_code == 400:
        return BadRequestError(str(body) if body else None, data=body)
    if status_code == 401:
        return UnauthorizedError(data=body)
    if status_code == 403:
        return ForbiddenError(data=body)
    if status_code == 404:
        return NotFoundError(data=body)
    if status_code in _SERVER_MESSAGES:
        return ServerError(_SERVER_MESSAGES[status_code], status_code=status_code, data=body)
    return UnclassifiedError(status_code=status_code, data=body)


def classify(failure: Any) -> ClassifiedError:
    """Turn a transport outcome into a :class:`ClassifiedError`.

    *failure* is either an exception raised while talking to the server or a
    completed response (anything with ``status_code`` and ``body``) whose status
    is not 2xx.
    """
    if isinstance(failure, ClassifiedError):
        return failure

    if not isinstance(failure, BaseException):
        return classify_status(failure.status_code, getattr(failure, "body", None))

    # ServerTimeoutError is also a ClientConnectionError, so timeouts go first
    if isinstance(failure, (asyncio.TimeoutError, aiohttp.ServerTimeoutError)):
        error = RequestTimeoutError()
    elif isinstance(failure, (aiohttp.ClientConnectionError, OSError)):
        error = NetworkError()
    elif isinstance(failure, asyncio.CancelledError):
        error = RequestCancelledError()
    elif isinstance(failure, aiohttp.ClientResponseError):
        error = classify_status(failure.status, failure.message)
    else:
        error = UnclassifiedError(f"Unexpected error: {failure}")
    error.__cause__ = failure
    return error
