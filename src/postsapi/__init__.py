"""Async Python client for a posts REST API with an interceptor pipeline."""

from .auth import TokenPair, TokenStore
from .client import PostsClient
from .config import ClientConfig
from .diagnostics import DiagnosticEvent, LoggerSink, NullSink
from .exceptions import (
    BadRequestError,
    ClassifiedError,
    ErrorKind,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    PostsError,
    RequestCancelledError,
    RequestTimeoutError,
    ServerError,
    UnauthorizedError,
    UnclassifiedError,
    classify,
)
from .interceptors import (
    AuthInterceptor,
    InterceptorChain,
    LoggingInterceptor,
    RefreshTokenInterceptor,
    RetryInterceptor,
)
from .models import Post, RequestContext, Response
from .transport import AiohttpTransport

__all__ = [
    "PostsClient",
    "ClientConfig",
    "TokenStore",
    "TokenPair",
    "InterceptorChain",
    "LoggingInterceptor",
    "AuthInterceptor",
    "RefreshTokenInterceptor",
    "RetryInterceptor",
    "AiohttpTransport",
    "RequestContext",
    "Response",
    "Post",
    "DiagnosticEvent",
    "NullSink",
    "LoggerSink",
    "ErrorKind",
    "PostsError",
    "ClassifiedError",
    "NetworkError",
    "RequestTimeoutError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ServerError",
    "BadRequestError",
    "RequestCancelledError",
    "UnclassifiedError",
    "classify",
]
