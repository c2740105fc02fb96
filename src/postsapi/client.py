"""Main posts client: public interface and orchestration."""

import asyncio
import logging
from typing import Any

from .auth import TokenStore
from .config import ClientConfig
from .constants import DEMO_ACCESS_TOKEN, DEMO_REFRESH_TOKEN, LOGIN_PATH
from .diagnostics import DiagnosticSink, NullSink
from .exceptions import UnclassifiedError
from .interceptors import (
    AuthInterceptor,
    InterceptorChain,
    LoggingInterceptor,
    RefreshTokenInterceptor,
    RetryInterceptor,
    SleepFunc,
)
from .models import ENTITY_TYPES, RequestContext, Response
from .transport import AiohttpTransport, Transport

logger = logging.getLogger(__name__)


class PostsClient:
    """Async client for the posts REST API.

    Usage::

        api = PostsClient()
        await api.login("user@example.com", "password")
        posts = await api.fetch_all("posts")

    Every call goes through Logging -> Auth -> Refresh -> Retry. Failures
    surface as :class:`~postsapi.exceptions.ClassifiedError` subclasses only.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: Transport | None = None,
        token_store: TokenStore | None = None,
        sink: DiagnosticSink | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.config = config or ClientConfig()
        self.tokens = token_store or TokenStore()
        self.sink = sink or NullSink()
        self.chain = (
            InterceptorChain(transport or AiohttpTransport(self.config))
            .add(LoggingInterceptor(self.sink))
            .add(AuthInterceptor(self.tokens, self.config.fallback_token))
            .add(RefreshTokenInterceptor(self.tokens, self.sink))
            .add(
                RetryInterceptor(
                    self.config.max_retries,
                    self.config.initial_delay_s,
                    sleep=sleep,
                    sink=self.sink,
                )
            )
        )

    # ── Authentication ───────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> None:
        """Authenticate and store the returned token pair."""
        response = await self._request("POST", LOGIN_PATH, {"email": email, "password": password})
        data = response.body if isinstance(response.body, dict) else {}
        self.tokens.set_tokens(
            data.get("access_token") or DEMO_ACCESS_TOKEN,
            data.get("refresh_token") or DEMO_REFRESH_TOKEN,
        )
        logger.info("Login successful")

    async def logout(self) -> None:
        self.tokens.clear()
        logger.info("Logged out successfully")

    def is_authenticated(self) -> bool:
        return self.tokens.is_authenticated()

    # ── Entities ─────────────────────────────────────────────────────────

    async def fetch_all(self, resource: str = "posts") -> list:
        """GET /{resource} → list of entities."""
        entity_type = _entity_type(resource)
        response = await self._request("GET", f"/{resource}")
        if not isinstance(response.body, list):
            raise UnclassifiedError(
                f"Expected a list of {resource}", status_code=response.status_code, data=response.body
            )
        return [_decode(entity_type, item) for item in response.body]

    async def fetch_one(self, resource: str, entity_id: int):
        """GET /{resource}/{id} → entity."""
        entity_type = _entity_type(resource)
        response = await self._request("GET", f"/{resource}/{int(entity_id)}")
        return _decode(entity_type, response.body)

    async def create(self, resource: str, entity):
        """POST /{resource} → created entity."""
        entity_type = _entity_type(resource)
        response = await self._request("POST", f"/{resource}", _encode(entity))
        return _decode(entity_type, response.body)

    async def update(self, resource: str, entity_id: int, entity):
        """PUT /{resource}/{id} → updated entity."""
        entity_type = _entity_type(resource)
        response = await self._request("PUT", f"/{resource}/{int(entity_id)}", _encode(entity))
        return _decode(entity_type, response.body)

    async def delete(self, resource: str, entity_id: int) -> None:
        """DELETE /{resource}/{id}."""
        _entity_type(resource)
        await self._request("DELETE", f"/{resource}/{int(entity_id)}")

    # ── Internal helpers ─────────────────────────────────────────────────

    async def _request(self, method: str, path: str, body: Any = None) -> Response:
        return await self.chain.fetch(RequestContext(method, path, body=body))


def _entity_type(resource: str) -> type:
    if resource not in ENTITY_TYPES:
        raise ValueError(
            f"Unsupported resource '{resource}'. "
            f"Supported resources: {', '.join(ENTITY_TYPES)}"
        )
    return ENTITY_TYPES[resource]


def _decode(entity_type: type, payload: Any):
    try:
        return entity_type.from_json(payload)
    except (KeyError, TypeError, ValueError) as e:
        raise UnclassifiedError(
            f"Unexpected {entity_type.__name__} payload: {e}", data=payload
        ) from e


def _encode(entity) -> dict:
    if hasattr(entity, "to_json"):
        return entity.to_json()
    return dict(entity)
