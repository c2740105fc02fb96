"""Interceptor chain and the built-in interceptors.

Every call runs ``on_request`` of each interceptor in registration order, then
the transport, then either ``on_response`` (2xx) or ``on_error`` (anything else),
again in registration order.

``on_error`` decides the outcome of the call:

* return ``None`` to hand the error to the next interceptor,
* return a :class:`Response` to resolve the call with it,
* raise a :class:`ClassifiedError` to fail the call with that error at once.

Replays go back through :meth:`InterceptorChain.fetch` with the *same*
:class:`RequestContext`; whatever the replay produces is already final, so an
interceptor returns its response or lets its error propagate.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Protocol

from .auth import TokenStore
from .constants import (
    DEFAULT_INITIAL_DELAY_S,
    DEFAULT_MAX_RETRIES,
    FALLBACK_TOKEN,
    REFRESH_PATH,
)
from .diagnostics import DiagnosticEvent, DiagnosticSink, NullSink, mask_body, mask_headers
from .exceptions import ClassifiedError, ErrorKind, UnclassifiedError, classify
from .models import RequestContext, Response
from .transport import Transport

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]

# attempt_state key set once a logical call has been through a token refresh
REFRESHED = "refreshed"
# attempt_state key holding the access token a refresh obtained for its replay
REPLAY_TOKEN = "replay_token"


class Interceptor(Protocol):
    async def on_request(self, ctx: RequestContext) -> None: ...

    async def on_response(self, ctx: RequestContext, response: Response) -> Response: ...

    async def on_error(
        self, ctx: RequestContext, error: ClassifiedError, chain: "InterceptorChain"
    ) -> Response | None: ...


class InterceptorChain:
    """Ordered interceptors wrapped around a :class:`Transport`."""

    def __init__(self, transport: Transport, interceptors: Iterable[Interceptor] = ()):
        self.transport = transport
        self.interceptors: list[Interceptor] = list(interceptors)

    def add(self, interceptor: Interceptor) -> "InterceptorChain":
        self.interceptors.append(interceptor)
        return self

    async def fetch(self, ctx: RequestContext) -> Response:
        """Run one attempt of *ctx* through the chain.

        Returns a 2xx response or raises a :class:`ClassifiedError`; transport
        exceptions never leave this method unclassified.
        """
        for interceptor in self.interceptors:
            await interceptor.on_request(ctx)

        try:
            response = await self.transport.send(ctx)
        except asyncio.CancelledError as exc:
            if _task_cancelling():
                raise
            error = classify(exc)
        except Exception as exc:
            error = classify(exc)
        else:
            if response.ok:
                for interceptor in self.interceptors:
                    response = await interceptor.on_response(ctx, response)
                return response
            error = classify(response)

        for interceptor in self.interceptors:
            resolved = await interceptor.on_error(ctx, error, self)
            if resolved is not None:
                return resolved
        raise error


class LoggingInterceptor:
    """Reports traffic to the logger and a diagnostic sink; changes nothing."""

    def __init__(self, sink: DiagnosticSink | None = None):
        self.sink = sink or NullSink()

    async def on_request(self, ctx: RequestContext) -> None:
        logger.debug("REQUEST: %s %s", ctx.method, ctx.path)
        logger.debug("   Headers: %s", mask_headers(ctx.headers))
        if ctx.body is not None:
            logger.debug("   Data: %s", mask_body(ctx.body))
        self.sink.emit(
            DiagnosticEvent(
                "request",
                ctx.method,
                ctx.path,
                detail={"headers": mask_headers(ctx.headers), "retry_count": ctx.retry_count},
            )
        )

    async def on_response(self, ctx: RequestContext, response: Response) -> Response:
        logger.debug("RESPONSE: %s %s", response.status_code, ctx.path)
        self.sink.emit(
            DiagnosticEvent("response", ctx.method, ctx.path, status_code=response.status_code)
        )
        return response

    async def on_error(
        self, ctx: RequestContext, error: ClassifiedError, chain: InterceptorChain
    ) -> Response | None:
        logger.debug("ERROR: %s %s (%s)", error.kind.value, ctx.describe(), error.message)
        self.sink.emit(
            DiagnosticEvent(
                "error",
                ctx.method,
                ctx.path,
                status_code=error.status_code,
                detail={"kind": error.kind.value, "message": error.message},
            )
        )
        return None


class AuthInterceptor:
    """Sets ``Authorization: Bearer <token>`` from the token store.

    A replay after a token refresh carries the token that refresh obtained,
    whatever the store holds by then. Without any access token the fixed
    fallback token is sent instead.
    """

    def __init__(self, token_store: TokenStore, fallback_token: str = FALLBACK_TOKEN):
        self.token_store = token_store
        self.fallback_token = fallback_token

    async def on_request(self, ctx: RequestContext) -> None:
        token = ctx.attempt_state.get(REPLAY_TOKEN) or self.token_store.get_access()
        if token is None:
            logger.debug("No access token stored, using fallback token")
        ctx.headers["Authorization"] = f"Bearer {token or self.fallback_token}"

    async def on_response(self, ctx: RequestContext, response: Response) -> Response:
        return response

    async def on_error(
        self, ctx: RequestContext, error: ClassifiedError, chain: InterceptorChain
    ) -> Response | None:
        return None


class RefreshTokenInterceptor:
    """Exchanges the refresh token after a 401 and replays the call once.

    The refresh request goes straight to the transport, outside the chain. If it
    fails for any reason both tokens are dropped and the original 401 is handed
    on. A second 401 on the replay is never refreshed again.
    """

    def __init__(
        self,
        token_store: TokenStore,
        sink: DiagnosticSink | None = None,
        refresh_path: str = REFRESH_PATH,
    ):
        self.token_store = token_store
        self.sink = sink or NullSink()
        self.refresh_path = refresh_path

    async def on_request(self, ctx: RequestContext) -> None:
        pass

    async def on_response(self, ctx: RequestContext, response: Response) -> Response:
        return response

    async def on_error(
        self, ctx: RequestContext, error: ClassifiedError, chain: InterceptorChain
    ) -> Response | None:
        if error.kind is not ErrorKind.UNAUTHORIZED:
            return None
        if ctx.attempt_state.get(REFRESHED):
            logger.debug("%s already refreshed once, not refreshing again", ctx.describe())
            return None
        refresh_token = self.token_store.get_refresh()
        if not refresh_token:
            logger.debug("No refresh token stored for %s", ctx.describe())
            return None

        ctx.attempt_state[REFRESHED] = True
        logger.info("Token expired, attempting refresh for %s", ctx.describe())
        try:
            access, refresh = await self.refresh(chain.transport, refresh_token)
        except Exception as e:
            logger.warning("Token refresh failed: %s", e)
            self.token_store.clear()
            self.sink.emit(
                DiagnosticEvent(
                    "refresh_failed",
                    ctx.method,
                    ctx.path,
                    status_code=getattr(e, "status_code", None),
                    detail={"reason": str(e)},
                )
            )
            return None

        self.token_store.set_tokens(access, refresh)
        logger.info("Token refreshed successfully")
        self.sink.emit(
            DiagnosticEvent(
                "refresh",
                ctx.method,
                ctx.path,
                detail={"new_refresh_token": refresh is not None},
            )
        )
        ctx.attempt_state[REPLAY_TOKEN] = access
        return await chain.fetch(ctx)

    async def refresh(self, transport: Transport, refresh_token: str) -> tuple[str, str | None]:
        """POST the refresh token; return ``(access_token, refresh_token or None)``."""
        request = RequestContext(
            "POST",
            self.refresh_path,
            headers={"Authorization": f"Bearer {refresh_token}"},
            body={"refresh_token": refresh_token},
        )
        try:
            response = await transport.send(request)
        except asyncio.CancelledError as exc:
            if _task_cancelling():
                raise
            raise classify(exc)
        if not response.ok:
            raise classify(response)
        body = response.body
        if not isinstance(body, dict) or not body.get("access_token"):
            raise UnclassifiedError(
                "Refresh response carries no access_token",
                status_code=response.status_code,
                data=body,
            )
        return body["access_token"], body.get("refresh_token") or None


class RetryInterceptor:
    """Replays retryable failures with exponential backoff.

    The wait before the Nth replay is ``initial_delay_s * 2 ** (N - 1)``. The
    count lives on the request context, so nested replays share one budget of
    ``max_retries``.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay_s: float = DEFAULT_INITIAL_DELAY_S,
        sleep: SleepFunc = asyncio.sleep,
        sink: DiagnosticSink | None = None,
    ):
        self.max_retries = max_retries
        self.initial_delay_s = initial_delay_s
        self._sleep = sleep
        self.sink = sink or NullSink()

    def backoff(self, attempt: int) -> float:
        """Delay before replay number *attempt* (1-based)."""
        return self.initial_delay_s * (1 << (attempt - 1))

    async def on_request(self, ctx: RequestContext) -> None:
        pass

    async def on_response(self, ctx: RequestContext, response: Response) -> Response:
        return response

    async def on_error(
        self, ctx: RequestContext, error: ClassifiedError, chain: InterceptorChain
    ) -> Response | None:
        if not error.retryable:
            return None
        if ctx.retry_count >= self.max_retries:
            logger.warning("Max retries (%d) exceeded for %s", self.max_retries, ctx.describe())
            self.sink.emit(
                DiagnosticEvent(
                    "retry_exhausted",
                    ctx.method,
                    ctx.path,
                    status_code=error.status_code,
                    detail={"retry_count": ctx.retry_count, "kind": error.kind.value},
                )
            )
            return None

        ctx.retry_count += 1
        delay = self.backoff(ctx.retry_count)
        logger.info(
            "Retry attempt %d/%d for %s after %.2fs",
            ctx.retry_count, self.max_retries, ctx.describe(), delay,
        )
        self.sink.emit(
            DiagnosticEvent(
                "retry",
                ctx.method,
                ctx.path,
                status_code=error.status_code,
                detail={"attempt": ctx.retry_count, "delay_s": delay, "kind": error.kind.value},
            )
        )
        await self._sleep(delay)
        return await chain.fetch(ctx)


def _task_cancelling() -> bool:
    """True while the calling task itself is being cancelled."""
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0
