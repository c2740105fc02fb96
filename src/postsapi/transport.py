"""HTTP transport: the only place that talks to the network."""

import json
import logging
from typing import Protocol

import aiohttp

from .config import ClientConfig
from .models import RequestContext, Response

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Sends one attempt of a request.

    Returns a :class:`Response` for every completed exchange, including non-2xx
    ones, and raises the underlying library's exception otherwise.
    """

    async def send(self, ctx: RequestContext) -> Response: ...


class AiohttpTransport:
    """:class:`Transport` backed by aiohttp.

    Paths are resolved against ``config.base_url``; ``ctx.body`` is sent as JSON.
    """

    def __init__(self, config: ClientConfig | None = None):
        self.config = config or ClientConfig()
        self._timeout = aiohttp.ClientTimeout(
            sock_connect=self.config.connect_timeout_s,
            sock_read=self.config.receive_timeout_s,
        )

    def url_for(self, path: str) -> str:
        return f"{self.config.base_url}{path.lstrip('/')}"

    async def send(self, ctx: RequestContext) -> Response:
        url = self.url_for(ctx.path)
        headers = {**self.config.default_headers, **ctx.headers}
        async with aiohttp.ClientSession(timeout=self._timeout) as session:
            async with session.request(
                ctx.method, url, headers=headers, json=ctx.body
            ) as response:
                body = await _read_body(response)
                logger.debug("%s %s -> %s", ctx.method, url, response.status)
                return Response(
                    status_code=response.status,
                    body=body,
                    headers=dict(response.headers),
                )


async def _read_body(response: aiohttp.ClientResponse):
    """Decode a JSON body, falling back to text; empty bodies become ``None``."""
    text = await response.text()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text
