"""Structured diagnostic events emitted by the interceptor chain."""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiagnosticEvent:
    """One observation about a call.

    ``kind`` is one of ``request``, ``response``, ``error``, ``retry``,
    ``retry_exhausted``, ``refresh`` or ``refresh_failed``.
    """

    kind: str
    method: str
    path: str
    status_code: int | None = None
    detail: dict[str, Any] = field(default_factory=dict)


class DiagnosticSink(Protocol):
    def emit(self, event: DiagnosticEvent) -> None: ...


class NullSink:
    """Discards every event."""

    def emit(self, event: DiagnosticEvent) -> None:
        pass


_LEVELS = {
    "retry": logging.INFO,
    "refresh": logging.INFO,
    "retry_exhausted": logging.WARNING,
    "refresh_failed": logging.WARNING,
}


class LoggerSink:
    """Writes events to a :mod:`logging` logger."""

    def __init__(self, target: logging.Logger | None = None):
        self.logger = target or logger

    def emit(self, event: DiagnosticEvent) -> None:
        self.logger.log(
            _LEVELS.get(event.kind, logging.DEBUG),
            "%s %s %s status=%s %s",
            event.kind.upper(),
            event.method,
            event.path,
            event.status_code,
            event.detail,
        )


def mask_headers(headers: dict[str, str]) -> dict[str, str]:
    """Copy *headers* with the bearer credential shortened."""
    masked = dict(headers)
    value = masked.get("Authorization")
    if value:
        scheme, _, token = value.partition(" ")
        masked["Authorization"] = f"{scheme} {token[:6]}..." if token else "***"
    return masked


_SECRET_KEYS = {"password", "refresh_token", "access_token"}


def mask_body(body):
    """Copy a JSON object body with credential values hidden."""
    if not isinstance(body, dict):
        return body
    return {key: "***" if key in _SECRET_KEYS else value for key, value in body.items()}
