from __future__ import annotations

import pytest

from postsapi.diagnostics import DiagnosticEvent
from postsapi.models import RequestContext, Response


class FakeTransport:
    """Replays scripted outcomes per path and records every attempt.

    An outcome is a :class:`Response` to return or an exception to raise.
    """

    def __init__(self, script: dict[str, list] | None = None):
        self.script = {path: list(outcomes) for path, outcomes in (script or {}).items()}
        self.calls: list[dict] = []

    def queue(self, path: str, *outcomes) -> None:
        self.script.setdefault(path, []).extend(outcomes)

    def calls_to(self, path: str) -> list[dict]:
        return [call for call in self.calls if call["path"] == path]

    async def send(self, ctx: RequestContext) -> Response:
        self.calls.append(
            {
                "method": ctx.method,
                "path": ctx.path,
                "headers": dict(ctx.headers),
                "body": ctx.body,
                "retry_count": ctx.retry_count,
                "ctx": ctx,
            }
        )
        outcomes = self.script.get(ctx.path)
        if not outcomes:
            raise AssertionError(f"Unexpected request: {ctx.method} {ctx.path}")
        outcome = outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSink:
    def __init__(self):
        self.events: list[DiagnosticEvent] = []

    def emit(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [event.kind for event in self.events]

    def of_kind(self, kind: str) -> list[DiagnosticEvent]:
        return [event for event in self.events if event.kind == kind]


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


def post_json(post_id: int = 1, **overrides) -> dict:
    data = {"id": post_id, "userId": 1, "title": f"title {post_id}", "body": f"body {post_id}"}
    data.update(overrides)
    return data


@pytest.fixture
def make_post():
    return post_json


@pytest.fixture
def transport_factory():
    return FakeTransport
