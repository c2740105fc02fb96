"""Request/response containers and API entities."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RequestContext:
    """One logical call, reused unchanged in identity across all of its replays.

    ``retry_count`` and ``attempt_state`` are annotated in place by interceptors;
    a replay never builds a new context, so ``retry_count`` only grows.
    """

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    retry_count: int = 0
    attempt_state: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        return f"{self.method} {self.path}"


@dataclass(frozen=True)
class Response:
    """A completed HTTP exchange, whatever its status."""

    status_code: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class Post:
    """A post as served by ``/posts``."""

    id: int
    user_id: int
    title: str
    body: str

    @classmethod
    def from_json(cls, data: dict) -> "Post":
        """Build a post from its JSON object (``userId`` is camel-cased on the wire)."""
        return cls(
            id=int(data["id"]),
            user_id=int(data["userId"]),
            title=str(data["title"]),
            body=str(data["body"]),
        )

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "body": self.body,
        }


# Resource path segment -> entity type decoded from it
ENTITY_TYPES: dict[str, type] = {
    "posts": Post,
}
