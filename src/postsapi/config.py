"""Client configuration."""

from dataclasses import dataclass, field

from .constants import (
    BASE_URL,
    CONNECT_TIMEOUT_S,
    DEFAULT_HEADERS,
    DEFAULT_INITIAL_DELAY_S,
    DEFAULT_MAX_RETRIES,
    FALLBACK_TOKEN,
    RECEIVE_TIMEOUT_S,
)


def normalize_base_url(raw: str) -> str:
    """Strip whitespace and make sure the URL ends with exactly one slash."""
    value = (raw or "").strip().rstrip("/")
    if not value:
        raise ValueError("base_url must not be empty")
    return f"{value}/"


@dataclass(frozen=True)
class ClientConfig:
    """Settings shared by the transport and the interceptor chain."""

    base_url: str = BASE_URL
    connect_timeout_s: float = CONNECT_TIMEOUT_S
    receive_timeout_s: float = RECEIVE_TIMEOUT_S
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay_s: float = DEFAULT_INITIAL_DELAY_S
    fallback_token: str = FALLBACK_TOKEN
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))

    def __post_init__(self):
        object.__setattr__(self, "base_url", normalize_base_url(self.base_url))
        if self.connect_timeout_s <= 0 or self.receive_timeout_s <= 0:
            raise ValueError("Timeouts must be positive")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.initial_delay_s < 0:
            raise ValueError(f"initial_delay_s must be >= 0, got {self.initial_delay_s}")
