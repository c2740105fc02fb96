"""Authentication: in-memory access/refresh token storage."""

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    """Snapshot of the stored tokens. Either field may be ``None``."""

    access: str | None = None
    refresh: str | None = None


class TokenStore:
    """Holds the current token pair in process memory.

    The pair is replaced as a whole under a lock, so readers always see a
    consistent snapshot: never a new access token next to a stale refresh
    token, and never one cleared without the other.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pair = TokenPair()

    @property
    def pair(self) -> TokenPair:
        return self._pair

    def get_access(self) -> str | None:
        return self._pair.access

    def get_refresh(self) -> str | None:
        return self._pair.refresh

    def set_access(self, token: str) -> None:
        if not token:
            raise ValueError("Access token must not be empty")
        with self._lock:
            self._pair = TokenPair(access=token, refresh=self._pair.refresh)
        logger.debug("Access token saved")

    def set_refresh(self, token: str) -> None:
        with self._lock:
            self._pair = TokenPair(access=self._pair.access, refresh=token)
        logger.debug("Refresh token saved")

    def set_tokens(self, access: str, refresh: str | None = None) -> None:
        """Store a new pair in one step.

        A missing *refresh* keeps the refresh token already stored.
        """
        if not access:
            raise ValueError("Access token must not be empty")
        with self._lock:
            self._pair = TokenPair(access=access, refresh=refresh or self._pair.refresh)
        logger.debug("Token pair saved (new refresh token: %s)", refresh is not None)

    def clear(self) -> None:
        """Drop both tokens (logout)."""
        with self._lock:
            self._pair = TokenPair()
        logger.debug("All tokens deleted")

    def is_authenticated(self) -> bool:
        return self._pair.access is not None
