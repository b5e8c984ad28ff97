"""Fixed-window request limiting per client key."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from cardhub_gateway.services.kv_store import KeyValueStore, KeyValueStoreError

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS: Final[int] = 20
DEFAULT_WINDOW_SECONDS: Final[int] = 60
# Stored windows outlive the window itself to absorb clock jitter between workers.
EXPIRY_GRACE_SECONDS: Final[int] = 10


@dataclass(frozen=True)
class RateDecision:
    """Result of a rate limit check."""

    allowed: bool
    remaining: int
    reset_at: int

    def retry_after(self, now: float) -> int:
        return max(0, self.reset_at - int(now))


class RateLimiter:
    """Counts requests in clock-aligned, non-overlapping windows.

    A missing store disables limiting entirely, and store failures are logged
    and let the request through.
    """

    def __init__(
        self,
        store: KeyValueStore | None,
        *,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    @staticmethod
    def _key(client_key: str) -> str:
        return f"ratelimit:{client_key}"

    def _load_count(self, key: str, window_start: int) -> int:
        raw = self._store.get(key) if self._store is not None else None
        if not raw:
            return 0
        try:
            stored = json.loads(raw)
        except ValueError:
            return 0
        if not isinstance(stored, dict) or stored.get("window") != window_start:
            return 0
        return int(stored.get("count", 0))

    def check_and_consume(self, client_key: str) -> RateDecision:
        """Count one request for ``client_key`` unless its window is exhausted."""
        if self._store is None:
            return RateDecision(allowed=True, remaining=self.max_requests, reset_at=0)

        now = int(self._clock())
        window_start = now - (now % self.window_seconds)
        reset_at = window_start + self.window_seconds
        key = self._key(client_key)

        try:
            count = self._load_count(key, window_start)
            if count >= self.max_requests:
                return RateDecision(allowed=False, remaining=0, reset_at=reset_at)

            count += 1
            self._store.set(
                key,
                json.dumps({"window": window_start, "count": count}),
                ttl_seconds=self.window_seconds + EXPIRY_GRACE_SECONDS,
            )
        except KeyValueStoreError as exc:
            logger.warning("Rate limit store unavailable, allowing request: %s", exc)
            return RateDecision(allowed=True, remaining=self.max_requests, reset_at=0)

        return RateDecision(allowed=True, remaining=self.max_requests - count, reset_at=reset_at)
