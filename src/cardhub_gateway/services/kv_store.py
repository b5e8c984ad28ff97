"""Key/value stores with per-key expiry.

Nonces and rate windows live here. Production deployments point ``REDIS_URL``
at Redis; ``memory://`` keeps entries in-process, which only suits a single
worker and tests.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from threading import Lock
from typing import Any, Protocol

import redis

MEMORY_URL = "memory://"
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


class KeyValueStoreError(RuntimeError):
    """Raised when the backing store cannot be reached."""


class KeyValueStore(Protocol):
    """Minimal TTL store contract used by the gateway."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, *, ttl_seconds: int) -> None: ...

    def add(self, key: str, value: str, *, ttl_seconds: int) -> bool:
        """Store ``value`` only if ``key`` is absent. Return True if stored."""
        ...


class MemoryStore:
    """In-process store.

    Expiry is checked on access, and writes sweep out every expired entry at
    most once per ``sweep_interval_seconds``. Nonce keys are never read back,
    so the sweep is what bounds memory.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        *,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = Lock()
        self.sweep_interval_seconds = sweep_interval_seconds
        self._next_sweep = clock() + sweep_interval_seconds

    def size(self) -> int:
        """Return the number of stored entries, including unswept expired ones."""
        with self._lock:
            return len(self._entries)

    def _sweep_if_due(self) -> None:
        now = self._clock()
        if now < self._next_sweep:
            return
        expired = [key for key, (_, expiry) in self._entries.items() if expiry <= now]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self.sweep_interval_seconds

    def _live(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expiry = entry
        if expiry <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._live(key)

    def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        with self._lock:
            self._sweep_if_due()
            self._entries[key] = (value, self._clock() + ttl_seconds)

    def add(self, key: str, value: str, *, ttl_seconds: int) -> bool:
        with self._lock:
            self._sweep_if_due()
            if self._live(key) is not None:
                return False
            self._entries[key] = (value, self._clock() + ttl_seconds)
            return True


class RedisStore:
    """Redis-backed store; expiry is enforced by Redis itself."""

    def __init__(self, client: Any) -> None:
        self._redis = client

    @classmethod
    def from_url(cls, url: str, *, timeout_seconds: float = 2.0) -> RedisStore:
        client = redis.from_url(  # type: ignore[no-untyped-call]
            url,
            decode_responses=True,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
        return cls(client)

    def get(self, key: str) -> str | None:
        try:
            value = self._redis.get(key)
        except redis.RedisError as exc:
            raise KeyValueStoreError(f"Redis GET failed: {exc}") from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        try:
            self._redis.set(key, value, ex=int(ttl_seconds))
        except redis.RedisError as exc:
            raise KeyValueStoreError(f"Redis SET failed: {exc}") from exc

    def add(self, key: str, value: str, *, ttl_seconds: int) -> bool:
        try:
            return bool(self._redis.set(key, value, ex=int(ttl_seconds), nx=True))
        except redis.RedisError as exc:
            raise KeyValueStoreError(f"Redis SET NX failed: {exc}") from exc


def build_kv_store(url: str | None) -> KeyValueStore | None:
    """Return a store for ``url``, or None when the feature is unconfigured."""
    if not url:
        return None
    if url == MEMORY_URL:
        return MemoryStore()
    return RedisStore.from_url(url)
