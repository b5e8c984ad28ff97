"""Replay protection for signed query requests."""

from __future__ import annotations

import logging
from typing import Final

from cardhub_gateway.core.errors import StorageError
from cardhub_gateway.services.kv_store import KeyValueStore, KeyValueStoreError

logger = logging.getLogger(__name__)

DEFAULT_NONCE_TTL_SECONDS: Final[int] = 300  # matches the signature acceptance window


class NonceLedger:
    """Set of consumed nonces, each expiring after the acceptance window."""

    def __init__(self, store: KeyValueStore, *, ttl_seconds: int = DEFAULT_NONCE_TTL_SECONDS) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(nonce: str) -> str:
        return f"nonce:{nonce}"

    def consume(self, nonce: str) -> bool:
        """Record a nonce as used.

        Returns:
            True if the nonce was fresh, False if it had already been consumed.
        """
        try:
            return self._store.add(self._key(nonce), "1", ttl_seconds=self.ttl_seconds)
        except KeyValueStoreError as exc:
            logger.error("Nonce registration failed: %s", exc)
            raise StorageError("Replay check unavailable") from exc
