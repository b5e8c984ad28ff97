"""Signature, freshness and replay checks for signed query endpoints."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from cardhub_gateway.core import security
from cardhub_gateway.core.verdict import Verdict
from cardhub_gateway.services.replay import NonceLedger

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT_WINDOW_SECONDS = 300


class RequestAuthenticator:
    """Validates ``_ts``/``_nonce``/``_sig`` query parameters.

    Without a signing key every request passes. Without a nonce ledger the
    replay step is skipped but freshness and signature are still enforced.
    """

    def __init__(
        self,
        secret: str | None,
        nonce_ledger: NonceLedger | None,
        *,
        accept_window_seconds: int = DEFAULT_ACCEPT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._nonces = nonce_ledger
        self.accept_window_ms = accept_window_seconds * 1000
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    def authenticate(self, path: str, query: Sequence[tuple[str, str]]) -> Verdict:
        """Check a request's signature parameters.

        Args:
            path: Raw request path the client signed.
            query: All query parameters in request order.

        Returns:
            An accepted verdict, or a rejection naming the first failed check.
        """
        if not self._secret:
            return Verdict.accept()

        params = dict(query)
        ts, nonce, sig = params.get("_ts"), params.get("_nonce"), params.get("_sig")
        if not ts or not nonce or not sig:
            return Verdict.reject("missing signature parameters")

        try:
            timestamp = int(ts)
        except ValueError:
            return Verdict.reject("expired signature")
        if abs(int(self._clock() * 1000) - timestamp) > self.accept_window_ms:
            return Verdict.reject("expired signature")

        # The nonce is burned before the signature check, so a forged request
        # still consumes it.
        if self._nonces is not None and not self._nonces.consume(nonce):
            logger.info("Rejected replayed nonce on %s", path)
            return Verdict.reject("already processed")

        if not security.verify(path, query, ts, nonce, sig, self._secret):
            return Verdict.reject("invalid signature")
        return Verdict.accept()
