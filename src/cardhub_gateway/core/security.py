"""Request signature and HMAC primitives.

The query signature is a SHA-256 digest over the request path, the canonical
query string, the timestamp, the nonce and the shared secret appended as a
suffix. The secret is published through ``/api/config``, so the scheme only
filters casual scripting; it is not a cryptographic guarantee.
"""
from __future__ import annotations

import hashlib
import hmac
from collections.abc import Iterable
from urllib.parse import quote_plus

SIGNATURE_PARAMS = frozenset({"_ts", "_nonce", "_sig"})


def _form_quote(value: str) -> str:
    # application/x-www-form-urlencoded keeps "*" and escapes "~"
    return quote_plus(value, safe="*").replace("~", "%7E")


def canonical_params(pairs: Iterable[tuple[str, str]]) -> str:
    """Return the sorted, form-encoded query string used for signing.

    Signature parameters are excluded. The sort is stable, so repeated keys
    keep their original relative order.

    Args:
        pairs: Query parameters as (key, value) pairs in request order.

    Returns:
        The canonical parameter string, possibly empty.
    """
    kept = [(key, value) for key, value in pairs if key not in SIGNATURE_PARAMS]
    kept.sort(key=lambda pair: pair[0].encode("utf-8"))
    return "&".join(f"{_form_quote(key)}={_form_quote(value)}" for key, value in kept)


def sign(
    path: str,
    params: Iterable[tuple[str, str]],
    timestamp: str,
    nonce: str,
    secret: str,
) -> str:
    """Compute the hex signature for a request.

    Args:
        path: Raw request path, e.g. ``/api/callsigns/BV2ABC``.
        params: Query parameters; signature parameters are ignored.
        timestamp: The ``_ts`` value exactly as sent.
        nonce: The ``_nonce`` value exactly as sent.
        secret: Shared signing key.

    Returns:
        Lowercase hex SHA-256 digest.
    """
    payload = f"{path}:{canonical_params(params)}:{timestamp}:{nonce}"
    return hashlib.sha256((payload + secret).encode("utf-8")).hexdigest()


def verify(
    path: str,
    params: Iterable[tuple[str, str]],
    timestamp: str,
    nonce: str,
    signature: str,
    secret: str,
) -> bool:
    """Return True if ``signature`` matches the recomputed digest."""
    expected = sign(path, params, timestamp, nonce, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


def hmac_sha256_hex(message: str, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``message`` under ``secret``."""
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()
