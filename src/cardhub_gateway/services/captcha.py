"""Stateless arithmetic captcha.

The token is the only state: it carries the answer, the expiry and an HMAC
over both. Nothing is written server-side, so a token can be verified by any
worker that knows the captcha secret.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Final

from cardhub_gateway.core.errors import ConfigurationUnavailable
from cardhub_gateway.core.security import hmac_sha256_hex
from cardhub_gateway.core.verdict import Verdict

DEFAULT_TTL_SECONDS: Final[int] = 300

# Operand ranges; subtraction ranges are disjoint so the result stays non-negative.
_ADD_RANGE = (1, 50)
_SUB_MINUEND_RANGE = (20, 69)
_SUB_SUBTRAHEND_RANGE = (1, 20)


@dataclass(frozen=True)
class Challenge:
    """An issued captcha. ``expires`` is epoch milliseconds."""

    question: str
    answer: int
    token: str
    expires: int


def _encode_token(payload: dict[str, Any]) -> str:
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def _decode_token(token: str) -> tuple[int, int, str]:
    """Return (answer, expires, signature); raise ValueError on malformed input."""
    try:
        decoded = json.loads(base64.b64decode(token, validate=True))
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise ValueError("undecodable token") from exc
    if not isinstance(decoded, dict):
        raise ValueError("token is not an object")
    answer, expires, signature = decoded.get("a"), decoded.get("e"), decoded.get("s")
    if isinstance(answer, bool) or not isinstance(answer, int):
        raise ValueError("answer must be an integer")
    if isinstance(expires, bool) or not isinstance(expires, int):
        raise ValueError("expiry must be an integer")
    if not isinstance(signature, str):
        raise ValueError("signature must be a string")
    return answer, expires, signature


class CaptchaService:
    """Issues and verifies self-contained arithmetic challenges."""

    def __init__(
        self,
        secret: str | None,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._rng = rng or random.SystemRandom()

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @staticmethod
    def _signed_payload(answer: int, expires: int) -> str:
        return f"{answer}:{expires}"

    def issue(self) -> Challenge:
        """Create a new challenge.

        Raises:
            ConfigurationUnavailable: If no captcha secret is configured.
        """
        if not self._secret:
            raise ConfigurationUnavailable("Captcha is not enabled")

        if self._rng.choice("+-") == "+":
            left = self._rng.randint(*_ADD_RANGE)
            right = self._rng.randint(*_ADD_RANGE)
            operator, answer = "+", left + right
        else:
            left = self._rng.randint(*_SUB_MINUEND_RANGE)
            right = self._rng.randint(*_SUB_SUBTRAHEND_RANGE)
            operator, answer = "-", left - right

        expires = self._now_ms() + self.ttl_seconds * 1000
        signature = hmac_sha256_hex(self._signed_payload(answer, expires), self._secret)
        token = _encode_token({"a": answer, "e": expires, "s": signature})
        return Challenge(
            question=f"{left} {operator} {right} = ?",
            answer=answer,
            token=token,
            expires=expires,
        )

    def verify(self, token: str | None, user_answer: Any) -> Verdict:
        """Check a token and the caller's answer against it."""
        if not self._secret:
            return Verdict.accept()
        if not token or user_answer is None or user_answer == "":
            return Verdict.reject("missing captcha parameters")

        try:
            answer, expires, signature = _decode_token(token)
        except ValueError:
            return Verdict.reject("malformed")

        if self._now_ms() > expires:
            return Verdict.reject("expired")

        expected = hmac_sha256_hex(self._signed_payload(answer, expires), self._secret)
        if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8")):
            return Verdict.reject("invalid")

        try:
            given = int(str(user_answer).strip())
        except ValueError:
            return Verdict.reject("wrong answer")
        if given != answer:
            return Verdict.reject("wrong answer")
        return Verdict.accept()
