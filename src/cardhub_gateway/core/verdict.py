"""Accept/reject outcome shared by the request authenticator and captcha."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Verdict:
    """Outcome of a trust check. ``reason`` is set only on rejection."""

    accepted: bool
    reason: str | None = None

    @classmethod
    def accept(cls) -> Verdict:
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: str) -> Verdict:
        return cls(accepted=False, reason=reason)

    def __bool__(self) -> bool:
        return self.accepted
