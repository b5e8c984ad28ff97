"""Public query endpoints: captcha challenges and callsign lookup."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cardhub_gateway.api.dependencies import (
    CaptchaServiceDep,
    SessionDep,
    SettingsDep,
    enforce_rate_limit,
    require_signature,
)
from cardhub_gateway.core.errors import SignatureRejected, ValidationError
from cardhub_gateway.core.settings import Settings
from cardhub_gateway.schemas.query import CallsignQueryResponse, CaptchaResponse, CaptchaVerifyRequest
from cardhub_gateway.services.captcha import CaptchaService
from cardhub_gateway.services.card_query import CardQueryService

router = APIRouter(prefix="/api", tags=["query"])


@router.get("/captcha", dependencies=[Depends(enforce_rate_limit)])
async def issue_captcha(captcha: CaptchaServiceDep) -> CaptchaResponse:
    """Issue an arithmetic challenge; 503 when captcha is not configured."""
    challenge = captcha.issue()
    return CaptchaResponse(question=challenge.question, token=challenge.token, expires=challenge.expires)


@router.post("/captcha/verify", dependencies=[Depends(enforce_rate_limit)])
async def verify_captcha(payload: CaptchaVerifyRequest, captcha: CaptchaServiceDep) -> dict[str, bool]:
    """Check a captcha answer without performing a query."""
    verdict = captcha.verify(payload.token, payload.answer)
    if not verdict:
        raise SignatureRejected(f"Captcha {verdict.reason}")
    return {"success": True}


def _lookup(
    callsign: str | None,
    db: Session,
    settings: Settings,
    captcha: CaptchaService,
    captcha_token: str | None,
    captcha_answer: str | None,
) -> CallsignQueryResponse:
    if not callsign or not callsign.strip():
        raise ValidationError("Missing callsign")
    if settings.captcha_required_for_query:
        verdict = captcha.verify(captcha_token, captcha_answer)
        if not verdict:
            raise SignatureRejected(f"Captcha {verdict.reason}")

    normalized = callsign.strip().upper()
    items = CardQueryService(db).find_by_callsign(normalized)
    return CallsignQueryResponse(callsign=normalized, items=items)


@router.get(
    "/callsigns/{callsign}",
    dependencies=[Depends(enforce_rate_limit), Depends(require_signature)],
)
def query_callsign_path(
    callsign: str,
    db: SessionDep,
    settings: SettingsDep,
    captcha: CaptchaServiceDep,
    captcha_token: Annotated[str | None, Query()] = None,
    captcha_answer: Annotated[str | None, Query()] = None,
) -> CallsignQueryResponse:
    """Return card summaries for a callsign given in the path."""
    return _lookup(callsign, db, settings, captcha, captcha_token, captcha_answer)


@router.get("/query", dependencies=[Depends(enforce_rate_limit), Depends(require_signature)])
def query_callsign_param(
    db: SessionDep,
    settings: SettingsDep,
    captcha: CaptchaServiceDep,
    callsign: Annotated[str | None, Query()] = None,
    captcha_token: Annotated[str | None, Query()] = None,
    captcha_answer: Annotated[str | None, Query()] = None,
) -> CallsignQueryResponse:
    """Return card summaries for ``?callsign=``."""
    return _lookup(callsign, db, settings, captcha, captcha_token, captcha_answer)
