"""WeChat web authorization callback binding a callsign to a subscriber."""

import html
import logging
from typing import Annotated
from urllib.parse import unquote

from fastapi import APIRouter, Query, status
from fastapi.responses import HTMLResponse, PlainTextResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cardhub_gateway.api.dependencies import SessionDep, WeChatClientDep
from cardhub_gateway.db.time import server_time
from cardhub_gateway.models import CallsignBinding
from cardhub_gateway.services.wechat import WeChatError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wechat", tags=["wechat"])

_SUCCESS_PAGE = (
    '<!DOCTYPE html><html><head><meta charset="UTF-8"/><title>Subscribed</title></head>'
    "<body><p>Subscription confirmed. Callsign {callsign} is now linked to your WeChat "
    "account; card distribution and shipment updates for it will be pushed to you.</p>"
    "</body></html>"
)


def _bind(db: Session, callsign: str, openid: str) -> None:
    if db.get(CallsignBinding, (callsign, openid)) is not None:
        return
    db.add(CallsignBinding(callsign=callsign, openid=openid, created_at=server_time()))
    try:
        db.commit()
    except IntegrityError:
        # A concurrent callback stored the same binding first.
        db.rollback()


@router.get("/auth-callback", response_model=None)
async def auth_callback(
    db: SessionDep,
    client: WeChatClientDep,
    code: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
) -> HTMLResponse | PlainTextResponse:
    """Exchange the OAuth ``code`` for an openid and subscribe it to ``state``."""
    if not code or not state:
        return PlainTextResponse(
            "Missing code or state (callsign)", status_code=status.HTTP_400_BAD_REQUEST
        )
    if not client.config.subscribe_enabled:
        return PlainTextResponse(
            "WeChat official account is not configured",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    callsign = unquote(state).strip().upper()
    try:
        async with client:
            openid = await client.exchange_oauth_code(code)
    except WeChatError as exc:
        logger.warning("WeChat authorization failed for %s: %s", callsign, exc)
        return PlainTextResponse(
            f"WeChat authorization failed: {exc}", status_code=status.HTTP_400_BAD_REQUEST
        )

    _bind(db, callsign, openid)
    logger.info("Bound callsign %s to a WeChat subscriber", callsign)
    return HTMLResponse(_SUCCESS_PAGE.format(callsign=html.escape(callsign)))
