"""Carrier route-push webhook.

The carrier retries anything that is not an acknowledgement, so this endpoint
only ever answers ``0000`` (or ``1000`` for an unparsable body). Storage and
push failures are logged and swallowed.
"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Request
from sqlalchemy.orm import Session

from cardhub_gateway.api.dependencies import PushDispatcherDep, SessionDep
from cardhub_gateway.db.time import now_ms
from cardhub_gateway.schemas.route_push import RoutePushAck, WaybillRoute
from cardhub_gateway.services.push import PushDispatcher, dispatch_in_background
from cardhub_gateway.services.route_push import WebhookIngestor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sf", tags=["carrier"])

ACK = RoutePushAck(return_code="0000", return_msg="success")
INVALID_JSON = RoutePushAck(return_code="1000", return_msg="invalid JSON")


def _extract_routes(body: object) -> list[WaybillRoute]:
    if not isinstance(body, dict):
        return []
    envelope = body.get("Body")
    raw_routes = envelope.get("WaybillRoute") if isinstance(envelope, dict) else None
    if not isinstance(raw_routes, list):
        return []
    routes: list[WaybillRoute] = []
    for item in raw_routes:
        route = WaybillRoute.from_payload(item)
        if route is None:
            logger.warning("Ignoring non-object route entry")
            continue
        routes.append(route)
    return routes


async def _handle_push(
    request: Request,
    db: Session,
    dispatcher: PushDispatcher,
    background_tasks: BackgroundTasks,
    *,
    sandbox: bool,
) -> RoutePushAck:
    try:
        body = json.loads(await request.body())
    except ValueError:
        logger.warning("Route push with unparsable body")
        return INVALID_JSON

    routes = _extract_routes(body)
    if not routes:
        return ACK

    try:
        fresh = WebhookIngestor(db).ingest(routes, arrival_ms=now_ms())
    except Exception:
        logger.exception("Route push ingestion failed")
        return ACK

    if fresh and dispatcher.enabled:
        background_tasks.add_task(dispatch_in_background, dispatcher, fresh, sandbox=sandbox)
    return ACK


@router.post("/route-push")
async def route_push(
    request: Request,
    db: SessionDep,
    dispatcher: PushDispatcherDep,
    background_tasks: BackgroundTasks,
) -> RoutePushAck:
    """Receive production route pushes."""
    return await _handle_push(request, db, dispatcher, background_tasks, sandbox=False)


@router.post("/route-push/sandbox")
async def route_push_sandbox(
    request: Request,
    db: SessionDep,
    dispatcher: PushDispatcherDep,
    background_tasks: BackgroundTasks,
) -> RoutePushAck:
    """Receive sandbox route pushes; notifications are marked as sandbox."""
    return await _handle_push(request, db, dispatcher, background_tasks, sandbox=True)
