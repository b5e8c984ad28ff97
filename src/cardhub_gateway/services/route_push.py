"""Idempotent ingestion of carrier route pushes into the route log."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cardhub_gateway.db.time import now_ms, server_time
from cardhub_gateway.models import RouteEvent
from cardhub_gateway.schemas.route_push import WaybillRoute

logger = logging.getLogger(__name__)


def route_event_id(route: WaybillRoute, arrival_ms: int) -> str:
    """Return the carrier id, or a composite of waybill, op code and arrival time."""
    if route.id:
        return route.id
    return f"{route.mailno}-{route.op_code}-{arrival_ms}"


class WebhookIngestor:
    """Stores each route once; redelivered ids are skipped silently.

    The route log is the deduplication ledger, so rows are never updated or
    deleted. Each row commits on its own and a failing row does not stop the
    rest of the batch.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def ingest(self, routes: Sequence[WaybillRoute], *, arrival_ms: int | None = None) -> list[WaybillRoute]:
        """Insert unseen routes.

        Args:
            routes: Route nodes from one carrier push.
            arrival_ms: Arrival instant of the batch. Routes without a carrier id
                get the instant offset by their batch position, so id-less
                routes in one push never collide.

        Returns:
            The routes that were newly stored, in batch order.
        """
        arrival_ms = arrival_ms if arrival_ms is not None else now_ms()
        received_at = server_time()
        fresh: list[WaybillRoute] = []

        for position, route in enumerate(routes):
            event_id = route_event_id(route, arrival_ms + position)
            try:
                if self.db.get(RouteEvent, event_id) is not None:
                    logger.debug("Skipping already recorded route %s", event_id)
                    continue
                self.db.add(
                    RouteEvent(
                        id=event_id,
                        mailno=route.mailno,
                        orderid=route.orderid,
                        op_code=route.op_code,
                        accept_time=route.accept_time,
                        remark=route.remark,
                        received_at=received_at,
                    )
                )
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error("Route log insert failed for %s: %s", event_id, exc, exc_info=True)
                continue
            fresh.append(route)

        logger.info("Route push stored %d of %d routes", len(fresh), len(routes))
        return fresh
