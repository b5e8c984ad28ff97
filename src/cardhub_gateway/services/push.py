"""Subscriber push fan-out for freshly ingested route events.

Dispatch runs after the webhook response has been sent. Nothing here is
awaited by the carrier's request, and every failure ends in the log.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from cardhub_gateway.models import CallsignBinding, Card, SfOrder
from cardhub_gateway.schemas.route_push import WaybillRoute
from cardhub_gateway.services.wechat import WeChatClient, WeChatError

logger = logging.getLogger(__name__)

SANDBOX_PREFIX = "[Sandbox] "


@dataclass
class PushTarget:
    """A selected route event with everyone subscribed to its callsign."""

    route: WaybillRoute
    callsign: str
    openids: list[str] = field(default_factory=list)


@dataclass
class DispatchReport:
    """Counts from one dispatch run."""

    selected: int = 0
    sent: int = 0
    failed: int = 0


def latest_per_shipment(routes: Iterable[WaybillRoute]) -> list[WaybillRoute]:
    """Keep the route with the latest carrier time for each waybill.

    Routes without a waybill are dropped. A route carrying an accept time beats
    one without; ties keep the earlier route in batch order.
    """
    latest: dict[str, WaybillRoute] = {}
    for route in routes:
        if not route.mailno:
            continue
        current = latest.get(route.mailno)
        if current is None or (
            route.accept_time
            and (not current.accept_time or route.accept_time > current.accept_time)
        ):
            latest[route.mailno] = route
    return list(latest.values())


def build_template_data(route: WaybillRoute, callsign: str, *, sandbox: bool) -> dict[str, dict[str, str]]:
    """Format the template message for one shipment update."""
    prefix = SANDBOX_PREFIX if sandbox else ""
    return {
        "first": {"value": f"{prefix}Your QSL card shipment was updated (callsign {callsign})"},
        "keyword1": {"value": route.mailno or "-"},
        "keyword2": {"value": route.remark or "-"},
        "keyword3": {"value": route.accept_time or "-"},
        "remark": {"value": "From QSL CardHub"},
    }


def _callsign_for(db: Session, route: WaybillRoute) -> str | None:
    base = select(Card.callsign).join(
        SfOrder,
        and_(SfOrder.client_id == Card.client_id, SfOrder.card_id == Card.id),
    )
    if route.orderid:
        callsign = db.execute(base.where(SfOrder.order_id == route.orderid).limit(1)).scalar()
        if callsign:
            return callsign
    if route.mailno:
        return db.execute(base.where(SfOrder.waybill_no == route.mailno).limit(1)).scalar()
    return None


class PushDispatcher:
    """Notifies subscribers about the latest route of each shipment."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        client: WeChatClient | None,
    ) -> None:
        self._session_factory = session_factory
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None and self._client.config.push_enabled

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()

    def resolve_targets(self, routes: Sequence[WaybillRoute]) -> list[PushTarget]:
        """Map each route to its callsign and subscribers; lookups fail per route."""
        targets: list[PushTarget] = []
        with self._session_factory() as db:
            for route in routes:
                try:
                    callsign = _callsign_for(db, route)
                    if not callsign:
                        logger.debug("No card found for waybill %s", route.mailno)
                        continue
                    openids = db.execute(
                        select(CallsignBinding.openid).where(
                            CallsignBinding.callsign == callsign.upper()
                        )
                    ).scalars().all()
                except Exception:
                    logger.exception("Push lookup failed for waybill %s", route.mailno)
                    continue
                if openids:
                    targets.append(PushTarget(route=route, callsign=callsign, openids=list(openids)))
        return targets

    async def dispatch(self, routes: Sequence[WaybillRoute], *, sandbox: bool = False) -> DispatchReport:
        """Send one notification per subscriber for each shipment's latest route."""
        report = DispatchReport()
        if not self.enabled or self._client is None:
            logger.debug("Push channel not configured; skipping dispatch")
            return report

        selected = latest_per_shipment(routes)
        report.selected = len(selected)
        if not selected:
            return report

        targets = await asyncio.to_thread(self.resolve_targets, selected)
        if not targets:
            return report

        try:
            access_token = await self._client.fetch_access_token()
        except WeChatError as exc:
            logger.error("Could not obtain WeChat access token: %s", exc)
            report.failed = sum(len(target.openids) for target in targets)
            return report

        for target in targets:
            data = build_template_data(target.route, target.callsign, sandbox=sandbox)
            for openid in target.openids:
                try:
                    await self._client.send_template(access_token, openid, data)
                except Exception:
                    report.failed += 1
                    logger.exception(
                        "Push to %s failed for waybill %s", openid, target.route.mailno
                    )
                    continue
                report.sent += 1

        logger.info(
            "Push dispatch finished: %d shipments, %d sent, %d failed",
            report.selected,
            report.sent,
            report.failed,
        )
        return report


async def dispatch_in_background(
    dispatcher: PushDispatcher,
    routes: Sequence[WaybillRoute],
    *,
    sandbox: bool = False,
) -> None:
    """Run a dispatch as detached work; errors are logged, never raised."""
    try:
        await dispatcher.dispatch(routes, sandbox=sandbox)
    except Exception:
        logger.exception("Push dispatch crashed")
    finally:
        await dispatcher.close()
