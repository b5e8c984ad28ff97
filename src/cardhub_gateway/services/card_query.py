"""Public card status lookup by callsign."""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from cardhub_gateway.models import Card, Project
from cardhub_gateway.schemas.query import CardSummary, DistributionOut, ReturnInfoOut

logger = logging.getLogger(__name__)


def _parse_metadata(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring unparsable card metadata")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _distribution(metadata: dict[str, Any]) -> DistributionOut | None:
    dist = metadata.get("distribution")
    if not isinstance(dist, dict):
        return None
    return DistributionOut(
        method=dist.get("method") or None,
        proxy_callsign=dist.get("proxy_callsign") or None,
        remarks=dist.get("remarks") or None,
    )


def _return_info(metadata: dict[str, Any]) -> ReturnInfoOut | None:
    # Desktop builds serialize this block as "return".
    ret = metadata.get("return_info") or metadata.get("return")
    if not isinstance(ret, dict):
        return None
    return ReturnInfoOut(method=ret.get("method") or None, remarks=ret.get("remarks") or None)


class CardQueryService:
    """Reads card summaries across every synced client."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_callsign(self, callsign: str) -> list[CardSummary]:
        """Return cards addressed to ``callsign`` (case-insensitive), newest first."""
        stmt = (
            select(Card, Project.name)
            .outerjoin(
                Project,
                and_(Project.client_id == Card.client_id, Project.id == Card.project_id),
            )
            .where(func.upper(Card.callsign) == callsign.upper())
            .order_by(Card.created_at.desc())
        )
        items: list[CardSummary] = []
        for card, project_name in self.db.execute(stmt).all():
            metadata = _parse_metadata(card.metadata_json)
            items.append(
                CardSummary(
                    id=card.id,
                    project_name=project_name or None,
                    status=card.status,
                    distribution=_distribution(metadata),
                    return_info=_return_info(metadata),
                )
            )
        return items
