"""Full-replace synchronization of a client's dataset snapshot.

Each sync deletes everything previously stored for the client and inserts the
new snapshot inside one transaction. This is last-writer-wins: two devices
sharing a client id overwrite each other without conflict detection.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cardhub_gateway.core.errors import StorageError
from cardhub_gateway.db.time import server_time
from cardhub_gateway.models import Card, Project, SfOrder, SfSender, SyncMeta
from cardhub_gateway.schemas.sync import CardIn, OrderIn, ProjectIn, SenderIn, SyncData, SyncStats

logger = logging.getLogger(__name__)

DEFAULT_CARGO_NAME = "QSL Card"
_SNAPSHOT_TABLES = (Project, Card, SfSender, SfOrder)


def _json_text(value: dict[str, Any] | str | None, default: str | None) -> str | None:
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return value or default


def _project_row(client_id: str, project: ProjectIn, received_at: str) -> Project:
    return Project(
        client_id=client_id,
        id=project.id,
        name=project.name,
        created_at=project.created_at or received_at,
        updated_at=project.updated_at or received_at,
    )


def _card_row(client_id: str, card: CardIn, received_at: str) -> Card:
    return Card(
        client_id=client_id,
        id=card.id,
        project_id=card.project_id,
        creator_id=card.creator_id,
        callsign=card.callsign,
        qty=card.qty,
        serial=card.serial,
        status=card.status_value(),
        metadata_json=_json_text(card.metadata, None),
        created_at=card.created_at or received_at,
        updated_at=card.updated_at or received_at,
    )


def _sender_row(client_id: str, sender: SenderIn, received_at: str) -> SfSender:
    return SfSender(
        client_id=client_id,
        id=sender.id,
        name=sender.name,
        phone=sender.phone,
        mobile=sender.mobile,
        province=sender.province,
        city=sender.city,
        district=sender.district,
        address=sender.address,
        is_default=1 if sender.is_default else 0,
        created_at=sender.created_at or received_at,
        updated_at=sender.updated_at or received_at,
    )


def _order_row(client_id: str, order: OrderIn, received_at: str) -> SfOrder:
    return SfOrder(
        client_id=client_id,
        id=order.id,
        order_id=order.order_id,
        waybill_no=order.waybill_no,
        card_id=order.card_id,
        status=order.status or "pending",
        pay_method=order.pay_method if order.pay_method is not None else 1,
        cargo_name=order.cargo_name if order.cargo_name is not None else DEFAULT_CARGO_NAME,
        sender_info=_json_text(order.sender_info, "{}"),
        recipient_info=_json_text(order.recipient_info, "{}"),
        created_at=order.created_at or received_at,
        updated_at=order.updated_at or received_at,
    )


class SyncIngestor:
    """Replaces a client's stored snapshot with a new one."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def replace(
        self,
        client_id: str,
        snapshot: SyncData,
        *,
        sync_time: str | None = None,
        received_at: str | None = None,
    ) -> SyncStats:
        """Delete all rows for ``client_id`` and insert ``snapshot``.

        Args:
            client_id: Identity owning the snapshot.
            snapshot: The complete dataset to store.
            sync_time: Client-reported sync time; defaults to ``received_at``.
            received_at: Server receipt timestamp used for missing timestamps.

        Returns:
            Row counts per entity kind.

        Raises:
            StorageError: If the transaction fails; nothing is changed.
        """
        received_at = received_at or server_time()
        rows: list[Any] = []
        rows.extend(_project_row(client_id, p, received_at) for p in snapshot.projects)
        rows.extend(_card_row(client_id, c, received_at) for c in snapshot.cards)
        rows.extend(_sender_row(client_id, s, received_at) for s in snapshot.sf_senders)
        rows.extend(_order_row(client_id, o, received_at) for o in snapshot.sf_orders)

        try:
            for table in _SNAPSHOT_TABLES:
                self.db.execute(delete(table).where(table.client_id == client_id))
            self.db.add_all(rows)
            self.db.merge(
                SyncMeta(
                    client_id=client_id,
                    sync_time=sync_time or received_at,
                    received_at=received_at,
                )
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Sync replace failed for client %s: %s", client_id, exc, exc_info=True)
            raise StorageError("Failed to store sync snapshot") from exc

        stats = SyncStats(
            projects=len(snapshot.projects),
            cards=len(snapshot.cards),
            sf_senders=len(snapshot.sf_senders),
            sf_orders=len(snapshot.sf_orders),
        )
        logger.info("Replaced snapshot for client %s: %s", client_id, stats.model_dump())
        return stats
