"""initial schema

Revision ID: 3c1f0a9d2b7e
Revises:
Create Date: 2026-10-19 09:12:40.518203

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1f0a9d2b7e"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.Text(), nullable=False),
    ]


def upgrade() -> None:
    """Create the synced snapshot tables, route log and push bindings."""
    op.create_table(
        "projects",
        sa.Column("client_id", sa.Text(), nullable=False),
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("client_id", "id"),
    )
    op.create_table(
        "cards",
        sa.Column("client_id", sa.Text(), nullable=False),
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("project_id", sa.Text(), nullable=True),
        sa.Column("creator_id", sa.Text(), nullable=True),
        sa.Column("callsign", sa.Text(), nullable=True),
        sa.Column("qty", sa.Integer(), nullable=True),
        sa.Column("serial", sa.Integer(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("metadata", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("client_id", "id"),
    )
    op.create_index("ix_cards_callsign", "cards", ["callsign"])
    op.create_table(
        "sf_senders",
        sa.Column("client_id", sa.Text(), nullable=False),
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("mobile", sa.Text(), nullable=True),
        sa.Column("province", sa.Text(), nullable=True),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("district", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_default", sa.SmallInteger(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("client_id", "id"),
    )
    op.create_table(
        "sf_orders",
        sa.Column("client_id", sa.Text(), nullable=False),
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("order_id", sa.Text(), nullable=True),
        sa.Column("waybill_no", sa.Text(), nullable=True),
        sa.Column("card_id", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("pay_method", sa.Integer(), nullable=False),
        sa.Column("cargo_name", sa.Text(), nullable=True),
        sa.Column("sender_info", sa.Text(), nullable=False),
        sa.Column("recipient_info", sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("client_id", "id"),
    )
    op.create_index("ix_sf_orders_order_id", "sf_orders", ["order_id"])
    op.create_index("ix_sf_orders_waybill_no", "sf_orders", ["waybill_no"])
    op.create_table(
        "sync_meta",
        sa.Column("client_id", sa.Text(), nullable=False),
        sa.Column("sync_time", sa.Text(), nullable=False),
        sa.Column("received_at", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("client_id"),
    )
    op.create_table(
        "sf_route_log",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("mailno", sa.Text(), nullable=True),
        sa.Column("orderid", sa.Text(), nullable=True),
        sa.Column("op_code", sa.Text(), nullable=True),
        sa.Column("accept_time", sa.Text(), nullable=True),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column("received_at", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sf_route_log_mailno", "sf_route_log", ["mailno"])
    op.create_table(
        "callsign_openid_bindings",
        sa.Column("callsign", sa.Text(), nullable=False),
        sa.Column("openid", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("callsign", "openid"),
    )


def downgrade() -> None:
    """Drop every gateway table."""
    op.drop_table("callsign_openid_bindings")
    op.drop_index("ix_sf_route_log_mailno", table_name="sf_route_log")
    op.drop_table("sf_route_log")
    op.drop_table("sync_meta")
    op.drop_index("ix_sf_orders_waybill_no", table_name="sf_orders")
    op.drop_index("ix_sf_orders_order_id", table_name="sf_orders")
    op.drop_table("sf_orders")
    op.drop_table("sf_senders")
    op.drop_index("ix_cards_callsign", table_name="cards")
    op.drop_table("cards")
    op.drop_table("projects")
