"""Tables holding the synced desktop dataset, scoped per client identity."""

from sqlalchemy import Integer, SmallInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from cardhub_gateway.db.session import Base


class Project(Base):
    """A card project as last synced by one client."""

    __tablename__ = "projects"

    client_id: Mapped[str] = mapped_column(Text, primary_key=True)
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)


class Card(Base):
    """A single acknowledgement card addressed to a callsign."""

    __tablename__ = "cards"

    client_id: Mapped[str] = mapped_column(Text, primary_key=True)
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    project_id: Mapped[str | None] = mapped_column(Text)
    creator_id: Mapped[str | None] = mapped_column(Text)
    callsign: Mapped[str | None] = mapped_column(Text, index=True)
    qty: Mapped[int | None] = mapped_column(Integer)
    serial: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    # JSON text: distribution / return_info as produced by the desktop app.
    metadata_json: Mapped[str | None] = mapped_column("metadata", Text)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)


class SfSender(Base):
    """A saved shipment sender profile."""

    __tablename__ = "sf_senders"

    client_id: Mapped[str] = mapped_column(Text, primary_key=True)
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    mobile: Mapped[str | None] = mapped_column(Text)
    province: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(Text)
    district: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(Text)
    is_default: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)


class SfOrder(Base):
    """A carrier order linking a card to a waybill."""

    __tablename__ = "sf_orders"

    client_id: Mapped[str] = mapped_column(Text, primary_key=True)
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    order_id: Mapped[str | None] = mapped_column(Text, index=True)
    waybill_no: Mapped[str | None] = mapped_column(Text, index=True)
    card_id: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    pay_method: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    cargo_name: Mapped[str | None] = mapped_column(Text)
    sender_info: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    recipient_info: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)


class SyncMeta(Base):
    """Last sync bookkeeping per client."""

    __tablename__ = "sync_meta"

    client_id: Mapped[str] = mapped_column(Text, primary_key=True)
    sync_time: Mapped[str] = mapped_column(Text, nullable=False)
    received_at: Mapped[str] = mapped_column(Text, nullable=False)
