"""Carrier route event log; doubles as the webhook deduplication ledger."""

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from cardhub_gateway.db.session import Base


class RouteEvent(Base):
    """One carrier route node. Rows are append-only."""

    __tablename__ = "sf_route_log"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    mailno: Mapped[str | None] = mapped_column(Text, index=True)
    orderid: Mapped[str | None] = mapped_column(Text)
    op_code: Mapped[str | None] = mapped_column(Text)
    accept_time: Mapped[str | None] = mapped_column(Text)
    remark: Mapped[str | None] = mapped_column(Text)
    received_at: Mapped[str | None] = mapped_column(Text)
