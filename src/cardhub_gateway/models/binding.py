"""Subscriber bindings between callsigns and WeChat identities."""

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from cardhub_gateway.db.session import Base


class CallsignBinding(Base):
    """A subscriber opted in to notifications for a callsign."""

    __tablename__ = "callsign_openid_bindings"

    # (callsign, openid) -> existence means subscribed; never expires.
    callsign: Mapped[str] = mapped_column(Text, primary_key=True)
    openid: Mapped[str] = mapped_column(Text, primary_key=True)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
