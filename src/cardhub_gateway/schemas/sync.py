"""Schemas for the full-replace sync endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .common import Identifier, OpaqueModel


class ProjectIn(OpaqueModel):
    id: Identifier
    name: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class CardIn(OpaqueModel):
    id: Identifier
    project_id: Identifier | None = None
    creator_id: Identifier | None = None
    callsign: str | None = None
    qty: int | None = None
    serial: int | None = None
    status: str | dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def status_value(self) -> str:
        """Return the status as a plain string; enum-shaped values are unwrapped."""
        if isinstance(self.status, str):
            return self.status
        if isinstance(self.status, dict) and self.status.get("value"):
            return str(self.status["value"])
        return "pending"


class SenderIn(OpaqueModel):
    id: Identifier
    name: str | None = None
    phone: str | None = None
    mobile: str | None = None
    province: str | None = None
    city: str | None = None
    district: str | None = None
    address: str | None = None
    is_default: bool = False
    created_at: str | None = None
    updated_at: str | None = None


class OrderIn(OpaqueModel):
    id: Identifier
    order_id: str | None = None
    waybill_no: str | None = None
    card_id: Identifier | None = None
    status: str | None = None
    pay_method: int | None = None
    cargo_name: str | None = None
    sender_info: dict[str, Any] | str | None = None
    recipient_info: dict[str, Any] | str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class SyncData(OpaqueModel):
    """The client's complete dataset; absent lists mean empty."""

    projects: list[ProjectIn] = Field(default_factory=list)
    cards: list[CardIn] = Field(default_factory=list)
    sf_senders: list[SenderIn] = Field(default_factory=list)
    sf_orders: list[OrderIn] = Field(default_factory=list)


class SyncRequest(OpaqueModel):
    client_id: str = Field(min_length=1)
    sync_time: str | None = None
    data: SyncData


class SyncStats(BaseModel):
    projects: int
    cards: int
    sf_senders: int
    sf_orders: int


class SyncResponse(BaseModel):
    success: bool
    message: str
    received_at: str
    stats: SyncStats


class PingResponse(BaseModel):
    success: bool
    message: str
    server_time: str
