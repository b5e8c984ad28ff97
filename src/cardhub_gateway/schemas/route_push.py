"""Schemas for carrier route pushes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WaybillRoute(BaseModel):
    """One route node as delivered by the carrier."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = None
    mailno: str | None = None
    orderid: str | None = None
    op_code: str | None = Field(default=None, alias="opCode")
    accept_time: str | None = Field(default=None, alias="acceptTime")
    remark: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> WaybillRoute | None:
        """Build a route from one raw list item, or None if it is not an object."""
        if not isinstance(payload, dict):
            return None
        cleaned = {
            key: (str(value) if value is not None and not isinstance(value, str) else value)
            for key, value in payload.items()
            if key in {"id", "mailno", "orderid", "opCode", "acceptTime", "remark"}
        }
        return cls.model_validate(cleaned)


class RoutePushAck(BaseModel):
    return_code: str
    return_msg: str
