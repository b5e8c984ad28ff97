"""Pydantic schemas for the gateway API."""

from .query import (
    CallsignQueryResponse,
    CaptchaResponse,
    CaptchaVerifyRequest,
    CardSummary,
    DistributionOut,
    ReturnInfoOut,
)
from .route_push import RoutePushAck, WaybillRoute
from .sync import PingResponse, SyncRequest, SyncResponse, SyncStats

__all__ = [
    "CallsignQueryResponse",
    "CaptchaResponse",
    "CaptchaVerifyRequest",
    "CardSummary",
    "DistributionOut",
    "PingResponse",
    "ReturnInfoOut",
    "RoutePushAck",
    "SyncRequest",
    "SyncResponse",
    "SyncStats",
    "WaybillRoute",
]
