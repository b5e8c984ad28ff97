"""Schemas for callsign queries and captcha challenges."""

from __future__ import annotations

from pydantic import BaseModel


class DistributionOut(BaseModel):
    method: str | None = None
    proxy_callsign: str | None = None
    remarks: str | None = None


class ReturnInfoOut(BaseModel):
    method: str | None = None
    remarks: str | None = None


class CardSummary(BaseModel):
    id: str
    project_name: str | None = None
    status: str
    distribution: DistributionOut | None = None
    return_info: ReturnInfoOut | None = None


class CallsignQueryResponse(BaseModel):
    success: bool = True
    callsign: str
    items: list[CardSummary]


class CaptchaResponse(BaseModel):
    success: bool = True
    question: str
    token: str
    expires: int


class CaptchaVerifyRequest(BaseModel):
    token: str | None = None
    answer: int | str | None = None
