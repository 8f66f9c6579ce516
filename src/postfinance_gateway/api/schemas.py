"""Pydantic schemas for API responses."""

from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    gateway: str
    environment: str


class WebhookAck(BaseModel):
    """Acknowledgement of a verified gateway callback."""

    order_id: str | None = None
    pay_id: str | None = None
    status: int | None = None
    status_text: str | None = None
    ncerror: str | None = None
    accepted: bool
