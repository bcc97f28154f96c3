"""Outgoing notification payloads."""

from __future__ import annotations

from pydantic import BaseModel


class NotificationEmail(BaseModel):
    """HTML summary mail addressed to a campaign owner."""

    to_address: str
    subject: str
    html_body: str


class DeliveryReceipt(BaseModel):
    """Gmail ids of a delivered notification."""

    message_id: str
    thread_id: str = ""
