"""Async Gmail sender for workflow notifications.

Google API client calls are blocking, so they run in asyncio.to_thread().
The service account sends as NOTIFICATION_SENDER_EMAIL through domain-wide
delegation; the Gmail service object is built once and reused.
"""

from __future__ import annotations

import asyncio
import base64
from email.message import EmailMessage
from typing import Any, Protocol

import structlog
from google.oauth2 import service_account
from googleapiclient.discovery import build

from src.tat_api.errors import NotificationError
from src.tat_api.notifications.models import DeliveryReceipt, NotificationEmail

logger = structlog.get_logger(__name__)

GMAIL_SEND_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


class NotificationSender(Protocol):
    """Delivers one HTML email.

    Implementations raise NotificationError on delivery failure. Callers
    treat delivery as best effort and do not rely on the exception type.
    """

    async def send(self, to_address: str, subject: str, html_body: str) -> DeliveryReceipt: ...


class GmailNotificationSender:
    """Sends HTML emails through the Gmail API.

    Args:
        service_account_file: Path to the service account JSON key.
        sender_email: Mailbox impersonated via domain-wide delegation.
    """

    def __init__(self, service_account_file: str, sender_email: str) -> None:
        self._service_account_file = service_account_file
        self._sender_email = sender_email
        self._service: Any = None

    def _get_service(self) -> Any:
        if self._service is None:
            logger.info("notifications.gmail_service_building", sender=self._sender_email)
            credentials = service_account.Credentials.from_service_account_file(
                self._service_account_file,
                scopes=GMAIL_SEND_SCOPES,
            ).with_subject(self._sender_email)
            self._service = build("gmail", "v1", credentials=credentials)
        return self._service

    @staticmethod
    def build_raw_message(notification: NotificationEmail) -> str:
        """Build a base64url-encoded RFC 2822 HTML message for the Gmail API."""
        msg = EmailMessage()
        msg["To"] = notification.to_address
        msg["Subject"] = notification.subject
        msg.set_content(notification.html_body, subtype="html")
        return base64.urlsafe_b64encode(msg.as_bytes()).decode()

    async def send(self, to_address: str, subject: str, html_body: str) -> DeliveryReceipt:
        """Send one email.

        Raises:
            NotificationError: If building the service or sending fails.
        """
        raw = self.build_raw_message(
            NotificationEmail(to_address=to_address, subject=subject, html_body=html_body)
        )

        def _send() -> dict:
            return (
                self._get_service()
                .users()
                .messages()
                .send(userId="me", body={"raw": raw})
                .execute()
            )

        logger.info("notifications.sending", to=to_address, subject=subject)
        try:
            result = await asyncio.to_thread(_send)
        except Exception as exc:
            raise NotificationError(f"Failed to send email to {to_address}: {exc}") from exc

        return DeliveryReceipt(
            message_id=result.get("id", ""),
            thread_id=result.get("threadId", ""),
        )
