"""Outgoing notifications (Gmail API)."""

from src.tat_api.notifications.gmail import GmailNotificationSender, NotificationSender
from src.tat_api.notifications.models import DeliveryReceipt, NotificationEmail

__all__ = [
    "DeliveryReceipt",
    "GmailNotificationSender",
    "NotificationEmail",
    "NotificationSender",
]
