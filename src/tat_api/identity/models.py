"""SQLAlchemy model for the SQLite contact-id cache table."""

from __future__ import annotations

from sqlalchemy import Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class CacheBase(DeclarativeBase):
    """Declarative base for the local cache database."""


class ContactIdCacheRow(CacheBase):
    """One firebaseUid -> Salesforce Contact Id mapping. Rows are append-only."""

    __tablename__ = "cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    firebase_uid: Mapped[str] = mapped_column("firebaseUid", Text, index=True)
    contact_id: Mapped[str] = mapped_column("contactID", Text)
