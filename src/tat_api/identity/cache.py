"""Durable firebaseUid -> Contact Id cache with two interchangeable backends.

Exactly one backend is active per deployment, selected from settings at
startup. Entries are first-write-wins: once a uid is stored, later stores
for the same uid are ignored, so a uid never maps to two contact ids.
There is no invalidation; a deleted or recreated Contact keeps serving the
cached id.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import structlog
from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.tat_api.config import CacheBackendKind, Settings
from src.tat_api.errors import ConfigError
from src.tat_api.identity.models import CacheBase, ContactIdCacheRow

logger = structlog.get_logger(__name__)


class CacheBackend(ABC):
    """Storage strategy for cache entries."""

    name: str = "abstract"

    @abstractmethod
    async def lookup(self, subject_id: str) -> str | None:
        """Return the cached record id, or None."""
        ...

    @abstractmethod
    async def store(self, subject_id: str, record_id: str) -> None:
        """Persist a mapping unless the subject is already cached."""
        ...

    def dispose(self) -> None:
        """Release held resources. Nothing to release by default."""


class SqliteCacheBackend(CacheBackend):
    """Append-only ``cache`` table in an embedded SQLite database.

    Blocking SQLite calls run in a worker thread so the event loop is never
    held by disk I/O.

    Args:
        path: SQLite database file; created with its table on first use.
    """

    name = "sqlite"

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._engine = create_engine(f"sqlite+pysqlite:///{self._path}", future=True)
        self._initialized = False

    def _ensure_table(self) -> None:
        if not self._initialized:
            CacheBase.metadata.create_all(self._engine)
            self._initialized = True

    def _lookup_sync(self, subject_id: str) -> str | None:
        self._ensure_table()
        with Session(self._engine) as session:
            row = session.scalars(
                select(ContactIdCacheRow)
                .where(ContactIdCacheRow.firebase_uid == subject_id)
                .order_by(ContactIdCacheRow.id)
                .limit(1)
            ).first()
            return row.contact_id if row else None

    def _store_sync(self, subject_id: str, record_id: str) -> None:
        self._ensure_table()
        with Session(self._engine) as session, session.begin():
            existing = session.scalars(
                select(ContactIdCacheRow.contact_id)
                .where(ContactIdCacheRow.firebase_uid == subject_id)
                .limit(1)
            ).first()
            if existing is not None:
                if existing != record_id:
                    logger.warning(
                        "contact_cache.conflicting_store_ignored",
                        backend=self.name,
                        firebase_uid=subject_id,
                    )
                return
            session.add(ContactIdCacheRow(firebase_uid=subject_id, contact_id=record_id))

    async def lookup(self, subject_id: str) -> str | None:
        return await asyncio.to_thread(self._lookup_sync, subject_id)

    async def store(self, subject_id: str, record_id: str) -> None:
        await asyncio.to_thread(self._store_sync, subject_id, record_id)

    def dispose(self) -> None:
        self._engine.dispose()


class JsonFileCacheBackend(CacheBackend):
    """Flat JSON object keyed by firebaseUid, read and written whole.

    The document is replaced atomically, so readers never see a partial
    write. Concurrent processes writing the same file can still lose entries;
    a lost entry only costs one extra Salesforce query later.

    Args:
        path: JSON document location.
    """

    name = "json"

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        data = json.loads(self._path.read_text())
        if not isinstance(data, dict):
            raise ValueError(f"Contact id cache {self._path} is not a JSON object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".contact-ids-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _lookup_sync(self, subject_id: str) -> str | None:
        return self._read().get(subject_id)

    def _store_sync(self, subject_id: str, record_id: str) -> None:
        try:
            data = self._read()
        except ValueError:
            # An unreadable document holds nothing worth keeping
            logger.warning("contact_cache.corrupt_document_replaced", path=str(self._path))
            data = {}
        if subject_id in data:
            if data[subject_id] != record_id:
                logger.warning(
                    "contact_cache.conflicting_store_ignored",
                    backend=self.name,
                    firebase_uid=subject_id,
                )
            return
        data[subject_id] = record_id
        self._write(data)

    async def lookup(self, subject_id: str) -> str | None:
        return await asyncio.to_thread(self._lookup_sync, subject_id)

    async def store(self, subject_id: str, record_id: str) -> None:
        await asyncio.to_thread(self._store_sync, subject_id, record_id)


class IdentityCache:
    """Front for the active backend.

    Caching is a side effect of resolution, so the cache never fails
    the caller: read errors count as a miss and write errors are only logged.
    """

    def __init__(self, backend: CacheBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    async def lookup(self, subject_id: str) -> str | None:
        """Return the cached id; an unreadable store counts as a miss."""
        try:
            record_id = await self._backend.lookup(subject_id)
        except (OSError, ValueError, SQLAlchemyError):
            logger.warning(
                "contact_cache.lookup_failed",
                backend=self._backend.name,
                firebase_uid=subject_id,
                exc_info=True,
            )
            return None
        logger.debug(
            "contact_cache.lookup",
            backend=self._backend.name,
            firebase_uid=subject_id,
            hit=record_id is not None,
        )
        return record_id

    async def store(self, subject_id: str, record_id: str) -> None:
        try:
            await self._backend.store(subject_id, record_id)
        except (OSError, ValueError, SQLAlchemyError):
            logger.warning(
                "contact_cache.store_failed",
                backend=self._backend.name,
                firebase_uid=subject_id,
                exc_info=True,
            )


def build_cache_backend(settings: Settings) -> CacheBackend:
    """Instantiate the backend named by CONTACT_CACHE_BACKEND."""
    if settings.CONTACT_CACHE_BACKEND == CacheBackendKind.sqlite:
        return SqliteCacheBackend(settings.CONTACT_CACHE_SQLITE_PATH)
    if settings.CONTACT_CACHE_BACKEND == CacheBackendKind.json:
        return JsonFileCacheBackend(settings.CONTACT_CACHE_JSON_PATH)
    raise ConfigError(f"Unknown contact cache backend: {settings.CONTACT_CACHE_BACKEND}")
