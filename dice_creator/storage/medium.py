"""
Asynchronous key-value media for DiceStore.

A medium stores JSON-compatible values under string keys. When it has no room
left for a write it raises QuotaExceededError; DiceStore turns that into
StorageMediumFullError.
"""

import asyncio
import json
import logging
from typing import Any

from sqlalchemy.exc import OperationalError

from dice_creator.engine.errors import QuotaExceededError
from dice_creator.storage.database import (
    DATABASE_URL,
    create_db_engine,
    create_session_factory,
    init_db,
)
from dice_creator.storage.models import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueMedium:
    """Interface every storage medium implements."""

    async def get_item(self, key: str) -> Any | None:
        """Value stored under key, or None if absent."""
        raise NotImplementedError

    async def set_item(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def remove_item(self, key: str) -> None:
        raise NotImplementedError

    async def clear(self) -> None:
        """Remove every key."""
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryMedium(KeyValueMedium):
    """
    In-process medium. Values are kept as JSON text, so callers never share
    mutable state with the medium.

    Every call yields to the event loop once before touching the data, the way a
    real asynchronous backend would; concurrent callers interleave accordingly.

    Args:
        quota_bytes: Optional cap on the total size of stored JSON; a write past it
            raises QuotaExceededError
    """

    def __init__(self, quota_bytes: int | None = None):
        self.quota_bytes = quota_bytes
        self._items: dict[str, str] = {}

    async def get_item(self, key: str) -> Any | None:
        await asyncio.sleep(0)
        raw = self._items.get(key)
        return json.loads(raw) if raw is not None else None

    async def set_item(self, key: str, value: Any) -> None:
        await asyncio.sleep(0)
        raw = json.dumps(value)
        if self.quota_bytes is not None:
            used = sum(len(v) for k, v in self._items.items() if k != key)
            if used + len(raw) > self.quota_bytes:
                raise QuotaExceededError(
                    f"Quota of {self.quota_bytes} bytes exceeded writing {key!r}"
                )
        self._items[key] = raw

    async def remove_item(self, key: str) -> None:
        await asyncio.sleep(0)
        self._items.pop(key, None)

    async def clear(self) -> None:
        await asyncio.sleep(0)
        self._items.clear()

    def set_raw(self, key: str, raw: str) -> None:
        """Store raw text under key without serialization (used to simulate corrupt data)."""
        self._items[key] = raw

    def keys(self) -> list[str]:
        return sorted(self._items)


def _is_medium_full(exc: OperationalError) -> bool:
    text = str(exc).lower()
    return (
        "database or disk is full" in text
        or "no space left on device" in text
        or "could not extend file" in text
    )


class SqlMedium(KeyValueMedium):
    """
    Medium backed by the kv_entries table (SQLite by default, any SQLAlchemy URL works).
    Database calls are blocking; they run in a worker thread so the event loop stays free.
    """

    def __init__(self, database_url: str = DATABASE_URL):
        self.database_url = database_url
        self.engine = create_db_engine(database_url)
        self.SessionLocal = create_session_factory(self.engine)
        init_db(self.engine)

    # ----- blocking helpers (run via asyncio.to_thread) -----

    def _get(self, key: str) -> Any | None:
        db = self.SessionLocal()
        try:
            row = db.get(KeyValueEntry, key)
            return json.loads(row.value) if row is not None else None
        finally:
            db.close()

    def _set(self, key: str, value: Any) -> None:
        raw = json.dumps(value)
        db = self.SessionLocal()
        try:
            row = db.get(KeyValueEntry, key)
            if row is not None:
                row.value = raw
            else:
                db.add(KeyValueEntry(key=key, value=raw))
            db.commit()
        except OperationalError as exc:
            db.rollback()
            if _is_medium_full(exc):
                raise QuotaExceededError(str(exc.orig)) from exc
            raise
        finally:
            db.close()

    def _remove(self, key: str) -> None:
        db = self.SessionLocal()
        try:
            db.query(KeyValueEntry).filter(KeyValueEntry.key == key).delete()
            db.commit()
        finally:
            db.close()

    def _clear(self) -> None:
        db = self.SessionLocal()
        try:
            deleted = db.query(KeyValueEntry).delete()
            db.commit()
            logger.debug("Cleared %d entries from %s", deleted, KeyValueEntry.__tablename__)
        finally:
            db.close()

    # ----- KeyValueMedium -----

    async def get_item(self, key: str) -> Any | None:
        return await asyncio.to_thread(self._get, key)

    async def set_item(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set, key, value)

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)

    async def close(self) -> None:
        self.engine.dispose()
