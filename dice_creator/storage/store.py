"""
DiceStore: versioned CRUD over the dice library and the dice-set collection.

Each collection is persisted as one StorageEnvelope under its own key. Every
write loads the whole collection, changes it in memory and writes the whole
collection back. There is no locking: two writes started without awaiting each
other can read the same snapshot, and the one that writes last wins.

Write paths validate and read everything they need before touching the
medium, and propagate every error. Only the entity fields are persisted.
Read paths log failures and return an empty collection.
"""

import logging
from collections.abc import Callable
from typing import Any

from dice_creator.config import CURRENT_SCHEMA_VERSION, STORAGE_KEYS
from dice_creator.engine.errors import (
    QuotaExceededError,
    ReferentialIntegrityError,
    StorageMediumFullError,
    StorageUnavailableError,
)
from dice_creator.engine.state import DiceSet, Die, StorageEnvelope
from dice_creator.engine.validation import validate_dice_set, validate_die
from dice_creator.storage.medium import KeyValueMedium

logger = logging.getLogger(__name__)

DICE_KEY = STORAGE_KEYS["DICE_LIBRARY"]
SETS_KEY = STORAGE_KEYS["DICE_SETS"]
SCHEMA_VERSION_KEY = STORAGE_KEYS["SCHEMA_VERSION"]
COLLECTION_KEYS = (DICE_KEY, SETS_KEY)

# from_version -> function(collection_key, data) returning the data at from_version + 1.
# Register one entry per version bump of CURRENT_SCHEMA_VERSION.
MIGRATIONS: dict[int, Callable[[str, list[dict[str, Any]]], list[dict[str, Any]]]] = {}


def migration_path(stored_version: Any) -> list[int] | None:
    """
    Versions to migrate through to reach CURRENT_SCHEMA_VERSION, or None if
    there is no way there (absent, unknown, newer, or a missing step).
    """
    if isinstance(stored_version, bool) or not isinstance(stored_version, int):
        return None
    if stored_version < 1 or stored_version > CURRENT_SCHEMA_VERSION:
        return None
    steps = list(range(stored_version, CURRENT_SCHEMA_VERSION))
    if any(step not in MIGRATIONS for step in steps):
        return None
    return steps


def _record(entity: Any) -> dict[str, Any]:
    if isinstance(entity, dict):
        return dict(entity)
    return entity.to_dict()


def _entry_id(entry: Any) -> Any:
    return entry.get("id") if isinstance(entry, dict) else None


def _upsert(collection: list[dict[str, Any]], record: dict[str, Any]) -> list[dict[str, Any]]:
    """Replace the entry with record's id in place, or append record."""
    updated = list(collection)
    for index, entry in enumerate(updated):
        if _entry_id(entry) == record["id"]:
            updated[index] = record
            return updated
    updated.append(record)
    return updated


class DiceStore:
    """
    Explicit store handle. Construct once with a medium, open it, and pass it
    to whatever needs persistence.

    Usage:
        async with DiceStore(MemoryMedium()) as store:
            await store.save_die(die)
    """

    def __init__(self, medium: KeyValueMedium):
        self.medium = medium
        self._is_open = False

    @property
    def is_open(self) -> bool:
        return self._is_open

    async def open(self) -> "DiceStore":
        """Check the schema version marker and make sure both collections exist."""
        await self._initialize()
        self._is_open = True
        return self

    async def close(self) -> None:
        self._is_open = False
        await self.medium.close()

    async def __aenter__(self) -> "DiceStore":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _require_open(self) -> None:
        if not self._is_open:
            raise StorageUnavailableError("Dice store is not open; call open() first")

    # ===== Envelope I/O =====

    async def _read_collection(self, key: str) -> list[dict[str, Any]]:
        raw = await self.medium.get_item(key)
        if raw is None:
            return []
        return StorageEnvelope.from_dict(raw).data

    async def _write_item(self, key: str, value: Any) -> None:
        try:
            await self.medium.set_item(key, value)
        except QuotaExceededError as exc:
            logger.warning("Storage medium full writing %s: %s", key, exc)
            raise StorageMediumFullError() from exc

    async def _write_collection(self, key: str, data: list[dict[str, Any]]) -> None:
        envelope = StorageEnvelope(version=CURRENT_SCHEMA_VERSION, data=data)
        await self._write_item(key, envelope.to_dict())

    async def _initialize(self) -> None:
        stored_version = await self.medium.get_item(SCHEMA_VERSION_KEY)

        if stored_version == CURRENT_SCHEMA_VERSION and not isinstance(stored_version, bool):
            for key in COLLECTION_KEYS:
                if await self.medium.get_item(key) is None:
                    await self._write_collection(key, [])
            return

        steps = migration_path(stored_version)
        if steps is None:
            if stored_version is not None:
                logger.warning(
                    "No migration from schema version %r to %d; resetting collections",
                    stored_version, CURRENT_SCHEMA_VERSION,
                )
            for key in COLLECTION_KEYS:
                await self._write_collection(key, [])
        else:
            for key in COLLECTION_KEYS:
                data = await self._read_collection(key)
                for step in steps:
                    data = MIGRATIONS[step](key, data)
                await self._write_collection(key, data)
            logger.info(
                "Migrated storage from schema version %d to %d",
                stored_version, CURRENT_SCHEMA_VERSION,
            )

        await self._write_item(SCHEMA_VERSION_KEY, CURRENT_SCHEMA_VERSION)

    # ===== Dice =====

    async def save_die(self, die: Die | dict[str, Any]) -> Die:
        """
        Validate and upsert a die by id. Only the Die fields are persisted;
        unknown keys in a mapping are dropped.

        Returns:
            The die as stored

        Raises:
            ValidationError: If the die is invalid (nothing is written)
            StorageMediumFullError: If the medium has no room for the library
            StorageUnavailableError: If the store is not open
        """
        validate_die(die)
        self._require_open()
        saved = Die.from_dict(_record(die))
        library = await self._read_collection(DICE_KEY)
        await self._write_collection(DICE_KEY, _upsert(library, saved.to_dict()))
        logger.debug("Saved die %s", saved.id)
        return saved

    async def load_dice(self) -> list[Die]:
        """All saved dice. Never raises: failures are logged and give []."""
        try:
            self._require_open()
            return [Die.from_dict(d) for d in await self._read_collection(DICE_KEY)]
        except Exception:
            logger.exception("Error loading dice")
            return []

    async def load_die(self, die_id: str) -> Die | None:
        for die in await self.load_dice():
            if die.id == die_id:
                return die
        return None

    async def delete_die(self, die_id: str) -> bool:
        """
        Delete a die and cascade into the sets: the id is removed from every
        set, and sets left without dice are deleted.

        Returns:
            True if the die existed, False otherwise
        """
        self._require_open()
        library = await self._read_collection(DICE_KEY)
        remaining = [d for d in library if _entry_id(d) != die_id]
        if len(remaining) == len(library):
            return False

        # Both collections are read before anything is written
        sets = await self._read_collection(SETS_KEY)
        updated_sets = []
        for entry in sets:
            if not isinstance(entry, dict):
                continue
            dice_ids = entry.get("diceIds")
            if not isinstance(dice_ids, list):
                dice_ids = []
            kept = [i for i in dice_ids if i != die_id]
            if kept:
                updated_sets.append({**entry, "diceIds": kept})
        # Sets first: if the second write fails, no set points at a missing die
        await self._write_collection(SETS_KEY, updated_sets)
        await self._write_collection(DICE_KEY, remaining)
        logger.info(
            "Deleted die %s (%d set(s) kept, %d removed)",
            die_id, len(updated_sets), len(sets) - len(updated_sets),
        )
        return True

    # ===== Dice sets =====

    async def save_dice_set(self, dice_set: DiceSet | dict[str, Any]) -> DiceSet:
        """
        Upsert a dice set after checking that every referenced die exists.
        The reference check runs before structural validation. Only the
        DiceSet fields are persisted.

        Returns:
            The dice set as stored

        Raises:
            ReferentialIntegrityError: If any die id is not in the library (nothing is written)
            ValidationError: If the set is invalid (nothing is written)
            StorageMediumFullError: If the medium has no room for the sets
        """
        self._require_open()
        record = _record(dice_set)
        dice_ids = record.get("diceIds")
        if not isinstance(dice_ids, list):
            dice_ids = []

        existing = {d.id for d in await self.load_dice()}
        missing = [
            str(die_id) for die_id in dice_ids
            if not isinstance(die_id, str) or die_id not in existing
        ]
        if missing:
            raise ReferentialIntegrityError(missing)

        validate_dice_set(record)
        saved = DiceSet.from_dict(record)
        sets = await self._read_collection(SETS_KEY)
        await self._write_collection(SETS_KEY, _upsert(sets, saved.to_dict()))
        logger.debug("Saved dice set %s", saved.id)
        return saved

    async def load_dice_sets(self) -> list[DiceSet]:
        """All saved dice sets. Never raises: failures are logged and give []."""
        try:
            self._require_open()
            return [DiceSet.from_dict(s) for s in await self._read_collection(SETS_KEY)]
        except Exception:
            logger.exception("Error loading dice sets")
            return []

    async def load_dice_set(self, set_id: str) -> DiceSet | None:
        for dice_set in await self.load_dice_sets():
            if dice_set.id == set_id:
                return dice_set
        return None

    async def load_set_dice(self, dice_set: DiceSet) -> list[Die]:
        """The set's dice in dice_ids order; ids with no saved die are skipped."""
        by_id = {d.id: d for d in await self.load_dice()}
        return [by_id[die_id] for die_id in dice_set.dice_ids if die_id in by_id]

    async def delete_dice_set(self, set_id: str) -> bool:
        """Delete a set. Its dice stay in the library."""
        self._require_open()
        sets = await self._read_collection(SETS_KEY)
        remaining = [s for s in sets if _entry_id(s) != set_id]
        if len(remaining) == len(sets):
            return False
        await self._write_collection(SETS_KEY, remaining)
        logger.debug("Deleted dice set %s", set_id)
        return True

    # ===== Maintenance =====

    async def clear_all_storage(self) -> None:
        """Delete all dice, sets and the version marker, then start over empty."""
        self._require_open()
        await self.medium.clear()
        await self._initialize()
        logger.info("Cleared all dice storage")
