"""
DiceStore tests over the in-memory medium.
"""
import asyncio
import logging

import pytest

from dice_creator.config import CURRENT_SCHEMA_VERSION, STORAGE_KEYS
from dice_creator.engine.errors import (
    QuotaExceededError,
    ReferentialIntegrityError,
    StorageMediumFullError,
    StorageUnavailableError,
    ValidationError,
    ValidationErrorCode as Code,
)
from dice_creator.engine.factory import create_dice_set, create_die
from dice_creator.engine.mutations import update_name
from dice_creator.engine.utils import generate_uuid
from dice_creator.storage import MIGRATIONS, DiceStore, MemoryMedium
from dice_creator.storage.store import migration_path

DICE_KEY = STORAGE_KEYS["DICE_LIBRARY"]
SETS_KEY = STORAGE_KEYS["DICE_SETS"]
VERSION_KEY = STORAGE_KEYS["SCHEMA_VERSION"]

run = asyncio.run


# ===== Lifecycle & versioning =====

def test_open_creates_empty_collections_and_marker(medium):
    run(DiceStore(medium).open())
    assert run(medium.get_item(VERSION_KEY)) == CURRENT_SCHEMA_VERSION
    assert run(medium.get_item(DICE_KEY)) == {"version": CURRENT_SCHEMA_VERSION, "data": []}
    assert run(medium.get_item(SETS_KEY)) == {"version": CURRENT_SCHEMA_VERSION, "data": []}


def test_reopen_keeps_data(medium, d6):
    async def scenario():
        async with DiceStore(medium) as store:
            await store.save_die(d6)
        async with DiceStore(medium) as store:
            return await store.load_dice()

    assert [d.id for d in run(scenario())] == [d6.id]


def test_missing_collection_recreated_when_version_current(medium, d6):
    async def scenario():
        async with DiceStore(medium) as store:
            await store.save_die(d6)
        await medium.remove_item(SETS_KEY)
        async with DiceStore(medium) as store:
            return await store.load_dice(), await medium.get_item(SETS_KEY)

    dice, sets_envelope = run(scenario())
    assert len(dice) == 1
    assert sets_envelope["data"] == []


@pytest.mark.parametrize("stored_version", [None, 0, 999, "1", True])
def test_unknown_version_resets_collections(medium, d6, stored_version):
    run(medium.set_item(DICE_KEY, {"version": 0, "data": [d6.to_dict()]}))
    if stored_version is not None:
        run(medium.set_item(VERSION_KEY, stored_version))

    store = run(DiceStore(medium).open())
    assert run(store.load_dice()) == []
    assert run(medium.get_item(VERSION_KEY)) == CURRENT_SCHEMA_VERSION


def test_registered_migration_chain_is_applied(medium, d6, monkeypatch):
    calls = []

    def rename_all(key, data):
        calls.append(key)
        if key == DICE_KEY:
            return [{**d, "name": d["name"].upper()} for d in data]
        return data

    monkeypatch.setattr("dice_creator.storage.store.CURRENT_SCHEMA_VERSION", 2)
    monkeypatch.setitem(MIGRATIONS, 1, rename_all)
    run(medium.set_item(VERSION_KEY, 1))
    run(medium.set_item(DICE_KEY, {"version": 1, "data": [d6.to_dict()]}))

    store = run(DiceStore(medium).open())
    assert calls == [DICE_KEY, SETS_KEY]
    assert [d.name for d in run(store.load_dice())] == ["SIX"]
    assert run(medium.get_item(VERSION_KEY)) == 2


def test_migration_path():
    assert migration_path(None) is None
    assert migration_path(CURRENT_SCHEMA_VERSION + 1) is None
    assert migration_path(CURRENT_SCHEMA_VERSION) == []


def test_operations_require_open_store(medium, d6):
    store = DiceStore(medium)
    with pytest.raises(StorageUnavailableError):
        run(store.save_die(d6))
    with pytest.raises(StorageUnavailableError):
        run(store.delete_die(d6.id))
    # Reads degrade instead of raising
    assert run(store.load_dice()) == []


def test_closed_store_rejects_writes(store, d6):
    run(store.close())
    assert not store.is_open
    with pytest.raises(StorageUnavailableError):
        run(store.save_die(d6))


# ===== Dice =====

def test_save_die_upserts_by_id(store, d6):
    other = create_die("Other", 4)
    run(store.save_die(d6))
    run(store.save_die(other))
    run(store.save_die(update_name(d6, "Renamed")))
    dice = run(store.load_dice())
    assert [d.id for d in dice] == [d6.id, other.id]
    assert dice[0].name == "Renamed"


def test_save_die_accepts_json_shape(store, die_dict):
    run(store.save_die(die_dict))
    assert run(store.load_die(die_dict["id"])).to_dict() == die_dict


def test_invalid_die_is_not_written(store, medium, die_dict):
    die_dict["faces"] = die_dict["faces"][:5]
    before = run(medium.get_item(DICE_KEY))
    with pytest.raises(ValidationError) as info:
        run(store.save_die(die_dict))
    assert info.value.code == Code.INVALID_FACE_COUNT
    assert run(medium.get_item(DICE_KEY)) == before


def test_load_die_missing(store):
    assert run(store.load_die(generate_uuid())) is None


def test_delete_missing_die(store):
    assert run(store.delete_die(generate_uuid())) is False


def test_delete_die_cascades_into_sets(store):
    a, b = create_die("A", 6), create_die("B", 8)
    solo = create_dice_set("Solo", [a.id])
    pair = create_dice_set("Pair", [a.id, b.id])

    async def scenario():
        for die in (a, b):
            await store.save_die(die)
        for dice_set in (solo, pair):
            await store.save_dice_set(dice_set)
        deleted = await store.delete_die(a.id)
        return deleted, await store.load_dice(), await store.load_dice_sets()

    deleted, dice, sets = run(scenario())
    assert deleted is True
    assert [d.id for d in dice] == [b.id]
    # Solo set lost its only die and is gone; Pair keeps b
    assert [s.id for s in sets] == [pair.id]
    assert sets[0].dice_ids == [b.id]


# ===== Dice sets =====

def test_save_dice_set_and_load_set_dice(store):
    a, b = create_die("A", 6), create_die("B", 8)
    dice_set = create_dice_set("Ordered", [b.id, a.id])

    async def scenario():
        await store.save_die(a)
        await store.save_die(b)
        await store.save_dice_set(dice_set)
        loaded = await store.load_dice_set(dice_set.id)
        return loaded, await store.load_set_dice(loaded)

    loaded, dice = run(scenario())
    assert loaded == dice_set
    assert [d.id for d in dice] == [b.id, a.id]


def test_referential_check_leaves_storage_unchanged(store, medium, d6):
    run(store.save_die(d6))
    ghost = generate_uuid()
    dice_set = create_dice_set("Broken", [d6.id, ghost])
    dice_before = run(medium.get_item(DICE_KEY))
    sets_before = run(medium.get_item(SETS_KEY))

    with pytest.raises(ReferentialIntegrityError) as info:
        run(store.save_dice_set(dice_set))
    assert info.value.missing_ids == [ghost]
    assert ghost in str(info.value)
    assert run(medium.get_item(DICE_KEY)) == dice_before
    assert run(medium.get_item(SETS_KEY)) == sets_before


def test_referential_check_runs_before_validation(store):
    data = create_dice_set("Bad", [generate_uuid()]).to_dict()
    data["name"] = ""
    with pytest.raises(ReferentialIntegrityError):
        run(store.save_dice_set(data))


def test_invalid_set_with_existing_dice(store, d6):
    run(store.save_die(d6))
    data = create_dice_set("Bad", [d6.id]).to_dict()
    data["name"] = "x" * 51
    with pytest.raises(ValidationError) as info:
        run(store.save_dice_set(data))
    assert info.value.code == Code.INVALID_NAME_LENGTH
    assert run(store.load_dice_sets()) == []


def test_delete_dice_set_keeps_dice(store, d6):
    dice_set = create_dice_set("Solo", [d6.id])
    run(store.save_die(d6))
    run(store.save_dice_set(dice_set))
    assert run(store.delete_dice_set(dice_set.id)) is True
    assert run(store.delete_dice_set(dice_set.id)) is False
    assert run(store.load_dice_sets()) == []
    assert len(run(store.load_dice())) == 1


# ===== Failure modes =====

def test_storage_full(d6):
    medium = MemoryMedium(quota_bytes=1024)
    store = run(DiceStore(medium).open())
    big = create_die("Big", 101)
    with pytest.raises(StorageMediumFullError) as info:
        run(store.save_die(big))
    assert str(info.value) == "Storage full - please delete old dice to continue"
    assert isinstance(info.value.__cause__, QuotaExceededError)
    assert run(store.load_dice()) == []


def test_corrupt_collection_degrades_reads(store, medium, caplog):
    medium.set_raw(DICE_KEY, "{not json")
    medium.set_raw(SETS_KEY, '{"version": 1, "data": "oops"}')
    with caplog.at_level(logging.ERROR):
        assert run(store.load_dice()) == []
        assert run(store.load_dice_sets()) == []
    assert "Error loading dice" in caplog.text


def test_corrupt_collection_fails_writes(store, medium, d6):
    medium.set_raw(DICE_KEY, '"just a string"')
    with pytest.raises(ValueError):
        run(store.save_die(d6))


def test_concurrent_saves_last_write_wins(store):
    a, b = create_die("A", 6), create_die("B", 6)

    async def scenario():
        # Both saves read the same empty snapshot before either writes
        await asyncio.gather(store.save_die(a), store.save_die(b))
        return await store.load_dice()

    dice = run(scenario())
    assert [d.id for d in dice] == [b.id]


def test_sequential_saves_keep_both(store):
    a, b = create_die("A", 6), create_die("B", 6)

    async def scenario():
        await store.save_die(a)
        await store.save_die(b)
        return await store.load_dice()

    assert len(run(scenario())) == 2


def test_clear_all_storage(store, medium, d6):
    run(store.save_die(d6))
    run(store.save_dice_set(create_dice_set("Solo", [d6.id])))
    run(store.clear_all_storage())
    assert run(store.load_dice()) == []
    assert run(store.load_dice_sets()) == []
    assert run(medium.get_item(VERSION_KEY)) == CURRENT_SCHEMA_VERSION
    assert medium.keys() == sorted([DICE_KEY, SETS_KEY, VERSION_KEY])


def test_failed_cascade_read_leaves_dice_untouched(store, medium, d6):
    run(store.save_die(d6))
    dice_before = run(medium.get_item(DICE_KEY))
    medium.set_raw(SETS_KEY, "{corrupt")
    with pytest.raises(ValueError):
        run(store.delete_die(d6.id))
    assert run(medium.get_item(DICE_KEY)) == dice_before
    assert [d.id for d in run(store.load_dice())] == [d6.id]


def test_saved_records_carry_only_entity_fields(store, medium, die_dict):
    die_dict["injected"] = "x"
    die_dict["faces"][0]["junk"] = True
    saved = run(store.save_die(die_dict))
    assert "injected" not in saved.to_dict()

    stored = run(medium.get_item(DICE_KEY))["data"][0]
    assert set(stored) == {
        "id", "name", "sides", "backgroundColor", "textColor",
        "contentType", "faces", "createdAt", "updatedAt",
    }
    assert set(stored["faces"][0]) == {"id", "contentType", "value"}

    set_data = create_dice_set("Solo", [die_dict["id"]]).to_dict()
    set_data["extra"] = [1, 2]
    run(store.save_dice_set(set_data))
    stored_set = run(medium.get_item(SETS_KEY))["data"][0]
    assert set(stored_set) == {"id", "name", "diceIds", "createdAt", "updatedAt"}


def test_full_medium_at_open_is_storage_full():
    medium = MemoryMedium(quota_bytes=10)
    with pytest.raises(StorageMediumFullError) as info:
        run(DiceStore(medium).open())
    assert isinstance(info.value.__cause__, QuotaExceededError)


def test_full_medium_on_version_marker(medium, monkeypatch):
    set_item = medium.set_item

    async def reject_marker(key, value):
        if key == VERSION_KEY:
            raise QuotaExceededError("no room for the marker")
        await set_item(key, value)

    monkeypatch.setattr(medium, "set_item", reject_marker)
    with pytest.raises(StorageMediumFullError):
        run(DiceStore(medium).open())
