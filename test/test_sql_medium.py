"""
SqlMedium tests against SQLite (file-backed in tmp_path and in-memory).
"""
import asyncio

import pytest

from dice_creator.engine.errors import QuotaExceededError, StorageMediumFullError
from dice_creator.engine.factory import create_dice_set, create_die
from dice_creator.storage import DiceStore, SqlMedium
from dice_creator.storage import medium as medium_module
from dice_creator.storage.database import get_db_file_path

run = asyncio.run


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'dice.db'}"


def test_get_set_remove_clear():
    medium = SqlMedium("sqlite://")

    async def scenario():
        assert await medium.get_item("missing") is None
        await medium.set_item("a", {"version": 1, "data": [1, 2]})
        await medium.set_item("a", {"version": 1, "data": [3]})
        await medium.set_item("b", 7)
        first = await medium.get_item("a")
        await medium.remove_item("a")
        removed = await medium.get_item("a")
        await medium.clear()
        cleared = await medium.get_item("b")
        await medium.close()
        return first, removed, cleared

    assert run(scenario()) == ({"version": 1, "data": [3]}, None, None)


def test_store_persists_across_connections(sqlite_url):
    d6 = create_die("Six", 6)
    dice_set = create_dice_set("Solo", [d6.id])

    async def write():
        async with DiceStore(SqlMedium(sqlite_url)) as store:
            await store.save_die(d6)
            await store.save_dice_set(dice_set)

    async def read():
        async with DiceStore(SqlMedium(sqlite_url)) as store:
            return await store.load_dice(), await store.load_dice_sets()

    run(write())
    dice, sets = run(read())
    assert [d.to_dict() for d in dice] == [d6.to_dict()]
    assert sets == [dice_set]


def test_db_file_path(sqlite_url, tmp_path):
    assert get_db_file_path(sqlite_url) == str(tmp_path / "dice.db")
    assert get_db_file_path("sqlite://") is None
    assert get_db_file_path("postgresql://user@host/db") is None


def test_full_database_maps_to_storage_full(monkeypatch):
    medium = SqlMedium("sqlite://")

    def full(key, value):
        raise QuotaExceededError("database or disk is full")

    store = run(DiceStore(medium).open())
    monkeypatch.setattr(medium, "_set", full)
    with pytest.raises(StorageMediumFullError):
        run(store.save_die(create_die("Six", 6)))
    run(store.close())


def test_full_error_detection():
    class FakeOperationalError(Exception):
        pass

    assert medium_module._is_medium_full(FakeOperationalError("database or disk is full"))
    assert not medium_module._is_medium_full(FakeOperationalError("no such table: kv_entries"))
