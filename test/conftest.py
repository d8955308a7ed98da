"""
Pytest configuration and fixtures
"""
import asyncio

import pytest

from dice_creator.engine.factory import create_die
from dice_creator.storage import DiceStore, MemoryMedium


@pytest.fixture
def medium() -> MemoryMedium:
    return MemoryMedium()


@pytest.fixture
def store(medium):
    """An opened DiceStore over a fresh in-memory medium."""
    store = asyncio.run(DiceStore(medium).open())
    yield store
    asyncio.run(store.close())


@pytest.fixture
def d6():
    return create_die("Six", sides=6)


@pytest.fixture
def die_dict(d6) -> dict:
    """A valid die in its JSON shape, safe to mutate per test."""
    return d6.to_dict()
