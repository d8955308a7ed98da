"""
Persistence for the dice library and dice sets.
DiceStore does versioned whole-collection CRUD over an asynchronous key-value medium.
"""

from dice_creator.storage.medium import KeyValueMedium, MemoryMedium, SqlMedium
from dice_creator.storage.store import DiceStore, MIGRATIONS

__all__ = ["DiceStore", "KeyValueMedium", "MemoryMedium", "SqlMedium", "MIGRATIONS"]
