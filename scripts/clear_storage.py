#!/usr/bin/env python3
"""
Delete every saved die and dice set from the configured SQL store.
Usage: python scripts/clear_storage.py [--yes]
Run after pip install -e . (or from the repo root with PYTHONPATH=.)
"""
import asyncio
import sys

from dice_creator.storage import DiceStore, SqlMedium
from dice_creator.storage.database import DATABASE_URL


async def clear() -> tuple[int, int]:
    async with DiceStore(SqlMedium(DATABASE_URL)) as store:
        dice_count = len(await store.load_dice())
        set_count = len(await store.load_dice_sets())
        await store.clear_all_storage()
    return dice_count, set_count


def main() -> None:
    if "--yes" not in sys.argv[1:]:
        answer = input(f"Delete all dice and sets in {DATABASE_URL}? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Aborted.")
            return

    try:
        dice_count, set_count = asyncio.run(clear())
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Deleted {dice_count} dice and {set_count} dice sets.")


if __name__ == "__main__":
    main()
