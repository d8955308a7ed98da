"""
Main entry point for the Dice Creator core.
Demonstrates the core functionality against an in-memory store.
"""

import asyncio

from dice_creator.engine.encoding import decode_dice_set, generate_set_link
from dice_creator.engine.factory import create_dice_set, create_die
from dice_creator.engine.mutations import update_background_color, update_face
from dice_creator.engine.rolling import roll_dice_set_result
from dice_creator.engine.utils import print_dice_set, print_die
from dice_creator.logging_utils import configure_logging
from dice_creator.storage import DiceStore, MemoryMedium


async def run_demo():
    print("Dice Creator - core demo")
    print("=" * 60)

    async with DiceStore(MemoryMedium()) as store:
        # ===== SCENARIO 1: Build and save dice =====
        print("\n[SCENARIO 1: Create dice]")
        d20 = create_die("Attack", sides=20)
        d20 = update_background_color(d20, "#B22222")
        d20 = update_face(d20, 20, value="CRIT")
        mood = create_die("Mood", sides=4, content_type="color")
        for die in (d20, mood):
            await store.save_die(die)
            print_die(die)

        # ===== SCENARIO 2: Group them and roll =====
        print("\n[SCENARIO 2: Dice set + roll]")
        combat = create_dice_set("Combat", [d20.id, mood.id])
        await store.save_dice_set(combat)
        print_dice_set(combat, await store.load_dice())
        result = roll_dice_set_result(combat, await store.load_set_dice(combat))
        for entry in result.results:
            print(f"  die {entry.die_id[:8]} rolled face {entry.rolled_index}: {entry.face.to_dict()}")

        # ===== SCENARIO 3: Share link round trip =====
        print("\n[SCENARIO 3: Share link]")
        link = generate_set_link(combat, await store.load_dice(), base_url="https://dice.example/share")
        print(f"  {link.url_length} chars, too long: {link.is_too_long}")
        shared_set, shared_dice = decode_dice_set(link.encoded)
        print(f"  decoded '{shared_set.name}' with {len(shared_dice)} new dice")

        # ===== SCENARIO 4: Cascade delete =====
        print("\n[SCENARIO 4: Delete a die]")
        await store.delete_die(mood.id)
        remaining = await store.load_dice_set(combat.id)
        print(f"  set now holds {len(remaining.dice_ids)} die")
        await store.delete_die(d20.id)
        print(f"  set after deleting its last die: {await store.load_dice_set(combat.id)}")


def main():
    configure_logging()
    asyncio.run(run_demo())


if __name__ == "__main__":
    main()
