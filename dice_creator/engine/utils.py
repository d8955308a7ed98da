"""
Utility functions for the engine: identifiers, timestamps and pretty-printing.
"""

import uuid
from datetime import datetime, timezone

from dice_creator.engine.state import CONTENT_TYPE_COLOR, DiceSet, Die


def generate_uuid() -> str:
    """Generate a UUID v4 string."""
    return str(uuid.uuid4())


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as ISO 8601 in UTC with millisecond precision (e.g. 2024-05-01T12:00:00.000Z)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def current_timestamp() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def parse_timestamp(timestamp: str) -> datetime:
    """
    Parse an ISO 8601 timestamp. Raises ValueError if it is not one.
    A trailing "Z" is accepted as UTC.
    """
    if not isinstance(timestamp, str):
        raise ValueError(f"Timestamp must be a string, got {type(timestamp).__name__}")
    text = timestamp.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def print_die(die: Die) -> None:
    """Pretty-print a die and its faces."""
    print(f"\n{'='*60}")
    print(f"{die.name or '(unnamed)'} | d{die.sides} | {die.content_type} | id={die.id}")
    print(f"colors: background={die.background_color} text={die.text_color}")
    print(f"{'='*60}")
    for face in die.faces:
        if face.content_type == CONTENT_TYPE_COLOR:
            print(f"  {face.id:>3}: {face.color}")
        else:
            print(f"  {face.id:>3}: {face.value}")


def print_dice_set(dice_set: DiceSet, dice: list[Die]) -> None:
    """Pretty-print a dice set, resolving die names where available."""
    names = {d.id: d.name for d in dice}
    print(f"\n{dice_set.name} ({len(dice_set.dice_ids)} dice) id={dice_set.id}")
    for position, die_id in enumerate(dice_set.dice_ids, 1):
        print(f"  {position}. {names.get(die_id, '<missing>')} [{die_id}]")
