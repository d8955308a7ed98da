"""
Field-by-field edits of dice and dice sets.
Entities are never modified in place: each function returns a new copy with a
fresh updated_at. Validation is left to the caller (save validates).
"""

from dice_creator.config import MAX_DICE_PER_SET, MAX_SIDES, MIN_SIDES
from dice_creator.engine.factory import (
    check_set_size,
    adjust_faces_for_side_change,
    create_default_faces,
)
from dice_creator.engine.state import DiceSet, Die, Face
from dice_creator.engine.utils import current_timestamp

# Face attributes update_face accepts; id is positional and cannot be changed
FACE_UPDATABLE_FIELDS = ("content_type", "value", "color")


def _touch(die: Die) -> Die:
    new_die = die.copy()
    new_die.updated_at = current_timestamp()
    return new_die


# ===== Dice =====

def update_name(die: Die, name: str) -> Die:
    new_die = _touch(die)
    new_die.name = name
    return new_die


def update_sides(die: Die, sides: int) -> Die:
    """Change the side count (clamped to the allowed range), keeping existing faces where possible."""
    clamped = max(MIN_SIDES, min(MAX_SIDES, sides))
    new_die = _touch(die)
    new_die.sides = clamped
    new_die.faces = adjust_faces_for_side_change(new_die.faces, clamped, new_die.content_type)
    return new_die


def update_background_color(die: Die, color: str) -> Die:
    new_die = _touch(die)
    new_die.background_color = color
    return new_die


def update_text_color(die: Die, color: str) -> Die:
    new_die = _touch(die)
    new_die.text_color = color
    return new_die


def update_content_type(die: Die, content_type: str) -> Die:
    """Switch content type. All faces are regenerated with defaults for the new type."""
    new_die = _touch(die)
    new_die.content_type = content_type
    new_die.faces = create_default_faces(new_die.sides, content_type)
    return new_die


def update_face(die: Die, face_id: int, **changes) -> Die:
    """
    Update one face by id.
    Example: update_face(die, 3, value="Crit")
    """
    unknown = set(changes) - set(FACE_UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update face field(s): {', '.join(sorted(unknown))}")
    new_die = _touch(die)
    faces: list[Face] = []
    for face in new_die.faces:
        if face.id == face_id:
            for attr, value in changes.items():
                setattr(face, attr, value)
        faces.append(face)
    new_die.faces = faces
    return new_die


# ===== Dice sets =====

def _touch_set(dice_set: DiceSet) -> DiceSet:
    new_set = dice_set.copy()
    new_set.updated_at = current_timestamp()
    return new_set


def update_dice_set_name(dice_set: DiceSet, name: str) -> DiceSet:
    """Rename a set. A blank name keeps the current one."""
    new_set = _touch_set(dice_set)
    new_set.name = name or dice_set.name
    return new_set


def update_dice_set_dice(dice_set: DiceSet, dice_ids: list[str]) -> DiceSet:
    check_set_size(dice_ids)
    new_set = _touch_set(dice_set)
    new_set.dice_ids = list(dice_ids)
    return new_set


def add_die_to_set(dice_set: DiceSet, die_id: str) -> DiceSet:
    """Append a die. Adding a die already in the set returns the set unchanged."""
    if len(dice_set.dice_ids) >= MAX_DICE_PER_SET:
        raise ValueError(f"Cannot add more than {MAX_DICE_PER_SET} dice to a set")
    if die_id in dice_set.dice_ids:
        return dice_set
    new_set = _touch_set(dice_set)
    new_set.dice_ids.append(die_id)
    return new_set


def remove_die_from_set(dice_set: DiceSet, die_id: str) -> DiceSet:
    new_set = _touch_set(dice_set)
    new_set.dice_ids = [i for i in dice_set.dice_ids if i != die_id]
    return new_set


def reorder_dice(dice_set: DiceSet, from_index: int, to_index: int) -> DiceSet:
    """Move the die at from_index to to_index; the others keep their relative order."""
    count = len(dice_set.dice_ids)
    if not (0 <= from_index < count) or not (0 <= to_index < count):
        raise ValueError(f"Invalid reorder: {from_index} -> {to_index} in a set of {count} dice")
    new_set = _touch_set(dice_set)
    die_id = new_set.dice_ids.pop(from_index)
    new_set.dice_ids.insert(to_index, die_id)
    return new_set
