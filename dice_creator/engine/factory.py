"""
Factory functions for faces, dice and dice sets.
New entities get a fresh UUID and timestamps; faces are auto-populated per content type.
"""

from dice_creator.config import (
    DEFAULT_BG_COLOR,
    DEFAULT_TEXT_COLOR,
    MAX_DICE_PER_SET,
    MIN_DICE_PER_SET,
)
from dice_creator.engine.state import (
    CONTENT_TYPE_COLOR,
    CONTENT_TYPE_NUMBER,
    CONTENT_TYPE_TEXT,
    DiceSet,
    Die,
    Face,
)
from dice_creator.engine.utils import current_timestamp, generate_uuid

# Preset palette for new color faces, cycled when a die has more faces than colors
DEFAULT_FACE_COLORS = [
    "#FF6B6B",  # red
    "#4ECDC4",  # teal
    "#45B7D1",  # blue
    "#FFA07A",  # orange
    "#98D8C8",  # mint
    "#F7DC6F",  # yellow
    "#BB8FCE",  # purple
    "#85C1E2",  # sky blue
    "#F8B739",  # gold
    "#52D273",  # green
    "#FF85A1",  # pink
    "#95E1D3",  # aqua
]


def default_face_color(index: int) -> str:
    """Palette color for the 1-based face index."""
    return DEFAULT_FACE_COLORS[(index - 1) % len(DEFAULT_FACE_COLORS)]


# ===== Faces =====

def create_default_face(index: int, content_type: str = CONTENT_TYPE_NUMBER) -> Face:
    """
    Create face number `index` (1-based) with default content.
    Number faces show their index, text faces start blank, color faces take a palette color.
    """
    if content_type == CONTENT_TYPE_NUMBER:
        return Face(id=index, content_type=content_type, value=str(index))
    if content_type == CONTENT_TYPE_COLOR:
        return Face(id=index, content_type=content_type, value="", color=default_face_color(index))
    return Face(id=index, content_type=CONTENT_TYPE_TEXT, value="")


def create_default_faces(sides: int, content_type: str = CONTENT_TYPE_NUMBER) -> list[Face]:
    return [create_default_face(i, content_type) for i in range(1, sides + 1)]


def adjust_faces_for_side_change(
    existing_faces: list[Face],
    new_sides: int,
    content_type: str,
) -> list[Face]:
    """
    Resize a face list, keeping existing face data.
    Fewer sides keeps the first `new_sides` faces; more sides appends default faces.
    """
    current_sides = len(existing_faces)
    if new_sides < current_sides:
        return existing_faces[:new_sides]
    if new_sides > current_sides:
        return list(existing_faces) + [
            create_default_face(i, content_type)
            for i in range(current_sides + 1, new_sides + 1)
        ]
    return existing_faces


# ===== Dice =====

def create_empty_die(sides: int = 6, content_type: str = CONTENT_TYPE_NUMBER) -> Die:
    """
    Create an unnamed die with default colors and faces.
    Example: create_empty_die(6, "number") has faces "1".."6".
    """
    now = current_timestamp()
    return Die(
        id=generate_uuid(),
        name="",
        sides=sides,
        background_color=DEFAULT_BG_COLOR,
        text_color=DEFAULT_TEXT_COLOR,
        content_type=content_type,
        faces=create_default_faces(sides, content_type),
        created_at=now,
        updated_at=now,
    )


def create_die(name: str, sides: int = 6, content_type: str = CONTENT_TYPE_NUMBER) -> Die:
    die = create_empty_die(sides, content_type)
    die.name = name
    return die


def copy_die(die: Die) -> Die:
    """Duplicate a die under a new id and fresh timestamps."""
    new_die = die.copy()
    now = current_timestamp()
    new_die.id = generate_uuid()
    new_die.created_at = now
    new_die.updated_at = now
    return new_die


# ===== Dice sets =====

def check_set_size(dice_ids: list[str]) -> None:
    if len(dice_ids) < MIN_DICE_PER_SET or len(dice_ids) > MAX_DICE_PER_SET:
        raise ValueError(f"Dice set must contain {MIN_DICE_PER_SET}-{MAX_DICE_PER_SET} dice")


def create_dice_set(name: str, dice_ids: list[str]) -> DiceSet:
    """
    Create a dice set over existing die ids (1-6 of them).
    Example: create_dice_set("Combat", [d20.id, d6.id])
    """
    check_set_size(dice_ids)
    now = current_timestamp()
    return DiceSet(
        id=generate_uuid(),
        name=name or "Untitled Set",
        dice_ids=list(dice_ids),
        created_at=now,
        updated_at=now,
    )


def create_empty_dice_set(name: str = "New Dice Set") -> DiceSet:
    """A set with no dice yet. It will not validate until a die is added."""
    now = current_timestamp()
    return DiceSet(id=generate_uuid(), name=name, dice_ids=[], created_at=now, updated_at=now)


def copy_dice_set(dice_set: DiceSet) -> DiceSet:
    """Duplicate a set (same die references) under a new id, named "<name> (Copy)"."""
    now = current_timestamp()
    return DiceSet(
        id=generate_uuid(),
        name=f"{dice_set.name} (Copy)",
        dice_ids=list(dice_set.dice_ids),
        created_at=now,
        updated_at=now,
    )
