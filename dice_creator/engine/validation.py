"""
Validation of faces, dice and dice sets.

The validate_* functions accept either an entity dataclass or a raw mapping in
the JSON shape (as read from storage, a share link or a request body). They
return None when the entity is valid and raise ValidationError at the first
broken invariant, checking in a fixed order so the same input always reports
the same error.

Whether the dice referenced by a set exist is not checked here; that is the
store's referential check.
"""

import re
from collections.abc import Mapping
from typing import Any

from dice_creator.config import (
    MAX_DICE_PER_SET,
    MAX_NAME_LENGTH,
    MAX_SIDES,
    MAX_TEXT_LENGTH,
    MIN_DICE_PER_SET,
    MIN_SIDES,
)
from dice_creator.engine.errors import ValidationError, ValidationErrorCode as Code
from dice_creator.engine.state import (
    CONTENT_TYPE_COLOR,
    CONTENT_TYPE_TEXT,
    FACE_CONTENT_TYPES,
)
from dice_creator.engine.utils import parse_timestamp

HEX_COLOR_PATTERN = re.compile(r"#[0-9A-F]{6}", re.IGNORECASE)
UUID_V4_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    re.IGNORECASE,
)


# ===== Predicates =====

def is_face_content_type(value: Any) -> bool:
    return isinstance(value, str) and value in FACE_CONTENT_TYPES


def is_valid_hex_color(value: Any) -> bool:
    """True for "#RRGGBB" in either case."""
    return isinstance(value, str) and HEX_COLOR_PATTERN.fullmatch(value) is not None


def is_valid_uuid(value: Any) -> bool:
    """True for a UUID v4 string (version nibble 4, variant 8/9/a/b)."""
    return isinstance(value, str) and UUID_V4_PATTERN.fullmatch(value) is not None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_face_content(value: str | int | float) -> bool:
    """
    True if face content is usable. Numbers always are; strings need at least
    one character left after stripping whitespace (line breaks included).
    """
    if _is_number(value):
        return True
    return isinstance(value, str) and len(value.strip()) > 0


def _as_mapping(value: Any, code: str, message: str) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise ValidationError(code, message)


def _validate_timestamps(data: Mapping[str, Any], code: str) -> None:
    for key in ("createdAt", "updatedAt"):
        value = data.get(key)
        if not isinstance(value, str):
            raise ValidationError(code, f"{key} must be a string", key)
        try:
            parse_timestamp(value)
        except ValueError:
            raise ValidationError(code, f"{key} must be valid ISO 8601", key)


def _validate_name(name: Any, label: str) -> None:
    if not isinstance(name, str):
        raise ValidationError(Code.INVALID_NAME_LENGTH, f"{label} name must be a string", "name")
    if len(name) == 0:
        raise ValidationError(Code.INVALID_NAME_LENGTH, f"{label} name cannot be empty", "name")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(
            Code.INVALID_NAME_LENGTH,
            f"{label} name cannot exceed {MAX_NAME_LENGTH} characters",
            "name",
        )


# ===== Faces =====

def validate_face(face: Any) -> None:
    """Raise ValidationError if face is not a valid Face."""
    f = _as_mapping(face, Code.INVALID_FACE_COUNT, "Face must be an object")

    face_id = f.get("id")
    if not _is_int(face_id) or face_id < 1:
        raise ValidationError(Code.INVALID_FACE_COUNT, "Face id must be a positive integer", "id")

    content_type = f.get("contentType")
    if not is_face_content_type(content_type):
        raise ValidationError(Code.MIXED_CONTENT_TYPES, "Invalid content type", "contentType")

    value = f.get("value")
    if not isinstance(value, str) and not _is_number(value):
        raise ValidationError(Code.INVALID_TEXT_LENGTH, "Face value must be string or number", "value")

    # Color faces keep their content in "color"; value is unused
    is_color_face = content_type == CONTENT_TYPE_COLOR
    if not is_color_face and not validate_face_content(value):
        raise ValidationError(
            Code.EMPTY_CONTENT,
            "Face content cannot be empty or whitespace only",
            "value",
        )

    if content_type == CONTENT_TYPE_TEXT and isinstance(value, str) and len(value) > MAX_TEXT_LENGTH:
        raise ValidationError(
            Code.INVALID_TEXT_LENGTH,
            f"Text cannot exceed {MAX_TEXT_LENGTH} characters",
            "value",
        )

    if is_color_face and not is_valid_hex_color(f.get("color")):
        raise ValidationError(
            Code.INVALID_COLOR_FORMAT,
            "Color must be a valid hex color (#RRGGBB)",
            "color",
        )


# ===== Dice =====

def validate_die(die: Any) -> None:
    """
    Raise ValidationError if die is not a valid Die.

    Order: id, name, sides, colors, content type, face count, then each face
    (its own rules, positional id, matching content type), then timestamps.
    Face errors are re-raised with a "Face N: " message prefix and a
    "faces[i].<field>" path.
    """
    d = _as_mapping(die, Code.INVALID_SIDES_RANGE, "Die must be an object")

    if not is_valid_uuid(d.get("id")):
        raise ValidationError(Code.INVALID_UUID, "Die id must be a valid UUID v4", "id")

    _validate_name(d.get("name"), "Die")

    sides = d.get("sides")
    if not _is_int(sides):
        raise ValidationError(Code.INVALID_SIDES_RANGE, "Sides must be an integer", "sides")
    if sides < MIN_SIDES or sides > MAX_SIDES:
        raise ValidationError(
            Code.INVALID_SIDES_RANGE,
            f"Sides must be between {MIN_SIDES} and {MAX_SIDES}",
            "sides",
        )

    if not is_valid_hex_color(d.get("backgroundColor")):
        raise ValidationError(
            Code.INVALID_COLOR_FORMAT,
            "Background color must be valid hex (#RRGGBB)",
            "backgroundColor",
        )
    if not is_valid_hex_color(d.get("textColor")):
        raise ValidationError(
            Code.INVALID_COLOR_FORMAT,
            "Text color must be valid hex (#RRGGBB)",
            "textColor",
        )

    content_type = d.get("contentType")
    if not is_face_content_type(content_type):
        raise ValidationError(Code.MIXED_CONTENT_TYPES, "Invalid content type", "contentType")

    faces = d.get("faces")
    if not isinstance(faces, list):
        raise ValidationError(Code.INVALID_FACE_COUNT, "Faces must be an array", "faces")
    if len(faces) != sides:
        raise ValidationError(
            Code.INVALID_FACE_COUNT,
            f"Die must have exactly {sides} faces",
            "faces",
        )

    for index, face in enumerate(faces):
        try:
            face_data = _as_mapping(face, Code.INVALID_FACE_COUNT, "Face must be an object")
            validate_face(face_data)
            if face_data.get("id") != index + 1:
                raise ValidationError(
                    Code.INVALID_FACE_COUNT,
                    f"Face at index {index} must have id {index + 1}",
                    "id",
                )
            if face_data.get("contentType") != content_type:
                raise ValidationError(
                    Code.MIXED_CONTENT_TYPES,
                    "All faces must have same content type as die",
                    "contentType",
                )
        except ValidationError as error:
            path = f"faces[{index}].{error.field}" if error.field else f"faces[{index}]"
            raise ValidationError(error.code, f"Face {index + 1}: {error.message}", path) from error

    _validate_timestamps(d, Code.INVALID_SIDES_RANGE)


# ===== Dice sets =====

def validate_dice_set(dice_set: Any) -> None:
    """Raise ValidationError if dice_set is not a structurally valid DiceSet."""
    s = _as_mapping(dice_set, Code.INVALID_SET_SIZE, "Dice set must be an object")

    if not is_valid_uuid(s.get("id")):
        raise ValidationError(Code.INVALID_UUID, "Set id must be a valid UUID v4", "id")

    _validate_name(s.get("name"), "Set")

    dice_ids = s.get("diceIds")
    if not isinstance(dice_ids, list):
        raise ValidationError(Code.INVALID_SET_SIZE, "diceIds must be an array", "diceIds")
    if len(dice_ids) < MIN_DICE_PER_SET or len(dice_ids) > MAX_DICE_PER_SET:
        raise ValidationError(
            Code.INVALID_SET_SIZE,
            f"Set must contain {MIN_DICE_PER_SET}-{MAX_DICE_PER_SET} dice",
            "diceIds",
        )
    for index, die_id in enumerate(dice_ids):
        if not is_valid_uuid(die_id):
            raise ValidationError(
                Code.INVALID_UUID,
                f"Die ID at index {index} must be a valid UUID",
                f"diceIds[{index}]",
            )

    _validate_timestamps(s, Code.INVALID_SET_SIZE)


# ===== Boolean forms =====

def is_face(value: Any) -> bool:
    try:
        validate_face(value)
    except ValidationError:
        return False
    return True


def is_die(value: Any) -> bool:
    try:
        validate_die(value)
    except ValidationError:
        return False
    return True


def is_dice_set(value: Any) -> bool:
    try:
        validate_dice_set(value)
    except ValidationError:
        return False
    return True
