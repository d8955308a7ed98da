"""
Share-link encoding for dice and dice sets.

Entities are projected to a minimal shape (no ids, no timestamps, and no color
on non-color faces), serialized as compact JSON, zlib-compressed and written
as unpadded URL-safe base64, so the result can sit in a URL fragment.

Decoding rebuilds full entities with fresh ids and timestamps and runs the
validator on them. Every failure surfaces as a single DecodeError.
"""

import base64
import binascii
import json
import logging
import zlib
from dataclasses import dataclass
from typing import Any

from dice_creator.config import DEFAULT_SHARE_BASE_URL, MAX_SAFE_URL_LENGTH
from dice_creator.engine.errors import DecodeError, ReferentialIntegrityError
from dice_creator.engine.state import CONTENT_TYPE_COLOR, DiceSet, Die, Face
from dice_creator.engine.utils import current_timestamp, generate_uuid
from dice_creator.engine.validation import validate_dice_set, validate_die

logger = logging.getLogger(__name__)

DEFAULT_SHARED_DIE_NAME = "Shared Die"
DEFAULT_SHARED_SET_NAME = "Shared Dice Set"


@dataclass
class ShareLink:
    """A ready-to-share URL plus the advisory length check."""
    url: str
    encoded: str
    url_length: int
    is_too_long: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "encoded": self.encoded,
            "url_length": self.url_length,
            "is_too_long": self.is_too_long,
        }


# ===== Transport =====

def _compress(payload: dict[str, Any]) -> str:
    raw = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(zlib.compress(raw, 9)).decode("ascii").rstrip("=")


def _decompress(encoded: str) -> str:
    text = str(encoded or "").strip()
    pad = "=" * ((4 - len(text) % 4) % 4)
    try:
        compressed = base64.b64decode((text + pad).encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"Invalid share encoding: {exc}") from exc
    if not compressed:
        return ""
    return zlib.decompress(compressed).decode("utf-8")


# ===== Minimal projection =====

def _minimal_face(face: Face) -> dict[str, Any]:
    out = {"contentType": face.content_type, "value": face.value}
    if face.content_type == CONTENT_TYPE_COLOR and face.color:
        out["color"] = face.color
    return out


def _minimal_die(die: Die) -> dict[str, Any]:
    return {
        "name": die.name,
        "sides": die.sides,
        "backgroundColor": die.background_color,
        "textColor": die.text_color,
        "contentType": die.content_type,
        "faces": [_minimal_face(f) for f in die.faces],
    }


def _rebuild_die(data: Any, now: str) -> dict[str, Any]:
    """Full die dict from a minimal one: fresh id and timestamps, positional face ids."""
    if not isinstance(data, dict):
        raise ValueError("Die payload must be an object")
    faces = data.get("faces")
    if not isinstance(faces, list):
        raise ValueError("Die payload faces must be an array")
    rebuilt_faces = []
    for index, face in enumerate(faces):
        if not isinstance(face, dict):
            raise ValueError(f"Face {index + 1} payload must be an object")
        rebuilt = {
            "id": index + 1,
            "contentType": face.get("contentType"),
            "value": face.get("value"),
        }
        if face.get("color"):
            rebuilt["color"] = face["color"]
        rebuilt_faces.append(rebuilt)
    return {
        "id": generate_uuid(),
        "name": data.get("name") or DEFAULT_SHARED_DIE_NAME,
        "sides": data.get("sides"),
        "backgroundColor": data.get("backgroundColor"),
        "textColor": data.get("textColor"),
        "contentType": data.get("contentType"),
        "faces": rebuilt_faces,
        "createdAt": now,
        "updatedAt": now,
    }


# ===== Dice =====

def encode_die(die: Die) -> str:
    """Encode a die into a URL-safe compressed string."""
    return _compress(_minimal_die(die))


def decode_die(encoded: str) -> Die:
    """
    Decode a die produced by encode_die.
    The result is a new die: fresh id and timestamps, face ids 1..sides.

    Raises:
        DecodeError: If the data is corrupt, truncated or fails validation
    """
    try:
        text = _decompress(encoded)
        if not text:
            raise ValueError("Failed to decompress data")
        die_data = _rebuild_die(json.loads(text), current_timestamp())
        validate_die(die_data)
    except Exception as exc:
        logger.debug("Die payload rejected: %s", exc)
        raise DecodeError(f"Failed to decode die: {exc}") from exc
    return Die.from_dict(die_data)


# ===== Dice sets =====

def encode_dice_set(dice_set: DiceSet, dice: list[Die]) -> str:
    """
    Encode a dice set together with its dice.
    Dice are embedded in dice_set.dice_ids order; every referenced die must be in `dice`.
    """
    by_id = {d.id: d for d in dice}
    missing = [die_id for die_id in dice_set.dice_ids if die_id not in by_id]
    if missing:
        raise ReferentialIntegrityError(missing)
    return _compress({
        "name": dice_set.name,
        "dice": [_minimal_die(by_id[die_id]) for die_id in dice_set.dice_ids],
    })


def decode_dice_set(encoded: str) -> tuple[DiceSet, list[Die]]:
    """
    Decode a dice set produced by encode_dice_set.
    Returns (dice_set, dice): all new dice, and a new set whose dice_ids are exactly
    their ids in embedded order.

    Raises:
        DecodeError: If the data is corrupt, truncated or any entity fails validation
    """
    try:
        text = _decompress(encoded)
        if not text:
            raise ValueError("Failed to decompress data")
        parsed = json.loads(text)
        if not isinstance(parsed, dict) or not isinstance(parsed.get("dice"), list):
            raise ValueError("Dice set payload must carry a dice array")
        now = current_timestamp()
        dice_data = [_rebuild_die(d, now) for d in parsed["dice"]]
        set_data = {
            "id": generate_uuid(),
            "name": parsed.get("name") or DEFAULT_SHARED_SET_NAME,
            "diceIds": [d["id"] for d in dice_data],
            "createdAt": now,
            "updatedAt": now,
        }
        for die_data in dice_data:
            validate_die(die_data)
        validate_dice_set(set_data)
    except Exception as exc:
        logger.debug("Dice set payload rejected: %s", exc)
        raise DecodeError(f"Failed to decode dice set: {exc}") from exc
    return DiceSet.from_dict(set_data), [Die.from_dict(d) for d in dice_data]


# ===== Share links =====

def is_url_too_long(encoded: str, base_url: str = "") -> bool:
    """True if base_url + encoded would exceed MAX_SAFE_URL_LENGTH. Advisory only."""
    return len(base_url) + len(encoded) > MAX_SAFE_URL_LENGTH


def build_share_link(encoded: str, base_url: str = DEFAULT_SHARE_BASE_URL) -> ShareLink:
    url = f"{base_url}#{encoded}"
    return ShareLink(
        url=url,
        encoded=encoded,
        url_length=len(url),
        is_too_long=is_url_too_long(encoded, base_url),
    )


def generate_die_link(die: Die, base_url: str = DEFAULT_SHARE_BASE_URL) -> ShareLink:
    return build_share_link(encode_die(die), base_url)


def generate_set_link(
    dice_set: DiceSet,
    dice: list[Die],
    base_url: str = DEFAULT_SHARE_BASE_URL,
) -> ShareLink:
    return build_share_link(encode_dice_set(dice_set, dice), base_url)
