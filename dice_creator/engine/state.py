"""
Entity representation: faces, dice, dice sets and the storage envelope.
Attributes are snake_case; to_dict/from_dict speak the camelCase JSON shape
that is persisted, shared and served over HTTP.
"""

from dataclasses import dataclass, field
from copy import deepcopy
from typing import Any

CONTENT_TYPE_NUMBER = "number"
CONTENT_TYPE_TEXT = "text"
CONTENT_TYPE_COLOR = "color"
FACE_CONTENT_TYPES = (CONTENT_TYPE_NUMBER, CONTENT_TYPE_TEXT, CONTENT_TYPE_COLOR)


def _int(v: Any, default: int) -> int:
    if isinstance(v, bool):
        return default
    try:
        return int(v) if v is not None else default
    except (TypeError, ValueError):
        return default


def _str(v: Any, default: str = "") -> str:
    return v if isinstance(v, str) else default


def _face_value(v: Any) -> str | int | float:
    if isinstance(v, bool):
        return ""
    if isinstance(v, (str, int, float)):
        return v
    return ""


@dataclass
class Face:
    """One facet of a die. id is the 1-based position within the die."""
    id: int
    content_type: str  # "number", "text" or "color"
    value: str | int | float
    color: str | None = None  # "#RRGGBB", only for color faces

    def to_dict(self) -> dict[str, Any]:
        out = {
            "id": self.id,
            "contentType": self.content_type,
            "value": self.value,
        }
        if self.color is not None:
            out["color"] = self.color
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Face":
        if not isinstance(data, dict):
            data = {}
        color = data.get("color")
        return cls(
            id=_int(data.get("id"), 0),
            content_type=_str(data.get("contentType"), CONTENT_TYPE_NUMBER),
            value=_face_value(data.get("value")),
            color=color if isinstance(color, str) else None,
        )


@dataclass
class Die:
    """A named die whose faces all share one content type."""
    id: str  # UUID v4
    name: str
    sides: int
    background_color: str
    text_color: str
    content_type: str
    faces: list[Face] = field(default_factory=list)
    created_at: str = ""  # ISO 8601
    updated_at: str = ""  # ISO 8601

    def copy(self) -> "Die":
        """Return a deep copy of this die."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "sides": self.sides,
            "backgroundColor": self.background_color,
            "textColor": self.text_color,
            "contentType": self.content_type,
            "faces": [f.to_dict() for f in self.faces],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Die":
        if not isinstance(data, dict):
            data = {}
        faces_raw = data.get("faces") or []
        if not isinstance(faces_raw, list):
            faces_raw = []
        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")),
            sides=_int(data.get("sides"), 0),
            background_color=_str(data.get("backgroundColor")),
            text_color=_str(data.get("textColor")),
            content_type=_str(data.get("contentType"), CONTENT_TYPE_NUMBER),
            faces=[Face.from_dict(f) for f in faces_raw if isinstance(f, dict)],
            created_at=_str(data.get("createdAt")),
            updated_at=_str(data.get("updatedAt")),
        )


@dataclass
class DiceSet:
    """An ordered group of die references rolled together. Order is display/roll order."""
    id: str  # UUID v4
    name: str
    dice_ids: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def copy(self) -> "DiceSet":
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "diceIds": list(self.dice_ids),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiceSet":
        if not isinstance(data, dict):
            data = {}
        ids = data.get("diceIds")
        if not isinstance(ids, list):
            ids = []
        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")),
            dice_ids=[str(x) for x in ids],
            created_at=_str(data.get("createdAt")),
            updated_at=_str(data.get("updatedAt")),
        )


@dataclass
class StorageEnvelope:
    """Versioned wrapper persisted around each collection."""
    version: int
    data: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "data": self.data}

    @classmethod
    def from_dict(cls, raw: Any) -> "StorageEnvelope":
        """Strict: a broken envelope must surface as an error, not an empty collection."""
        if not isinstance(raw, dict):
            raise ValueError(f"Storage envelope must be an object, got {type(raw).__name__}")
        version = raw.get("version")
        if isinstance(version, bool) or not isinstance(version, int):
            raise ValueError("Storage envelope version must be an integer")
        data = raw.get("data")
        if not isinstance(data, list):
            raise ValueError("Storage envelope data must be a list")
        return cls(version=version, data=data)


@dataclass
class DieRollResult:
    """Result of rolling one die."""
    die_id: str
    face: Face
    rolled_index: int  # 1-based position of the rolled face

    def to_dict(self) -> dict[str, Any]:
        return {
            "dieId": self.die_id,
            "face": self.face.to_dict(),
            "rolledIndex": self.rolled_index,
        }


@dataclass
class RollResult:
    """Result of rolling a whole dice set, one entry per die in set order."""
    set_id: str
    results: list[DieRollResult]
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "setId": self.set_id,
            "results": [r.to_dict() for r in self.results],
            "timestamp": self.timestamp,
        }
