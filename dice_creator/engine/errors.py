"""
Error types raised by the engine and the store.
Callers branch on the exception class; ValidationError also carries a code and field path.
"""


class ValidationErrorCode:
    INVALID_SIDES_RANGE = "INVALID_SIDES_RANGE"
    INVALID_FACE_COUNT = "INVALID_FACE_COUNT"
    INVALID_TEXT_LENGTH = "INVALID_TEXT_LENGTH"
    INVALID_COLOR_FORMAT = "INVALID_COLOR_FORMAT"
    INVALID_SET_SIZE = "INVALID_SET_SIZE"
    MIXED_CONTENT_TYPES = "MIXED_CONTENT_TYPES"
    INVALID_UUID = "INVALID_UUID"
    INVALID_NAME_LENGTH = "INVALID_NAME_LENGTH"
    EMPTY_CONTENT = "EMPTY_CONTENT"


class ValidationError(ValueError):
    """An entity broke one of its structural invariants."""

    def __init__(self, code: str, message: str, field: str | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.message, "field": self.field}


class ReferentialIntegrityError(ValueError):
    """A dice set names dice that are not in the dice library."""

    def __init__(self, missing_ids: list[str]):
        self.missing_ids = list(missing_ids)
        super().__init__(f"Referenced dice not found: {', '.join(self.missing_ids)}")


class QuotaExceededError(OSError):
    """Raised by a storage medium when it has no room left for a write."""


class StorageMediumFullError(Exception):
    """A write was rejected because the storage medium is full."""

    def __init__(self, message: str = "Storage full - please delete old dice to continue"):
        super().__init__(message)


class StorageUnavailableError(RuntimeError):
    """The store was used before open() or after close()."""


class DecodeError(ValueError):
    """A shared payload could not be decompressed, parsed or validated."""
