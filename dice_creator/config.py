"""
Single place for dice limits, storage keys and environment-driven settings.
"""

import os

MIN_SIDES = 2
MAX_SIDES = 101
MIN_DICE_PER_SET = 1
MAX_DICE_PER_SET = 6
MAX_TEXT_LENGTH = 20
MAX_NAME_LENGTH = 50

DEFAULT_BG_COLOR = "#FFFFFF"
DEFAULT_TEXT_COLOR = "#000000"

# Share links longer than this (base URL + encoded payload) get a warning
MAX_SAFE_URL_LENGTH = 6000
DEFAULT_SHARE_BASE_URL = "/share"

# Bump together with a new entry in dice_creator.storage.store.MIGRATIONS
CURRENT_SCHEMA_VERSION = 1

STORAGE_KEYS = {
    "DICE_LIBRARY": "diceCreator:dice",
    "DICE_SETS": "diceCreator:sets",
    "SCHEMA_VERSION": "diceCreator:schemaVersion",
}

LOG_LEVEL = os.environ.get("DICE_LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "DICE_CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
    ).split(",")
    if origin.strip()
]
