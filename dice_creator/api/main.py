"""
FastAPI backend for Dice Creator.
Exposes the dice library, dice sets, rolling and share links over REST.
"""

import logging
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dice_creator.config import CORS_ORIGINS, DEFAULT_SHARE_BASE_URL
from dice_creator.engine.encoding import (
    decode_dice_set,
    decode_die,
    generate_die_link,
    generate_set_link,
)
from dice_creator.engine.errors import (
    DecodeError,
    ReferentialIntegrityError,
    StorageMediumFullError,
    StorageUnavailableError,
    ValidationError,
)
from dice_creator.engine.factory import copy_die
from dice_creator.engine.rolling import roll_dice_set_result, roll_die
from dice_creator.logging_utils import configure_logging
from dice_creator.storage import DiceStore, SqlMedium
from dice_creator.storage.database import get_db_file_path

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

app = FastAPI(
    title="Dice Creator API",
    description="Backend API for Dice Creator - custom dice, dice sets and share links",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Opened on startup; tests swap it out through app.dependency_overrides[get_store]
_store: DiceStore | None = None


@app.middleware("http")
async def log_requests(request, call_next):
    """Log method and path so 500s can be traced to the failing endpoint."""
    method = request.method
    path = request.url.path
    try:
        response = await call_next(request)
        if response.status_code >= 500:
            logger.error("[%d] %s %s", response.status_code, method, path)
        return response
    except Exception:
        logger.exception("[500] %s %s (exception)", method, path)
        raise


@app.exception_handler(ValidationError)
async def validation_error_handler(request, exc: ValidationError):
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(DecodeError)
async def decode_error_handler(request, exc: DecodeError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ReferentialIntegrityError)
async def referential_integrity_handler(request, exc: ReferentialIntegrityError):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "missing_ids": exc.missing_ids},
    )


@app.exception_handler(StorageMediumFullError)
async def storage_full_handler(request, exc: StorageMediumFullError):
    return JSONResponse(status_code=507, content={"detail": str(exc)})


@app.exception_handler(StorageUnavailableError)
async def storage_unavailable_handler(request, exc: StorageUnavailableError):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


# ===== Pydantic Models =====

class SaveDieRequest(BaseModel):
    die: dict[str, Any]


class SaveDiceSetRequest(BaseModel):
    dice_set: dict[str, Any]


class DecodeRequest(BaseModel):
    encoded: str
    save: bool = False  # persist the decoded entities


# ===== Lifecycle =====

@app.on_event("startup")
async def on_startup():
    global _store
    configure_logging()
    _store = await DiceStore(SqlMedium()).open()
    logger.info("Dice store opened (%s)", get_db_file_path() or "external database")


@app.on_event("shutdown")
async def on_shutdown():
    global _store
    if _store is not None:
        await _store.close()
        _store = None


def get_store() -> DiceStore:
    if _store is None or not _store.is_open:
        raise HTTPException(status_code=503, detail="Dice store is not available")
    return _store


# ===== Helper Functions =====

async def _require_die(store: DiceStore, die_id: str):
    die = await store.load_die(die_id)
    if die is None:
        raise HTTPException(status_code=404, detail=f"Die {die_id} not found")
    return die


async def _require_dice_set(store: DiceStore, set_id: str):
    dice_set = await store.load_dice_set(set_id)
    if dice_set is None:
        raise HTTPException(status_code=404, detail=f"Dice set {set_id} not found")
    return dice_set


# ===== API Endpoints =====

@app.get("/")
def root():
    return {"message": "Dice Creator API", "version": API_VERSION}


# ----- Dice -----

@app.get("/dice")
async def list_dice(store: DiceStore = Depends(get_store)):
    return {"dice": [d.to_dict() for d in await store.load_dice()]}


@app.get("/dice/{die_id}")
async def get_die(die_id: str, store: DiceStore = Depends(get_store)):
    die = await _require_die(store, die_id)
    return {"die": die.to_dict()}


@app.put("/dice")
async def save_die(request: SaveDieRequest, store: DiceStore = Depends(get_store)):
    saved = await store.save_die(request.die)
    return {"die": saved.to_dict()}


@app.delete("/dice/{die_id}")
async def delete_die(die_id: str, store: DiceStore = Depends(get_store)):
    if not await store.delete_die(die_id):
        raise HTTPException(status_code=404, detail=f"Die {die_id} not found")
    return {"deleted": die_id}


@app.post("/dice/{die_id}/copy")
async def duplicate_die(die_id: str, store: DiceStore = Depends(get_store)):
    die = await _require_die(store, die_id)
    new_die = copy_die(die)
    await store.save_die(new_die)
    return {"die": new_die.to_dict()}


@app.post("/dice/{die_id}/roll")
async def roll_single_die(die_id: str, store: DiceStore = Depends(get_store)):
    die = await _require_die(store, die_id)
    face = roll_die(die)
    return {"dieId": die.id, "face": face.to_dict()}


@app.get("/dice/{die_id}/share")
async def share_die(
    die_id: str,
    base_url: str = DEFAULT_SHARE_BASE_URL,
    store: DiceStore = Depends(get_store),
):
    die = await _require_die(store, die_id)
    return generate_die_link(die, base_url).to_dict()


# ----- Dice sets -----

@app.get("/sets")
async def list_dice_sets(store: DiceStore = Depends(get_store)):
    return {"sets": [s.to_dict() for s in await store.load_dice_sets()]}


@app.get("/sets/{set_id}")
async def get_dice_set(set_id: str, store: DiceStore = Depends(get_store)):
    dice_set = await _require_dice_set(store, set_id)
    dice = await store.load_set_dice(dice_set)
    return {"dice_set": dice_set.to_dict(), "dice": [d.to_dict() for d in dice]}


@app.put("/sets")
async def save_dice_set(request: SaveDiceSetRequest, store: DiceStore = Depends(get_store)):
    saved = await store.save_dice_set(request.dice_set)
    return {"dice_set": saved.to_dict()}


@app.delete("/sets/{set_id}")
async def delete_dice_set(set_id: str, store: DiceStore = Depends(get_store)):
    if not await store.delete_dice_set(set_id):
        raise HTTPException(status_code=404, detail=f"Dice set {set_id} not found")
    return {"deleted": set_id}


@app.post("/sets/{set_id}/roll")
async def roll_set(set_id: str, store: DiceStore = Depends(get_store)):
    dice_set = await _require_dice_set(store, set_id)
    dice = await store.load_set_dice(dice_set)
    try:
        result = roll_dice_set_result(dice_set, dice)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()


@app.get("/sets/{set_id}/share")
async def share_dice_set(
    set_id: str,
    base_url: str = DEFAULT_SHARE_BASE_URL,
    store: DiceStore = Depends(get_store),
):
    dice_set = await _require_dice_set(store, set_id)
    dice = await store.load_dice()
    return generate_set_link(dice_set, dice, base_url).to_dict()


# ----- Shared links -----

@app.post("/share/die")
async def import_shared_die(request: DecodeRequest, store: DiceStore = Depends(get_store)):
    die = decode_die(request.encoded)
    if request.save:
        await store.save_die(die)
    return {"die": die.to_dict(), "saved": request.save}


@app.post("/share/set")
async def import_shared_dice_set(request: DecodeRequest, store: DiceStore = Depends(get_store)):
    dice_set, dice = decode_dice_set(request.encoded)
    if request.save:
        # Dice first: the set may only reference dice already in the library
        for die in dice:
            await store.save_die(die)
        await store.save_dice_set(dice_set)
    return {
        "dice_set": dice_set.to_dict(),
        "dice": [d.to_dict() for d in dice],
        "saved": request.save,
    }
