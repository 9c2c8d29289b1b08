from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import FileResponse

from survey.api.deps import get_rating_store, get_user
from survey.models.rating import ProgressSummary, Rating, RatingRequest
from survey.storage.rating_store import RatingStore
from survey.storage.scope import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ratings", tags=["ratings"])


@router.get("", response_model=list[Rating])
async def list_ratings(
    user: str = Depends(get_user),
    store: RatingStore = Depends(get_rating_store),
) -> list[Rating]:
    return await store.list(user)


@router.post("", status_code=201)
async def submit_rating(
    req: RatingRequest,
    user: str = Depends(get_user),
    store: RatingStore = Depends(get_rating_store),
) -> dict:
    # ValueError from the store (missing hash, non-boolean label) becomes a 400
    saved = await store.upsert(user, req.turn_prompt_hash, req.label)
    if not saved:
        raise HTTPException(status_code=500, detail="Failed to save rating")
    return {"success": True}


@router.post("/bulk", status_code=201)
async def submit_bulk_ratings(
    payload: Any = Body(...),
    user: str = Depends(get_user),
    store: RatingStore = Depends(get_rating_store),
) -> dict:
    """Merge a batch of ratings (kept for clients that saved ratings locally)."""
    if not isinstance(payload, list):
        raise HTTPException(status_code=400, detail="Expected an array of ratings")
    try:
        count = await store.bulk_upsert(user, payload)
    except StorageError as e:
        logger.error("Error saving bulk ratings: %s", e)
        raise HTTPException(status_code=500, detail="Failed to save ratings")
    return {"success": True, "count": count}


@router.get("/progress", response_model=ProgressSummary)
async def get_progress(
    user: str = Depends(get_user),
    store: RatingStore = Depends(get_rating_store),
) -> ProgressSummary:
    return await store.progress(user)


@router.get("/download")
async def download_ratings(
    user: str = Depends(get_user),
    store: RatingStore = Depends(get_rating_store),
) -> FileResponse:
    try:
        path = await store.export(user)
    except StorageError as e:
        logger.error("Error generating ratings download: %s", e)
        raise HTTPException(status_code=500, detail="Failed to download ratings file")
    return FileResponse(path, media_type="application/json", filename=store.export_filename)
