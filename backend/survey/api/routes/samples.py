from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from survey.api.deps import get_sample_server, get_user
from survey.services.sample_server import NoSamplesAvailable, SampleServer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/samples", tags=["samples"])


@router.get("/{index}")
async def get_sample(
    index: str,
    user: str = Depends(get_user),
    server: SampleServer = Depends(get_sample_server),
) -> dict:
    """Sample at the caller's survey position. Out-of-range positions are clamped, never rejected."""
    try:
        sample = await server.get_sample(user, index)
    except NoSamplesAvailable as e:
        raise HTTPException(status_code=404, detail=str(e))
    return sample.model_dump(mode="json")
