from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from survey.services.dataset.loader import PARQUET_SUPPORTED

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)

API_ENDPOINTS = [
    "/api/dataset/info",
    "/api/samples/:index",
    "/api/ratings",
    "/api/ratings/bulk",
    "/api/ratings/progress",
    "/api/ratings/download",
]


@router.get("/api")
async def api_root() -> dict:
    return {
        "message": "Survey API is running",
        "endpoints": API_ENDPOINTS,
        "formatSupport": {"json": True, "parquet": PARQUET_SUPPORTED},
    }


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/health/detail")
async def health_detail(request: Request) -> dict:
    """Detailed health check for the dataset and storage."""
    return {
        "backend": {"status": "ok"},
        "dataset": _check_dataset(request),
        "storage": _check_storage(request),
    }


def _check_dataset(request: Request) -> dict:
    dataset = getattr(request.app.state, "dataset", None)
    if dataset is None:
        return {"status": "not_loaded", "message": "Loaded at startup"}
    return {
        "status": "ready" if len(dataset) else "empty",
        "name": dataset.name,
        "samples": len(dataset),
        "source": dataset.source,
    }


def _check_storage(request: Request) -> dict:
    store = getattr(request.app.state, "rating_store", None)
    if store is None:
        return {"status": "not_loaded"}
    return {
        "status": "degraded" if store.scope.degraded else "ok",
        "scope": store.scope.name,
        "directory": str(store.scope.directory),
    }
