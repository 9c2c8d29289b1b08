from __future__ import annotations

from fastapi import APIRouter, Depends

from survey.api.deps import get_dataset
from survey.models.dataset import DatasetInfo
from survey.services.dataset.dataset import Dataset

router = APIRouter(prefix="/api/dataset", tags=["dataset"])


@router.get("/info", response_model=DatasetInfo)
async def dataset_info(dataset: Dataset = Depends(get_dataset)) -> DatasetInfo:
    # totalSamples is the full dataset size, not the per-user session cap
    return dataset.info()
