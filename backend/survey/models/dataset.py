from __future__ import annotations

from pydantic import BaseModel, Field


class DatasetInfo(BaseModel):
    name: str
    totalSamples: int = 0
    formatSupport: dict[str, bool] = Field(
        default_factory=lambda: {"json": True, "parquet": False}
    )
