from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class UserIndexPermutation(BaseModel):
    """Per-user ordering of dataset offsets, truncated to the session limit."""

    owner: str
    indices: list[int] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_valid_for(self, dataset_size: int) -> bool:
        """True when every index is a distinct offset into a dataset of this size."""
        if len(set(self.indices)) != len(self.indices):
            return False
        return all(0 <= i < dataset_size for i in self.indices)
