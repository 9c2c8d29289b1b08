from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool


class Rating(BaseModel):
    """One thumbs-up/down judgement, keyed by the sample's content hash."""

    model_config = ConfigDict(extra="allow")

    turn_prompt_hash: str
    label: StrictBool
    timestamp: str = ""  # ISO-8601 UTC, set when recorded or updated


class RatingRequest(BaseModel):
    # label is checked by the store so a non-boolean gets a 400 with a clear message
    turn_prompt_hash: str | None = Field(
        default=None,
        validation_alias=AliasChoices("turn_prompt_hash", "content_hash"),
    )
    label: Any = None


class ProgressSummary(BaseModel):
    completed: int = 0
    timestamp: str | None = None
