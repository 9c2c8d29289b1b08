from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class TurnRole(str, enum.Enum):
    SYSTEM = "system"
    HUMAN = "human"
    GPT = "gpt"
    HUMAN_NAMED = "human-chat"
    GPT_NAMED = "gpt-chat"


class Turn(BaseModel):
    """One conversation turn, stored with ShareGPT-style ``from``/``value`` keys."""

    model_config = ConfigDict(populate_by_name=True)

    role: TurnRole = Field(alias="from")
    text: str = Field(default="", alias="value")
    name: str | None = None  # speaker name for the *-chat roles


class Sample(BaseModel):
    """A dataset row. Unknown keys are kept and returned as-is."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    turn_prompt_hash: str
    dataset_name: str | None = None
    model_name: str | None = None
    generation_settings: str | dict | None = None
    conversations: list[Turn] = Field(default_factory=list)

    @property
    def content_hash(self) -> str:
        return self.turn_prompt_hash

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class SampleResponse(BaseModel):
    """Sample payload returned by the samples endpoint."""

    model_config = ConfigDict(extra="allow")

    turn_prompt_hash: str
    total_available: int
    is_last_sample: bool = False
