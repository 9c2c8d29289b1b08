from __future__ import annotations

import logging

from survey.models.sample import SampleResponse
from survey.services.dataset.dataset import Dataset
from survey.services.shuffler import IndexShuffler

logger = logging.getLogger(__name__)


class NoSamplesAvailable(Exception):
    """Raised when the dataset is empty, so no position can be resolved."""


def parse_position(raw: int | str | None) -> int | None:
    """Integer position from a path segment, or None when it is not a whole number."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return None


class SampleServer:
    """Maps a user's survey position onto a dataset sample.

    Positions outside ``[0, len(permutation))`` are clamped rather than
    rejected: anything below zero (or not a number) resolves to the first
    sample, anything past the end resolves to the last one.
    """

    def __init__(self, dataset: Dataset, shuffler: IndexShuffler, session_limit: int) -> None:
        self.dataset = dataset
        self.shuffler = shuffler
        self.session_limit = session_limit

    async def get_sample(self, user: str, position: int | str | None) -> SampleResponse:
        permutation = await self.shuffler.get_or_create_permutation(
            user, len(self.dataset), self.session_limit
        )
        indices = permutation.indices
        if not indices:
            raise NoSamplesAvailable("No samples available")

        requested = parse_position(position)
        if requested is None or requested < 0:
            effective = 0
        elif requested >= len(indices):
            effective = len(indices) - 1
        else:
            effective = requested

        sample = self.dataset[indices[effective]]
        return SampleResponse.model_validate({
            **sample.to_wire(),
            "total_available": len(indices),
            "is_last_sample": effective == len(indices) - 1,
        })
