"""Per-user sample ordering.

Each user gets one random ordering of the dataset, generated on first
request and reused afterwards, so a survey can be resumed from any position.
"""

from __future__ import annotations

import logging
import random

from survey.models.permutation import UserIndexPermutation
from survey.storage.permutation_store import PermutationStore
from survey.storage.scope import StorageError

logger = logging.getLogger(__name__)


def fisher_yates(size: int, rng: random.Random) -> list[int]:
    """Uniform random permutation of ``range(size)``."""
    indices = list(range(size))
    for i in range(size - 1, 0, -1):
        j = rng.randint(0, i)
        indices[i], indices[j] = indices[j], indices[i]
    return indices


class IndexShuffler:
    def __init__(self, store: PermutationStore, rng: random.Random | None = None) -> None:
        self.store = store
        self.rng = rng or random.Random()

    async def get_or_create_permutation(
        self, user: str, dataset_size: int, session_limit: int
    ) -> UserIndexPermutation:
        stored = self._load(user, session_limit)
        if stored is not None:
            if stored.is_valid_for(dataset_size):
                return stored
            logger.warning(
                "Stored permutation for %s does not fit a dataset of %d samples, regenerating",
                user[:12], dataset_size,
            )

        indices = fisher_yates(dataset_size, self.rng)[: max(0, min(session_limit, dataset_size))]
        permutation = UserIndexPermutation(owner=user, indices=indices)
        try:
            self.store.save(permutation)
        except StorageError as exc:
            logger.warning("Failed to persist permutation for %s: %s", user[:12], exc)
        return permutation

    async def reset(self, user: str) -> bool:
        """Forget the user's ordering so the next request shuffles again."""
        return self.store.delete(user)

    def _load(self, user: str, session_limit: int) -> UserIndexPermutation | None:
        try:
            return self.store.load(user, session_limit)
        except OSError as exc:
            logger.warning("Failed to read permutation for %s: %s", user[:12], exc)
            return None
