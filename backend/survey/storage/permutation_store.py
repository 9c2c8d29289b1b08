from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from survey.config import settings
from survey.models.permutation import UserIndexPermutation
from survey.storage.base import UserFileStore
from survey.storage.json_file import CorruptFileError, backup_file, read_json

logger = logging.getLogger(__name__)


class PermutationStore(UserFileStore):
    """Persisted per-user sample orderings under ``<data_dir>/user_indices/<scope>/``."""

    def __init__(self, base_dir: Path | None = None, dataset_name: str | None = None) -> None:
        super().__init__(
            base_dir or settings.data_dir / "user_indices",
            dataset_name or settings.dataset_repo,
        )

    def load(self, user: str, session_limit: int | None = None) -> UserIndexPermutation | None:
        """Stored permutation for ``user`` or None. Unreadable files are backed up and ignored."""
        path = self._read_path(user)
        try:
            raw = read_json(path)
        except CorruptFileError as exc:
            logger.warning("Permutation file is not valid JSON, regenerating: %s", exc)
            backup_file(path)
            return None
        if raw is None:
            return None

        if isinstance(raw, list):
            # Older files hold the full shuffled index list without metadata
            indices = raw[:session_limit] if session_limit is not None else raw
            raw = {"owner": user, "indices": indices}
        try:
            return UserIndexPermutation.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Permutation file %s is malformed, regenerating: %s", path, exc)
            backup_file(path)
            return None

    def save(self, permutation: UserIndexPermutation) -> Path:
        return self._write(
            permutation.owner,
            permutation.model_dump(mode="json"),
            indent=None,
        )
