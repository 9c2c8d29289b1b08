from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from survey.config import settings
from survey.models.rating import ProgressSummary, Rating
from survey.storage.base import UserFileStore
from survey.storage.json_file import CorruptFileError, backup_file, read_json
from survey.storage.scope import StorageError

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Missing required fields (turn_prompt_hash, label)"


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _validate_fields(content_hash: Any, label: Any) -> None:
    if not content_hash or label is None:
        raise ValueError(MISSING_FIELDS_MESSAGE)
    if not isinstance(content_hash, str):
        raise ValueError("turn_prompt_hash must be a string")
    if not isinstance(label, bool):
        raise ValueError("label must be a boolean")


class RatingStore(UserFileStore):
    """Per-user ratings, stored as a JSON array in insertion order.

    A rating is keyed by ``turn_prompt_hash``; submitting the same hash again
    updates the existing entry in place rather than appending.
    """

    def __init__(self, base_dir: Path | None = None, dataset_name: str | None = None) -> None:
        super().__init__(
            base_dir or settings.data_dir / "ratings",
            dataset_name or settings.dataset_repo,
        )

    def _load(self, user: str) -> list[Rating]:
        path = self._read_path(user)
        try:
            raw = read_json(path)
        except CorruptFileError as exc:
            logger.warning("Ratings file is not valid JSON, treating as empty: %s", exc)
            backup_file(path)
            return []
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Ratings file %s does not hold a list, treating as empty", path)
            backup_file(path)
            return []

        ratings: list[Rating] = []
        skipped = 0
        for item in raw:
            try:
                ratings.append(Rating.model_validate(item))
            except ValidationError:
                skipped += 1
        if skipped:
            logger.warning("Dropped %d malformed ratings from %s", skipped, path)
            backup_file(path)
            try:
                self._write(user, self._dump(ratings))
            except StorageError as exc:
                logger.error("Could not rewrite repaired ratings file: %s", exc)
        return ratings

    @staticmethod
    def _dump(ratings: list[Rating]) -> list[dict]:
        return [r.model_dump() for r in ratings]

    async def list(self, user: str) -> list[Rating]:
        try:
            return self._load(user)
        except OSError as exc:
            logger.error("Error reading ratings for %s: %s", user, exc)
            return []

    async def upsert(self, user: str, content_hash: Any, label: Any) -> bool:
        """Record or update one rating. Raises ValueError on bad input, returns False if unsaved."""
        _validate_fields(content_hash, label)
        ratings = await self.list(user)
        now = utc_timestamp()

        for rating in ratings:
            if rating.turn_prompt_hash == content_hash:
                rating.label = label
                rating.timestamp = now
                break
        else:
            ratings.append(Rating(turn_prompt_hash=content_hash, label=label, timestamp=now))

        try:
            self._write(user, self._dump(ratings))
        except StorageError as exc:
            logger.error("Error saving rating: %s", exc)
            return False
        return True

    async def bulk_upsert(self, user: str, items: Any) -> int:
        """Merge a batch of rating-like dicts. The whole batch is validated before anything is written."""
        if not isinstance(items, list):
            raise ValueError("Expected an array of ratings")

        now = utc_timestamp()
        incoming: list[Rating] = []
        for position, item in enumerate(items):
            if not isinstance(item, dict):
                raise ValueError(f"Rating at position {position} is not an object")
            data = dict(item)
            content_hash = data.pop("content_hash", None) or data.get("turn_prompt_hash")
            try:
                _validate_fields(content_hash, data.get("label"))
            except ValueError as exc:
                raise ValueError(f"Rating at position {position}: {exc}") from exc
            data["turn_prompt_hash"] = content_hash
            data["timestamp"] = data.get("timestamp") or now
            incoming.append(Rating.model_validate(data))

        ratings = await self.list(user)
        for new in incoming:
            for idx, existing in enumerate(ratings):
                if existing.turn_prompt_hash == new.turn_prompt_hash:
                    ratings[idx] = new
                    break
            else:
                ratings.append(new)

        self._write(user, self._dump(ratings))
        return len(incoming)

    async def progress(self, user: str) -> ProgressSummary:
        ratings = await self.list(user)
        # Last stored entry, i.e. the most recently appended rating
        return ProgressSummary(
            completed=len(ratings),
            timestamp=ratings[-1].timestamp if ratings else None,
        )

    async def export(self, user: str) -> Path:
        """Path of the user's ratings file, written first if it does not exist yet."""
        path = self._read_path(user)
        if path.exists():
            return path
        return self._write(user, self._dump(await self.list(user)))

    @property
    def export_filename(self) -> str:
        return f"ratings-{self.scope.name}.json"
