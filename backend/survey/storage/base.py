from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from survey.storage.json_file import write_json_atomic
from survey.storage.scope import StorageError, StorageScope, fallback_scope, resolve_scope

logger = logging.getLogger(__name__)


class UserFileStore:
    """One JSON file per user identity, inside a dataset-scoped directory."""

    def __init__(self, root: Path, dataset_name: str) -> None:
        self.root = root
        self.dataset_name = dataset_name
        self.scope: StorageScope = resolve_scope(root, dataset_name)
        self._fallback = fallback_scope(root)

    def _primary_path(self, user: str) -> Path:
        return self.scope.directory / f"{user}.json"

    def _fallback_path(self, user: str) -> Path:
        return self._fallback.directory / f"{user}.json"

    def _read_path(self, user: str) -> Path:
        """Primary file if present, else a file left in the fallback scope by a degraded write."""
        primary = self._primary_path(user)
        if primary.exists() or self.scope.degraded:
            return primary
        fallback = self._fallback_path(user)
        return fallback if fallback.exists() else primary

    def _write(self, user: str, data: Any, indent: int | None = 2) -> Path:
        """Write the user's file, retrying once in the fallback scope. Returns the path used."""
        path = self._primary_path(user)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            write_json_atomic(path, data, indent=indent)
            return path
        except OSError as exc:
            if self.scope.degraded:
                raise StorageError(f"Failed to write {path}: {exc}") from exc
            logger.error("Error writing %s: %s; trying fallback scope", path, exc)

        fallback = self._fallback_path(user)
        try:
            fallback.parent.mkdir(parents=True, exist_ok=True)
            write_json_atomic(fallback, data, indent=indent)
        except OSError as exc:
            raise StorageError(f"Failed to write {path} and fallback {fallback}: {exc}") from exc
        logger.warning("Wrote %s to fallback scope %s", fallback.name, self._fallback.name)
        return fallback

    def delete(self, user: str) -> bool:
        deleted = False
        for path in {self._primary_path(user), self._fallback_path(user)}:
            if path.exists():
                path.unlink()
                deleted = True
        return deleted
