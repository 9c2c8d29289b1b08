"""Storage scope resolution.

Per-user files are grouped in a directory named after the dataset
(``Steelskull/pjmixers`` -> ``Steelskull_pjmixers``). If that name is not a
safe directory component, or the directory cannot be created, every user
shares the fixed ``local_dataset`` scope instead.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

FALLBACK_SCOPE = "local_dataset"

_SAFE_NAME = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")


class StorageError(Exception):
    """Raised when neither the primary nor the fallback scope can be written."""


@dataclass(frozen=True)
class StorageScope:
    name: str
    directory: Path
    degraded: bool = False


def safe_dataset_name(dataset_name: str) -> str:
    return dataset_name.replace("/", "_")


def is_safe_scope_name(name: str) -> bool:
    return bool(_SAFE_NAME.fullmatch(name)) and name not in (".", "..")


def fallback_scope(root: Path) -> StorageScope:
    return StorageScope(FALLBACK_SCOPE, root / FALLBACK_SCOPE, degraded=True)


def resolve_scope(root: Path, dataset_name: str) -> StorageScope:
    """Pick the directory under ``root`` that holds per-user files for a dataset."""
    name = safe_dataset_name(dataset_name)
    if is_safe_scope_name(name):
        directory = root / name
        try:
            directory.mkdir(parents=True, exist_ok=True)
            return StorageScope(name, directory)
        except OSError as exc:
            logger.error("Error creating storage directory %s: %s", directory, exc)
    else:
        logger.warning("Dataset name %r is not usable as a directory name", dataset_name)

    scope = fallback_scope(root)
    try:
        scope.directory.mkdir(parents=True, exist_ok=True)
        logger.info("Using fallback storage directory %s", scope.directory)
    except OSError as exc:
        # Writes will retry the mkdir and raise StorageError if it still fails
        logger.error("Error creating fallback directory %s: %s", scope.directory, exc)
    return scope
