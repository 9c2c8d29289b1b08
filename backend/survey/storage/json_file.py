"""Small JSON file helpers shared by the per-user stores.

Writes are atomic (temp file in the same directory, then rename). Reads treat
a malformed file as absent, after moving it aside as a timestamped ``.bak``
so nothing is lost when the caller later overwrites the path.
"""

from __future__ import annotations

import json
import logging
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class CorruptFileError(Exception):
    """Raised internally when a stored JSON file cannot be parsed."""


def write_json_atomic(path: Path, data: Any, indent: int | None = 2) -> None:
    payload = json.dumps(data, indent=indent, ensure_ascii=False)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        Path(tmp_path).replace(path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise


def backup_file(path: Path) -> Path | None:
    """Move a bad file aside as ``<stem>.<UTC timestamp>.bak``. Returns the backup path."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    backup = path.with_name(f"{path.stem}.{stamp}.bak")
    try:
        path.replace(backup)
    except OSError as exc:
        logger.warning("Could not back up %s: %s", path, exc)
        return None
    logger.warning("Backed up unreadable file %s to %s", path, backup.name)
    return backup


def read_json(path: Path) -> Any | None:
    """Load JSON from ``path``; None when missing. Raises CorruptFileError on bad JSON."""
    if not path.exists():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise CorruptFileError(f"{path}: {exc}") from exc
