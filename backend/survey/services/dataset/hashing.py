from __future__ import annotations

import hashlib
import json
from typing import Any


def content_hash(conversations: Any) -> str:
    """SHA-256 of the compact JSON form of a conversation list (``{}`` when absent)."""
    payload = json.dumps(
        conversations if conversations is not None else {},
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def fill_content_hash(row: dict) -> dict:
    """Set ``turn_prompt_hash`` on a raw dataset row if it has none. Existing hashes are kept."""
    if not row.get("turn_prompt_hash"):
        row["turn_prompt_hash"] = content_hash(row.get("conversations"))
    return row
