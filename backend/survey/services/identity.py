from __future__ import annotations

import hashlib

from starlette.requests import Request


def identity(remote_address: str | None) -> str:
    """Stable one-way user key for a client address. A missing address hashes as ``""``."""
    return hashlib.sha256((remote_address or "").encode("utf-8")).hexdigest()


def client_address(request: Request, trust_forwarded_for: bool = False) -> str:
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else ""
