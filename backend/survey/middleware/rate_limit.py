from __future__ import annotations

import time
from collections import defaultdict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from survey.services.identity import client_address

_EXEMPT_PATHS: frozenset[str] = frozenset({"/api", "/health", "/openapi.json", "/docs", "/redoc"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory per-IP rate limiter using sliding window.

    Requests are bucketed by the same client address that user identity is
    derived from, so behind a trusted proxy each forwarded client gets its
    own window.
    """

    def __init__(
        self,
        app,
        max_requests: int = 120,
        window_seconds: int = 60,
        trust_forwarded_for: bool = False,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.trust_forwarded_for = trust_forwarded_for
        self._requests: dict[str, list[float]] = defaultdict(list)

    async def dispatch(self, request: Request, call_next):
        # Only API routes are limited, and the API root is exempt
        if request.url.path in _EXEMPT_PATHS or not request.url.path.startswith("/api"):
            return await call_next(request)

        client_ip = client_address(request, self.trust_forwarded_for) or "unknown"

        now = time.time()
        window_start = now - self.window_seconds

        # Clean old entries
        self._requests[client_ip] = [
            t for t in self._requests[client_ip] if t > window_start
        ]

        if len(self._requests[client_ip]) >= self.max_requests:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
            )

        self._requests[client_ip].append(now)
        return await call_next(request)
