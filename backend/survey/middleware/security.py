from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

ALLOWED_CONTENT_TYPES = {
    "application/json",
    "text/plain",
    "multipart/form-data",
}


class SecurityMiddleware(BaseHTTPMiddleware):
    """Input validation: content type checks, body size limits."""

    def __init__(self, app, max_body_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next):
        if request.method in ("POST", "PUT"):
            # Check body size for POST/PUT
            content_length = request.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
                return JSONResponse(
                    status_code=413,
                    content={"detail": f"Request body too large. Maximum size: {self.max_body_size} bytes."},
                )

            content_type = request.headers.get("content-type")
            if content_type:
                media_type = content_type.split(";", 1)[0].strip().lower()
                if media_type not in ALLOWED_CONTENT_TYPES:
                    return JSONResponse(
                        status_code=415,
                        content={"detail": f"Unsupported content type: {media_type}"},
                    )

        return await call_next(request)
