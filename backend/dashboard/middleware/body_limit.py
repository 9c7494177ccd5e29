from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from dashboard.config import settings

_BODY_METHODS = {"POST", "PUT", "PATCH"}


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """413 for request bodies over MAX_BODY_SIZE, declared or streamed."""

    def __init__(self, app, max_bytes: int = None):
        super().__init__(app)
        self.max_bytes = max_bytes or settings.MAX_BODY_SIZE

    def _reject(self) -> JSONResponse:
        return JSONResponse(
            status_code=413,
            content={
                "error_code": "PAYLOAD_TOO_LARGE",
                "message": "Payload too large",
                "details": {"max_bytes": self.max_bytes},
            },
        )

    async def dispatch(self, request: Request, call_next):
        declared = request.headers.get("content-length")
        if declared is not None:
            if declared.isdigit() and int(declared) > self.max_bytes:
                return self._reject()
            return await call_next(request)

        if request.method in _BODY_METHODS:
            # Chunked upload: buffer up to the limit so the route can still read the body
            body = bytearray()
            async for chunk in request.stream():
                body.extend(chunk)
                if len(body) > self.max_bytes:
                    return self._reject()
            request._body = bytes(body)
        return await call_next(request)
