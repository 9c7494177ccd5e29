"""
Request ID tracking middleware for log correlation.
"""
import uuid
import time
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import logging

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tag every request with an X-Request-ID (taken from the client or generated)
    and log its start, completion and duration under that id.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.time()
        logger.debug(
            f"{request.method} {request.url.path}",
            extra={"request_id": request_id, "status": "started"},
        )

        try:
            response: Response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {e}",
                extra={"request_id": request_id, "duration_ms": int((time.time() - start) * 1000)},
                exc_info=True,
            )
            raise

        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"{request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "status": response.status_code,
                "duration_ms": int((time.time() - start) * 1000),
            },
        )
        return response
