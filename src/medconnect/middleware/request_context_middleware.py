"""
Request context middleware: request IDs and latency logging.
"""
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import logging

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Assign ``request.state.request_id`` (honouring an incoming ``X-Request-ID``)
    and log method, path, status and latency for every request.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        process_time_ms = round(process_time * 1000, 2)

        logger.info(
            f"REQUEST: method={request.method} path={request.url.path} "
            f"status={response.status_code} latency={process_time_ms}ms",
            extra={"request_id": request_id},
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time_ms)

        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"SLOW_REQUEST: method={request.method} path={request.url.path} "
                f"latency={process_time_ms}ms",
                extra={"request_id": request_id},
            )

        return response
