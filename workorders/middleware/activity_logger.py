# workorders/middleware/activity_logger.py
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """Logs every modifying request with its outcome and the acting user."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()

        # Call actual endpoint
        response = await call_next(request)

        # Only log POST, PUT, DELETE (modify) requests
        if request.method in ["POST", "PUT", "DELETE"]:
            actor = getattr(request.state, "actor", None)
            logger.info(
                "%s %s -> %s in %.1fms (actor=%s)",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
                getattr(actor, "id", "anonymous"),
            )

        return response
