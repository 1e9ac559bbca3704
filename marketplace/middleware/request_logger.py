import logging
import time

from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from marketplace.schemas.activity_log import RequestLogRecord
from marketplace.services.activity_log_service import get_activity_log_service

logger = logging.getLogger(__name__)


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """Log every request and persist a request record without delaying the response."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # The app-level handler renders the 500; the record is still written
            self._record(request, status.HTTP_500_INTERNAL_SERVER_ERROR, start)
            raise

        self._record(request, response.status_code, start)
        return response

    def _record(self, request: Request, status_code: int, start: float) -> None:
        latency_ms = int((time.perf_counter() - start) * 1000)

        route = request.scope.get("route")
        path = getattr(route, "path", None) or request.url.path

        logger.info(f"{request.method} {request.url.path} {status_code} {latency_ms}ms")

        record = RequestLogRecord(
            method=request.method,
            route=path,
            status_code=status_code,
            latency_ms=latency_ms,
            user_id=request.headers.get("x-user-id"),
            organization_id=request.headers.get("x-organization-id"),
            user_agent=request.headers.get("user-agent"),
            ip_address=request.client.host if request.client else None,
        )
        try:
            get_activity_log_service().dispatch(record)
        except Exception as e:
            logger.warning(f"Request log skipped: {type(e).__name__}: {e}")
