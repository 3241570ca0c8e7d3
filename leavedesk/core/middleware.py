"""
HTTP middleware: correlation ids and request logging.
"""
import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from leavedesk.core.config import settings
from leavedesk.core.logging import request_id_var

logger = logging.getLogger(__name__)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Reuses the caller's X-Request-ID or mints one, and exposes it to log records."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(settings.request_id_header) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[settings.request_id_header] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    excluded_paths = {"/health", "/liveness", "/readiness", "/docs", "/openapi.json"}

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time": round(process_time, 4),
        }
        if response.status_code >= 500:
            logger.error("HTTP Response", extra=log_data)
        elif response.status_code >= 400:
            logger.warning("HTTP Response", extra=log_data)
        else:
            logger.info("HTTP Response", extra=log_data)

        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response
