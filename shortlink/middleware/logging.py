"""
Access Logging Middleware

One log record per HTTP request: method, path, status, duration and client
IP. The same fields are attached as `extra`, so the JSON formatter in
core.log_config emits them as separate keys. The duration is also returned
to the caller in the X-Process-Time header.
"""

import logging
import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from shortlink.api.request_context import get_client_ip

logger = logging.getLogger("shortlink.access")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Times each request and logs its outcome without touching endpoint code."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        client_ip = get_client_ip(request)
        # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS CLIENT_IP
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} {elapsed * 1000:.2f}ms IP:{client_ip}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(elapsed * 1000, 2),
                "client_ip": client_ip,
            },
        )

        response.headers["X-Process-Time"] = str(elapsed)
        return response


def add_logging_middleware(app: FastAPI) -> None:
    app.add_middleware(LoggingMiddleware)
