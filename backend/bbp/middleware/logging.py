"""
Best Bike Paths Backend - Request Logging Middleware
=====================================================

What:  One access-log line per request: method, path, status, duration,
       request id and caller.
How:   Level follows the status class (5xx ERROR, 4xx WARNING, else INFO) so
       that alerting can filter on severity. `/health` is not logged.

Never logged: request bodies. Report positions are user location data.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from bbp.dependencies import USER_ID_HEADER
from bbp.middleware.request_id import request_id_var

logger = logging.getLogger("bbp.access")

QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("") or getattr(request.state, "request_id", "")
        caller = request.headers.get(USER_ID_HEADER) or "anonymous"
        client_ip = request.client.host if request.client else "unknown"

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] user=%s ip=%s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            caller,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
