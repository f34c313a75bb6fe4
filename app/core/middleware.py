"""HTTP middleware for request correlation and access logging.

Every request/response pair carries a request id: the incoming header value
(``LOG_REQUEST_ID_HEADER``, default X-Request-ID) or a fresh UUID. The id is
bound to contextvars for the lifetime of the request, so background campaign
dispatches scheduled by the request inherit it in their log lines.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id

logger = logging.getLogger("app.access")


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a request id, time the request and emit one access log line.

    Adds the request id and ``X-Request-Duration-ms`` headers to the response.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
