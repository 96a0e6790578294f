import logging
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from boxoffice.core.logging_config import request_id_ctx_var

logger = logging.getLogger("boxoffice.request")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        # keep a caller supplied id so basket recalculations can be traced across services
        request_id = (request.headers.get(REQUEST_ID_HEADER) or "").strip()[:64] or str(uuid.uuid4())
        token = request_id_ctx_var.set(request_id)
        request.state.request_id = request_id
        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            if response is not None:
                response.headers[REQUEST_ID_HEADER] = request_id
                logger.info(
                    "request",
                    extra={
                        "path": request.url.path,
                        "method": request.method,
                        "status_code": response.status_code,
                        "duration_ms": int((time.perf_counter() - start) * 1000),
                    },
                )
            request_id_ctx_var.reset(token)
