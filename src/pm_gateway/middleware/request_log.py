"""Request logging middleware.

Every request gets a short request ID, stored on request.state so routers can
put it in the ApiResponse envelope and echoed back in X-Request-ID. A caller
supplied X-Request-ID is kept as-is for cross-service correlation.

Log format:
    INFO    [POST] /api/v1/amm/buy → 200 (4ms) req_a1b2c3d4e5f6
    WARNING [POST] /api/v1/amm/sell → 422 (2ms) req_0f9e8d7c6b5a
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("pm.request")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
