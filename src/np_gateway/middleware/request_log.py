"""Request logging middleware.

Logs every HTTP request with method, path, status code, latency and a
request ID for correlation. An incoming X-Request-ID header is reused;
otherwise a short one is generated. The ID is stored on request.state (so
handlers put it in ApiResponse) and echoed back in the X-Request-ID header.

Log format:
    INFO [GET] /api/v1/users/usr_ab12cd34/preferences → 200 (4ms) req_a1b2c3d4e5f6
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.np_common.response import new_request_id

logger = logging.getLogger("np.request")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
