"""Per-request trace id: accepted from or generated for ``X-Trace-Id`` and bound
into the log context for everything the request logs."""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from herald.logging_config import bind_request_context, clear_request_context

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-Id"


def new_trace_id() -> str:
    return f"trc_{uuid.uuid4().hex[:16]}"


class TraceIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace_id = request.headers.get(TRACE_HEADER) or new_trace_id()
        request.state.trace_id = trace_id
        bind_request_context(trace_id)

        started = time.perf_counter()
        try:
            response = await call_next(request)
            logger.debug(
                "%s %s -> %d (%.1f ms)",
                request.method, request.url.path, response.status_code,
                (time.perf_counter() - started) * 1000,
            )
        finally:
            clear_request_context()
        response.headers[TRACE_HEADER] = trace_id
        return response
