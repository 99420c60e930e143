"""
Per-request access log for the ledger API.

Each request gets an id (taken from ``X-Request-ID`` or generated) that is
echoed back in the response. The access line carries that id, the status,
the duration and, once the bearer token has been resolved, the ledger
account id, so a trade's log lines can be joined to the request that made
it. Headers, bodies and query strings are never logged (tokens live there).
"""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from config.logging_config import ledger_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:16]
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)

        logger.log(
            _level_for(response.status_code),
            "%s %s",
            request.method,
            request.scope.get("path", ""),
            extra=ledger_context(
                request_id=request_id,
                # set by get_current_account on authenticated routes
                account_id=getattr(request.state, "account_id", None),
                status=response.status_code,
                duration_ms=duration_ms,
            ),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
