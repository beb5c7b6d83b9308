"""
Request context middleware.

Tags every request with a request id so that log entries emitted while
serving it (token refreshes, Drive calls, streamed transfers) can be
correlated. The id is taken from ``X-Request-ID`` when the caller supplies one
and echoed back on the response.

The context is bound in the request's own task and copied into the task that
runs the endpoint and produces the response body, so it stays in place until
the last streamed chunk. It is not cleared when ``call_next`` returns, since
that happens before a streamed body is sent.
"""

import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.utils.logger import bind_request_context, clear_request_context, get_logger

REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request id and client address to the logging context."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        client_ip = request.client.host if request.client else None

        # Drop whatever an earlier request on this task left behind
        clear_request_context()
        bind_request_context(request_id=request_id, ip_address=client_ip)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_failed", method=request.method, path=request.url.path
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
