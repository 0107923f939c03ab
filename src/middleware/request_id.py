"""Middleware that assigns a request ID to every request and logs its outcome."""

import logging
import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied IDs are echoed into headers, error bodies and logs
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def resolve_request_id(inbound: str | None) -> str:
    """Reuse a well-formed inbound ID; replace anything else with a fresh UUID."""
    if inbound and _VALID_REQUEST_ID.match(inbound):
        return inbound
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Propagate or mint the request ID and log one line per request.

    The ID lives on ``request.state.request_id`` for the error handlers and
    is echoed in the ``X-Request-ID`` response header.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        inbound = request.headers.get(REQUEST_ID_HEADER)
        request_id = resolve_request_id(inbound)
        if inbound and inbound != request_id:
            logger.warning("Discarded malformed %s header; using %s", REQUEST_ID_HEADER, request_id)
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "%s %s -> %s in %.1fms [request_id=%s]",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
            request_id,
        )
        return response
