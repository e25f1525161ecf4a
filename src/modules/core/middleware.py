"""Per-request correlation id and access logging."""

from __future__ import annotations

import re
import time
import uuid
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

REQUEST_ID_HEADER = "X-Request-ID"

# Client ids end up verbatim in every log line of the request.
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

logger = structlog.get_logger(__name__)


def _request_id(request: HttpRequest) -> str:
    supplied = request.META.get("HTTP_X_REQUEST_ID", "")
    if supplied and _SAFE_REQUEST_ID.match(supplied):
        return supplied
    return str(uuid.uuid4())


class CorrelationIdMiddleware:
    """Bind a correlation id to the structlog context of each request.

    The id comes from the ``X-Request-ID`` header when it is well formed,
    otherwise a UUID4 is generated; either way it is echoed back on the
    response.  The selling point is bound later, by the authentication
    class, once the bearer token has been validated.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = _request_id(request)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        started = time.perf_counter()
        logger.info("request_started", method=request.method, path=request.path)

        response = self.get_response(request)

        log = logger.error if response.status_code >= 500 else logger.info
        log(
            "request_finished",
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )

        response[REQUEST_ID_HEADER] = cid
        return response
