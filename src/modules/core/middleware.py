import time
import uuid
from contextvars import ContextVar
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger()


def _shopper_session(request: HttpRequest) -> str:
    session = getattr(request, "session", None)
    return (session.session_key or "") if session is not None else ""


class CorrelationIdMiddleware:
    """Tags every log line of a request with one correlation ID.

    The ID comes from the X-Request-ID header or is a fresh UUID4. It is
    bound into structlog's context vars, kept in ``correlation_id_var`` so
    deferred label jobs scheduled by the request can carry it, and echoed
    back in the X-Request-ID response header.

    Runs ahead of ``SessionMiddleware``; the shopper's session key is only
    known once the view has run, so it is logged on ``request_finished``.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        correlation_id_var.set(cid)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        start = time.monotonic()
        logger.info("request_started", method=request.method, path=request.path)

        response = self.get_response(request)

        logger.info(
            "request_finished",
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            session_key=_shopper_session(request),
            elapsed_ms=round((time.monotonic() - start) * 1000, 2),
        )

        response["X-Request-ID"] = cid
        return response
