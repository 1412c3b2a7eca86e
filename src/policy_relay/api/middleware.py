"""ASGI middleware: per-request log correlation and last-resort error envelopes."""

from __future__ import annotations

import time
import traceback
import uuid

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from policy_relay.schemas.envelope import ErrorEnvelope

REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time-Ms"

# ---------------------------------------------------------------------------
# Request logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag every log line of a relayed call with its request id and time it.

    The id comes from the caller's ``X-Request-ID`` header when present, and
    is echoed back on the response either way.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        start = time.perf_counter()

        with logger.contextualize(request_id=request_id):
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - start) * 1000

            # 5xx from the relay means an upstream (or we) failed.
            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                "{method} {path} → {status} ({ms:.0f}ms)",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                ms=elapsed_ms,
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[RESPONSE_TIME_HEADER] = f"{elapsed_ms:.0f}"
        return response


# ---------------------------------------------------------------------------
# Exception handler
# ---------------------------------------------------------------------------


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Turn anything a route failed to handle into a 500 error envelope."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "Unhandled {kind} on {method} {path}: {err}\n{tb}",
                kind=type(exc).__name__,
                method=request.method,
                path=request.url.path,
                err=exc,
                tb=traceback.format_exc(),
            )
            envelope = ErrorEnvelope(message="Internal server error", error=str(exc))
            return JSONResponse(status_code=500, content=envelope.model_dump(mode="json"))
