from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.rms.core.observability import Observability

TRACE_HEADER = "X-Trace-ID"


def request_route(request: Request) -> str:
    scope_route = request.scope.get("route")
    path = getattr(scope_route, "path", None) if scope_route is not None else None
    return path or request.url.path


def build_request_log_payload(*, request: Request, response: Response | None, latency_ms: float) -> dict:
    return {
        "event": "http_request",
        "trace_id": getattr(request.state, "trace_id", ""),
        "actor_id": getattr(request.state, "actor_id", None),
        "route": request_route(request),
        "method": request.method,
        "status_code": getattr(response, "status_code", 500),
        "latency_ms": round(latency_ms, 2),
        "error_code": getattr(request.state, "error_code", None),
        "error_class": getattr(request.state, "error_class", None),
    }


class TraceIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get(TRACE_HEADER) or str(uuid.uuid4())
        request.state.trace_id = trace_id
        response: Response = await call_next(request)
        response.headers[TRACE_HEADER] = trace_id
        return response


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Emits one structured log line and one metrics sample per request."""

    def __init__(self, app, observability: Observability | None = None) -> None:
        super().__init__(app)
        self.observability = observability or Observability(logging.getLogger("rms.request"))

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            latency_ms = (time.perf_counter() - started) * 1000
            payload = build_request_log_payload(request=request, response=response, latency_ms=latency_ms)
            self.observability.info(**payload)
            self.observability.metrics.record_http_request(
                route=payload["route"],
                method=payload["method"],
                status_code=payload["status_code"],
                latency_ms=latency_ms,
            )
