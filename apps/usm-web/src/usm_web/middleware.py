from __future__ import annotations

from time import perf_counter
from uuid import uuid4

from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from usm_web.observability import WebMetricCollector, WebRequestMetric

TRACE_HEADER = "x-trace-id"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """One span and one metric per request; the trace id is echoed back to the caller."""

    def __init__(self, app, collector: WebMetricCollector) -> None:
        super().__init__(app)
        self._collector = collector
        self._tracer = trace.get_tracer("usm-web")

    async def dispatch(self, request: Request, call_next) -> Response:
        trace_id = request.headers.get(TRACE_HEADER) or uuid4().hex
        started = perf_counter()
        status_code = 500
        try:
            with self._tracer.start_as_current_span(
                "http.request",
                attributes={"http.method": request.method, "http.route": request.url.path, "trace.id": trace_id},
            ) as span:
                response = await call_next(request)
                status_code = response.status_code
                span.set_attribute("http.status_code", status_code)
        finally:
            self._collector.observe(
                WebRequestMetric(
                    method=request.method,
                    path=request.url.path,
                    status_code=status_code,
                    duration_ms=(perf_counter() - started) * 1000.0,
                    trace_id=trace_id,
                )
            )
        response.headers[TRACE_HEADER] = trace_id
        return response
