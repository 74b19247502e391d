from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider

HEALTH_CHECK_PATHS = ("/healthz", "/readyz")

_telemetry_configured = False


def _route_of(path: str) -> str:
    route = path.partition("?")[0]
    return route.rstrip("/") or "/"


class HealthCheckAccessLogFilter(logging.Filter):
    """Hides uvicorn access lines for health checks that answered 200."""

    def __init__(self, ignored_paths: tuple[str, ...] = HEALTH_CHECK_PATHS) -> None:
        super().__init__()
        self._routes = frozenset(_route_of(path) for path in ignored_paths)

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn.access args: (client, method, path, http_version, status)
        args = record.args
        if not isinstance(args, tuple) or len(args) != 5:
            return True
        _, _, path, _, status = args
        return not (str(status) == "200" and isinstance(path, str) and _route_of(path) in self._routes)


def configure_service_telemetry(service_name: str) -> None:
    """Installs the tracer provider and the health-check log filter once per process."""
    global _telemetry_configured
    if _telemetry_configured:
        return
    _telemetry_configured = True
    trace.set_tracer_provider(TracerProvider(resource=Resource.create({"service.name": service_name})))
    logging.getLogger("uvicorn.access").addFilter(HealthCheckAccessLogFilter())


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
