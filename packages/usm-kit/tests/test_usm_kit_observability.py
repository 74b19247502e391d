from __future__ import annotations

import logging

from usm_kit.observability import HealthCheckAccessLogFilter


def _access_record(path: str, status: int) -> logging.LogRecord:
    return logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='%s - "%s %s HTTP/%s" %d',
        args=("127.0.0.1:12345", "GET", path, "1.1", status),
        exc_info=None,
    )


def test_health_filter_hides_successful_checks() -> None:
    health_filter = HealthCheckAccessLogFilter(ignored_paths=("/healthz", "/readyz"))
    assert health_filter.filter(_access_record("/healthz", 200)) is False
    assert health_filter.filter(_access_record("/readyz/", 200)) is False
    assert health_filter.filter(_access_record("/readyz?full=true", 200)) is False


def test_health_filter_keeps_failures_and_app_routes() -> None:
    health_filter = HealthCheckAccessLogFilter(ignored_paths=("/healthz", "/readyz"))
    assert health_filter.filter(_access_record("/readyz", 503)) is True
    assert health_filter.filter(_access_record("/admin", 200)) is True


def test_service_telemetry_installs_access_filter_once(monkeypatch) -> None:
    from usm_kit import observability

    providers = []
    access_logger = logging.getLogger("uvicorn.access")
    monkeypatch.setattr(observability, "_telemetry_configured", False)
    monkeypatch.setattr(observability.trace, "set_tracer_provider", providers.append)
    before = list(access_logger.filters)
    try:
        observability.configure_service_telemetry("usm-web")
        observability.configure_service_telemetry("usm-web")
        added = [item for item in access_logger.filters if item not in before]
        assert len(providers) == 1
        assert len(added) == 1
        assert isinstance(added[0], HealthCheckAccessLogFilter)
    finally:
        access_logger.filters[:] = before
