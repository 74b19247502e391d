from __future__ import annotations

import contextlib
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, Response, StreamingResponse

from usm_kit.clock import format_display_time
from usm_kit.config import load_settings
from usm_kit.observability import configure_service_telemetry

from usm_core.context import AppContext
from usm_core.models import AssetRegistration, AssetRegistrationFields, Identity, ServiceRequest, ServiceRequestFields
from usm_core.store import LiveRecordStore, SubmitResult
from usm_core.views import RecordViews

from usm_web.errors import ApiError
from usm_web.middleware import ObservabilityMiddleware
from usm_web.observability import (
    FanOutCollector,
    PrometheusWebMetricsCollector,
    RecentRequestsCollector,
)
from usm_web.pages import (
    render_admin_page,
    render_admin_records,
    render_connecting_page,
    render_portal_page,
    render_portal_records,
    render_service_request_page,
)
from usm_web.response import error_response, success_response
from usm_web.schemas import AssetRegistrationCreate, ServiceRequestCreate

_SUBMIT_ERROR_STATUS = {
    "NOT_READY": status.HTTP_409_CONFLICT,
    "WRITE_FAILED": status.HTTP_502_BAD_GATEWAY,
}


def _identity_payload(identity: Identity | None) -> dict[str, object] | None:
    if identity is None:
        return None
    return {"uid": identity.uid, "anonymous": identity.anonymous, "short_id": identity.short_id}


def _service_request_payload(item: ServiceRequest, tz_name: str) -> dict[str, object]:
    return {
        "id": item.id,
        "submitter_id": item.submitter_id,
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "submitted_display": format_display_time(item.created_at, tz_name),
        "client_name": item.client_name,
        "email": item.email,
        "service_type": item.service_type,
        "description": item.description,
        "status": item.status.value,
    }


def _asset_payload(item: AssetRegistration) -> dict[str, object]:
    return {
        "id": item.id,
        "submitter_id": item.submitter_id,
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "asset_type": item.asset_type,
        "serial_number": item.serial_number,
        "install_date": item.install_date,
    }


def _views_payload(views: RecordViews, tz_name: str) -> dict[str, object]:
    return {
        "loading": views.loading,
        "service_requests": [_service_request_payload(item, tz_name) for item in views.service_requests],
        "asset_registrations": [_asset_payload(item) for item in views.asset_registrations],
    }


def _submit_payload(result: SubmitResult) -> dict[str, object]:
    if not result.ok:
        code = result.code or "WRITE_FAILED"
        raise ApiError(
            code=code,
            message=result.message,
            status_code=_SUBMIT_ERROR_STATUS.get(code, status.HTTP_502_BAD_GATEWAY),
        )
    return success_response({"id": result.record_id}, meta={"message": result.message})


async def _stream_views(store: LiveRecordStore, tz_name: str, limit: int | None) -> AsyncIterator[str]:
    sent = 0
    async with contextlib.aclosing(store.updates(replay_current=True)) as updates:
        async for views in updates:
            yield f"data: {json.dumps(_views_payload(views, tz_name))}\n\n"
            sent += 1
            if limit is not None and sent >= limit:
                return


def create_app(context: AppContext | None = None) -> FastAPI:
    if context is None:
        context = AppContext.from_settings(load_settings("usm-web"))
    settings = context.settings
    tz_name = settings.DISPLAY_TIMEZONE

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await context.start()
        try:
            yield
        finally:
            await context.close()

    app = FastAPI(title="Universal Service Management", version="0.1.0", lifespan=lifespan)
    configure_service_telemetry(settings.SERVICE_NAME)
    app.state.context = context
    app.state.web_metrics = RecentRequestsCollector()
    app.state.prom_metrics = PrometheusWebMetricsCollector()
    app.add_middleware(
        ObservabilityMiddleware,
        collector=FanOutCollector(app.state.web_metrics, app.state.prom_metrics),
    )

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.code, exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(err["msg"] for err in exc.errors())
        return JSONResponse(
            status_code=422,
            content=error_response("VALIDATION_ERROR", message),
        )

    @app.get("/healthz")
    async def healthz() -> dict:
        return success_response({"status": "ok"}, meta={})

    @app.get("/readyz")
    async def readyz() -> dict:
        if not context.session.ready:
            raise ApiError(code="NOT_READY", message="session is not ready", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
        return success_response({"status": "ready"}, meta={})

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=app.state.prom_metrics.render(), media_type="text/plain; version=0.0.4")

    @app.get("/v1/session")
    async def get_session() -> dict:
        return success_response(
            {"ready": context.session.ready, "identity": _identity_payload(context.session.identity)},
            meta={"collection_path": context.store.collection_path},
        )

    @app.get("/v1/records")
    async def list_records() -> dict:
        views = context.store.views
        return success_response(
            _views_payload(views, tz_name),
            meta={
                "version": context.store.version,
                "service_request_count": len(views.service_requests),
                "asset_registration_count": len(views.asset_registrations),
            },
        )

    @app.get("/v1/records/stream")
    async def stream_records(limit: int | None = Query(default=None, ge=1)) -> StreamingResponse:
        return StreamingResponse(
            _stream_views(context.store, tz_name, limit),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )

    @app.post("/v1/service-requests", status_code=status.HTTP_201_CREATED)
    async def create_service_request(body: ServiceRequestCreate) -> dict:
        result = await context.store.submit_service_request(
            ServiceRequestFields(
                client_name=body.client_name,
                email=body.email,
                service_type=body.service_type,
                description=body.description,
            )
        )
        return _submit_payload(result)

    @app.post("/v1/assets", status_code=status.HTTP_201_CREATED)
    async def create_asset(body: AssetRegistrationCreate) -> dict:
        result = await context.store.submit_asset_registration(
            AssetRegistrationFields(
                asset_type=body.asset_type,
                serial_number=body.serial_number,
                install_date=body.install_date,
            )
        )
        return _submit_payload(result)

    @app.get("/v1/notifications/current")
    async def current_notification() -> dict:
        notification = context.notifier.current
        return success_response(
            notification.to_dict() if notification is not None else None,
            meta={"sequence": context.notifier.sequence},
        )

    @app.delete("/v1/notifications/current")
    async def dismiss_notification() -> dict:
        context.notifier.dismiss()
        return success_response({"dismissed": True}, meta={})

    @app.get("/", response_class=HTMLResponse)
    async def service_request_page() -> str:
        if not context.session.ready:
            return render_connecting_page("/")
        return render_service_request_page(context.session.identity, context.notifier.current)

    @app.get("/portal", response_class=HTMLResponse)
    async def portal_page(fragment: str | None = None) -> str:
        identity = context.session.identity
        if fragment == "records":
            return render_portal_records(context.store.views, identity)
        if not context.session.ready:
            return render_connecting_page("/portal")
        return render_portal_page(context.store.views, identity, context.notifier.current)

    @app.get("/admin", response_class=HTMLResponse)
    async def admin_page(fragment: str | None = None) -> str:
        if fragment == "records":
            return render_admin_records(context.store.views, tz_name)
        if not context.session.ready:
            return render_connecting_page("/admin")
        return render_admin_page(context.store.views, context.session.identity, context.notifier.current, tz_name)

    return app


app = create_app()
