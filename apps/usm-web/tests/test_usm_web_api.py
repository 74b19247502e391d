from __future__ import annotations

from fastapi.testclient import TestClient

from usm_core.backend.memory import InMemoryBackend
from usm_core.exceptions import AppendError, AuthenticationError
from usm_core.models import Identity

from usm_web.app import create_app

REQUEST_BODY = {
    "client_name": "Ann Lee",
    "email": "ann@example.com",
    "service_type": "Emergency Support",
    "description": "Water leak under the unit",
}


class RejectingBackend(InMemoryBackend):
    async def sign_in_anonymously(self) -> Identity:
        raise AuthenticationError("anonymous sign-in disabled")


class FailingAppendBackend(InMemoryBackend):
    async def append(self, collection_path: str, document: dict) -> str:
        raise AppendError("write rejected")


def test_health_endpoint_response_shape(make_context) -> None:
    with TestClient(create_app(make_context())) as client:
        response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"status": "ok"}, "meta": {}}


def test_readyz_reports_not_ready_before_startup(make_context) -> None:
    client = TestClient(create_app(make_context()))

    response = client.get("/readyz")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "NOT_READY"


def test_readyz_after_session_bootstrap(make_context) -> None:
    with TestClient(create_app(make_context())) as client:
        response = client.get("/readyz")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "ready"


def test_session_endpoint_exposes_identity(make_context) -> None:
    with TestClient(create_app(make_context())) as client:
        body = client.get("/v1/session").json()

    assert body["data"]["ready"] is True
    assert body["data"]["identity"]["anonymous"] is True
    assert body["data"]["identity"]["short_id"].endswith("...")
    assert body["meta"]["collection_path"] == "/artifacts/test-app/public/data/universal_vms"


def test_submit_service_request_then_listed(make_context, eventually) -> None:
    context = make_context()
    with TestClient(create_app(context)) as client:
        response = client.post("/v1/service-requests", json=REQUEST_BODY)
        eventually(lambda: len(client.get("/v1/records").json()["data"]["service_requests"]) == 1)
        records = client.get("/v1/records").json()
        notification = client.get("/v1/notifications/current").json()

    assert response.status_code == 201
    assert response.json()["success"] is True
    assert response.json()["meta"]["message"] == "Your service request has been submitted successfully!"
    item = records["data"]["service_requests"][0]
    assert item["id"] == response.json()["data"]["id"]
    assert item["client_name"] == "Ann Lee"
    assert item["status"] == "New"
    assert item["submitter_id"] == context.session.identity.uid
    assert records["data"]["loading"] is False
    assert notification["data"]["severity"] == "success"


def test_register_asset_returns_created(make_context, eventually) -> None:
    with TestClient(create_app(make_context())) as client:
        response = client.post(
            "/v1/assets",
            json={"asset_type": "Specialized Unit", "serial_number": "SERIAL-1", "install_date": "2024-05-01"},
        )
        eventually(lambda: len(client.get("/v1/records").json()["data"]["asset_registrations"]) == 1)
        asset = client.get("/v1/records").json()["data"]["asset_registrations"][0]

    assert response.status_code == 201
    assert response.json()["meta"]["message"] == "Asset registered successfully!"
    assert asset["install_date"] == "2024-05-01"
    assert asset["serial_number"] == "SERIAL-1"


def test_submit_without_identity_is_rejected(make_context) -> None:
    backend = RejectingBackend()
    with TestClient(create_app(make_context(backend))) as client:
        response = client.post("/v1/service-requests", json=REQUEST_BODY)

    assert response.status_code == 409
    assert response.json()["error"] == {
        "code": "NOT_READY",
        "message": "System not ready. Please wait for authentication.",
    }
    assert backend.documents("/artifacts/test-app/public/data/universal_vms") == []


def test_failed_write_maps_to_bad_gateway(make_context) -> None:
    with TestClient(create_app(make_context(FailingAppendBackend()))) as client:
        response = client.post(
            "/v1/assets",
            json={"asset_type": "Specialized Unit", "serial_number": "SERIAL-1", "install_date": "2024-05-01"},
        )
        notification = client.get("/v1/notifications/current").json()

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "WRITE_FAILED"
    assert notification["data"]["message"] == "Failed to register asset. Please try again."
    assert notification["data"]["severity"] == "error"


def test_validation_error_format(make_context) -> None:
    with TestClient(create_app(make_context())) as client:
        response = client.post("/v1/service-requests", json={**REQUEST_BODY, "description": ""})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_notification_can_be_dismissed(make_context) -> None:
    context = make_context()
    with TestClient(create_app(context)) as client:
        context.notifier.error("Error loading VMS data.")
        before = client.get("/v1/notifications/current").json()
        dismissed = client.delete("/v1/notifications/current")
        after = client.get("/v1/notifications/current").json()

    assert before["data"]["message"] == "Error loading VMS data."
    assert dismissed.status_code == 200
    assert after["data"] is None


def test_record_stream_replays_current_view(make_context, eventually) -> None:
    context = make_context()
    with TestClient(create_app(context)) as client:
        eventually(lambda: context.store.views.loading is False)
        response = client.get("/v1/records/stream?limit=1")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.text.startswith("data: ")
    assert '"loading": false' in response.text


def test_trace_header_and_metrics(make_context) -> None:
    app = create_app(make_context())
    with TestClient(app) as client:
        traced = client.get("/healthz", headers={"x-trace-id": "trace-abc"})
        metrics = client.get("/metrics")

    assert traced.headers["x-trace-id"] == "trace-abc"
    assert app.state.web_metrics.snapshot()[0]["path"] == "/healthz"
    assert "usm_http_requests_total" in metrics.text
    assert "usm_http_request_duration_ms" in metrics.text
