from datetime import date, datetime, timezone

from usm_core.codec import (
    SERVER_TIMESTAMP,
    decode_document,
    decode_documents,
    encode_asset_registration,
    encode_service_request,
    parse_timestamp,
)
from usm_core.models import (
    AssetRegistration,
    AssetRegistrationFields,
    Document,
    Identity,
    RecordKind,
    RequestStatus,
    ServiceRequest,
    ServiceRequestFields,
)


def test_encode_service_request_marks_new_and_pending_timestamp() -> None:
    document = encode_service_request(
        ServiceRequestFields(
            client_name="John Smith",
            email="john@example.com",
            service_type="Service A (Initial Consultation)",
            description="Annual check",
        ),
        Identity(uid="uid-1"),
    )

    assert document["type"] == "quote"
    assert document["status"] == "New"
    assert document["submitterId"] == "uid-1"
    assert document["timestamp"] is SERVER_TIMESTAMP
    assert document["name"] == "John Smith"


def test_encode_asset_registration_has_no_status() -> None:
    document = encode_asset_registration(
        AssetRegistrationFields(
            asset_type="Specialized Unit",
            serial_number="SN-1",
            install_date=date(2026, 3, 4),
        ),
        Identity(uid="uid-2"),
    )

    assert document["type"] == "maintenanceRecord"
    assert document["installDate"] == "2026-03-04"
    assert "status" not in document


def test_decode_service_request_document() -> None:
    record = decode_document(
        Document(
            id="doc-1",
            data={
                "type": "quote",
                "timestamp": datetime(2026, 1, 1, tzinfo=timezone.utc),
                "submitterId": "uid-1",
                "name": "Jane",
                "email": "jane@example.com",
                "serviceType": "Emergency Support",
                "description": "Boiler down",
                "status": "Quoted",
            },
        )
    )

    assert isinstance(record, ServiceRequest)
    assert record.kind is RecordKind.SERVICE_REQUEST
    assert record.status is RequestStatus.QUOTED
    assert record.client_name == "Jane"


def test_decode_asset_document_with_pending_timestamp() -> None:
    record = decode_document(
        Document(
            id="doc-2",
            data={
                "type": "maintenanceRecord",
                "timestamp": None,
                "submitterId": "uid-9",
                "applianceType": "Asset Type B (Small Component)",
                "modelNumber": "SN-2",
                "installDate": "2026-02-02",
            },
        )
    )

    assert isinstance(record, AssetRegistration)
    assert record.created_at is None
    assert record.serial_number == "SN-2"


def test_unknown_kind_is_skipped() -> None:
    documents = [
        Document(id="a", data={"type": "quote", "submitterId": "u"}),
        Document(id="b", data={"type": "invoice", "submitterId": "u"}),
    ]

    records = decode_documents(documents)

    assert [item.id for item in records] == ["a"]


def test_unrecognised_status_falls_back_to_new() -> None:
    record = decode_document(Document(id="a", data={"type": "quote", "status": "Archived"}))

    assert isinstance(record, ServiceRequest)
    assert record.status is RequestStatus.NEW


def test_parse_timestamp_accepts_epoch_and_iso() -> None:
    assert parse_timestamp(10) == datetime.fromtimestamp(10, tz=timezone.utc)
    assert parse_timestamp("2026-01-01T00:00:00") == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("not-a-time") is None
    assert parse_timestamp(SERVER_TIMESTAMP) is None


def test_out_of_range_epoch_timestamp_is_treated_as_pending() -> None:
    assert parse_timestamp(1e20) is None
    assert parse_timestamp(float("nan")) is None
