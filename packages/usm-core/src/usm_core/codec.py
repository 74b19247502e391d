from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

from usm_core.models import (
    AssetRegistration,
    AssetRegistrationFields,
    Document,
    Identity,
    Record,
    RecordKind,
    RequestStatus,
    ServiceRequest,
    ServiceRequestFields,
)

logger = logging.getLogger(__name__)

TYPE_FIELD = "type"
TIMESTAMP_FIELD = "timestamp"
SUBMITTER_FIELD = "submitterId"


class _ServerTimestamp:
    """Placeholder replaced with the backend's clock when a document is committed."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def is_server_timestamp(value: Any) -> bool:
    return isinstance(value, _ServerTimestamp)


def encode_service_request(fields: ServiceRequestFields, identity: Identity) -> dict[str, Any]:
    return {
        "name": fields.client_name,
        "email": fields.email,
        "serviceType": fields.service_type,
        "description": fields.description,
        TYPE_FIELD: RecordKind.SERVICE_REQUEST.value,
        TIMESTAMP_FIELD: SERVER_TIMESTAMP,
        SUBMITTER_FIELD: identity.uid,
        "status": RequestStatus.NEW.value,
    }


def encode_asset_registration(fields: AssetRegistrationFields, identity: Identity) -> dict[str, Any]:
    install_date = fields.install_date
    if isinstance(install_date, date):
        install_date = install_date.isoformat()
    return {
        "applianceType": fields.asset_type,
        "modelNumber": fields.serial_number,
        "installDate": str(install_date),
        TYPE_FIELD: RecordKind.ASSET_REGISTRATION.value,
        TIMESTAMP_FIELD: SERVER_TIMESTAMP,
        SUBMITTER_FIELD: identity.uid,
    }


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or is_server_timestamp(value):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return parse_timestamp(datetime.fromisoformat(value))
        except ValueError:
            return None
    return None


def _parse_status(value: Any) -> RequestStatus:
    try:
        return RequestStatus(str(value))
    except ValueError:
        return RequestStatus.NEW


def decode_document(document: Document) -> Record | None:
    data = document.data
    kind = data.get(TYPE_FIELD)
    created_at = parse_timestamp(data.get(TIMESTAMP_FIELD))
    submitter_id = str(data.get(SUBMITTER_FIELD, ""))
    if kind == RecordKind.SERVICE_REQUEST.value:
        return ServiceRequest(
            id=document.id,
            submitter_id=submitter_id,
            created_at=created_at,
            client_name=str(data.get("name", "")),
            email=str(data.get("email", "")),
            service_type=str(data.get("serviceType", "")),
            description=str(data.get("description", "")),
            status=_parse_status(data.get("status", RequestStatus.NEW.value)),
        )
    if kind == RecordKind.ASSET_REGISTRATION.value:
        return AssetRegistration(
            id=document.id,
            submitter_id=submitter_id,
            created_at=created_at,
            asset_type=str(data.get("applianceType", "")),
            serial_number=str(data.get("modelNumber", "")),
            install_date=str(data.get("installDate", "")),
        )
    logger.warning(
        "document_kind_unknown",
        extra={"component": "usm_core", "document_id": document.id, "kind": kind},
    )
    return None


def decode_documents(documents: list[Document]) -> list[Record]:
    records: list[Record] = []
    for document in documents:
        record = decode_document(document)
        if record is not None:
            records.append(record)
    return records
