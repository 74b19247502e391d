from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Union


class RecordKind(str, Enum):
    SERVICE_REQUEST = "quote"
    ASSET_REGISTRATION = "maintenanceRecord"


class RequestStatus(str, Enum):
    NEW = "New"
    QUOTED = "Quoted"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class Identity:
    uid: str
    anonymous: bool = True

    @property
    def short_id(self) -> str:
        return f"{self.uid[:8]}..."


@dataclass(frozen=True)
class ServiceRequest:
    id: str
    submitter_id: str
    created_at: datetime | None
    client_name: str
    email: str
    service_type: str
    description: str
    status: RequestStatus = RequestStatus.NEW
    kind: RecordKind = field(default=RecordKind.SERVICE_REQUEST, init=False)


@dataclass(frozen=True)
class AssetRegistration:
    id: str
    submitter_id: str
    created_at: datetime | None
    asset_type: str
    serial_number: str
    install_date: str
    kind: RecordKind = field(default=RecordKind.ASSET_REGISTRATION, init=False)


Record = Union[ServiceRequest, AssetRegistration]


@dataclass(frozen=True)
class ServiceRequestFields:
    client_name: str
    email: str
    service_type: str
    description: str


@dataclass(frozen=True)
class AssetRegistrationFields:
    asset_type: str
    serial_number: str
    install_date: date | str


@dataclass(frozen=True)
class Document:
    """Raw backend document: backend-assigned id plus its field map."""

    id: str
    data: dict
