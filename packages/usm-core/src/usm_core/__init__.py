"""Session bootstrap and live record store for the service management demo."""

from usm_core.bootstrap import SessionBootstrap
from usm_core.context import AppContext, build_backend
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
from usm_core.notifications import Notification, Notifier, Severity
from usm_core.store import LiveRecordStore, SubmitResult
from usm_core.views import RecordViews, partition_records

__all__ = [
    "AppContext",
    "AssetRegistration",
    "AssetRegistrationFields",
    "Document",
    "Identity",
    "LiveRecordStore",
    "Notification",
    "Notifier",
    "Record",
    "RecordKind",
    "RecordViews",
    "RequestStatus",
    "ServiceRequest",
    "ServiceRequestFields",
    "SessionBootstrap",
    "Severity",
    "SubmitResult",
    "build_backend",
    "partition_records",
]
