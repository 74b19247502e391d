from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from usm_core.models import AssetRegistration, Record, ServiceRequest


def created_at_sort_key(record: Record) -> float:
    # Pending server timestamps count as epoch zero so they land at the bottom.
    if record.created_at is None:
        return 0.0
    return record.created_at.timestamp()


def newest_first(records: Iterable[Record]) -> list:
    return sorted(records, key=created_at_sort_key, reverse=True)


@dataclass(frozen=True)
class RecordViews:
    """Both published lists, always derived from the same snapshot."""

    service_requests: tuple[ServiceRequest, ...] = ()
    asset_registrations: tuple[AssetRegistration, ...] = ()
    loading: bool = True

    @classmethod
    def empty(cls, *, loading: bool = True) -> RecordViews:
        return cls(loading=loading)

    def assets_for(self, submitter_id: str | None) -> tuple[AssetRegistration, ...]:
        if not submitter_id:
            return ()
        return tuple(item for item in self.asset_registrations if item.submitter_id == submitter_id)

    def __len__(self) -> int:
        return len(self.service_requests) + len(self.asset_registrations)


def partition_records(records: Iterable[Record]) -> RecordViews:
    service_requests: list[ServiceRequest] = []
    asset_registrations: list[AssetRegistration] = []
    for record in records:
        if isinstance(record, ServiceRequest):
            service_requests.append(record)
        elif isinstance(record, AssetRegistration):
            asset_registrations.append(record)
        else:
            raise TypeError(f"unsupported record type: {type(record).__name__}")
    return RecordViews(
        service_requests=tuple(newest_first(service_requests)),
        asset_registrations=tuple(newest_first(asset_registrations)),
        loading=False,
    )
