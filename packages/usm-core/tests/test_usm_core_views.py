from datetime import datetime, timezone

import pytest

from usm_core.models import AssetRegistration, ServiceRequest
from usm_core.views import RecordViews, partition_records


def _at(seconds: float | None) -> datetime | None:
    if seconds is None:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _request(record_id: str, created: float | None, submitter: str = "uid-1") -> ServiceRequest:
    return ServiceRequest(
        id=record_id,
        submitter_id=submitter,
        created_at=_at(created),
        client_name="John Smith",
        email="john@example.com",
        service_type="Emergency Support",
        description="Pump is leaking",
    )


def _asset(record_id: str, created: float | None, submitter: str = "uid-1") -> AssetRegistration:
    return AssetRegistration(
        id=record_id,
        submitter_id=submitter,
        created_at=_at(created),
        asset_type="Asset Type A (Large System)",
        serial_number="SERIAL-XYZ-12345",
        install_date="2026-01-01",
    )


def test_partition_splits_by_kind_and_sorts_newest_first() -> None:
    records = [_request("r10", 10), _asset("a5", 5), _request("r20", 20)]

    views = partition_records(records)

    assert [item.id for item in views.service_requests] == ["r20", "r10"]
    assert [item.id for item in views.asset_registrations] == ["a5"]
    assert views.loading is False


def test_partition_is_total() -> None:
    records = [
        _request("r1", 3),
        _asset("a1", 9),
        _request("r2", None),
        _asset("a2", 1),
        _request("r3", 7),
        _asset("a3", None),
    ]

    views = partition_records(records)
    rejoined = list(views.service_requests) + list(views.asset_registrations)

    assert sorted(item.id for item in rejoined) == sorted(item.id for item in records)
    assert len(views) == len(records)


def test_missing_timestamp_sorts_last() -> None:
    views = partition_records([_request("pending", None), _request("old", 1), _request("new", 50)])

    assert [item.id for item in views.service_requests] == ["new", "old", "pending"]


def test_equal_timestamps_keep_snapshot_order() -> None:
    views = partition_records([_asset("first", 5), _asset("second", 5)])

    assert [item.id for item in views.asset_registrations] == ["first", "second"]


def test_empty_snapshot_gives_empty_lists() -> None:
    views = partition_records([])

    assert views == RecordViews(loading=False)


def test_assets_for_filters_by_submitter() -> None:
    views = partition_records([_asset("mine", 2, "uid-1"), _asset("theirs", 3, "uid-2")])

    assert [item.id for item in views.assets_for("uid-1")] == ["mine"]
    assert views.assets_for(None) == ()


def test_partition_rejects_unknown_record_types() -> None:
    with pytest.raises(TypeError):
        partition_records([object()])  # type: ignore[list-item]
