from datetime import datetime, timedelta, timezone

import pytest

from emergency_dispatch import priority
from emergency_dispatch.geo import flat_distance_km, haversine_km
from emergency_dispatch.models import Coordinates
from emergency_dispatch.priority import detect_surge

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

CLUSTER = [(40.7128, -74.0060), (40.7138, -74.0050), (40.7120, -74.0070)]
SPREAD = [(40.70, -74.00), (40.75, -74.00), (40.80, -74.00)]


def _records(points, minutes_ago: float = 5) -> list[dict]:
    created_at = NOW - timedelta(minutes=minutes_ago)
    return [{"lat": lat, "lng": lng, "created_at": created_at} for lat, lng in points]


def test_empty_list_is_not_a_surge() -> None:
    result = detect_surge([])

    assert result.is_surge is False
    assert result.zone is None
    assert result.count == 0


def test_close_recent_incidents_form_a_surge() -> None:
    records = _records(CLUSTER)

    result = detect_surge(records, threshold_count=3, now=NOW)

    assert result.is_surge is True
    assert result.zone == Coordinates(40.7128, -74.0060)
    assert result.count == 3


def test_spread_out_incidents_are_not_a_surge() -> None:
    result = detect_surge(_records(SPREAD), now=NOW)

    assert result.is_surge is False
    assert result.zone is None
    assert result.count == 3


def test_below_threshold_skips_clustering(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(*args):
        raise AssertionError("clustering should not run")

    monkeypatch.setattr(priority, "flat_distance_km", _fail)

    result = detect_surge(_records(CLUSTER[:2]), now=NOW)

    assert result.is_surge is False
    assert result.count == 2


def test_first_qualifying_center_wins_over_larger_cluster() -> None:
    big_cluster = [(51.5074, -0.1278), (51.5080, -0.1270), (51.5070, -0.1285), (51.5078, -0.1280)]
    records = _records([(48.8566, 2.3522)] + CLUSTER + big_cluster)

    result = detect_surge(records, now=NOW)

    assert result.is_surge is True
    assert result.zone == Coordinates(*CLUSTER[0])
    assert result.count == 3


def test_time_window_is_strict() -> None:
    records = _records(CLUSTER[:2]) + _records(CLUSTER[2:], minutes_ago=30)

    result = detect_surge(records, now=NOW)

    assert result.is_surge is False
    assert result.count == 2


def test_future_timestamps_count_as_recent() -> None:
    records = _records(CLUSTER[:2]) + _records(CLUSTER[2:], minutes_ago=-10)

    result = detect_surge(records, now=NOW)

    assert result.is_surge is True
    assert result.count == 3


def test_iso_strings_and_objects_are_accepted() -> None:
    class Report:
        def __init__(self, lat: float, lng: float, created_at: str) -> None:
            self.lat = lat
            self.lng = lng
            self.created_at = created_at

    stamp = (NOW - timedelta(minutes=3)).strftime("%Y-%m-%dT%H:%M:%SZ")
    records = [Report(lat, lng, stamp) for lat, lng in CLUSTER]

    result = detect_surge(records, now=NOW)

    assert result.is_surge is True
    assert result.count == 3


def test_unreadable_timestamps_are_skipped() -> None:
    records = _records(CLUSTER[:2]) + [{"lat": CLUSTER[2][0], "lng": CLUSTER[2][1], "created_at": "yesterday-ish"}]

    result = detect_surge(records, now=NOW)

    assert result.is_surge is False
    assert result.count == 2


def test_custom_radius_and_threshold() -> None:
    records = _records(SPREAD)

    assert detect_surge(records, radius_km=12, now=NOW).is_surge is True
    assert detect_surge(_records(CLUSTER), threshold_count=4, now=NOW).is_surge is False


def test_detect_surge_does_not_mutate_input_and_is_repeatable() -> None:
    records = _records(CLUSTER)
    snapshot = [dict(r) for r in records]

    first = detect_surge(records, now=NOW)
    second = detect_surge(records, now=NOW)

    assert first == second
    assert records == snapshot


def test_surge_result_as_dict() -> None:
    assert detect_surge([]).as_dict() == {"is_surge": False, "zone": None, "count": 0}
    assert detect_surge(_records(CLUSTER), now=NOW).as_dict()["zone"] == {"lat": 40.7128, "lng": -74.0060}


def test_flat_distance_is_close_to_haversine_over_short_range() -> None:
    flat = flat_distance_km(40.7128, -74.0060, 40.7228, -74.0160)
    great_circle = haversine_km(40.7128, -74.0060, 40.7228, -74.0160)

    assert flat == pytest.approx(great_circle, rel=0.01)
    assert flat_distance_km(10.0, 20.0, 10.0, 20.0) == 0.0


def test_postgres_style_fractional_seconds_are_read() -> None:
    stamps = [
        "2026-10-19T11:55:00.12345+00:00",
        "2026-10-19T11:56:00.1+00:00",
        "2026-10-19T11:57:00.1234Z",
    ]
    records = [{"lat": lat, "lng": lng, "created_at": stamp} for (lat, lng), stamp in zip(CLUSTER, stamps)]

    result = detect_surge(records, now=NOW)

    assert result.is_surge is True
    assert result.count == 3
