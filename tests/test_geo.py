"""Haversine distance and rules snapshot."""

from datetime import datetime, timezone

import pytest

from app.core.clock import ensure_utc, parse_offset
from app.services.aggregation import DayStatus
from app.services.geo import distance_m

OFFICE = (10.8261981, 77.0608064)


def test_zero_distance():
    assert distance_m(*OFFICE, *OFFICE) == 0


def test_one_degree_of_latitude():
    assert distance_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_195, rel=1e-3)


def test_six_hundred_km_is_outside_default_radius(rules):
    far = (OFFICE[0] + 5.4, OFFICE[1])
    assert rules.distance_from_office(*far) > rules.geofence_radius_m
    assert rules.distance_from_office(*OFFICE) <= rules.geofence_radius_m


def test_local_date_uses_office_offset(rules):
    # 20:00 UTC is already the next day at +05:30
    moment = datetime(2025, 3, 10, 20, 0, tzinfo=timezone.utc)
    assert rules.local_date(moment).isoformat() == "2025-03-11"


def test_classify_arrival(rules):
    tz = parse_offset("+05:30")
    assert rules.classify_arrival(datetime(2025, 3, 10, 9, 15, tzinfo=tz)) is DayStatus.PRESENT
    assert rules.classify_arrival(datetime(2025, 3, 10, 9, 16, tzinfo=tz)) is DayStatus.LATE
    assert rules.classify_arrival(datetime(2025, 3, 10, 14, 0, tzinfo=tz)) is DayStatus.HALF_DAY


def test_parse_offset_rejects_garbage():
    with pytest.raises(ValueError):
        parse_offset("IST")


def test_ensure_utc_marks_naive_values():
    assert ensure_utc(datetime(2025, 1, 1, 12, 0)).tzinfo is timezone.utc
    assert ensure_utc(None) is None
