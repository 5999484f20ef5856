"""
Tests for the per-subject rolling window.

Covers FIFO eviction at capacity, chronological snapshots, short-history
behavior and time-range averages.
"""

from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from vitalwatch.domain.models import MetricName, Reading
from vitalwatch.services.window_store import MetricWindowStore

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def _reading(i: int, heart_rate: float | None = None) -> Reading:
    return Reading(
        timestamp=BASE_TIME + timedelta(seconds=5 * i),
        heart_rate=float(i) if heart_rate is None else heart_rate,
        blood_oxygen=98,
    )


@given(capacity=st.integers(min_value=1, max_value=40), extra=st.integers(min_value=0, max_value=40))
def test_pushing_past_capacity_keeps_most_recent(capacity: int, extra: int) -> None:
    """Property: N + k pushes leave exactly the N most recent readings, oldest first."""
    store = MetricWindowStore(capacity=capacity)
    readings = [_reading(i) for i in range(capacity + extra)]

    for reading in readings:
        store.push(reading)

    assert len(store) == capacity
    assert list(store.readings()) == readings[extra:]
    assert store.latest == readings[-1]


def test_snapshot_returns_recent_values_in_chronological_order() -> None:
    store = MetricWindowStore()
    store.extend([_reading(i) for i in range(15)])

    assert store.snapshot(MetricName.HEART_RATE, 5) == [10.0, 11.0, 12.0, 13.0, 14.0]


def test_snapshot_with_insufficient_history_returns_what_exists() -> None:
    store = MetricWindowStore()
    store.extend([_reading(i) for i in range(3)])

    assert store.snapshot(MetricName.HEART_RATE, 10) == [0.0, 1.0, 2.0]
    assert store.snapshot(MetricName.BLOOD_OXYGEN, 10) == [98.0, 98.0, 98.0]


def test_empty_store_is_silent() -> None:
    store = MetricWindowStore()

    assert len(store) == 0
    assert store.latest is None
    assert store.snapshot(MetricName.HEART_RATE, 10) == []
    assert store.recent(0) == ()


def test_default_capacity_is_one_hundred() -> None:
    store = MetricWindowStore()
    store.extend([_reading(i) for i in range(150)])

    assert len(store) == 100
    assert store.readings()[0].heart_rate == 50.0


def test_readings_snapshot_is_not_affected_by_later_pushes() -> None:
    store = MetricWindowStore(capacity=3)
    store.extend([_reading(i) for i in range(3)])

    snapshot = store.readings()
    store.push(_reading(3))

    assert [r.heart_rate for r in snapshot] == [0.0, 1.0, 2.0]


def test_invalid_capacity_is_rejected() -> None:
    with pytest.raises(ValueError, match="capacity"):
        MetricWindowStore(capacity=0)


class TestAverages:
    """Time-range averages over the retained window."""

    def test_averages_only_include_readings_inside_range(self) -> None:
        now = BASE_TIME + timedelta(days=10)
        store = MetricWindowStore()
        store.push(Reading(timestamp=now - timedelta(days=3), heart_rate=100, sleep_quality=50))
        store.push(Reading(timestamp=now - timedelta(hours=2), heart_rate=70, sleep_quality=80))
        store.push(Reading(timestamp=now - timedelta(hours=1), heart_rate=80, sleep_quality=90))

        day = store.averages("24h", now=now)
        week = store.averages("7d", now=now)

        assert day["heart_rate"] == 75
        assert day["sleep_quality"] == 85
        assert week["heart_rate"] == 83
        assert set(day) == {m.value for m in MetricName}

    def test_unknown_range_falls_back_to_seven_days(self) -> None:
        now = BASE_TIME + timedelta(days=30)
        store = MetricWindowStore()
        store.push(Reading(timestamp=now - timedelta(days=20), heart_rate=90))
        store.push(Reading(timestamp=now - timedelta(days=2), heart_rate=60))

        assert store.averages("1y", now=now)["heart_rate"] == 60
        assert store.averages("30d", now=now)["heart_rate"] == 75

    def test_no_readings_in_range_gives_zeros(self) -> None:
        store = MetricWindowStore()
        store.push(Reading(timestamp=BASE_TIME, heart_rate=70))

        averages = store.averages("24h", now=BASE_TIME + timedelta(days=2))

        assert all(value == 0 for value in averages.values())

    def test_naive_timestamps_are_averaged_as_utc(self) -> None:
        now = BASE_TIME + timedelta(days=1)
        store = MetricWindowStore()
        store.push(Reading(timestamp=(now - timedelta(hours=1)).replace(tzinfo=None), heart_rate=70))
        store.push(Reading(timestamp=now - timedelta(minutes=30), heart_rate=80))

        assert store.readings()[0].timestamp.tzinfo is UTC
        assert store.averages("24h", now=now)["heart_rate"] == 75
