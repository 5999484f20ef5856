"""
Tests for the synthetic wearable used by demos and integration tests.
"""

import random
from datetime import UTC, datetime, timedelta

from vitalwatch.simulation import SyntheticReadingSource, synthetic_reading, synthetic_series

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def test_synthetic_reading_stays_in_plausible_ranges() -> None:
    rng = random.Random(7)

    for i in range(200):
        reading = synthetic_reading(BASE_TIME + timedelta(seconds=5 * i), rng)

        assert 50 <= reading.heart_rate <= 120
        assert 90 <= reading.blood_oxygen <= 100
        assert 90 <= reading.blood_pressure_systolic <= 180
        assert 60 <= reading.blood_pressure_diastolic <= 120
        assert reading.activity_level >= 0
        assert 0 <= reading.sleep_quality <= 100
        assert reading.device_type == "smartwatch"


def test_series_is_reproducible_with_seed() -> None:
    first = synthetic_series(10, start=BASE_TIME, seed=42)
    second = synthetic_series(10, start=BASE_TIME, seed=42)

    assert first == second
    assert [r.timestamp for r in first] == [BASE_TIME + timedelta(seconds=5 * i) for i in range(10)]


async def test_source_emits_increasing_timestamps_across_calls() -> None:
    source = SyntheticReadingSource("alice", batch_size=3, seed=1)

    first = (await source.collect_readings()).unwrap()
    second = (await source.collect_readings()).unwrap()

    timestamps = [r.timestamp for r in first + second]
    assert len(timestamps) == 6
    assert timestamps == sorted(timestamps)
    assert len(set(timestamps)) == 6


async def test_source_failure_is_returned_not_raised() -> None:
    source = SyntheticReadingSource("alice", failure_rate=1.0)

    result = await source.collect_readings()

    assert result.is_err()
    assert isinstance(result.unwrap_err(), ConnectionError)
