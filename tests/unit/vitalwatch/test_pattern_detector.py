"""
Tests for multi-point pattern recognition.
"""

from datetime import UTC, datetime, timedelta

import pytest

from vitalwatch.domain.models import AlertType, Reading
from vitalwatch.services.pattern_detector import PatternDetector, mean_successive_difference
from vitalwatch.services.window_store import MetricWindowStore

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def _store(heart_rates: list[float], oxygen: list[float] | None = None) -> MetricWindowStore:
    oxygen = oxygen or [98.0] * len(heart_rates)
    store = MetricWindowStore()
    for i, (hr, o2) in enumerate(zip(heart_rates, oxygen, strict=True)):
        store.push(
            Reading(timestamp=BASE_TIME + timedelta(seconds=5 * i), heart_rate=hr, blood_oxygen=o2)
        )
    return store


@pytest.fixture
def detector() -> PatternDetector:
    return PatternDetector()


def test_mean_successive_difference() -> None:
    assert mean_successive_difference([]) == 0.0
    assert mean_successive_difference([80]) == 0.0
    assert mean_successive_difference([1, 3, 2]) == 1.5


def test_silent_below_twenty_readings(detector: PatternDetector) -> None:
    store = _store([110.0] * 19)

    assert detector.detect(store) == []


def test_steady_vitals_raise_nothing(detector: PatternDetector) -> None:
    assert detector.detect(_store([72.0] * 30)) == []


class TestSustainedHeartRate:
    def test_four_of_last_five_elevated(self, detector: PatternDetector) -> None:
        store = _store([72.0] * 16 + [105, 106, 107, 108])

        (candidate,) = detector.detect(store)

        assert candidate.key == "sustained-hr"
        assert candidate.type == AlertType.WARNING
        assert candidate.metric is None
        assert candidate.value is None
        assert candidate.timestamp == store.latest.timestamp

    def test_three_of_last_five_is_not_sustained(self, detector: PatternDetector) -> None:
        store = _store([72.0] * 17 + [105, 106, 107])

        assert all(c.key != "sustained-hr" for c in detector.detect(store))

    def test_exactly_one_hundred_is_not_elevated(self, detector: PatternDetector) -> None:
        store = _store([72.0] * 15 + [100.0] * 5)

        assert all(c.key != "sustained-hr" for c in detector.detect(store))


class TestDecliningOxygen:
    def test_gradual_decline_below_ceiling(self, detector: PatternDetector) -> None:
        store = _store([72.0] * 20, [98.0] * 15 + [93.0] * 5)

        (candidate,) = detector.detect(store)

        assert candidate.key == "declining-o2"
        assert candidate.type == AlertType.WARNING
        assert candidate.title == "Declining Blood Oxygen Trend"
        assert candidate.alert_id == f"declining-o2-{int(store.latest.timestamp.timestamp() * 1000)}"

    def test_drop_of_exactly_two_points_counts(self, detector: PatternDetector) -> None:
        store = _store([72.0] * 20, [97.0] * 15 + [95.0] * 5)

        assert [c.key for c in detector.detect(store)] == ["declining-o2"]

    def test_decline_that_stays_healthy_is_ignored(self, detector: PatternDetector) -> None:
        store = _store([72.0] * 20, [100.0] * 15 + [97.0] * 5)

        assert detector.detect(store) == []

    def test_small_dip_is_ignored(self, detector: PatternDetector) -> None:
        store = _store([72.0] * 20, [96.0] * 15 + [95.0] * 5)

        assert detector.detect(store) == []


class TestHeartRateVariability:
    def test_erratic_heart_rate_is_info(self, detector: PatternDetector) -> None:
        store = _store([72.0] * 10 + [60.0, 90.0] * 5)

        (candidate,) = detector.detect(store)

        assert candidate.key == "hr-variability"
        assert candidate.type == AlertType.INFO
        assert "30.0 bpm" in candidate.description

    def test_variability_at_limit_is_ignored(self, detector: PatternDetector) -> None:
        store = _store([72.0] * 10 + [70.0, 85.0] * 5)

        assert detector.detect(store) == []


def test_patterns_are_reported_together(detector: PatternDetector) -> None:
    heart_rates = [72.0] * 10 + [60.0, 90.0, 60.0, 90.0, 60.0, 110.0, 140.0, 105.0, 150.0, 120.0]
    oxygen = [98.0] * 15 + [93.0] * 5

    keys = [c.key for c in detector.detect(_store(heart_rates, oxygen))]

    assert keys == ["sustained-hr", "declining-o2", "hr-variability"]
