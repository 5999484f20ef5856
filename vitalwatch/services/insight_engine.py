"""
Composite health score, risk tier and trend labels.

The score starts at 100 and each metric subtracts at most one tiered penalty.
Risk is a pure function of the clamped score.
"""

from collections.abc import Sequence

import structlog

from vitalwatch.domain.models import (
    HealthInsight,
    HealthTrends,
    MetricName,
    Reading,
    RiskLevel,
    Trend,
    VitalMetrics,
)

logger = structlog.get_logger(__name__)

# Baseline shown before a subject has produced any reading.
BASELINE_METRICS = VitalMetrics(
    heart_rate=72,
    blood_oxygen=98,
    blood_pressure_systolic=120,
    blood_pressure_diastolic=80,
    activity_level=8500,
    sleep_quality=85,
)

TREND_THRESHOLDS: dict[MetricName, float] = {
    MetricName.HEART_RATE: 3.0,
    MetricName.BLOOD_OXYGEN: 1.0,
    MetricName.ACTIVITY_LEVEL: 500.0,
}


def _heart_rate_penalty(hr: float) -> int:
    if hr < 60 or hr > 100:
        return 15
    if hr > 90 or hr < 65:
        return 5
    return 0


def _blood_oxygen_penalty(o2: float) -> int:
    if o2 < 95:
        return 20
    if o2 < 97:
        return 10
    return 0


def _activity_penalty(steps: float) -> int:
    if steps < 5000:
        return 15
    if steps < 8000:
        return 5
    return 0


def _sleep_penalty(quality: float) -> int:
    if quality < 70:
        return 10
    if quality < 80:
        return 5
    return 0


def score(current: VitalMetrics) -> int:
    """Overall health score in [0, 100]."""
    penalty = (
        _heart_rate_penalty(current.heart_rate)
        + _blood_oxygen_penalty(current.blood_oxygen)
        + _activity_penalty(current.activity_level)
        + _sleep_penalty(current.sleep_quality)
    )
    return max(0, min(100, 100 - penalty))


def risk_level_for(overall_score: int) -> RiskLevel:
    if overall_score < 60:
        return RiskLevel.HIGH
    if overall_score < 80:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def trend_between(recent: Sequence[float], previous: Sequence[float], threshold: float) -> Trend:
    """Compare two halves by mean; ``stable`` when either half is empty."""
    if not recent or not previous:
        return Trend.STABLE
    delta = _mean(recent) - _mean(previous)
    if delta > threshold:
        return Trend.INCREASING
    if delta < -threshold:
        return Trend.DECREASING
    return Trend.STABLE


def compute_trends(history: Sequence[Reading]) -> HealthTrends:
    """Last-10 versus prior-10 trend label per tracked metric."""
    recent = history[-10:]
    previous = history[-20:-10]

    def _label(metric: MetricName) -> Trend:
        return trend_between(
            [r.value_of(metric) for r in recent],
            [r.value_of(metric) for r in previous],
            TREND_THRESHOLDS[metric],
        )

    return HealthTrends(
        heart_rate=_label(MetricName.HEART_RATE),
        blood_oxygen=_label(MetricName.BLOOD_OXYGEN),
        activity=_label(MetricName.ACTIVITY_LEVEL),
    )


class InsightEngine:
    """Builds a HealthInsight from current metrics and recent history."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="insight_engine")

    def insight(self, current: VitalMetrics, history: Sequence[Reading]) -> HealthInsight:
        overall = score(current)
        result = HealthInsight(
            overall_score=overall,
            risk_level=risk_level_for(overall),
            trends=compute_trends(history),
        )
        self.logger.debug(
            "insight_computed",
            overall_score=result.overall_score,
            risk_level=result.risk_level.value,
        )
        return result
