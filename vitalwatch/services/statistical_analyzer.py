"""
Single-point outlier detection over the recent window.

Each tick the latest reading is compared against the mean and population
standard deviation of the last few readings (the latest one included). A value
is an outlier when its z-score magnitude is strictly greater than 2.0.

Alert type is decided by metric-specific absolute limits, not by the z-score;
the z-score only picks the wording ("moderately", "considerably",
"significantly").
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from vitalwatch.domain.models import AlertType, AnomalyCandidate, MetricName, Reading
from vitalwatch.services.window_store import MetricWindowStore

logger = structlog.get_logger(__name__)

OUTLIER_Z_THRESHOLD = 2.0
ACTIVITY_FLOOR = 3000.0


@dataclass(frozen=True)
class MetricStats:
    mean: float
    std_dev: float
    minimum: float
    maximum: float
    count: int


def calculate_stats(values: Sequence[float]) -> MetricStats:
    """Mean and population standard deviation of a non-empty series."""
    if not values:
        raise ValueError("calculate_stats() requires at least one value")
    n = len(values)
    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / n
    return MetricStats(
        mean=mean,
        std_dev=math.sqrt(variance),
        minimum=min(values),
        maximum=max(values),
        count=n,
    )


def z_score(value: float, stats: MetricStats) -> float:
    """Absolute z-score; zero when the series has no spread."""
    if stats.std_dev <= 0:
        return 0.0
    return abs(value - stats.mean) / stats.std_dev


def is_outlier(value: float, stats: MetricStats) -> bool:
    return stats.std_dev > 0 and z_score(value, stats) > OUTLIER_Z_THRESHOLD


def severity_wording(z: float) -> str:
    if z > 3.0:
        return "significantly"
    if z > 2.5:
        return "considerably"
    return "moderately"


def find_outliers(values: Sequence[float]) -> list[int]:
    """Indices of every value in ``values`` that is an outlier of the series itself."""
    if not values:
        return []
    stats = calculate_stats(values)
    return [i for i, v in enumerate(values) if is_outlier(v, stats)]


class StatisticalAnalyzer:
    """
    Z-score outlier checks for heart rate, blood oxygen and activity.

    Returns no candidates until ``min_samples`` readings are available.
    """

    def __init__(self, window: int = 10, min_samples: int = 5) -> None:
        self.window = window
        self.min_samples = min_samples
        self.logger = logger.bind(component="statistical_analyzer")

    def analyze(self, store: MetricWindowStore) -> list[AnomalyCandidate]:
        latest = store.latest
        if latest is None or len(store) < self.min_samples:
            return []

        candidates: list[AnomalyCandidate] = []
        for check in (self._check_heart_rate, self._check_blood_oxygen, self._check_activity):
            candidate = check(latest, store)
            if candidate is not None:
                candidates.append(candidate)

        if candidates:
            self.logger.info(
                "outliers_detected",
                count=len(candidates),
                metrics=[c.metric.value for c in candidates if c.metric],
            )
        return candidates

    def _stats(self, store: MetricWindowStore, metric: MetricName) -> MetricStats:
        return calculate_stats(store.snapshot(metric, self.window))

    def _check_heart_rate(
        self, latest: Reading, store: MetricWindowStore
    ) -> AnomalyCandidate | None:
        value = latest.heart_rate
        stats = self._stats(store, MetricName.HEART_RATE)
        if not is_outlier(value, stats):
            return None

        z = z_score(value, stats)
        severity = severity_wording(z)
        elevated = value > stats.mean
        return AnomalyCandidate(
            key="hr-anomaly",
            type=AlertType.CRITICAL if value > 110 or value < 50 else AlertType.WARNING,
            title="Elevated Heart Rate Alert" if elevated else "Low Heart Rate Alert",
            description=(
                f"Heart rate of {value:g} bpm detected, which is {severity} "
                "outside normal patterns."
            ),
            recommendation=(
                "Consider rest, hydration, and stress management. "
                "Contact healthcare provider if persistent."
                if elevated
                else "Monitor for symptoms. Ensure adequate activity level. "
                "Consult doctor if accompanied by fatigue."
            ),
            timestamp=latest.timestamp,
            metric=MetricName.HEART_RATE,
            value=value,
            z_score=z,
            severity=severity,
        )

    def _check_blood_oxygen(
        self, latest: Reading, store: MetricWindowStore
    ) -> AnomalyCandidate | None:
        value = latest.blood_oxygen
        stats = self._stats(store, MetricName.BLOOD_OXYGEN)
        if not is_outlier(value, stats):
            return None

        z = z_score(value, stats)
        severity = severity_wording(z)
        direction = "below" if value < stats.mean else "above"
        return AnomalyCandidate(
            key="o2-anomaly",
            type=AlertType.CRITICAL if value < 94 else AlertType.WARNING,
            title="Blood Oxygen Level Alert",
            description=(
                f"Blood oxygen saturation of {value:g}% is {severity} {direction} "
                "normal patterns."
            ),
            recommendation=(
                "Practice deep breathing exercises. Ensure proper posture. "
                "Seek medical attention if levels remain low."
            ),
            timestamp=latest.timestamp,
            metric=MetricName.BLOOD_OXYGEN,
            value=value,
            z_score=z,
            severity=severity,
        )

    def _check_activity(
        self, latest: Reading, store: MetricWindowStore
    ) -> AnomalyCandidate | None:
        # Only sudden drops matter, and only below an absolute floor so that
        # ordinary rest periods stay quiet.
        value = latest.activity_level
        stats = self._stats(store, MetricName.ACTIVITY_LEVEL)
        if not (value < stats.mean - 2 * stats.std_dev and value < ACTIVITY_FLOOR):
            return None

        z = z_score(value, stats)
        return AnomalyCandidate(
            key="activity-anomaly",
            type=AlertType.INFO,
            title="Low Activity Level Detected",
            description=(
                f"Activity level of {value:g} steps is significantly below your recent average."
            ),
            recommendation=(
                "Consider light physical activity if feeling well. Take regular movement breaks."
            ),
            timestamp=latest.timestamp,
            metric=MetricName.ACTIVITY_LEVEL,
            value=value,
            z_score=z,
            severity=severity_wording(z),
        )


class ThresholdMonitor:
    """
    Absolute limit checks on the latest reading, independent of history.

    Opt-in through ``MonitoringConfig.enable_threshold_rules``.
    """

    def __init__(self) -> None:
        self.logger = logger.bind(component="threshold_monitor")

    def check(self, store: MetricWindowStore) -> list[AnomalyCandidate]:
        latest = store.latest
        if latest is None:
            return []

        candidates: list[AnomalyCandidate] = []
        hr = latest.heart_rate
        if hr > 100 or (0 < hr < 60):
            high = hr > 100
            candidates.append(
                AnomalyCandidate(
                    key="hr-threshold",
                    type=AlertType.WARNING,
                    title="Elevated Heart Rate" if high else "Low Heart Rate",
                    description=(
                        f"Heart rate of {hr:g} bpm detected, which is "
                        f"{'above' if high else 'below'} normal resting range."
                    ),
                    recommendation=(
                        "Consider rest, hydration, and stress management. "
                        "Contact healthcare provider if persistent."
                        if high
                        else "Monitor for symptoms. Ensure adequate activity level. "
                        "Consult doctor if accompanied by fatigue."
                    ),
                    timestamp=latest.timestamp,
                    metric=MetricName.HEART_RATE,
                    value=hr,
                )
            )

        systolic = latest.blood_pressure_systolic
        diastolic = latest.blood_pressure_diastolic
        if systolic > 140 or diastolic > 90:
            candidates.append(
                AnomalyCandidate(
                    key="bp-threshold",
                    type=AlertType.CRITICAL,
                    title="High Blood Pressure",
                    description=(
                        f"Blood pressure reading of {systolic:g}/{diastolic:g} mmHg "
                        "indicates hypertension."
                    ),
                    recommendation=(
                        "Reduce sodium intake, practice relaxation techniques, and consult "
                        "your healthcare provider immediately."
                    ),
                    timestamp=latest.timestamp,
                    metric=MetricName.BLOOD_PRESSURE_SYSTOLIC,
                    value=systolic,
                )
            )

        o2 = latest.blood_oxygen
        if 0 < o2 < 95:
            candidates.append(
                AnomalyCandidate(
                    key="o2-threshold",
                    type=AlertType.CRITICAL,
                    title="Low Blood Oxygen",
                    description=f"Blood oxygen saturation of {o2:g}% is below normal range.",
                    recommendation=(
                        "Practice deep breathing exercises. Ensure proper posture. "
                        "Seek medical attention if levels remain low."
                    ),
                    timestamp=latest.timestamp,
                    metric=MetricName.BLOOD_OXYGEN,
                    value=o2,
                )
            )

        if candidates:
            self.logger.info("thresholds_exceeded", count=len(candidates))
        return candidates
