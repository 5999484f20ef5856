"""
Multi-point pattern recognition over a longer slice of the window.

Catches conditions a single-point z-score cannot see: sustained elevation,
gradual decline and erratic variation.
"""

from collections.abc import Sequence

import structlog

from vitalwatch.domain.models import AlertType, AnomalyCandidate, Reading
from vitalwatch.services.window_store import MetricWindowStore

logger = structlog.get_logger(__name__)

SUSTAINED_HR_LIMIT = 100.0
SUSTAINED_HR_MIN_COUNT = 4
O2_DECLINE_DELTA = 2.0
O2_DECLINE_CEILING = 96.0
HR_VARIABILITY_LIMIT = 15.0


def mean_successive_difference(values: Sequence[float]) -> float:
    """Mean of |x[i] - x[i-1]|; zero for fewer than two values."""
    if len(values) < 2:
        return 0.0
    diffs = [abs(b - a) for a, b in zip(values, values[1:])]
    return sum(diffs) / len(diffs)


class PatternDetector:
    """Sustained, trending and variability checks. Silent below ``window`` readings."""

    def __init__(self, window: int = 20) -> None:
        self.window = window
        self.logger = logger.bind(component="pattern_detector")

    def detect(self, store: MetricWindowStore) -> list[AnomalyCandidate]:
        if len(store) < self.window:
            return []

        recent = store.recent(self.window)
        latest = recent[-1]
        heart_rates = [r.heart_rate for r in recent]
        oxygen = [r.blood_oxygen for r in recent]

        candidates = [
            c
            for c in (
                self._sustained_heart_rate(heart_rates, latest),
                self._declining_oxygen(oxygen, latest),
                self._heart_rate_variability(heart_rates, latest),
            )
            if c is not None
        ]

        if candidates:
            self.logger.info("patterns_detected", patterns=[c.key for c in candidates])
        return candidates

    def _sustained_heart_rate(
        self, heart_rates: list[float], latest: Reading
    ) -> AnomalyCandidate | None:
        elevated = [hr for hr in heart_rates[-5:] if hr > SUSTAINED_HR_LIMIT]
        if len(elevated) < SUSTAINED_HR_MIN_COUNT:
            return None
        return AnomalyCandidate(
            key="sustained-hr",
            type=AlertType.WARNING,
            title="Sustained Elevated Heart Rate",
            description="Heart rate has remained elevated for an extended period.",
            recommendation=(
                "Take time to rest and practice stress reduction techniques. "
                "Monitor for other symptoms."
            ),
            timestamp=latest.timestamp,
        )

    def _declining_oxygen(self, oxygen: list[float], latest: Reading) -> AnomalyCandidate | None:
        last5 = oxygen[-5:]
        prev5 = oxygen[-10:-5]
        if len(last5) != 5 or len(prev5) != 5:
            return None

        last_avg = sum(last5) / 5
        prev_avg = sum(prev5) / 5
        if not (last_avg <= prev_avg - O2_DECLINE_DELTA and last_avg < O2_DECLINE_CEILING):
            return None
        return AnomalyCandidate(
            key="declining-o2",
            type=AlertType.WARNING,
            title="Declining Blood Oxygen Trend",
            description=(
                f"Blood oxygen levels have been gradually decreasing "
                f"(recent average {last_avg:.1f}% vs {prev_avg:.1f}%)."
            ),
            recommendation=(
                "Ensure good ventilation and consider breathing exercises. Monitor closely."
            ),
            timestamp=latest.timestamp,
        )

    def _heart_rate_variability(
        self, heart_rates: list[float], latest: Reading
    ) -> AnomalyCandidate | None:
        variability = mean_successive_difference(heart_rates[-10:])
        if variability <= HR_VARIABILITY_LIMIT:
            return None
        return AnomalyCandidate(
            key="hr-variability",
            type=AlertType.INFO,
            title="High Heart Rate Variability",
            description=(
                f"Unusual variation in heart rate patterns detected "
                f"(average beat-to-beat change {variability:.1f} bpm)."
            ),
            recommendation=(
                "This could indicate stress or irregular rhythm. Consider relaxation techniques."
            ),
            timestamp=latest.timestamp,
        )
