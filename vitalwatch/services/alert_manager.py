"""
Alert lifecycle for one subject.

Each evaluation runs the analyzer and pattern detector, converts their
candidates to alerts and keeps a bounded, most-recent-first list.
Deduplication is by derived alert id only; there is no time-based cooldown,
so a sustained condition raises a new alert for every new reading.
"""

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable

import structlog

from vitalwatch.domain.models import Alert, AnomalyCandidate
from vitalwatch.services.pattern_detector import PatternDetector
from vitalwatch.services.statistical_analyzer import StatisticalAnalyzer, ThresholdMonitor
from vitalwatch.services.window_store import MetricWindowStore

logger = structlog.get_logger(__name__)

AlertHandler = Callable[[Alert], None] | Callable[[Alert], Awaitable[None]]

DEFAULT_ALERT_CAPACITY = 20
DEFAULT_CANDIDATES_PER_PASS = 5


class AlertManager:
    """Converts findings into deduplicated alerts and tracks their read state."""

    def __init__(
        self,
        analyzer: StatisticalAnalyzer | None = None,
        detector: PatternDetector | None = None,
        threshold_monitor: ThresholdMonitor | None = None,
        capacity: int = DEFAULT_ALERT_CAPACITY,
        max_candidates_per_pass: int = DEFAULT_CANDIDATES_PER_PASS,
    ) -> None:
        self.analyzer = analyzer or StatisticalAnalyzer()
        self.detector = detector or PatternDetector()
        self.threshold_monitor = threshold_monitor
        self.max_candidates_per_pass = max_candidates_per_pass
        self._alerts: deque[Alert] = deque(maxlen=capacity)
        self.logger = logger.bind(component="alert_manager")

    @property
    def capacity(self) -> int:
        return self._alerts.maxlen or DEFAULT_ALERT_CAPACITY

    def candidates(self, store: MetricWindowStore) -> list[AnomalyCandidate]:
        """Run one detection pass and keep its most recent candidates."""
        found = self.analyzer.analyze(store)
        if self.threshold_monitor is not None:
            found.extend(self.threshold_monitor.check(store))
        found.extend(self.detector.detect(store))
        return found[-self.max_candidates_per_pass :]

    def evaluate(self, store: MetricWindowStore) -> list[Alert]:
        """
        Run a detection pass and record the alerts it produces.

        Returns only the alerts that were not already retained, in the order
        they were raised.
        """
        known_ids = {alert.id for alert in self._alerts}
        new_alerts: list[Alert] = []

        for candidate in self.candidates(store):
            alert_id = candidate.alert_id
            if alert_id in known_ids:
                self.logger.debug("duplicate_alert_suppressed", alert_id=alert_id)
                continue

            alert = Alert.from_candidate(candidate)
            self._alerts.appendleft(alert)
            known_ids.add(alert_id)
            new_alerts.append(alert)

            self.logger.info(
                "alert_generated",
                alert_id=alert.id,
                alert_type=alert.type.value,
                title=alert.title,
                z_score=round(candidate.z_score, 2) if candidate.z_score is not None else None,
            )

        return new_alerts

    def list_alerts(self) -> list[Alert]:
        """Retained alerts, most recent first."""
        return list(self._alerts)

    def unread_alerts(self) -> list[Alert]:
        return [alert for alert in self._alerts if not alert.read]

    def get(self, alert_id: str) -> Alert | None:
        return next((alert for alert in self._alerts if alert.id == alert_id), None)

    def mark_read(self, alert_id: str) -> bool:
        """
        Flip an alert to read.

        Returns True only when the state changed; unknown or already-read ids
        are a silent no-op.
        """
        for index, alert in enumerate(self._alerts):
            if alert.id != alert_id:
                continue
            if alert.read:
                return False
            self._alerts[index] = alert.model_copy(update={"read": True})
            self.logger.info("alert_marked_read", alert_id=alert_id)
            return True

        self.logger.debug("mark_read_unknown_alert", alert_id=alert_id)
        return False

    async def dispatch_alerts(
        self,
        alerts: list[Alert],
        handlers: list[AlertHandler],
    ) -> None:
        """Hand alerts to external sinks; a failing handler never stops the others."""
        if not alerts or not handlers:
            return

        for alert in alerts:
            for handler in handlers:
                try:
                    result = handler(alert)
                    if asyncio.iscoroutine(result):
                        await result
                except Exception as e:
                    self.logger.error(
                        "alert_dispatch_failed",
                        error=str(e),
                        alert_id=alert.id,
                        handler=getattr(handler, "__name__", type(handler).__name__),
                    )
