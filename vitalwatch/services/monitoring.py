"""
Per-subject monitoring pipeline.

Combines ingestion, anomaly evaluation, alert emission and the insight and
recommendation queries behind one service:
1. Readings are pushed per subject (directly or from registered sources)
2. Each new reading is evaluated by the subject's alert manager
3. New alerts go to subscribers; critical ones are escalated
4. Read paths answer from immutable snapshots of subject state

Every subject owns its own window store and alert manager.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

import structlog

from vitalwatch.config import AppConfig, MonitoringConfig, get_config
from vitalwatch.domain.models import (
    Alert,
    AlertType,
    CycleReport,
    EmergencyNotice,
    HealthInsight,
    MetricName,
    Prediction,
    Reading,
    Recommendation,
    VitalMetrics,
)
from vitalwatch.services.alert_manager import AlertHandler, AlertManager
from vitalwatch.services.insight_engine import BASELINE_METRICS, InsightEngine
from vitalwatch.services.pattern_detector import PatternDetector
from vitalwatch.services.reading_collector import (
    ReadingCollector,
    ReadingCollectorConfig,
    ReadingSource,
)
from vitalwatch.services.recommendation_engine import RecommendationEngine
from vitalwatch.services.statistical_analyzer import StatisticalAnalyzer, ThresholdMonitor
from vitalwatch.services.window_store import MetricWindowStore

logger = structlog.get_logger(__name__)

EscalationHandler = (
    Callable[[EmergencyNotice], None] | Callable[[EmergencyNotice], Awaitable[None]]
)


@dataclass
class SubjectState:
    """Everything the pipeline keeps for one subject."""

    subject_id: str
    store: MetricWindowStore
    alert_manager: AlertManager
    readings_ingested: int = 0

    @classmethod
    def create(cls, subject_id: str, config: MonitoringConfig) -> "SubjectState":
        return cls(
            subject_id=subject_id,
            store=MetricWindowStore(capacity=config.window_capacity),
            alert_manager=AlertManager(
                analyzer=StatisticalAnalyzer(
                    window=config.outlier_window, min_samples=config.min_outlier_samples
                ),
                detector=PatternDetector(window=config.pattern_window),
                threshold_monitor=ThresholdMonitor() if config.enable_threshold_rules else None,
                capacity=config.alert_capacity,
                max_candidates_per_pass=config.max_candidates_per_pass,
            ),
        )


class HealthMonitoringService:
    """
    Main service that orchestrates the monitoring pipeline for many subjects.

    Single writer per subject: ingestion and evaluation for one subject never
    run concurrently; read paths only look at snapshots.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or get_config()
        self.logger = logger.bind(component="health_monitoring")

        self._subjects: dict[str, SubjectState] = {}
        self._alert_handlers: list[AlertHandler] = []
        self._escalation_handlers: list[EscalationHandler] = []

        self.insight_engine = InsightEngine()
        self.recommendation_engine = RecommendationEngine()
        self.collector = ReadingCollector(
            ReadingCollectorConfig(
                collection_interval_seconds=self.config.monitoring.tick_interval_seconds,
                timeout_seconds=self.config.monitoring.source_timeout_seconds,
            )
        )

        self._is_running = False

    # ------------------------------------------------------------------
    # Subject state and subscriptions
    # ------------------------------------------------------------------

    @property
    def subject_ids(self) -> list[str]:
        return list(self._subjects)

    def state_for(self, subject_id: str) -> SubjectState:
        """Return the subject's state, creating it on first use."""
        state = self._subjects.get(subject_id)
        if state is None:
            state = SubjectState.create(subject_id, self.config.monitoring)
            self._subjects[subject_id] = state
            self.logger.info("subject_registered", subject_id=subject_id)
        return state

    def subscribe(self, handler: AlertHandler) -> None:
        """Receive every newly raised alert."""
        self._alert_handlers.append(handler)

    def add_escalation_handler(self, handler: EscalationHandler) -> None:
        """Receive an EmergencyNotice for every new critical alert."""
        self._escalation_handlers.append(handler)

    def add_reading_source(self, source: ReadingSource) -> None:
        self.collector.add_source(source)
        self.state_for(source.subject_id)

    # ------------------------------------------------------------------
    # Ingestion and evaluation
    # ------------------------------------------------------------------

    def submit_reading(self, subject_id: str, reading: Reading) -> None:
        """Push one reading into the subject's window without evaluating it."""
        state = self.state_for(subject_id)
        state.store.push(reading)
        state.readings_ingested += 1
        self.logger.debug("reading_ingested", subject_id=subject_id, timestamp=reading.timestamp)

    async def evaluate(self, subject_id: str) -> list[Alert]:
        """Run one detection pass for a subject and emit its new alerts."""
        state = self.state_for(subject_id)
        new_alerts = state.alert_manager.evaluate(state.store)
        await self._emit(state, new_alerts)
        return new_alerts

    async def process_readings(self, subject_id: str, readings: list[Reading]) -> list[Alert]:
        """
        One tick for one subject: ingest readings oldest first, evaluating
        after each so that no reading escapes the single-point checks.
        """
        raised: list[Alert] = []
        for reading in sorted(readings, key=lambda r: r.timestamp):
            self.submit_reading(subject_id, reading)
            raised.extend(await self.evaluate(subject_id))
        return raised

    async def _emit(self, state: SubjectState, alerts: list[Alert]) -> None:
        if not alerts:
            return

        await state.alert_manager.dispatch_alerts(alerts, self._alert_handlers)

        latest = state.store.latest
        for alert in alerts:
            if alert.type != AlertType.CRITICAL:
                continue
            notice = EmergencyNotice(
                subject_id=state.subject_id,
                alert_id=alert.id,
                alert_type=alert.type,
                message=f"{alert.title}: {alert.description}",
                recommendation=alert.recommendation
                or "Immediate medical attention required. Contact emergency services.",
                metrics=latest.metrics() if latest else None,
            )
            self.logger.warning(
                "critical_alert_escalated", subject_id=state.subject_id, alert_id=alert.id
            )
            await self._escalate(notice)

    async def _escalate(self, notice: EmergencyNotice) -> None:
        for handler in self._escalation_handlers:
            try:
                result = handler(notice)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                self.logger.error(
                    "escalation_dispatch_failed",
                    error=str(e),
                    subject_id=notice.subject_id,
                    alert_id=notice.alert_id,
                )

    async def run_monitoring_cycle(self) -> CycleReport | None:
        """
        Execute one complete cycle:
        1. Collect readings from every registered source
        2. Ingest and evaluate per subject
        3. Emit and escalate alerts
        """
        cycle_start = time.perf_counter()
        self.logger.info("monitoring_cycle_starting", sources=len(self.collector.sources))

        try:
            if self.collector.is_running:
                result = await self.collector.collect_once()
            else:
                async with self.collector.collection_session():
                    result = await self.collector.collect_once()

            if result.is_err():
                self.logger.warning("no_readings_collected", error=str(result.unwrap_err()))
                return None

            batches = result.unwrap()
            readings_ingested = 0
            all_alerts: list[Alert] = []
            for subject_id, readings in batches.items():
                readings_ingested += len(readings)
                all_alerts.extend(await self.process_readings(subject_id, readings))

            expected = {s.subject_id for s in self.collector.sources}
            degraded = not expected.issubset(batches)

            report = CycleReport(
                subjects_evaluated=len(batches),
                readings_ingested=readings_ingested,
                alerts_generated=len(all_alerts),
                critical_alerts=sum(1 for a in all_alerts if a.type == AlertType.CRITICAL),
                degraded=degraded,
                duration_seconds=time.perf_counter() - cycle_start,
            )

            self.logger.info(
                "monitoring_cycle_completed",
                subjects_evaluated=report.subjects_evaluated,
                readings_ingested=report.readings_ingested,
                alerts_generated=report.alerts_generated,
                duration_seconds=round(report.duration_seconds, 3),
                degraded=degraded,
            )
            return report

        except Exception as e:
            self.logger.error("monitoring_cycle_failed", error=str(e))
            return None

    async def run_continuous_monitoring(self) -> AsyncIterator[CycleReport]:
        """Run cycles on the configured tick until stop() is called."""
        interval = self.config.monitoring.tick_interval_seconds
        self.logger.info("continuous_monitoring_starting", interval=interval)
        self._is_running = True

        try:
            async with self.collector.collection_session():
                while self._is_running:
                    tick_start = time.perf_counter()

                    report = await self.run_monitoring_cycle()
                    if report:
                        yield report

                    sleep_time = max(0, interval - (time.perf_counter() - tick_start))
                    if sleep_time > 0 and self._is_running:
                        await asyncio.sleep(sleep_time)

        except asyncio.CancelledError:
            self.logger.info("continuous_monitoring_cancelled")
            raise
        finally:
            self._is_running = False

    async def stop(self) -> None:
        """Halt further ticks; an in-flight tick runs to completion."""
        self.logger.info("stopping_monitoring_service")
        self._is_running = False

    # ------------------------------------------------------------------
    # Read paths
    # ------------------------------------------------------------------

    def list_alerts(self, subject_id: str) -> list[Alert]:
        state = self._subjects.get(subject_id)
        return state.alert_manager.list_alerts() if state else []

    def unread_alerts(self, subject_id: str) -> list[Alert]:
        state = self._subjects.get(subject_id)
        return state.alert_manager.unread_alerts() if state else []

    def mark_read(self, subject_id: str, alert_id: str) -> bool:
        state = self._subjects.get(subject_id)
        return state.alert_manager.mark_read(alert_id) if state else False

    def _snapshot(self, subject_id: str) -> tuple[VitalMetrics, tuple[Reading, ...]]:
        state = self._subjects.get(subject_id)
        if state is None or state.store.latest is None:
            return BASELINE_METRICS, ()
        history = state.store.readings()
        return history[-1].metrics(), history

    def get_insight(self, subject_id: str) -> HealthInsight:
        current, history = self._snapshot(subject_id)
        return self.insight_engine.insight(current, history)

    def get_recommendations(self, subject_id: str) -> list[Recommendation]:
        current, history = self._snapshot(subject_id)
        insight = self.insight_engine.insight(current, history)
        return self.recommendation_engine.recommendations(current, history, insight)

    def get_predictions(self, subject_id: str) -> list[Prediction]:
        current, history = self._snapshot(subject_id)
        insight = self.insight_engine.insight(current, history)
        return self.recommendation_engine.predictions(current, history, insight)

    def get_averages(self, subject_id: str, time_range: str = "7d") -> dict[str, int]:
        state = self._subjects.get(subject_id)
        if state is None:
            return {metric.value: 0 for metric in MetricName}
        return state.store.averages(time_range)
