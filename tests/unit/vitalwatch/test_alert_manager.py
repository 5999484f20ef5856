"""
Tests for the alert lifecycle: conversion, deduplication, capacity, read
state and dispatch.
"""

from datetime import UTC, datetime, timedelta

import pytest

from vitalwatch.domain.models import Alert, AlertType, AnomalyCandidate, Reading
from vitalwatch.services.alert_manager import AlertManager
from vitalwatch.services.statistical_analyzer import ThresholdMonitor
from vitalwatch.services.window_store import MetricWindowStore

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def _candidate(key: str, offset: int, alert_type: AlertType = AlertType.WARNING) -> AnomalyCandidate:
    return AnomalyCandidate(
        key=key,
        type=alert_type,
        title=f"{key} title",
        description=f"{key} description",
        recommendation="Rest and re-measure.",
        timestamp=BASE_TIME + timedelta(seconds=offset),
    )


class ScriptedAnalyzer:
    """Returns whatever candidates the test queued for the next pass."""

    def __init__(self) -> None:
        self.queued: list[AnomalyCandidate] = []

    def analyze(self, store: MetricWindowStore) -> list[AnomalyCandidate]:
        return list(self.queued)


class SilentDetector:
    def detect(self, store: MetricWindowStore) -> list[AnomalyCandidate]:
        return []


@pytest.fixture
def analyzer() -> ScriptedAnalyzer:
    return ScriptedAnalyzer()


@pytest.fixture
def manager(analyzer: ScriptedAnalyzer) -> AlertManager:
    return AlertManager(analyzer=analyzer, detector=SilentDetector())  # type: ignore[arg-type]


@pytest.fixture
def store() -> MetricWindowStore:
    return MetricWindowStore()


class TestEvaluate:
    def test_candidates_become_unread_alerts(
        self, manager: AlertManager, analyzer: ScriptedAnalyzer, store: MetricWindowStore
    ) -> None:
        analyzer.queued = [_candidate("hr-anomaly", 0, AlertType.CRITICAL)]

        (alert,) = manager.evaluate(store)

        assert alert.id == f"hr-anomaly-{int(BASE_TIME.timestamp() * 1000)}"
        assert alert.type == AlertType.CRITICAL
        assert alert.read is False
        assert alert.recommendation == "Rest and re-measure."
        assert manager.list_alerts() == [alert]

    def test_reevaluating_same_window_adds_nothing(
        self, manager: AlertManager, analyzer: ScriptedAnalyzer, store: MetricWindowStore
    ) -> None:
        analyzer.queued = [_candidate("hr-anomaly", 0), _candidate("o2-anomaly", 0)]

        first = manager.evaluate(store)
        second = manager.evaluate(store)

        assert len(first) == 2
        assert second == []
        assert len(manager.list_alerts()) == 2

    def test_same_key_new_timestamp_is_a_new_alert(
        self, manager: AlertManager, analyzer: ScriptedAnalyzer, store: MetricWindowStore
    ) -> None:
        analyzer.queued = [_candidate("sustained-hr", 0)]
        manager.evaluate(store)
        analyzer.queued = [_candidate("sustained-hr", 5)]
        manager.evaluate(store)

        assert len(manager.list_alerts()) == 2

    def test_alerts_are_most_recent_first(
        self, manager: AlertManager, analyzer: ScriptedAnalyzer, store: MetricWindowStore
    ) -> None:
        for offset in range(3):
            analyzer.queued = [_candidate("hr-anomaly", offset)]
            manager.evaluate(store)

        timestamps = [a.timestamp for a in manager.list_alerts()]
        assert timestamps == sorted(timestamps, reverse=True)

    def test_only_last_five_candidates_of_a_pass_are_kept(
        self, manager: AlertManager, analyzer: ScriptedAnalyzer, store: MetricWindowStore
    ) -> None:
        analyzer.queued = [_candidate(f"k{i}", 0) for i in range(7)]

        new_alerts = manager.evaluate(store)

        assert [a.title for a in new_alerts] == [f"k{i} title" for i in range(2, 7)]

    def test_threshold_monitor_is_consulted_when_configured(self, store: MetricWindowStore) -> None:
        store.push(
            Reading(timestamp=BASE_TIME, blood_pressure_systolic=160, blood_pressure_diastolic=95)
        )
        manager = AlertManager(threshold_monitor=ThresholdMonitor())

        (alert,) = manager.evaluate(store)

        assert alert.id.startswith("bp-threshold-")
        assert alert.type == AlertType.CRITICAL


class TestCapacity:
    def test_capacity_evicts_oldest_regardless_of_read_state(
        self, analyzer: ScriptedAnalyzer, store: MetricWindowStore
    ) -> None:
        manager = AlertManager(analyzer=analyzer, detector=SilentDetector())  # type: ignore[arg-type]

        for offset in range(20):
            analyzer.queued = [_candidate("hr-anomaly", offset)]
            manager.evaluate(store)
        oldest = manager.list_alerts()[-1]
        manager.mark_read(oldest.id)

        for offset in range(20, 25):
            analyzer.queued = [_candidate("hr-anomaly", offset)]
            manager.evaluate(store)

        alerts = manager.list_alerts()
        assert len(alerts) == 20
        assert manager.get(oldest.id) is None
        assert alerts[0].timestamp == BASE_TIME + timedelta(seconds=24)
        assert alerts[-1].timestamp == BASE_TIME + timedelta(seconds=5)

    def test_evicted_alert_can_be_raised_again(
        self, analyzer: ScriptedAnalyzer, store: MetricWindowStore
    ) -> None:
        manager = AlertManager(analyzer=analyzer, detector=SilentDetector(), capacity=2)  # type: ignore[arg-type]

        for offset in (0, 1, 2):
            analyzer.queued = [_candidate("hr-anomaly", offset)]
            manager.evaluate(store)
        analyzer.queued = [_candidate("hr-anomaly", 0)]

        assert len(manager.evaluate(store)) == 1
        assert manager.capacity == 2


class TestReadState:
    @pytest.fixture
    def populated(
        self, manager: AlertManager, analyzer: ScriptedAnalyzer, store: MetricWindowStore
    ) -> AlertManager:
        analyzer.queued = [_candidate("hr-anomaly", 0), _candidate("o2-anomaly", 0)]
        manager.evaluate(store)
        return manager

    def test_mark_read_flips_only_the_target(self, populated: AlertManager) -> None:
        target, other = populated.list_alerts()

        assert populated.mark_read(target.id) is True

        assert populated.get(target.id).read is True
        assert populated.get(other.id).read is False
        assert [a.id for a in populated.unread_alerts()] == [other.id]

    def test_mark_read_is_idempotent(self, populated: AlertManager) -> None:
        target = populated.list_alerts()[0]

        populated.mark_read(target.id)
        once = populated.list_alerts()
        assert populated.mark_read(target.id) is False

        assert populated.list_alerts() == once

    def test_unknown_id_is_a_no_op(self, populated: AlertManager) -> None:
        before = populated.list_alerts()

        assert populated.mark_read("does-not-exist") is False
        assert populated.list_alerts() == before

    def test_read_flag_survives_reevaluation(
        self, populated: AlertManager, store: MetricWindowStore
    ) -> None:
        target = populated.list_alerts()[0]
        populated.mark_read(target.id)

        populated.evaluate(store)

        assert populated.get(target.id).read is True

    def test_listed_alerts_are_snapshots(self, populated: AlertManager) -> None:
        snapshot = populated.list_alerts()

        populated.mark_read(snapshot[0].id)

        assert snapshot[0].read is False


class TestDispatch:
    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, manager: AlertManager) -> None:
        alerts = [
            Alert(id="a-1", type=AlertType.INFO, title="t", description="d", timestamp=BASE_TIME),
            Alert(id="a-2", type=AlertType.INFO, title="t", description="d", timestamp=BASE_TIME),
        ]
        received: list[str] = []
        awaited: list[str] = []

        def broken(alert: Alert) -> None:
            raise RuntimeError("sink unavailable")

        def recorder(alert: Alert) -> None:
            received.append(alert.id)

        async def async_recorder(alert: Alert) -> None:
            awaited.append(alert.id)

        await manager.dispatch_alerts(alerts, [broken, recorder, async_recorder])

        assert received == ["a-1", "a-2"]
        assert awaited == ["a-1", "a-2"]

    @pytest.mark.asyncio
    async def test_nothing_to_dispatch(self, manager: AlertManager) -> None:
        calls: list[Alert] = []

        await manager.dispatch_alerts([], [calls.append])

        assert calls == []
