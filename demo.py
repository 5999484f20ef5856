"""
Interactive walkthrough of the full monitoring pipeline.

This script exercises:
1. Configuration loading and validation
2. Synthetic reading collection for several subjects
3. Anomaly evaluation, alert emission and escalation
4. Insight, recommendation and prediction queries

Run with: uv run python demo.py
"""

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vitalwatch.config import get_config, print_config_summary, validate_config
from vitalwatch.domain.models import Alert, EmergencyNotice, Reading
from vitalwatch.services.monitoring import HealthMonitoringService
from vitalwatch.simulation import SyntheticReadingSource, synthetic_series

console = Console()

ALERT_STYLES = {"critical": "bold red", "warning": "yellow", "info": "cyan"}


def _print_alert(alert: Alert) -> None:
    style = ALERT_STYLES.get(alert.type.value, "white")
    console.print(f"[{style}]{alert.type.value.upper()}[/] {alert.title} - {alert.description}")


def _print_escalation(notice: EmergencyNotice) -> None:
    console.print(
        Panel(
            f"{notice.message}\n\n{notice.recommendation}",
            title=f"Escalation for {notice.subject_id}",
            style="red",
        )
    )


async def show_scripted_scenarios(service: HealthMonitoringService) -> None:
    """Replay the heart-rate spike and oxygen decline scenarios."""

    console.print(Panel("Scripted scenarios", style="blue"))
    start = datetime.now(UTC) - timedelta(minutes=10)

    spike = [72, 73, 75, 71, 74, 70, 73, 150, 72, 71]
    readings = [
        Reading(
            timestamp=start + timedelta(seconds=5 * i),
            heart_rate=hr,
            blood_oxygen=98,
            activity_level=8500,
            sleep_quality=85,
        )
        for i, hr in enumerate(spike)
    ]
    await service.process_readings("patient-spike", readings)

    oxygen = [98.0] * 20 + [93.0] * 5
    readings = [
        Reading(
            timestamp=start + timedelta(seconds=5 * i),
            heart_rate=72,
            blood_oxygen=o2,
            activity_level=8500,
            sleep_quality=85,
        )
        for i, o2 in enumerate(oxygen)
    ]
    await service.process_readings("patient-oxygen", readings)


async def show_simulated_monitoring(service: HealthMonitoringService) -> None:
    """Run a few ticks against simulated wearables."""

    console.print(Panel("Simulated monitoring", style="blue"))
    for i, subject_id in enumerate(["patient-a", "patient-b"]):
        for reading in synthetic_series(30, seed=i):
            service.submit_reading(subject_id, reading)
        service.add_reading_source(SyntheticReadingSource(subject_id, batch_size=2, seed=i))

    cycles = 0
    async for report in service.run_continuous_monitoring():
        cycles += 1
        console.print(
            f"Cycle {cycles}: {report.readings_ingested} readings, "
            f"{report.alerts_generated} alerts, {report.duration_seconds:.3f}s"
        )
        if cycles >= 3:
            await service.stop()


def show_subject_summary(service: HealthMonitoringService) -> None:
    table = Table(title="Subject Summary")
    table.add_column("Subject", style="cyan")
    table.add_column("Score", style="white")
    table.add_column("Risk", style="white")
    table.add_column("HR / O2 / Activity trend", style="white")
    table.add_column("Alerts (unread)", style="white")
    table.add_column("Top recommendation", style="white")

    for subject_id in service.subject_ids:
        insight = service.get_insight(subject_id)
        recs = service.get_recommendations(subject_id)
        trends = insight.trends
        table.add_row(
            subject_id,
            str(insight.overall_score),
            insight.risk_level.value,
            f"{trends.heart_rate.value} / {trends.blood_oxygen.value} / {trends.activity.value}",
            f"{len(service.list_alerts(subject_id))} ({len(service.unread_alerts(subject_id))})",
            recs[0].title if recs else "-",
        )

    console.print(table)

    for subject_id in service.subject_ids:
        for prediction in service.get_predictions(subject_id):
            console.print(
                f"[cyan]{subject_id}[/] {prediction.title} "
                f"({prediction.confidence:.0%}, {prediction.timeframe})"
            )


async def main() -> None:
    console.print(Panel("Vital-sign monitoring walkthrough", style="bold blue"))

    validate_config()
    print_config_summary()

    config = get_config().model_copy(deep=True)
    config.monitoring.tick_interval_seconds = 0.5
    logging.basicConfig(level=getattr(logging, config.logging.level, logging.INFO))

    service = HealthMonitoringService(config)
    service.subscribe(_print_alert)
    service.add_escalation_handler(_print_escalation)

    await show_scripted_scenarios(service)
    await show_simulated_monitoring(service)
    show_subject_summary(service)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        console.print("\nDemo stopped by user", style="yellow")
