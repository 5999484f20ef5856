"""
Synthetic reading generation for tests and demos.

Produces sine-wave-plus-noise vitals clamped to plausible ranges. This is a
fixture, not an ingest adapter: production readings come from device adapters
that implement the ReadingSource protocol.
"""

import asyncio
import math
import random
from datetime import UTC, datetime, timedelta

import structlog

from vitalwatch.domain.models import Reading
from vitalwatch.services.result import Result

logger = structlog.get_logger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def synthetic_reading(
    at: datetime,
    rng: random.Random | None = None,
    device_id: str = "sim-device-001",
) -> Reading:
    """One plausible reading whose slow components follow the wall clock."""
    rng = rng or random.Random()
    seconds = at.timestamp()

    heart_rate = 72 + math.sin(seconds / 10) * 15 + rng.uniform(-5, 5)
    activity = 8500 + math.sin(seconds / 20) * 3000 + rng.uniform(-1000, 1000)

    return Reading(
        timestamp=at,
        heart_rate=round(_clamp(heart_rate, 50, 120)),
        blood_oxygen=round(_clamp(98 + rng.uniform(-2, 2), 90, 100)),
        blood_pressure_systolic=round(_clamp(120 + rng.uniform(-10, 10), 90, 180)),
        blood_pressure_diastolic=round(_clamp(80 + rng.uniform(-7, 8), 60, 120)),
        activity_level=round(max(0.0, activity)),
        sleep_quality=round(_clamp(85 + rng.uniform(-10, 10), 0, 100)),
        device_id=device_id,
        device_type="smartwatch",
    )


def synthetic_series(
    count: int,
    *,
    start: datetime | None = None,
    step: timedelta = timedelta(seconds=5),
    seed: int | None = None,
) -> list[Reading]:
    """``count`` consecutive synthetic readings spaced ``step`` apart."""
    rng = random.Random(seed)
    start = start or datetime.now(UTC) - step * count
    return [synthetic_reading(start + step * i, rng) for i in range(count)]


class SyntheticReadingSource:
    """
    ReadingSource that simulates a wearable for one subject.

    Emits ``batch_size`` readings per call with monotonically increasing
    timestamps. ``failure_rate`` simulates flaky connectivity.
    """

    def __init__(
        self,
        subject_id: str,
        *,
        batch_size: int = 1,
        step: timedelta = timedelta(seconds=5),
        failure_rate: float = 0.0,
        seed: int | None = None,
    ) -> None:
        self.subject_id = subject_id
        self.batch_size = batch_size
        self.step = step
        self.failure_rate = failure_rate
        self._rng = random.Random(seed)
        self._next_at: datetime | None = None
        self.logger = logger.bind(subject_id=subject_id)

    async def collect_readings(self) -> Result[list[Reading], Exception]:
        try:
            await asyncio.sleep(0)

            if self._rng.random() < self.failure_rate:
                raise ConnectionError(f"Lost connection to device for {self.subject_id}")

            at = self._next_at or datetime.now(UTC)
            readings = []
            for _ in range(self.batch_size):
                readings.append(synthetic_reading(at, self._rng))
                at += self.step
            self._next_at = at

            self.logger.debug("synthetic_readings_generated", count=len(readings))
            return Result.ok(readings)

        except Exception as e:
            self.logger.error("synthetic_reading_failed", error=str(e))
            return Result.err(e)
