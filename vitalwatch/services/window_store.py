"""
Bounded rolling history of readings for one subject.

The store is a fixed-capacity ring: pushing past capacity silently drops the
oldest reading. Every per-metric window is a projection of the same ring, so
all metrics always share length and recency order.
"""

from collections import deque
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import structlog

from vitalwatch.domain.models import MetricName, Reading

logger = structlog.get_logger(__name__)

DEFAULT_CAPACITY = 100

TIME_RANGES: dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}


class MetricWindowStore:
    """Per-subject FIFO window of the most recent readings, oldest first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._readings: deque[Reading] = deque(maxlen=capacity)
        self.logger = logger.bind(component="window_store")

    def __len__(self) -> int:
        return len(self._readings)

    def __iter__(self) -> Iterator[Reading]:
        return iter(tuple(self._readings))

    def push(self, reading: Reading) -> None:
        """Append a reading, evicting the oldest one when full."""
        if len(self._readings) == self.capacity:
            self.logger.debug("reading_evicted", evicted_at=self._readings[0].timestamp)
        self._readings.append(reading)

    def extend(self, readings: list[Reading]) -> None:
        for reading in readings:
            self.push(reading)

    @property
    def latest(self) -> Reading | None:
        return self._readings[-1] if self._readings else None

    def recent(self, count: int) -> tuple[Reading, ...]:
        """The most recent ``count`` readings (fewer if short), oldest first."""
        if count <= 0:
            return ()
        readings = tuple(self._readings)
        return readings[-count:]

    def snapshot(self, metric: MetricName, count: int) -> list[float]:
        """The most recent ``count`` values of one metric, oldest first."""
        return [reading.value_of(metric) for reading in self.recent(count)]

    def readings(self) -> tuple[Reading, ...]:
        """Immutable copy of the whole window for read paths."""
        return tuple(self._readings)

    def averages(self, time_range: str = "7d", *, now: datetime | None = None) -> dict[str, int]:
        """
        Rounded per-metric means of readings inside a trailing time range.

        Args:
            time_range: One of ``24h``, ``7d`` or ``30d``; anything else means ``7d``.
            now: Reference instant, defaults to the current UTC time.

        Returns:
            Mapping of metric name to rounded mean; all zeros when no reading
            falls inside the range.
        """
        span = TIME_RANGES.get(time_range, TIME_RANGES["7d"])
        start = (now or datetime.now(UTC)) - span
        in_range = [r for r in self._readings if r.timestamp >= start]

        if not in_range:
            return {metric.value: 0 for metric in MetricName}

        return {
            metric.value: round(sum(r.value_of(metric) for r in in_range) / len(in_range))
            for metric in MetricName
        }
