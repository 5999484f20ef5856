"""
Reading collection from ingest sources.

Key patterns:
- Protocol-based dependency injection for sources
- Result outcomes for expected source failures
- Structured concurrency with asyncio.TaskGroup
- Failure isolation: one broken source never starves the others
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol

import structlog
from pydantic import BaseModel, Field

from vitalwatch.domain.models import Reading
from vitalwatch.services.result import Result

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


class ReadingSource(Protocol):
    """
    A producer of canonical readings for exactly one subject.

    Device adapters, manual entry and webhook normalizers implement this after
    mapping vendor payloads into Reading.
    """

    subject_id: str

    async def collect_readings(self) -> Result[list[Reading], Exception]:
        """Return the readings produced since the previous call."""
        ...


class ReadingCollectorConfig(BaseModel):
    """Collector configuration with validation and smart defaults."""

    collection_interval_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Interval between collections in seconds.",
    )
    timeout_seconds: float = Field(
        default=3.0,
        gt=0.0,
        description="Timeout for a single source collection in seconds.",
    )


class ReadingCollector:
    """
    Gathers readings from every registered source, grouped by subject.

    Design principles:
    - Graceful degradation (partial failures OK)
    - Observable (structured logging)
    - Bounded (per-source timeout)
    """

    def __init__(self, config: ReadingCollectorConfig) -> None:
        self.config = config
        self.sources: list[ReadingSource] = []
        self.logger = logger.bind(component="reading_collector")
        self._is_running: bool = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    def add_source(self, source: ReadingSource) -> None:
        """Add a reading source. Validates source implements protocol correctly."""
        if not hasattr(source, "collect_readings") or not hasattr(source, "subject_id"):
            raise TypeError(f"Source {source} must implement ReadingSource protocol")
        self.sources.append(source)
        self.logger.info(
            "source_added", source_type=type(source).__name__, subject_id=source.subject_id
        )

    def remove_source(self, source: ReadingSource) -> None:
        self.sources.remove(source)
        self.logger.info("source_removed", source_type=type(source).__name__)

    @asynccontextmanager
    async def collection_session(self) -> AsyncIterator["ReadingCollector"]:
        """Mark the collector running for the lifetime of the block."""
        self.logger.info("collection_session_started")
        self._is_running = True

        try:
            yield self
        finally:
            self._is_running = False
            self.logger.info("collection_session_ended")

    def stop(self) -> None:
        self._is_running = False

    async def _collect_from(self, source: ReadingSource) -> Result[list[Reading], Exception]:
        try:
            return await asyncio.wait_for(
                source.collect_readings(), timeout=self.config.timeout_seconds
            )
        except TimeoutError as e:
            self.logger.warning("source_collection_timeout", subject_id=source.subject_id)
            return Result.err(e)
        except Exception as e:
            self.logger.exception(
                "unexpected_source_collection_error", error=str(e), subject_id=source.subject_id
            )
            return Result.err(e)

    async def collect_once(self) -> Result[dict[str, list[Reading]], Exception]:
        """
        Collect readings from all sources concurrently.

        Returns an error only when every registered source failed.
        """
        if not self._is_running:
            raise RuntimeError("Collector not running - use collection_session()")

        start_time = time.perf_counter()
        collected: dict[str, list[Reading]] = {}

        async with asyncio.TaskGroup() as task_group:
            tasks = [
                (source, task_group.create_task(self._collect_from(source)))
                for source in self.sources
            ]

        successful_collections = 0
        last_error: Exception | None = None
        for source, task in tasks:
            result = task.result()
            if result.is_ok():
                readings = sorted(result.unwrap(), key=lambda r: r.timestamp)
                collected.setdefault(source.subject_id, []).extend(readings)
                successful_collections += 1
            else:
                last_error = result.unwrap_err()
                self.logger.warning(
                    "source_collection_failed",
                    error=str(last_error),
                    subject_id=source.subject_id,
                )

        duration_time = time.perf_counter() - start_time
        self.logger.info(
            "reading_collection_completed",
            total_readings=sum(len(r) for r in collected.values()),
            successful_sources=successful_collections,
            total_sources=len(self.sources),
            duration_seconds=round(duration_time, 3),
        )

        if self.sources and successful_collections == 0 and last_error is not None:
            return Result.err(last_error)
        return Result.ok(collected)

    async def collect_continuously(self) -> AsyncIterator[dict[str, list[Reading]]]:
        """
        Continuous collection on a fixed period.

        Yields one batch per period; a failed period yields an empty batch so
        the consumer keeps its cadence.
        """
        self.logger.info(
            "reading_collection_started", interval_seconds=self.config.collection_interval_seconds
        )

        while self._is_running:
            collection_start_time = time.perf_counter()

            result = await self.collect_once()
            yield result.unwrap_or({})

            elapsed_time = time.perf_counter() - collection_start_time
            sleep_time = max(0, self.config.collection_interval_seconds - elapsed_time)

            if sleep_time > 0:
                await asyncio.sleep(sleep_time)
            else:
                self.logger.warning(
                    "reading_collection_slower_than_interval",
                    elapsed_seconds=round(elapsed_time, 3),
                    interval_seconds=self.config.collection_interval_seconds,
                )
