"""Periodic actions run alongside the server."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, fields
from datetime import timedelta
from typing import Any, Optional, Union

from percas.context import PercasContext
from percas.metrics import GlobalMetrics, StorageIOMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricsSnapshot:
    """Cumulative disk IO statistics at one point in time."""

    disk_read_bytes: int = 0
    disk_write_bytes: int = 0
    disk_read_ios: int = 0
    disk_write_ios: int = 0

    @classmethod
    def from_statistics(cls, stats: Any) -> MetricsSnapshot:
        """Read the statistics from attributes or zero-argument methods."""

        def read(name: str) -> int:
            value = getattr(stats, name)
            return int(value() if callable(value) else value)

        return cls(**{f.name: read(f.name) for f in fields(cls)})

    def difference(self, other: MetricsSnapshot) -> MetricsSnapshot:
        values = {}
        for f in fields(self):
            delta = getattr(self, f.name) - getattr(other, f.name)
            if delta < 0:
                raise ValueError(f"{f.name} decreased between snapshots")
            values[f.name] = delta
        return MetricsSnapshot(**values)


class ReportMetricsAction:
    """Publishes storage capacity and disk IO deltas to the metric set."""

    name = "report_metrics"

    def __init__(
        self, ctx: PercasContext, metrics: Optional[GlobalMetrics] = None
    ) -> None:
        self.ctx = ctx
        self.metrics = metrics if metrics is not None else GlobalMetrics.get()
        self.snapshot = MetricsSnapshot()

    async def run(self) -> None:
        engine = self.ctx.engine
        storage = self.metrics.storage

        # The engine reserves all of its space up front, so "used" equals capacity.
        capacity = engine.capacity()
        storage.used.record(capacity)
        storage.capacity.record(capacity)

        current = MetricsSnapshot.from_statistics(engine.statistics())
        delta = current.difference(self.snapshot)
        self.snapshot = current

        read = StorageIOMetrics.operation_labels(StorageIOMetrics.OPERATION_READ)
        write = StorageIOMetrics.operation_labels(StorageIOMetrics.OPERATION_WRITE)
        storage.io.bytes.add(delta.disk_read_bytes, read)
        storage.io.bytes.add(delta.disk_write_bytes, write)
        storage.io.count.add(delta.disk_read_ios, read)
        storage.io.count.add(delta.disk_write_ios, write)

    def schedule_with_fixed_delay(
        self, interval: Union[float, timedelta], shutdown: asyncio.Event
    ) -> asyncio.Task:
        """Run now and then ``interval`` after each run until ``shutdown`` is set."""
        seconds = interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
        return asyncio.get_running_loop().create_task(self._loop(seconds, shutdown))

    async def _loop(self, seconds: float, shutdown: asyncio.Event) -> None:
        while not shutdown.is_set():
            try:
                await self.run()
            except Exception:
                logger.exception("scheduled action %s failed", self.name)
            try:
                await asyncio.wait_for(shutdown.wait(), seconds)
            except asyncio.TimeoutError:
                pass