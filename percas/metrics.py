"""In-process metric instruments and the metric set the server records."""

from __future__ import annotations

import threading
from bisect import bisect_left
from collections.abc import Iterable, Mapping, Sequence
from typing import Union

Labels = Union[Mapping[str, str], Iterable[tuple[str, str]], None]
_LabelKey = tuple[tuple[str, str], ...]


def _label_key(labels: Labels) -> _LabelKey:
    if labels is None:
        return ()
    pairs = labels.items() if isinstance(labels, Mapping) else labels
    return tuple(sorted((str(k), str(v)) for k, v in pairs))


class _Instrument:
    def __init__(self, name: str, description: str = "", unit: str = "") -> None:
        self.name = name
        self.description = description
        self.unit = unit
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, unit={self.unit!r})"


class Counter(_Instrument):
    """A monotonically increasing non-negative integer sum per label set."""

    def __init__(self, name: str, description: str = "", unit: str = "") -> None:
        super().__init__(name, description, unit)
        self._values: dict[_LabelKey, int] = {}

    def add(self, value: int, labels: Labels = None) -> None:
        if value < 0:
            raise ValueError(f"counter {self.name} cannot decrease (got {value})")
        key = _label_key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0) + int(value)

    def value(self, labels: Labels = None) -> int:
        with self._lock:
            return self._values.get(_label_key(labels), 0)


class Gauge(_Instrument):
    """Holds the last recorded non-negative value per label set."""

    def __init__(self, name: str, description: str = "", unit: str = "") -> None:
        super().__init__(name, description, unit)
        self._values: dict[_LabelKey, int] = {}

    def record(self, value: int, labels: Labels = None) -> None:
        if value < 0:
            raise ValueError(f"gauge {self.name} takes non-negative values (got {value})")
        with self._lock:
            self._values[_label_key(labels)] = int(value)

    def value(self, labels: Labels = None) -> int | None:
        with self._lock:
            return self._values.get(_label_key(labels))


class Histogram(_Instrument):
    """Explicit-bucket histogram; bucket ``i`` holds values in ``(b[i-1], b[i]]``."""

    def __init__(
        self,
        name: str,
        description: str = "",
        unit: str = "",
        boundaries: Sequence[float] = (),
    ) -> None:
        super().__init__(name, description, unit)
        bounds = [float(b) for b in boundaries]
        if any(lo >= hi for lo, hi in zip(bounds, bounds[1:])):
            raise ValueError("histogram boundaries must be strictly increasing")
        self.boundaries: tuple[float, ...] = tuple(bounds)
        self._buckets: dict[_LabelKey, list[int]] = {}
        self._sums: dict[_LabelKey, float] = {}

    def record(self, value: float, labels: Labels = None) -> None:
        key = _label_key(labels)
        index = bisect_left(self.boundaries, value)
        with self._lock:
            buckets = self._buckets.setdefault(key, [0] * (len(self.boundaries) + 1))
            buckets[index] += 1
            self._sums[key] = self._sums.get(key, 0.0) + value

    def count(self, labels: Labels = None) -> int:
        return sum(self.bucket_counts(labels))

    def bucket_counts(self, labels: Labels = None) -> list[int]:
        with self._lock:
            buckets = self._buckets.get(_label_key(labels))
            return list(buckets) if buckets else [0] * (len(self.boundaries) + 1)


class Meter:
    """Creates and owns named instruments."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._instruments: dict[str, _Instrument] = {}
        self._lock = threading.Lock()

    def _register(self, kind: type, name: str, factory) -> _Instrument:
        with self._lock:
            existing = self._instruments.get(name)
            if existing is not None:
                if not isinstance(existing, kind):
                    raise ValueError(
                        f"instrument {name} already registered as {type(existing).__name__}"
                    )
                return existing
            instrument = factory()
            self._instruments[name] = instrument
            return instrument

    def counter(self, name: str, description: str = "", unit: str = "") -> Counter:
        return self._register(Counter, name, lambda: Counter(name, description, unit))

    def gauge(self, name: str, description: str = "", unit: str = "") -> Gauge:
        return self._register(Gauge, name, lambda: Gauge(name, description, unit))

    def histogram(
        self,
        name: str,
        description: str = "",
        unit: str = "",
        boundaries: Sequence[float] = (),
    ) -> Histogram:
        return self._register(
            Histogram, name, lambda: Histogram(name, description, unit, boundaries)
        )


class StorageIOMetrics:
    """Disk IO counters labelled by operation."""

    OPERATION_READ = "read"
    OPERATION_WRITE = "write"
    OPERATION_FLUSH = "flush"

    def __init__(self, meter: Meter) -> None:
        self.count = meter.counter("percas.storage.io.count", "The number of IOs")
        self.bytes = meter.counter(
            "percas.storage.io.bytes", "The number of IO bytes", "byte"
        )

    @staticmethod
    def operation_labels(operation: str) -> tuple[tuple[str, str], ...]:
        return (("operation", operation),)


class StorageMetrics:
    """Storage capacity gauges and IO counters."""

    def __init__(self, meter: Meter) -> None:
        self.capacity = meter.gauge(
            "percas.storage.capacity", "The total capacity of the storage", "byte"
        )
        self.used = meter.gauge(
            "percas.storage.used", "The used capacity of the storage", "byte"
        )
        self.io = StorageIOMetrics(meter)


class OperationMetrics:
    """Request counters and latency histogram labelled by operation and status."""

    OPERATION_GET = "get"
    OPERATION_PUT = "put"
    OPERATION_DELETE = "delete"

    STATUS_SUCCESS = "ok"
    STATUS_NOT_FOUND = "not_found"
    STATUS_FAILURE = "error"

    DURATION_BOUNDARIES = (
        0.0001, 0.0005, 0.001, 0.005, 0.01, 0.02, 0.05, 0.1, 0.2, 0.5, 1.0, 5.0,
    )

    def __init__(self, meter: Meter) -> None:
        self.count = meter.counter("percas.operation.count", "The number of operations")
        self.bytes = meter.counter(
            "percas.operation.bytes", "The number of bytes", "byte"
        )
        self.duration = meter.histogram(
            "percas.operation.duration",
            "The duration of the operation",
            "second",
            self.DURATION_BOUNDARIES,
        )

    @staticmethod
    def operation_labels(operation: str, status: str) -> tuple[tuple[str, str], ...]:
        return (("operation", operation), ("status", status))


class GlobalMetrics:
    """The process-wide metric set, created on first use."""

    _instance: GlobalMetrics | None = None
    _lock = threading.Lock()

    def __init__(self) -> None:
        self.meter = Meter("percas")
        self.storage = StorageMetrics(self.meter)
        self.operation = OperationMetrics(self.meter)

    @classmethod
    def get(cls) -> GlobalMetrics:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance