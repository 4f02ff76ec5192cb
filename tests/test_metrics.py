import pytest

from percas.metrics import (
    Counter,
    Gauge,
    GlobalMetrics,
    Histogram,
    Meter,
    OperationMetrics,
    StorageIOMetrics,
    StorageMetrics,
)


def test_counter_accumulates_per_label_set():
    counter = Counter("c")
    counter.add(2, {"operation": "get"})
    counter.add(3, [("operation", "get")])
    counter.add(7, {"operation": "put"})
    assert counter.value({"operation": "get"}) == 5
    assert counter.value({"operation": "put"}) == 7
    assert counter.value({"operation": "delete"}) == 0


def test_counter_label_order_is_irrelevant():
    counter = Counter("c")
    counter.add(1, [("a", "1"), ("b", "2")])
    counter.add(1, [("b", "2"), ("a", "1")])
    assert counter.value({"a": "1", "b": "2"}) == 2


def test_counter_rejects_negative():
    with pytest.raises(ValueError):
        Counter("c").add(-1)


def test_gauge_keeps_last_value():
    gauge = Gauge("g")
    assert gauge.value() is None
    gauge.record(10)
    gauge.record(4)
    assert gauge.value() == 4


def test_gauge_rejects_negative():
    with pytest.raises(ValueError):
        Gauge("g").record(-5)


def test_histogram_buckets_are_upper_inclusive():
    hist = Histogram("h", boundaries=[1.0, 2.0])
    hist.record(0.5)
    hist.record(1.0)
    hist.record(1.5)
    hist.record(9.0)
    counts = hist.bucket_counts()
    assert len(counts) == len(hist.boundaries) + 1
    assert counts[0] == 2
    assert counts[-1] == 1
    assert hist.count() == 4


def test_histogram_rejects_unsorted_boundaries():
    with pytest.raises(ValueError):
        Histogram("h", boundaries=[2.0, 1.0])


def test_meter_reuses_instruments_and_checks_kind():
    meter = Meter("m")
    first = meter.counter("x", "desc")
    assert meter.counter("x") is first
    with pytest.raises(ValueError):
        meter.gauge("x")


def test_operation_labels():
    labels = OperationMetrics.operation_labels(
        OperationMetrics.OPERATION_GET, OperationMetrics.STATUS_SUCCESS
    )
    assert labels == (("operation", "get"), ("status", "ok"))
    assert StorageIOMetrics.operation_labels(StorageIOMetrics.OPERATION_READ) == (
        ("operation", "read"),
    )


def test_storage_and_operation_instrument_names():
    meter = Meter("test")
    storage = StorageMetrics(meter)
    operation = OperationMetrics(meter)
    assert storage.capacity.name == "percas.storage.capacity"
    assert storage.used.unit == "byte"
    assert storage.io.count.name == "percas.storage.io.count"
    assert operation.duration.name == "percas.operation.duration"
    assert operation.duration.unit == "second"
    assert operation.duration.boundaries == OperationMetrics.DURATION_BOUNDARIES


def test_global_metrics_is_singleton():
    first = GlobalMetrics.get()
    assert GlobalMetrics.get() is first
    assert first.meter.name == "percas"
    labels = OperationMetrics.operation_labels("delete", "ok")
    before = first.operation.count.value(labels)
    first.operation.count.add(1, labels)
    assert GlobalMetrics.get().operation.count.value(labels) == before + 1