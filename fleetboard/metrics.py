"""In-process metrics for the endpoint slice controller: counters, gauges and histograms."""

from __future__ import annotations

import threading
from bisect import bisect_left
from typing import Callable, Generic, Mapping, Sequence, TypeVar

ENDPOINT_SLICE_SUBSYSTEM = "endpoint_slice_controller"

DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class Counter:
    """A value that only goes up."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.value = 0.0

    def inc(self) -> None:
        with self._lock:
            self.value += 1


class Gauge:
    """A value that can be set to anything."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.value = 0.0

    def set(self, value: float) -> None:
        with self._lock:
            self.value = float(value)


class Histogram:
    """Counts observations into buckets by upper bound, keeping their sum and count."""

    def __init__(self, buckets: Sequence[float] | None = None) -> None:
        bounds = tuple(DEFAULT_BUCKETS if buckets is None else buckets)
        if any(a >= b for a, b in zip(bounds, bounds[1:])):
            raise ValueError("histogram buckets must be in strictly increasing order")
        self.buckets = bounds
        self._lock = threading.Lock()
        self._counts = [0] * (len(bounds) + 1)
        self.count = 0
        self.sum = 0.0

    def observe(self, value: float) -> None:
        with self._lock:
            self._counts[bisect_left(self.buckets, value)] += 1
            self.count += 1
            self.sum += value

    @property
    def bucket_counts(self) -> list[int]:
        """Cumulative counts per bucket, the last one being the +Inf bucket."""
        total = 0
        result = []
        with self._lock:
            for n in self._counts:
                total += n
                result.append(total)
        return result


M = TypeVar("M", Counter, Gauge, Histogram)


class MetricVec(Generic[M]):
    """A family of metrics of one kind, one child per combination of label values."""

    def __init__(
        self,
        subsystem: str,
        name: str,
        help: str,
        label_names: Sequence[str],
        factory: Callable[[], M],
    ) -> None:
        self.name = f"{subsystem}_{name}" if subsystem else name
        self.help = help
        self.label_names = tuple(label_names)
        self._factory = factory
        self._lock = threading.Lock()
        self._children: dict[tuple[str, ...], M] = {}

    def with_label_values(self, *args: str) -> M:
        """Return the child for these label values, creating it if needed."""
        if len(args) != len(self.label_names):
            raise ValueError(
                f"{self.name}: expected {len(self.label_names)} label values, got {len(args)}"
            )
        with self._lock:
            child = self._children.get(args)
            if child is None:
                child = self._children[args] = self._factory()
            return child

    def delete(self, labels: Mapping[str, str]) -> bool:
        """Drop the child with these labels; return whether one existed."""
        if set(labels) != set(self.label_names):
            return False
        key = tuple(labels[n] for n in self.label_names)
        with self._lock:
            return self._children.pop(key, None) is not None


def exponential_buckets(start: float, factor: float, count: int) -> list[float]:
    """Return count bucket bounds, the first being start and each factor times the last."""
    if count < 1:
        raise ValueError("exponential_buckets needs a positive count")
    if start <= 0:
        raise ValueError("exponential_buckets needs a positive start value")
    if factor <= 1:
        raise ValueError("exponential_buckets needs a factor greater than 1")
    buckets = []
    bound = start
    for _ in range(count):
        buckets.append(bound)
        bound *= factor
    return buckets


ENDPOINTS_ADDED_PER_SYNC: MetricVec[Histogram] = MetricVec(
    ENDPOINT_SLICE_SUBSYSTEM,
    "endpoints_added_per_sync",
    "Number of endpoints added on each Service sync",
    [],
    lambda: Histogram(exponential_buckets(2, 2, 15)),
)
ENDPOINTS_REMOVED_PER_SYNC: MetricVec[Histogram] = MetricVec(
    ENDPOINT_SLICE_SUBSYSTEM,
    "endpoints_removed_per_sync",
    "Number of endpoints removed on each Service sync",
    [],
    lambda: Histogram(exponential_buckets(2, 2, 15)),
)
ENDPOINTS_DESIRED: MetricVec[Gauge] = MetricVec(
    ENDPOINT_SLICE_SUBSYSTEM, "endpoints_desired", "Number of endpoints desired", [], Gauge
)
NUM_ENDPOINT_SLICES: MetricVec[Gauge] = MetricVec(
    ENDPOINT_SLICE_SUBSYSTEM, "num_endpoint_slices", "Number of EndpointSlices", [], Gauge
)
DESIRED_ENDPOINT_SLICES: MetricVec[Gauge] = MetricVec(
    ENDPOINT_SLICE_SUBSYSTEM,
    "desired_endpoint_slices",
    "Number of EndpointSlices that would exist with perfect endpoint allocation",
    [],
    Gauge,
)
ENDPOINT_SLICE_CHANGES: MetricVec[Counter] = MetricVec(
    ENDPOINT_SLICE_SUBSYSTEM, "changes", "Number of EndpointSlice changes", ["operation"], Counter
)
ENDPOINT_SLICES_CHANGED_PER_SYNC: MetricVec[Histogram] = MetricVec(
    ENDPOINT_SLICE_SUBSYSTEM,
    "endpointslices_changed_per_sync",
    "Number of EndpointSlices changed on each Service sync",
    ["topology"],  # either "Auto" or "Disabled"
    Histogram,
)
ENDPOINT_SLICE_SYNCS: MetricVec[Counter] = MetricVec(
    ENDPOINT_SLICE_SUBSYSTEM,
    "syncs",
    "Number of EndpointSlice syncs",
    ["result"],  # either "success", "stale", or "error"
    Counter,
)

_ALL = (
    ENDPOINTS_ADDED_PER_SYNC,
    ENDPOINTS_REMOVED_PER_SYNC,
    ENDPOINTS_DESIRED,
    NUM_ENDPOINT_SLICES,
    DESIRED_ENDPOINT_SLICES,
    ENDPOINT_SLICE_CHANGES,
    ENDPOINT_SLICES_CHANGED_PER_SYNC,
    ENDPOINT_SLICE_SYNCS,
)

registry: dict[str, MetricVec] = {}
_register_lock = threading.Lock()
_registered = False


def register_metrics() -> None:
    """Register the endpoint slice metrics in the registry; later calls do nothing."""
    global _registered
    with _register_lock:
        if _registered:
            return
        for vec in _ALL:
            if vec.name in registry:
                raise ValueError(f"duplicate metric {vec.name}")
        for vec in _ALL:
            registry[vec.name] = vec
        _registered = True