"""Tracking of desired endpoints and endpoint slice distribution efficiency."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Hashable

from . import metrics


@dataclass(frozen=True)
class NamespacedName:
    namespace: str
    name: str


@dataclass(frozen=True)
class EfficiencyInfo:
    """Number of endpoints and of slices holding them."""

    endpoints: int
    slices: int


@dataclass
class ServicePortCache:
    """Efficiency info per unique port mapping of one service."""

    items: dict[Hashable, EfficiencyInfo] = field(default_factory=dict)

    def set(self, key: Hashable, info: EfficiencyInfo) -> None:
        self.items[key] = info

    def totals(self, max_endpoints_per_slice: int) -> tuple[int, int, int]:
        """Return (actual slices, desired slices, endpoints)."""
        actual = desired = endpoints = 0
        for info in self.items.values():
            endpoints += info.endpoints
            actual += info.slices
            desired += num_desired_slices(info.endpoints, max_endpoints_per_slice)
        # there is always a placeholder slice
        return actual, max(desired, 1), endpoints


class Cache:
    """Totals across all services, kept in step with the controller's gauges."""

    def __init__(self, max_endpoints_per_slice: int) -> None:
        self.max_endpoints_per_slice = max_endpoints_per_slice
        self._lock = threading.Lock()
        self.num_endpoints = 0
        self.num_slices_actual = 0
        self.num_slices_desired = 0
        self._cache: dict[NamespacedName, ServicePortCache] = {}

    def update_service_port_cache(self, service: NamespacedName, sp_cache: ServicePortCache) -> None:
        """Replace the port cache of a service and update the totals."""
        with self._lock:
            prev_actual = prev_desired = prev_endpoints = 0
            existing = self._cache.get(service)
            if existing is not None:
                prev_actual, prev_desired, prev_endpoints = existing.totals(self.max_endpoints_per_slice)
            actual, desired, endpoints = sp_cache.totals(self.max_endpoints_per_slice)
            self.num_endpoints += endpoints - prev_endpoints
            self.num_slices_desired += desired - prev_desired
            self.num_slices_actual += actual - prev_actual
            self._cache[service] = sp_cache
            self._update_metrics()

    def delete_service(self, service: NamespacedName) -> None:
        """Forget a service and remove its share from the totals."""
        with self._lock:
            sp_cache = self._cache.pop(service, None)
            if sp_cache is None:
                return
            actual, desired, endpoints = sp_cache.totals(self.max_endpoints_per_slice)
            self.num_endpoints -= endpoints
            self.num_slices_desired -= desired
            self.num_slices_actual -= actual
            self._update_metrics()

    def _update_metrics(self) -> None:
        metrics.NUM_ENDPOINT_SLICES.with_label_values().set(self.num_slices_actual)
        metrics.DESIRED_ENDPOINT_SLICES.with_label_values().set(self.num_slices_desired)
        metrics.ENDPOINTS_DESIRED.with_label_values().set(self.num_endpoints)


def num_desired_slices(num_endpoints: int, max_endpoints_per_slice: int) -> int:
    """Number of slices that would exist with ideal endpoint distribution."""
    if num_endpoints == 0:
        return 0
    if num_endpoints <= max_endpoints_per_slice:
        return 1
    return -(-num_endpoints // max_endpoints_per_slice)