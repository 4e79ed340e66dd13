"""
Shared fixtures: a controllable clock and small engine topologies.
"""

import pytest
from datetime import datetime, timedelta

from megamodel.core.engine import Engine


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeMonotonic:
    """Monotonic seconds counter for driving the heartbeat."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> float:
        self.value += seconds
        return self.value


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 12, 0, 0))


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def order_engine(clock):
    """OrderModel replicated in OrderService (owner) and PaymentService, both strong and Invalid."""
    return Engine.from_topology([
        {"service": "OrderService", "component": "OrderModel", "initial_state": "i", "policy": "sc"},
        {"service": "PaymentService", "component": "OrderModel", "initial_state": "i", "policy": "sc"},
    ], clock=clock)


@pytest.fixture
def inventory_engine(clock):
    """InventoryModel owned by InventoryService (strong) and cached by OrderService (bounded, 30s)."""
    return Engine.from_topology([
        {"service": "InventoryService", "component": "InventoryModel", "initial_state": "s+",
         "policy": "sc", "initial_version": 1},
        {"service": "OrderService", "component": "InventoryModel", "initial_state": "s+",
         "policy": "bs", "initial_version": 1, "staleness_bound_ms": 30000},
    ], clock=clock)


@pytest.fixture
def mixed_engine(clock):
    """One owner and one sibling per policy, all replicas of CatalogModel."""
    return Engine.from_topology([
        {"service": "CatalogService", "component": "CatalogModel", "initial_state": "s+", "policy": "sc", "initial_version": 3},
        {"service": "StrongReader", "component": "CatalogModel", "initial_state": "s+", "policy": "sc", "initial_version": 3},
        {"service": "EventualReader", "component": "CatalogModel", "initial_state": "s+", "policy": "ec", "initial_version": 3},
        {"service": "BoundedReader", "component": "CatalogModel", "initial_state": "s+", "policy": "bs",
         "initial_version": 3, "staleness_bound_ms": 5000},
        {"service": "MonotonicReader", "component": "CatalogModel", "initial_state": "s+", "policy": "mr", "initial_version": 3},
        {"service": "RmwReader", "component": "CatalogModel", "initial_state": "s+", "policy": "rmw", "initial_version": 3},
        {"service": "CatalogService", "component": "PriceModel", "initial_state": "s+", "policy": "sc", "initial_version": 7},
    ], clock=clock)
