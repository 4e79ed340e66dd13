"""
Authoritative source resolution tests.
"""

import pytest
from datetime import timedelta
from unittest.mock import patch

from megamodel.core.engine import Engine
from megamodel.core.resolver import NoAuthoritativeSource, owner_service, resolve
from megamodel.core.schema import ReplicaKey, ConsistencyState


class TestOwnerNaming:

    def test_model_maps_to_service(self):
        assert owner_service("OrderModel") == "OrderService"
        assert owner_service("InventoryModel") == "InventoryService"

    def test_unconventional_name(self):
        assert owner_service("Ledger") is None
        assert owner_service("Model") is None

    @patch('megamodel.core.resolver.get_owner_suffixes', return_value=("Entity", "Svc"))
    def test_configurable_suffixes(self, mock_suffixes):
        assert owner_service("CartEntity") == "CartSvc"


class TestResolve:

    def test_owner_by_convention(self, order_engine):
        assert order_engine.resolve("OrderModel") == ReplicaKey("OrderService", "OrderModel")

    def test_declared_owner_wins(self, clock):
        engine = Engine.from_topology([
            {"service": "OrderService", "component": "OrderModel", "policy": "sc"},
            {"service": "Billing", "component": "OrderModel", "policy": "sc"},
        ], owners={"OrderModel": "Billing"}, clock=clock)
        assert engine.resolve("OrderModel") == ReplicaKey("Billing", "OrderModel")

    def test_falls_back_to_modified(self, clock):
        engine = Engine.from_topology([
            {"service": "Search", "component": "ProductModel", "initial_state": "s+", "policy": "ec"},
            {"service": "Catalog", "component": "ProductModel", "initial_state": "m", "policy": "ec"},
        ], clock=clock)
        assert engine.resolve("ProductModel") == ReplicaKey("Catalog", "ProductModel")

    def test_no_authoritative_source(self, clock):
        engine = Engine.from_topology([
            {"service": "Search", "component": "ProductModel", "initial_state": "s+", "policy": "ec"},
        ], clock=clock)
        with pytest.raises(NoAuthoritativeSource) as exc_info:
            engine.resolve("ProductModel")
        assert exc_info.value.component == "ProductModel"

    def test_unknown_component(self, order_engine):
        with pytest.raises(NoAuthoritativeSource):
            order_engine.resolve("GhostModel")

    def test_multiple_modified_picks_first_in_scan_order(self, clock):
        engine = Engine.from_topology([
            {"service": "Writer1", "component": "ProductModel", "initial_state": "m", "policy": "ec"},
            {"service": "Writer2", "component": "ProductModel", "initial_state": "m", "policy": "ec"},
        ], clock=clock)
        with patch('megamodel.core.resolver.logger') as mock_logger:
            key = resolve("ProductModel", engine.registry)
        assert key == ReplicaKey("Writer1", "ProductModel")
        mock_logger.warning.assert_called_once()


class TestUnresolvedReads:
    """A read-miss or refresh with no source still transitions; version stays put."""

    def test_read_without_source(self, clock):
        engine = Engine.from_topology([
            {"service": "Search", "component": "ProductModel", "initial_state": "i", "policy": "ec",
             "initial_version": 4},
            {"service": "Analytics", "component": "ProductModel", "initial_state": "s+", "policy": "ec",
             "initial_version": 9},
        ], clock=clock)
        before = engine.registry.lookup("Search", "ProductModel").last_updated
        clock.advance(seconds=5)

        result = engine.apply("Search", "ProductModel", "read")

        assert result.new_state == ConsistencyState.SHARED_MINUS
        assert result.unresolved_source is True
        record = engine.registry.lookup("Search", "ProductModel")
        assert record.version == 4
        assert record.last_updated == before
        assert engine.unresolved_reads == 1

    def test_resolved_read_copies_version(self, order_engine):
        order_engine.apply("OrderService", "OrderModel", "update", True)
        result = order_engine.apply("PaymentService", "OrderModel", "read")
        assert result.new_state == ConsistencyState.SHARED_PLUS
        assert result.unresolved_source is False
        assert order_engine.registry.lookup("PaymentService", "OrderModel").version == 1

    def test_bounded_read_without_source_keeps_timestamp(self, clock):
        engine = Engine.from_topology([
            {"service": "Analytics", "component": "ProductModel", "initial_state": "i", "policy": "bs",
             "staleness_bound_ms": 2000},
        ], clock=clock)
        before = engine.registry.lookup("Analytics", "ProductModel").last_updated
        clock.advance(seconds=5)

        result = engine.apply("Analytics", "ProductModel", "read")

        assert result.new_state == ConsistencyState.SHARED_MINUS
        assert result.unresolved_source is True
        record = engine.registry.lookup("Analytics", "ProductModel")
        # Deadline still armed so the sweeper can demote it later
        assert record.staleness_deadline == clock() + timedelta(milliseconds=2000)
        assert record.last_updated == before

    def test_bounded_refresh_without_source_keeps_timestamp(self, clock):
        engine = Engine.from_topology([
            {"service": "Analytics", "component": "ProductModel", "initial_state": "s-", "policy": "bs",
             "initial_version": 3, "staleness_bound_ms": 60000},
        ], clock=clock)
        before = engine.registry.lookup("Analytics", "ProductModel").last_updated
        clock.advance(seconds=5)

        result = engine.apply("Analytics", "ProductModel", "refresh")

        assert result.new_state == ConsistencyState.SHARED_PLUS
        assert result.unresolved_source is True
        record = engine.registry.lookup("Analytics", "ProductModel")
        assert record.staleness_deadline is None
        assert record.version == 3
        assert record.last_updated == before
        assert engine.unresolved_reads == 1
