"""
Schema validation tests - bootstrap specs, GOMs and scenario steps.
"""

import pytest
from pydantic import ValidationError

from megamodel.api.schemas import ReplicaSpec, GOMDefinition, ScenarioStep, ReplicaView
from megamodel.core.engine import Engine
from megamodel.core.registry import TopologyError
from megamodel.core.schema import ConsistencyState, ConsistencyPolicy, Operation


class TestReplicaSpec:
    """Test bootstrap tuple validation."""

    def test_minimal_spec_defaults(self):
        spec = ReplicaSpec(service="OrderService", component="OrderModel", policy="sc")
        assert spec.initial_state == ConsistencyState.INVALID
        assert spec.policy == ConsistencyPolicy.STRONG
        assert spec.initial_version == 0
        assert spec.staleness_bound_ms is None

    def test_names_are_stripped(self):
        spec = ReplicaSpec(service=" OrderService ", component="OrderModel", policy="ec")
        assert spec.service == "OrderService"

    def test_empty_service(self):
        with pytest.raises(ValidationError, match="service cannot be empty"):
            ReplicaSpec(service="  ", component="OrderModel", policy="sc")

    def test_names_are_opaque(self):
        spec = ReplicaSpec(service="eu:OrderService", component="orders.v2.OrderModel", policy="sc")
        assert spec.service == "eu:OrderService"
        assert spec.component == "orders.v2.OrderModel"

    def test_negative_version(self):
        with pytest.raises(ValidationError, match="initial_version must be >= 0"):
            ReplicaSpec(service="OrderService", component="OrderModel", policy="sc", initial_version=-1)

    def test_non_positive_bound(self):
        with pytest.raises(ValidationError, match="staleness_bound_ms must be > 0"):
            ReplicaSpec(service="OrderService", component="InventoryModel", policy="bs", staleness_bound_ms=0)

    def test_unknown_state_and_policy(self):
        with pytest.raises(ValidationError):
            ReplicaSpec(service="OrderService", component="OrderModel", policy="causal")
        with pytest.raises(ValidationError):
            ReplicaSpec(service="OrderService", component="OrderModel", policy="sc", initial_state="x")

    def test_strong_cannot_start_shared_minus(self):
        with pytest.raises(ValidationError, match="cannot start in Shared-"):
            ReplicaSpec(service="OrderService", component="OrderModel", policy="sc", initial_state="s-")


class TestTopologyBootstrap:

    def test_duplicate_replica(self, clock):
        spec = {"service": "OrderService", "component": "OrderModel", "policy": "sc"}
        with pytest.raises(TopologyError, match="Duplicate replica: OrderService.OrderModel"):
            Engine.from_topology([spec, dict(spec, policy="ec")], clock=clock)

    def test_same_component_different_services(self, clock):
        engine = Engine.from_topology([
            {"service": "OrderService", "component": "OrderModel", "policy": "sc"},
            {"service": "PaymentService", "component": "OrderModel", "policy": "sc"},
        ], clock=clock)
        assert len(engine.registry) == 2

    def test_unregistered_owner(self, clock):
        with pytest.raises(TopologyError):
            Engine.from_topology([
                {"service": "OrderService", "component": "OrderModel", "policy": "sc"},
            ], owners={"OrderModel": "Billing"}, clock=clock)

    def test_default_bound_applied(self, clock):
        engine = Engine.from_topology([
            {"service": "OrderService", "component": "InventoryModel", "policy": "bs"},
        ], clock=clock)
        assert engine.registry.lookup("OrderService", "InventoryModel").staleness_bound_ms == 30000

    def test_seeded_bounded_shared_minus_gets_deadline(self, clock):
        engine = Engine.from_topology([
            {"service": "OrderService", "component": "InventoryModel", "policy": "bs",
             "initial_state": "s-", "staleness_bound_ms": 1000},
            {"service": "SearchService", "component": "InventoryModel", "policy": "ec",
             "initial_state": "s-"},
        ], clock=clock)
        views = {v.service: v for v in engine.snapshot()}
        assert views["OrderService"].staleness_deadline is not None
        assert views["SearchService"].staleness_deadline is None
        assert engine.check_invariants() == []


class TestGOMDefinition:

    def test_includes(self):
        gom = GOMDefinition(id="gom2", name="Product Search",
                            services=["SearchService"], components=["ProductModel"])
        assert gom.includes("SearchService", "ProductModel")
        assert not gom.includes("SearchService", "OrderModel")
        assert not gom.includes("OrderService", "ProductModel")

    def test_empty_id(self):
        with pytest.raises(ValidationError, match="id cannot be empty"):
            GOMDefinition(id=" ", name="x", services=[], components=[])

    def test_access_patterns_validated(self):
        with pytest.raises(ValidationError):
            GOMDefinition(id="g", name="x", services=[], components=[],
                          access_patterns={"S:C": "sometimes"})


class TestScenarioStep:

    def test_parse_operations(self):
        step = ScenarioStep.model_validate({
            "step": "Order Creation",
            "operations": [
                {"service": "OrderService", "component": "OrderModel", "operation": "update",
                 "is_source": True, "expected_state": "m"},
                {"service": "PaymentService", "component": "OrderModel", "operation": "read"},
            ],
        })
        first, second = step.operations
        assert first.operation == Operation.UPDATE
        assert first.expected_state == ConsistencyState.MODIFIED
        assert second.is_source is False
        assert second.expected_state is None
        assert step.description == ""

    def test_invalid_operation(self):
        with pytest.raises(ValidationError):
            ScenarioStep.model_validate({
                "step": "Bad",
                "operations": [{"service": "S", "component": "C", "operation": "delete"}],
            })


class TestReplicaView:

    def test_view_is_detached(self, order_engine):
        record = order_engine.registry.lookup("OrderService", "OrderModel")
        view = ReplicaView.from_record(record)
        record.version = 99
        assert view.version == 0
