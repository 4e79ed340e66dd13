"""
Stage 4 Implementation - Reference topology
E-commerce deployment used by the harness scripts: replicas, GOMs and scenario steps.
"""

from typing import List

from ..api.schemas import ReplicaSpec, GOMDefinition, ScenarioStep

ECOMMERCE_REPLICAS: List[ReplicaSpec] = [
    # Order Service
    ReplicaSpec(service="OrderService", component="OrderModel", initial_state="i", policy="sc", access_pattern="both"),
    ReplicaSpec(service="OrderService", component="PaymentModel", initial_state="i", policy="sc", access_pattern="read"),
    ReplicaSpec(service="OrderService", component="InventoryModel", initial_state="i", policy="bs",
                staleness_bound_ms=30000, access_pattern="read"),
    ReplicaSpec(service="OrderService", component="ProductModel", initial_state="s+", policy="ec",
                initial_version=1, access_pattern="read"),

    # Payment Service
    ReplicaSpec(service="PaymentService", component="OrderModel", initial_state="i", policy="sc", access_pattern="read"),
    ReplicaSpec(service="PaymentService", component="PaymentModel", initial_state="i", policy="sc", access_pattern="both"),

    # Inventory Service (authoritative for InventoryModel)
    ReplicaSpec(service="InventoryService", component="InventoryModel", initial_state="s+", policy="sc",
                initial_version=1, access_pattern="both"),

    # Product search readers
    ReplicaSpec(service="SearchService", component="ProductModel", initial_state="i", policy="ec", access_pattern="read"),
    ReplicaSpec(service="AnalyticsService", component="ProductModel", initial_state="i", policy="bs",
                staleness_bound_ms=30000, access_pattern="read"),
]

ECOMMERCE_GOMS: List[GOMDefinition] = [
    GOMDefinition(
        id="gom1",
        name="GOM1: Order Processing",
        services=["OrderService", "PaymentService", "InventoryService"],
        components=["OrderModel", "PaymentModel", "InventoryModel"],
        access_patterns={
            "OrderService:OrderModel": "both",
            "PaymentService:OrderModel": "read",
            "OrderService:PaymentModel": "read",
            "PaymentService:PaymentModel": "both",
            "OrderService:InventoryModel": "read",
            "InventoryService:InventoryModel": "both",
        },
    ),
    GOMDefinition(
        id="gom2",
        name="GOM2: Product Search",
        services=["OrderService", "SearchService", "AnalyticsService"],
        components=["ProductModel"],
        access_patterns={
            "OrderService:ProductModel": "read",
            "SearchService:ProductModel": "read",
            "AnalyticsService:ProductModel": "read",
        },
    ),
]

# Expected states follow the transition rules as codified. Where the rules
# disagree with the textbook walkthrough the rule outcome is recorded.
ECOMMERCE_SCENARIO: List[ScenarioStep] = [
    ScenarioStep(
        step="Order Creation",
        description="Creating a new order",
        operations=[
            {"service": "OrderService", "component": "OrderModel", "operation": "update",
             "is_source": True, "expected_state": "m"},
        ],
    ),
    ScenarioStep(
        step="Payment Read",
        description="Payment service reads the order information",
        operations=[
            {"service": "OrderService", "component": "OrderModel", "operation": "share",
             "is_source": True, "expected_state": "s+"},
            {"service": "PaymentService", "component": "OrderModel", "operation": "read",
             "is_source": False, "expected_state": "s+"},
        ],
    ),
    ScenarioStep(
        step="Payment Auth",
        description="Payment service processes the payment",
        operations=[
            {"service": "PaymentService", "component": "PaymentModel", "operation": "update",
             "is_source": True, "expected_state": "m"},
        ],
    ),
    ScenarioStep(
        step="Inventory Check",
        description="Order service checks inventory availability",
        operations=[
            # Bounded staleness read-miss lands in Shared-, not Shared+
            {"service": "OrderService", "component": "InventoryModel", "operation": "read",
             "is_source": False, "expected_state": "s-"},
        ],
    ),
    ScenarioStep(
        step="Inventory Update",
        description="Inventory service updates inventory levels",
        operations=[
            {"service": "InventoryService", "component": "InventoryModel", "operation": "update",
             "is_source": True, "expected_state": "m"},
        ],
    ),
    ScenarioStep(
        step="Background Sync",
        description="Background synchronization ensures eventual consistency",
        operations=[
            {"service": "OrderService", "component": "InventoryModel", "operation": "refresh",
             "is_source": False, "expected_state": "s+"},
            {"service": "PaymentService", "component": "PaymentModel", "operation": "share",
             "is_source": True, "expected_state": "s+"},
            {"service": "InventoryService", "component": "InventoryModel", "operation": "share",
             "is_source": True, "expected_state": "s+"},
        ],
    ),
    ScenarioStep(
        step="Bounded Staleness Demo",
        description="Demonstrating bounded staleness: timeout and refresh",
        operations=[
            # Timeout only applies from Shared-; the replica is Shared+ after the sync step
            {"service": "OrderService", "component": "InventoryModel", "operation": "timeout",
             "is_source": False, "expected_state": "s+"},
            {"service": "OrderService", "component": "InventoryModel", "operation": "refresh",
             "is_source": False, "expected_state": "s+"},
        ],
    ),
]
