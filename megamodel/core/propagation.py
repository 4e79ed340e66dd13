"""
Stage 2 Implementation - Propagation
Fans a source-originating update or share out to every sibling replica of the component.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from .registry import Registry
from .schema import (
    ReplicaKey, ReplicaRecord, TransitionRecord,
    ConsistencyState, ConsistencyPolicy, Operation
)

from util.logging import logger

PROPAGATING_OPERATIONS = (Operation.UPDATE, Operation.SHARE)


def _share_effect(sibling: ReplicaRecord) -> Optional[ConsistencyState]:
    """Invalid siblings pick up the shared value. Everything else is left alone."""
    if sibling.state != ConsistencyState.INVALID:
        return None
    if sibling.policy == ConsistencyPolicy.STRONG:
        return ConsistencyState.SHARED_PLUS
    return ConsistencyState.SHARED_MINUS


def _update_effect(sibling: ReplicaRecord) -> Optional[ConsistencyState]:
    """Strong siblings are invalidated, others demoted from s+ to s-."""
    if sibling.state == ConsistencyState.MODIFIED:
        return None
    if sibling.policy == ConsistencyPolicy.STRONG:
        if sibling.state == ConsistencyState.INVALID:
            return None
        return ConsistencyState.INVALID
    if sibling.state == ConsistencyState.SHARED_PLUS:
        return ConsistencyState.SHARED_MINUS
    return None


def plan_propagation(registry: Registry, source_key: ReplicaKey,
                     operation: Operation) -> List[Tuple[ReplicaRecord, ConsistencyState]]:
    """
    Compute sibling effects without mutating anything.

    Every effect is derived from the same registry snapshot, so applying
    the plan cannot feed one sibling's change into another's decision.
    """
    if operation not in PROPAGATING_OPERATIONS:
        return []

    effect = _share_effect if operation == Operation.SHARE else _update_effect
    plan = []
    for sibling in registry.siblings(source_key):
        target = effect(sibling)
        if target is not None and target != sibling.state:
            plan.append((sibling, target))
    return plan


def propagate(registry: Registry, source_key: ReplicaKey, operation: Operation,
              now: datetime) -> List[TransitionRecord]:
    """
    Apply cross-replica effects of a committed source transition.

    Returns one audit entry per affected sibling in registry scan order.
    Idempotent: a second call against the propagated registry changes nothing.
    """
    with registry.lock:
        source = registry.get(source_key)
        plan = plan_propagation(registry, source_key, operation)
        entries = []

        for sibling, target in plan:
            from_state = sibling.state
            sibling.state = target

            if operation == Operation.SHARE:
                sibling.set_version(source.version, now)
                if target == ConsistencyState.SHARED_MINUS:
                    sibling.arm_deadline(now)
                recorded_operation = Operation.REFRESH
                description = (
                    f"Propagated share: {source_key.component} refreshed in "
                    f"{sibling.key.service} from {source_key.service}"
                )
            else:
                if target == ConsistencyState.SHARED_MINUS:
                    sibling.arm_deadline(now)
                    description = (
                        f"Propagated update: {source_key.component} becomes potentially "
                        f"stale in {sibling.key.service}"
                    )
                else:
                    sibling.clear_deadline(now)
                    description = (
                        f"Propagated update: {source_key.component} invalidated in "
                        f"{sibling.key.service} due to strong consistency"
                    )
                recorded_operation = Operation.UPDATE

            entries.append(TransitionRecord(
                timestamp=now,
                service=sibling.key.service,
                component=sibling.key.component,
                operation=recorded_operation,
                from_state=from_state,
                to_state=target,
                description=description,
            ))

        logger.log_propagation(str(source_key), operation.value, [
            f"{e.service}.{e.component}:{e.from_state.value}->{e.to_state.value}" for e in entries
        ])
        return entries
