"""
Stage 1 Implementation - Authoritative source resolution
Finds the replica treated as ground truth for refresh and read-miss operations.
"""

from typing import Optional

from .config import get_owner_suffixes
from .registry import Registry
from .schema import ReplicaKey, ConsistencyState

from util.logging import logger


class NoAuthoritativeSource(LookupError):
    """Neither the owning service nor any Modified replica exists for a component."""

    def __init__(self, component: str):
        super().__init__(component)
        self.component = component

    def __str__(self) -> str:
        return f"No authoritative source for component: {self.component}"


def owner_service(component: str) -> Optional[str]:
    """
    Service that owns a component by naming convention.

    OrderModel -> OrderService. Returns None when the component name does
    not carry the configured suffix.
    """
    component_suffix, service_suffix = get_owner_suffixes()
    if not component.endswith(component_suffix) or component == component_suffix:
        return None
    return component[: -len(component_suffix)] + service_suffix


def resolve(component: str, registry: Registry) -> ReplicaKey:
    """
    Resolve the authoritative replica for `component`.

    Order: declared owner, owner by naming convention, first Modified
    replica in scan order. Raises NoAuthoritativeSource otherwise.
    """
    declared = registry.declared_owner(component)
    if declared is not None:
        return declared

    service = owner_service(component)
    if service is not None:
        key = ReplicaKey(service, component)
        if key in registry:
            return key

    modified = registry.in_state(component, ConsistencyState.MODIFIED)
    if modified:
        if len(modified) > 1:
            logger.warning(
                f"Multiple Modified replicas for {component}: "
                f"{[str(r.key) for r in modified]}; using {modified[0].key}"
            )
        return modified[0].key

    raise NoAuthoritativeSource(component)
