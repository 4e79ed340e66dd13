"""
Stage 1 Implementation - Bootstrap and snapshot schemas
Validated input for seeding the registry and read-only views handed to callers.
"""

from pydantic import BaseModel, field_validator, model_validator, ConfigDict
from typing import Optional, List, Dict
from datetime import datetime

from ..core.schema import (
    ConsistencyState, ConsistencyPolicy, Operation, AccessPattern, ReplicaRecord
)


def _not_blank(v: str, field: str) -> str:
    if not v or not v.strip():
        raise ValueError(f'{field} cannot be empty')
    return v.strip()


class ReplicaSpec(BaseModel):
    """One bootstrap tuple: (service, component, initial_state, policy, initial_version, staleness_bound_ms?)."""
    model_config = ConfigDict(frozen=True)

    service: str
    component: str
    initial_state: ConsistencyState = ConsistencyState.INVALID
    policy: ConsistencyPolicy
    initial_version: int = 0
    staleness_bound_ms: Optional[int] = None
    access_pattern: Optional[AccessPattern] = None

    @field_validator('service')
    @classmethod
    def service_must_not_be_empty(cls, v):
        return _not_blank(v, 'service')

    @field_validator('component')
    @classmethod
    def component_must_not_be_empty(cls, v):
        return _not_blank(v, 'component')

    @field_validator('initial_version')
    @classmethod
    def version_must_be_non_negative(cls, v):
        if v < 0:
            raise ValueError('initial_version must be >= 0')
        return v

    @field_validator('staleness_bound_ms')
    @classmethod
    def bound_must_be_positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError('staleness_bound_ms must be > 0')
        return v

    @model_validator(mode='after')
    def strong_never_shared_minus(self):
        if self.policy == ConsistencyPolicy.STRONG and self.initial_state == ConsistencyState.SHARED_MINUS:
            raise ValueError('strong consistency replicas cannot start in Shared-')
        return self


class GOMDefinition(BaseModel):
    """Global Operation Model: a named group of services and components."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    services: List[str]
    components: List[str]
    access_patterns: Dict[str, AccessPattern] = {}  # "Service:Component" -> pattern

    @field_validator('id')
    @classmethod
    def id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('id cannot be empty')
        return v

    def includes(self, service: str, component: str) -> bool:
        return service in self.services and component in self.components


class ReplicaView(BaseModel):
    """Immutable snapshot of one replica record."""
    model_config = ConfigDict(frozen=True)

    service: str
    component: str
    state: ConsistencyState
    policy: ConsistencyPolicy
    version: int
    last_updated: datetime
    staleness_bound_ms: int
    staleness_deadline: Optional[datetime] = None
    access_pattern: Optional[AccessPattern] = None

    @classmethod
    def from_record(cls, record: ReplicaRecord) -> "ReplicaView":
        return cls(
            service=record.key.service,
            component=record.key.component,
            state=record.state,
            policy=record.policy,
            version=record.version,
            last_updated=record.last_updated,
            staleness_bound_ms=record.staleness_bound_ms,
            staleness_deadline=record.staleness_deadline,
            access_pattern=record.access_pattern,
        )


class ScenarioOperation(BaseModel):
    service: str
    component: str
    operation: Operation
    is_source: bool = False
    expected_state: Optional[ConsistencyState] = None


class ScenarioStep(BaseModel):
    step: str
    description: str = ""
    operations: List[ScenarioOperation]
