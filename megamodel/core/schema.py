"""
Stage 1 Implementation - Replica data model
Replica keys, replica records and the append-only transition audit entries.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class ConsistencyState(str, Enum):
    MODIFIED = "m"
    SHARED_PLUS = "s+"
    SHARED_MINUS = "s-"
    INVALID = "i"


class ConsistencyPolicy(str, Enum):
    STRONG = "sc"
    EVENTUAL = "ec"
    BOUNDED_STALENESS = "bs"
    MONOTONIC_READS = "mr"
    READ_MY_WRITES = "rmw"


class Operation(str, Enum):
    SHARE = "share"
    UPDATE = "update"
    REFRESH = "refresh"
    TIMEOUT = "timeout"
    READ = "read"


class AccessPattern(str, Enum):
    READ = "read"
    WRITE = "write"
    BOTH = "both"


@dataclass(frozen=True)
class ReplicaKey:
    """Composite (service, component) key. Uniqueness is on the pair."""
    service: str
    component: str

    def __str__(self) -> str:
        return f"{self.service}.{self.component}"


@dataclass
class ReplicaRecord:
    """Mutable per-replica consistency state. Only the registry hands these out."""
    key: ReplicaKey
    state: ConsistencyState
    policy: ConsistencyPolicy
    version: int
    last_updated: datetime
    staleness_bound_ms: int
    staleness_deadline: Optional[datetime] = None
    access_pattern: Optional[AccessPattern] = None

    @property
    def is_bounded(self) -> bool:
        return self.policy == ConsistencyPolicy.BOUNDED_STALENESS

    def arm_deadline(self, now: datetime, touch: bool = True):
        """
        Start the staleness window. No-op for policies other than bounded staleness.

        With `touch` false the deadline moves but `last_updated` is kept.
        """
        if self.is_bounded:
            self.staleness_deadline = now + timedelta(milliseconds=self.staleness_bound_ms)
            if touch:
                self.last_updated = now

    def clear_deadline(self, now: datetime, touch: bool = True):
        if self.staleness_deadline is not None:
            self.staleness_deadline = None
            if touch:
                self.last_updated = now

    def set_version(self, version: int, now: datetime):
        # Versions never go backwards, even when copied from a lagging source
        self.version = max(self.version, version)
        self.last_updated = now

    def copy(self) -> "ReplicaRecord":
        return replace(self)


@dataclass(frozen=True)
class TransitionRecord:
    """One audit entry. Never mutated once appended."""
    timestamp: datetime
    service: str
    component: str
    operation: Operation
    from_state: ConsistencyState
    to_state: ConsistencyState
    description: str

    @property
    def key(self) -> ReplicaKey:
        return ReplicaKey(self.service, self.component)

    @property
    def changed(self) -> bool:
        return self.from_state != self.to_state

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "service": self.service,
            "component": self.component,
            "operation": self.operation.value,
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "description": self.description,
        }
