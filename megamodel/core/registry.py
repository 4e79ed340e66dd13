"""
Stage 1 Implementation - Replica registry
Directory of (service, component) replica records. Single shared mutable resource.
"""

import threading
from typing import Dict, Iterator, List, Optional

from .schema import ReplicaKey, ReplicaRecord, ConsistencyState


class UnknownReplica(KeyError):
    """Raised when an operation references a (service, component) key never registered."""

    def __init__(self, key: ReplicaKey):
        super().__init__(str(key))
        self.key = key

    def __str__(self) -> str:
        return f"Unknown replica: {self.key}"


class TopologyError(ValueError):
    """Invalid bootstrap topology (duplicate keys, bad seeds)."""
    pass


class Registry:
    """
    Mapping from ReplicaKey to ReplicaRecord.

    Sibling discovery is a linear scan in insertion order, which keeps scan
    order stable for a fixed registry. Every mutation path (apply, sweep)
    holds `lock` for its whole duration.
    """

    def __init__(self):
        self._records: Dict[ReplicaKey, ReplicaRecord] = {}
        self._owners: Dict[str, ReplicaKey] = {}
        self.lock = threading.RLock()

    def register(self, record: ReplicaRecord):
        """Add a record. Only called while bootstrapping."""
        with self.lock:
            if record.key in self._records:
                raise TopologyError(f"Duplicate replica: {record.key}")
            self._records[record.key] = record

    def declare_owner(self, component: str, service: str):
        """Pin the authoritative owner of a component, overriding the naming convention."""
        key = ReplicaKey(service, component)
        with self.lock:
            if key not in self._records:
                raise TopologyError(f"Owner {key} is not a registered replica")
            self._owners[component] = key

    def declared_owner(self, component: str) -> Optional[ReplicaKey]:
        return self._owners.get(component)

    def get(self, key: ReplicaKey) -> ReplicaRecord:
        """Return the live record for `key` or raise UnknownReplica."""
        try:
            return self._records[key]
        except KeyError:
            raise UnknownReplica(key) from None

    def lookup(self, service: str, component: str) -> ReplicaRecord:
        return self.get(ReplicaKey(service, component))

    def siblings(self, key: ReplicaKey) -> List[ReplicaRecord]:
        """Every other replica of the same component, in scan order."""
        return [
            record for other, record in self._records.items()
            if other.component == key.component and other != key
        ]

    def replicas_of(self, component: str) -> List[ReplicaRecord]:
        return [r for k, r in self._records.items() if k.component == component]

    def in_state(self, component: str, state: ConsistencyState) -> List[ReplicaRecord]:
        return [r for r in self.replicas_of(component) if r.state == state]

    def components(self) -> List[str]:
        seen = []
        for key in self._records:
            if key.component not in seen:
                seen.append(key.component)
        return seen

    def copy_records(self) -> List[ReplicaRecord]:
        """Detached copies of every record, safe to hand to callers."""
        with self.lock:
            return [record.copy() for record in self._records.values()]

    def __contains__(self, key: ReplicaKey) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[ReplicaRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)
