"""
Stage 2 Implementation - Consistency engine
The caller-facing surface: apply, sweep_once, resolve, snapshot, plus the audit log.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from .config import get_default_staleness_bound_ms
from .invariants import InvariantFinding, detect_violations
from .propagation import PROPAGATING_OPERATIONS, propagate
from .registry import Registry
from .resolver import NoAuthoritativeSource, resolve
from .schema import ReplicaKey, ReplicaRecord, TransitionRecord, ConsistencyState, Operation
from .sweeper import sweep_once, time_remaining
from .transitions import VersionEffect, transition
from ..api.schemas import ReplicaSpec, GOMDefinition, ReplicaView

from util.logging import logger


@dataclass
class ApplyResult:
    """Outcome of one apply call. Unpacks as (new_state, transitions)."""
    new_state: ConsistencyState
    transitions: List[TransitionRecord] = field(default_factory=list)
    unresolved_source: bool = False

    def __iter__(self):
        return iter((self.new_state, self.transitions))

    @property
    def propagated(self) -> List[TransitionRecord]:
        return self.transitions[1:]


class Engine:
    """
    Transition engine over a replica registry.

    Every apply and sweep runs as one atomic unit under the registry lock.
    The clock is injectable so sweeps and deadlines are testable without
    wall-clock sleeps.
    """

    def __init__(self, registry: Registry = None, clock: Callable[[], datetime] = None,
                 goms: Iterable[GOMDefinition] = None):
        self.registry = registry if registry is not None else Registry()
        self.clock = clock or datetime.now
        self.goms: Dict[str, GOMDefinition] = {g.id: g for g in (goms or [])}
        self.unresolved_reads = 0
        self._history: List[TransitionRecord] = []

    @classmethod
    def from_topology(cls, specs: Iterable[Union[ReplicaSpec, dict]],
                      goms: Iterable[GOMDefinition] = None,
                      owners: Dict[str, str] = None,
                      clock: Callable[[], datetime] = None) -> "Engine":
        """Seed a registry from bootstrap tuples. Called once at startup."""
        engine = cls(clock=clock, goms=goms)
        now = engine.clock()
        default_bound = get_default_staleness_bound_ms()

        for spec in specs:
            if not isinstance(spec, ReplicaSpec):
                spec = ReplicaSpec.model_validate(spec)
            record = ReplicaRecord(
                key=ReplicaKey(spec.service, spec.component),
                state=spec.initial_state,
                policy=spec.policy,
                version=spec.initial_version,
                last_updated=now,
                staleness_bound_ms=spec.staleness_bound_ms or default_bound,
                access_pattern=spec.access_pattern,
            )
            if record.state == ConsistencyState.SHARED_MINUS:
                record.arm_deadline(now)
            engine.registry.register(record)

        for component, service in (owners or {}).items():
            engine.registry.declare_owner(component, service)

        logger.log_bootstrap(len(engine.registry), len(engine.registry.components()), len(engine.goms))
        return engine

    def apply(self, service: str, component: str, operation: Union[Operation, str],
              is_source: bool = False) -> ApplyResult:
        """
        Apply an operation to one replica and propagate if source-originating.

        Raises UnknownReplica for unregistered keys. Unmatched rule
        combinations are recorded as no-op entries.
        """
        operation = Operation(operation)
        key = ReplicaKey(service, component)

        with self.registry.lock:
            record = self.registry.get(key)
            now = self.clock()
            from_state = record.state
            result = transition(record.state, record.policy, operation, is_source)
            unresolved = False

            if result.version_effect == VersionEffect.BUMP:
                record.set_version(record.version + 1, now)
            elif result.version_effect == VersionEffect.COPY_FROM_SOURCE:
                try:
                    source = self.registry.get(resolve(component, self.registry))
                    record.set_version(source.version, now)
                except NoAuthoritativeSource:
                    unresolved = True
                    self.unresolved_reads += 1
                    logger.log_resolution_miss(component, service, operation.value)

            # An unresolved read or refresh keeps its timestamp
            record.state = result.new_state
            if result.clear_deadline:
                record.clear_deadline(now, touch=not unresolved)
            if result.arm_deadline:
                record.arm_deadline(now, touch=not unresolved)

            if result.matched:
                description = f"Applied {operation.value} on {key} (rule {result.rule})"
            else:
                description = (
                    f"No transition for {operation.value} on {key} in state "
                    f"{from_state.value} ({record.policy.value})"
                )
            entries = [TransitionRecord(
                timestamp=now,
                service=service,
                component=component,
                operation=operation,
                from_state=from_state,
                to_state=record.state,
                description=description,
            )]
            logger.log_transition(service, component, operation.value,
                                  from_state.value, record.state.value, result.rule)

            if is_source and operation in PROPAGATING_OPERATIONS:
                entries.extend(propagate(self.registry, key, operation, now))

            self._history.extend(entries)
            return ApplyResult(record.state, entries, unresolved)

    def sweep_once(self, now: datetime = None) -> List[TransitionRecord]:
        """Demote every expired bounded Shared- replica. Never raises."""
        with self.registry.lock:
            if now is None:
                now = self.clock()
            entries = sweep_once(self.registry, now)
            self._history.extend(entries)
            return entries

    def resolve(self, component: str) -> ReplicaKey:
        """Authoritative replica for `component`; raises NoAuthoritativeSource."""
        with self.registry.lock:
            return resolve(component, self.registry)

    def snapshot(self, gom: Union[str, GOMDefinition] = None) -> List[ReplicaView]:
        """Read-only views of all replicas, optionally restricted to one GOM."""
        if isinstance(gom, str):
            gom = self.goms[gom]
        records = self.registry.copy_records()
        if gom is not None:
            records = [r for r in records if gom.includes(r.key.service, r.key.component)]
        return [ReplicaView.from_record(r) for r in records]

    def state_of(self, service: str, component: str) -> ConsistencyState:
        with self.registry.lock:
            return self.registry.lookup(service, component).state

    def history(self, limit: int = None) -> Tuple[TransitionRecord, ...]:
        """Audit log in append order. `limit` keeps only the most recent entries."""
        with self.registry.lock:
            if limit is None:
                return tuple(self._history)
            return tuple(self._history[-limit:]) if limit > 0 else ()

    def time_remaining(self, service: str, component: str, now: datetime = None) -> Optional[timedelta]:
        with self.registry.lock:
            record = self.registry.lookup(service, component)
            return time_remaining(record, now or self.clock())

    def check_invariants(self, now: datetime = None) -> List[InvariantFinding]:
        """Audit the current registry; every finding is logged."""
        findings = detect_violations(self.registry.copy_records(), now)
        for finding in findings:
            logger.log_invariant_finding(finding.type, finding.severity, finding.replica, finding.details)
        return findings
