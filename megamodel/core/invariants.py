"""
Stage 3 Implementation - Invariant audit
Detects replica states the transition rules should never produce.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import uuid

from .config import get_invariant_ruleset
from .schema import ReplicaRecord, ConsistencyState, ConsistencyPolicy


@dataclass
class InvariantFinding:
    """A replica (or group of replicas) violating a consistency invariant."""
    id: str
    type: str  # 'strong_shared_minus', 'multiple_modified', 'missing_deadline', 'stray_deadline', 'overdue_deadline'
    severity: str  # 'low', 'medium', 'high'
    replica: str
    details: Dict[str, Any]


def _finding(finding_type: str, replica: str, details: Dict[str, Any]) -> InvariantFinding:
    return InvariantFinding(
        id=str(uuid.uuid4()),
        type=finding_type,
        severity=_calculate_severity(finding_type),
        replica=replica,
        details=details,
    )


def detect_violations(records: Iterable[ReplicaRecord], now: Optional[datetime] = None) -> List[InvariantFinding]:
    """
    Audit a set of replica records.

    Rules:
    1. Strong replicas are never Shared-.
    2. At most one Modified replica per component.
    3. A bounded Shared- replica has a staleness deadline.
    4. A deadline exists only on bounded Shared- replicas.
    5. With `now` given, no bounded Shared- replica is past its deadline
       (the sweep is overdue).
    """
    findings = []
    modified_by_component: Dict[str, List[str]] = {}

    for record in records:
        replica = str(record.key)

        if record.policy == ConsistencyPolicy.STRONG and record.state == ConsistencyState.SHARED_MINUS:
            findings.append(_finding("strong_shared_minus", replica, {
                "reason": "Strong consistency replica observed in Shared-"
            }))

        if record.state == ConsistencyState.MODIFIED:
            modified_by_component.setdefault(record.key.component, []).append(replica)

        bounded_shared_minus = record.is_bounded and record.state == ConsistencyState.SHARED_MINUS

        if bounded_shared_minus and record.staleness_deadline is None:
            findings.append(_finding("missing_deadline", replica, {
                "reason": "Bounded staleness replica in Shared- without a deadline"
            }))

        if record.staleness_deadline is not None and not bounded_shared_minus:
            findings.append(_finding("stray_deadline", replica, {
                "state": record.state.value,
                "policy": record.policy.value,
                "deadline": record.staleness_deadline.isoformat(),
                "reason": "Staleness deadline set outside bounded Shared-"
            }))

        if (now is not None and bounded_shared_minus and record.staleness_deadline is not None
                and record.staleness_deadline < now):
            findings.append(_finding("overdue_deadline", replica, {
                "deadline": record.staleness_deadline.isoformat(),
                "reason": "Staleness deadline passed without a sweep"
            }))

    for component, replicas in modified_by_component.items():
        if len(replicas) > 1:
            findings.append(_finding("multiple_modified", component, {
                "replicas": replicas,
                "reason": "More than one Modified replica for the same component"
            }))

    return findings


def _calculate_severity(finding_type: str) -> str:
    """Calculate severity based on finding type and ruleset configuration."""
    ruleset = get_invariant_ruleset()

    if ruleset == "strict":
        return "high"

    # lenient ruleset
    if finding_type in ["strong_shared_minus", "multiple_modified"]:
        return "high"
    elif finding_type in ["missing_deadline", "stray_deadline"]:
        return "medium"
    elif finding_type == "overdue_deadline":
        return "low"

    return "medium"  # default
