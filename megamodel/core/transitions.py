"""
Stage 1 Implementation - Transition function
Pure rule table: (state, operation, policy, is_source) -> next state + side effects.

Rules:
    1   m       share    any     source   -> s+   version += 1
    2   s+      update   sc      remote   -> i
    3   s+      update   !sc     remote   -> s-   arm deadline if bs
    4   s-      refresh  any     any      -> s+   version := authoritative
    5   s-      timeout  bs      any      -> i    clear deadline
    6   i       read     sc      any      -> s+   version := authoritative
    7   i       read     !sc     any      -> s-   version := authoritative, arm if bs
    8   s+/s-   update   any     source   -> m
    8b  i       update   any     source   -> m    version += 1

Anything else leaves the state unchanged.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .schema import ConsistencyState, ConsistencyPolicy, Operation

M = ConsistencyState.MODIFIED
SP = ConsistencyState.SHARED_PLUS
SM = ConsistencyState.SHARED_MINUS
I = ConsistencyState.INVALID

STRONG = ConsistencyPolicy.STRONG
BOUNDED = ConsistencyPolicy.BOUNDED_STALENESS


class VersionEffect(str, Enum):
    NONE = "none"
    BUMP = "bump"
    COPY_FROM_SOURCE = "copy_from_source"


@dataclass(frozen=True)
class TransitionResult:
    new_state: ConsistencyState
    version_effect: VersionEffect = VersionEffect.NONE
    arm_deadline: bool = False
    clear_deadline: bool = False
    rule: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.rule is not None


def _result(state: ConsistencyState, new_state: ConsistencyState, rule: str,
            version_effect: VersionEffect = VersionEffect.NONE,
            arm: bool = False) -> TransitionResult:
    # Leaving s- by any path drops the staleness deadline
    clear = state == SM and new_state != SM
    return TransitionResult(
        new_state=new_state,
        version_effect=version_effect,
        arm_deadline=arm,
        clear_deadline=clear,
        rule=rule,
    )


def transition(state: ConsistencyState, policy: ConsistencyPolicy,
               operation: Operation, is_source: bool) -> TransitionResult:
    """Compute the next state for one replica. Total over its input domain."""
    if state == M and operation == Operation.SHARE and is_source:
        return _result(state, SP, "1", VersionEffect.BUMP)

    if state == SP and operation == Operation.UPDATE and not is_source:
        if policy == STRONG:
            return _result(state, I, "2")
        return _result(state, SM, "3", arm=policy == BOUNDED)

    if state == SM and operation == Operation.REFRESH:
        return _result(state, SP, "4", VersionEffect.COPY_FROM_SOURCE)

    if state == SM and operation == Operation.TIMEOUT and policy == BOUNDED:
        return _result(state, I, "5")

    if state == I and operation == Operation.READ:
        if policy == STRONG:
            return _result(state, SP, "6", VersionEffect.COPY_FROM_SOURCE)
        return _result(state, SM, "7", VersionEffect.COPY_FROM_SOURCE, arm=policy == BOUNDED)

    if state in (SP, SM) and operation == Operation.UPDATE and is_source:
        return _result(state, M, "8")

    if state == I and operation == Operation.UPDATE and is_source:
        return _result(state, M, "8b", VersionEffect.BUMP)

    return TransitionResult(new_state=state)
