"""
Stage 3 Implementation - Staleness sweeper
Demotes bounded-staleness replicas whose Shared- window has expired to Invalid.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from .config import get_sweep_interval, is_sweeper_enabled
from .heartbeat import Heartbeat
from .registry import Registry
from .schema import ReplicaRecord, TransitionRecord, ConsistencyState, Operation

from util.logging import logger

SWEEP_TASK_NAME = "staleness_sweep"


def is_expired(record: ReplicaRecord, now: datetime) -> bool:
    """A Shared- bounded replica past its deadline. A missing deadline is never due."""
    return (
        record.is_bounded
        and record.state == ConsistencyState.SHARED_MINUS
        and record.staleness_deadline is not None
        and record.staleness_deadline <= now
    )


def sweep_once(registry: Registry, now: datetime) -> List[TransitionRecord]:
    """Run one sweep pass atomically against the registry."""
    entries = []
    with registry.lock:
        scanned = 0
        for record in registry:
            if not record.is_bounded:
                continue
            scanned += 1
            if not is_expired(record, now):
                continue

            deadline = record.staleness_deadline
            record.state = ConsistencyState.INVALID
            record.clear_deadline(now)
            entries.append(TransitionRecord(
                timestamp=now,
                service=record.key.service,
                component=record.key.component,
                operation=Operation.TIMEOUT,
                from_state=ConsistencyState.SHARED_MINUS,
                to_state=ConsistencyState.INVALID,
                description=(
                    f"Bounded staleness timeout: {record.key} exceeded its staleness "
                    f"bound (deadline {deadline.isoformat()})"
                ),
            ))

    if entries:
        logger.log_sweep([f"{e.service}.{e.component}" for e in entries], scanned)
    else:
        logger.debug(f"Staleness sweep: nothing due among {scanned} bounded replicas")
    return entries


def time_remaining(record: ReplicaRecord, now: datetime) -> Optional[timedelta]:
    """Remaining staleness window, clamped at zero. None when no deadline is armed."""
    if record.staleness_deadline is None:
        return None
    return max(record.staleness_deadline - now, timedelta(0))


class StalenessSweeper:
    """
    Schedules `engine.sweep_once()` on a heartbeat.

    The sweeper owns no state of its own: stopping it leaves every armed
    deadline in the registry, and the next pass after a restart demotes
    whatever became due in the meantime.
    """

    def __init__(self, engine, heartbeat: Heartbeat = None, interval_sec: float = None):
        self.engine = engine
        self.heartbeat = heartbeat or Heartbeat()
        self.interval_sec = interval_sec if interval_sec is not None else get_sweep_interval()
        self.demoted_total = 0

    def run(self) -> List[TransitionRecord]:
        entries = self.engine.sweep_once()
        self.demoted_total += len(entries)
        return entries

    def schedule(self):
        """Register the sweep task without starting the loop."""
        self.heartbeat.register_task(SWEEP_TASK_NAME, self.interval_sec, self.run)

    def start(self) -> bool:
        """Register and start sweeping in the background. Returns False when disabled."""
        if not is_sweeper_enabled():
            logger.info("Staleness sweeper disabled (SWEEPER_ENABLED=false). Skipping start.")
            return False
        if SWEEP_TASK_NAME not in self.heartbeat.list_tasks():
            self.schedule()
        if not self.heartbeat.running:
            self.heartbeat.start()
        return True

    def stop(self):
        self.heartbeat.stop()

    @property
    def running(self) -> bool:
        return self.heartbeat.running
