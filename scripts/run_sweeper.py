#!/usr/bin/env python3
"""
Stage 3 Implementation - Sweeper runner
Boots the reference topology and keeps the staleness sweep (and optional invariant audit) running.
"""

import sys
import time
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from megamodel.core.config import (
    is_sweeper_enabled, get_sweep_interval, INVARIANT_AUDIT_ENABLED, INVARIANT_AUDIT_INTERVAL_SEC
)
from megamodel.core.engine import Engine
from megamodel.core.heartbeat import Heartbeat
from megamodel.core.sweeper import StalenessSweeper
from megamodel.core.topology import ECOMMERCE_REPLICAS, ECOMMERCE_GOMS


def invariant_audit_task(engine: Engine):
    """Heartbeat task: report replica states the transition rules should never produce."""
    findings = engine.check_invariants(engine.clock())

    if not findings:
        print("✅ No invariant violations")
        return

    print(f"⚠️  Found {len(findings)} invariant violations")
    for finding in findings:
        print(f"   [{finding.severity}] {finding.type}: {finding.replica}")


def main():
    """Main entry point for sweeper script."""
    if not is_sweeper_enabled():
        print("❌ Sweeper requires SWEEPER_ENABLED=true")
        sys.exit(1)

    engine = Engine.from_topology(ECOMMERCE_REPLICAS, goms=ECOMMERCE_GOMS)
    heartbeat = Heartbeat()
    sweeper = StalenessSweeper(engine, heartbeat)

    if INVARIANT_AUDIT_ENABLED:
        heartbeat.register_task("invariant_audit", INVARIANT_AUDIT_INTERVAL_SEC,
                                lambda: invariant_audit_task(engine))

    print(f"🏃 Sweeping staleness deadlines every {get_sweep_interval()} seconds")
    print("💡 Press Ctrl+C to stop")

    try:
        sweeper.start()
        while sweeper.running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        print("\n👋 Shutting down gracefully...")
    finally:
        sweeper.stop()
        print(f"🏁 Demoted {sweeper.demoted_total} replicas while running")


if __name__ == "__main__":
    main()
