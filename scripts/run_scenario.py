#!/usr/bin/env python3
"""
Stage 4 Implementation - Scenario runner
Replays the e-commerce scenario against the engine and reports every step whose
resulting state differs from the expected one. State is never overwritten to match.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from megamodel.api.schemas import ScenarioStep
from megamodel.core.engine import Engine
from megamodel.core.topology import ECOMMERCE_REPLICAS, ECOMMERCE_GOMS, ECOMMERCE_SCENARIO

from util.logging import audit_event


def run_scenario(engine: Engine, steps: List[ScenarioStep]) -> List[dict]:
    """Apply every scenario operation in order. Returns the list of mismatches."""
    mismatches = []

    for index, step in enumerate(steps, start=1):
        print(f"▶ Step {index}: {step.step} - {step.description}")
        for op in step.operations:
            result = engine.apply(op.service, op.component, op.operation, op.is_source)
            for entry in result.transitions:
                print(f"   {entry.service}.{entry.component}: "
                      f"{entry.from_state.value} -> {entry.to_state.value} ({entry.description})")

            if op.expected_state is not None and result.new_state != op.expected_state:
                mismatch = {
                    "step": step.step,
                    "replica": f"{op.service}.{op.component}",
                    "operation": op.operation.value,
                    "expected": op.expected_state.value,
                    "actual": result.new_state.value,
                }
                mismatches.append(mismatch)
                audit_event("scenario.mismatch", {"step": step.step}, mismatch)
                print(f"   ❌ expected {op.expected_state.value}, got {result.new_state.value}")

    return mismatches


def main():
    parser = argparse.ArgumentParser(description="Replay the e-commerce consistency scenario")
    parser.add_argument("--gom", help="Only print the final snapshot for this GOM id")
    parser.add_argument("--json", action="store_true", help="Print the audit log as JSON")
    args = parser.parse_args()

    engine = Engine.from_topology(ECOMMERCE_REPLICAS, goms=ECOMMERCE_GOMS)
    mismatches = run_scenario(engine, ECOMMERCE_SCENARIO)

    print("\n📋 Final snapshot")
    for view in engine.snapshot(args.gom):
        print(f"   {view.service}.{view.component}: {view.state.value} "
              f"v{view.version} ({view.policy.value})")

    if args.json:
        print(json.dumps([entry.to_dict() for entry in engine.history()], indent=2))

    if mismatches:
        print(f"\n❌ {len(mismatches)} step(s) did not reach their expected state")
        sys.exit(1)

    print("\n✅ Scenario completed with every expected state reached")


if __name__ == "__main__":
    main()
