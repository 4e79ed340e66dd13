"""
Stage 1 scope only. Do not implement beyond this file's responsibilities.
Structured audit logging for the megamodel engine - transitions, propagation, sweeps.
"""

import logging
import os
from typing import Any, Dict, List

class StructuredLogger:
    """Structured logger for engine operations including heartbeat/sweep/invariant audits."""

    def __init__(self, name: str = "megamodel"):
        self.logger = logging.getLogger(name)
        debug = os.getenv("DEBUG", "false").lower() == "true"
        self.logger.setLevel(logging.DEBUG if debug else logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.error(message)
        elif status in ("warning", "missing", "violation"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_transition(self, service: str, component: str, operation: str, from_state: str, to_state: str, rule: str = None):
        """Log a local transition computed by the transition function."""
        details = {
            "replica": f"{service}.{component}",
            "operation": operation,
            "from": from_state,
            "to": to_state,
        }
        if rule is not None:
            details["rule"] = rule
        status = "applied" if rule is not None else "noop"
        self.log_operation("transition", status, details)

    def log_propagation(self, source: str, operation: str, affected: List[str]):
        """Log the fan-out of a source operation to sibling replicas."""
        details = {
            "source": source,
            "operation": operation,
            "affected_count": len(affected),
        }
        if affected:
            details["affected"] = affected
        self.log_operation("propagation", "success", details)

    def log_sweep(self, demoted: List[str], scanned: int):
        """Log a staleness sweep pass."""
        details = {"scanned": scanned, "demoted_count": len(demoted)}
        if demoted:
            details["demoted"] = demoted
        self.log_operation("sweep.staleness", "success", details)

    def log_resolution_miss(self, component: str, requester: str, operation: str):
        """Log a refresh/read that found no authoritative source."""
        details = {
            "component": component,
            "requester": requester,
            "operation": operation,
            "reason": "no authoritative source, version left unchanged"
        }
        self.log_operation("resolve", "missing", details)

    def log_heartbeat_task(self, task_name: str, start_time: float, end_time: float, status: str = "success", details: Dict[str, Any] = None):
        """Log heartbeat task execution."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)
        elif status == "success":
            log_details["message"] = f"Heartbeat task '{task_name}' completed in {duration_ms}ms"
        elif status == "failed":
            log_details["message"] = f"Heartbeat task '{task_name}' failed after {duration_ms}ms"

        self.log_operation(f"heartbeat.{task_name}", status, log_details)

    def log_invariant_finding(self, finding_type: str, severity: str, replica: str, details: Dict[str, Any] = None):
        """Log an invariant violation found while auditing a snapshot."""
        log_details = {
            "finding_type": finding_type,
            "severity": severity,
            "replica": replica
        }
        if details:
            log_details.update(details)

        self.log_operation("invariant.finding", "violation", log_details)

    def log_bootstrap(self, replica_count: int, component_count: int, gom_count: int = 0):
        """Log registry bootstrap from a topology."""
        self.log_operation("bootstrap", "success", {
            "replicas": replica_count,
            "components": component_count,
            "goms": gom_count
        })

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)

# Global logger instance
logger = StructuredLogger()

def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None):
    """General audit event logging for harness-level events (scenario steps, mismatches)."""
    log_details = identifiers.copy() if identifiers else {}

    if payload:
        sanitized_payload = {}
        for k, v in payload.items():
            # Truncate long values
            if isinstance(v, str) and len(v) > 100:
                sanitized_payload[k] = v[:97] + "..."
            else:
                sanitized_payload[k] = v
        log_details["payload"] = sanitized_payload

    operation = event_type.replace(".", "_")
    logger.log_operation(operation, "audit", log_details)
