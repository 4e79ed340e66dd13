"""
Stage 1 Implementation - Engine configuration
Environment-driven settings for the transition engine, sweeper and resolver.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Staleness sweeper configuration
SWEEPER_ENABLED = os.getenv("SWEEPER_ENABLED", "true").lower() == "true"
SWEEP_INTERVAL_SEC = float(os.getenv("SWEEP_INTERVAL_SEC", "1"))
DEFAULT_STALENESS_BOUND_MS = int(os.getenv("DEFAULT_STALENESS_BOUND_MS", "30000"))

# Authoritative source naming convention: OrderModel is owned by OrderService
OWNER_COMPONENT_SUFFIX = os.getenv("OWNER_COMPONENT_SUFFIX", "Model")
OWNER_SERVICE_SUFFIX = os.getenv("OWNER_SERVICE_SUFFIX", "Service")

# Invariant audit configuration
INVARIANT_AUDIT_ENABLED = os.getenv("INVARIANT_AUDIT_ENABLED", "false").lower() == "true"
INVARIANT_AUDIT_INTERVAL_SEC = float(os.getenv("INVARIANT_AUDIT_INTERVAL_SEC", "10"))
INVARIANT_RULESET = os.getenv("INVARIANT_RULESET", "strict")  # strict|lenient


def is_sweeper_enabled():
    """Check if the background staleness sweeper is enabled."""
    return SWEEPER_ENABLED


def get_sweep_interval():
    """Get staleness sweep interval in seconds."""
    return SWEEP_INTERVAL_SEC


def get_default_staleness_bound_ms():
    """Get the staleness bound used when a bounded-staleness replica declares none."""
    return DEFAULT_STALENESS_BOUND_MS


def get_owner_suffixes():
    """Get (component_suffix, service_suffix) for owner resolution."""
    return OWNER_COMPONENT_SUFFIX, OWNER_SERVICE_SUFFIX


def get_invariant_ruleset():
    """Get invariant ruleset (strict|lenient)."""
    return INVARIANT_RULESET


def validate_sweeper_config():
    """Validate sweeper configuration and return any issues."""
    issues = []

    if SWEEP_INTERVAL_SEC <= 0:
        issues.append("SWEEP_INTERVAL_SEC must be > 0")

    if DEFAULT_STALENESS_BOUND_MS <= 0:
        issues.append("DEFAULT_STALENESS_BOUND_MS must be > 0")

    if INVARIANT_RULESET not in ["strict", "lenient"]:
        issues.append(f"Invalid INVARIANT_RULESET: {INVARIANT_RULESET}")

    if INVARIANT_AUDIT_INTERVAL_SEC <= 0:
        issues.append("INVARIANT_AUDIT_INTERVAL_SEC must be > 0")

    if not OWNER_COMPONENT_SUFFIX:
        issues.append("OWNER_COMPONENT_SUFFIX must not be empty")

    return issues
