"""
megamodel: consistency-state transition engine for replicated components.

Tracks how each (service, component) replica moves between Modified,
Shared+, Shared- and Invalid under its consistency policy, propagates
source-originating writes to sibling replicas, and sweeps expired
bounded-staleness windows.
"""

__version__ = "0.1.0"
