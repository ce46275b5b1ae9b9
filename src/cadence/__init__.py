"""
Cadence

Scheduled event engine: handler registry, recurrence, conflict and
availability checks, event mutations and batch processing.
"""
__version__ = "0.1.0"
