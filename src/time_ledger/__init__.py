"""Time Ledger - task time tracking and aggregation engine."""

__version__ = "0.1.0"
