"""Talent logistics core: timecard audit trail and project readiness."""

__version__ = "0.1.0"
