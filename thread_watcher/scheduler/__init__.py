"""Scheduling of recurring watch cycles."""

from .apsched_adapter import WatchScheduler

__all__ = ["WatchScheduler"]
