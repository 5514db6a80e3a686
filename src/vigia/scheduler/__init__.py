"""Refresh scheduling for Vigia.

Periodic tasks with explicit stop handles, a liveness token, and the
per-consumer refresh controller.
"""

from vigia.scheduler.refresh import (
    AvailabilityWatcher,
    ControllerState,
    RefreshController,
    RefreshError,
    Snapshot,
)
from vigia.scheduler.tasks import CancellationToken, PeriodicTask, StopHandle

__all__ = [
    "AvailabilityWatcher",
    "ControllerState",
    "RefreshController",
    "RefreshError",
    "Snapshot",
    "CancellationToken",
    "PeriodicTask",
    "StopHandle",
]
