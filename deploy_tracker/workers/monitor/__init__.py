"""Work item refresh: state resolution, notification delta, synchronization.

Main Components:
- WorkItemStateResolver: refreshes one work item against GitHub
- WorkflowTagResolver: reads the build tag after a merge
- detect_notification_events: compares snapshots taken around a refresh
- SynchronizationDriver: serializes, single-flights and schedules refreshes
"""

from .change_detection import detect_notification_events
from .models import (
    NotificationEvent,
    NotificationSignalSnapshot,
    RefreshOutcome,
    RefreshScope,
    RefreshSummary,
    ResolvedTag,
)
from .state_resolver import WorkItemStateResolver
from .synchronization import SynchronizationDriver
from .tag_resolution import WorkflowTagResolver

__all__ = [
    "NotificationEvent",
    "NotificationSignalSnapshot",
    "RefreshOutcome",
    "RefreshScope",
    "RefreshSummary",
    "ResolvedTag",
    "SynchronizationDriver",
    "WorkItemStateResolver",
    "WorkflowTagResolver",
    "detect_notification_events",
]
