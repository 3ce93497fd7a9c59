"""
Watcher — background sampling of one directory/disk pair.

Public API:
    Watcher — fixed-interval sampling loop driven by its inbox
    WatcherSupervisor — owns the watcher task and its shutdown
    Inbox, Cancel, Reconfigure — control channel
"""

from .engine import DEFAULT_SAMPLE_INTERVAL_SECONDS, Watcher, WatcherState
from .messages import Cancel, ControlMessage, Inbox, Reconfigure
from .supervisor import WatcherReport, WatcherSupervisor

__all__ = [
    "DEFAULT_SAMPLE_INTERVAL_SECONDS",
    "Watcher",
    "WatcherState",
    "Cancel",
    "ControlMessage",
    "Inbox",
    "Reconfigure",
    "WatcherReport",
    "WatcherSupervisor",
]
