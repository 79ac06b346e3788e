"""Dashboard module for the REST API and event streaming."""

from arbsim.dashboard.broadcaster import EventBroadcaster, event_to_message
from arbsim.dashboard.server import create_app, main


__all__ = [
    "EventBroadcaster",
    "create_app",
    "event_to_message",
    "main",
]
