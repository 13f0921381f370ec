"""
Broadcast package for push notifications.

Room membership and fan-out of page events to connected viewers.
"""

from .hub import GRAB_ROOM, PAGE_REMOVED, PAGE_UPDATED, BroadcastHub
from .memory_transport import DeliveredEvent, InMemoryTransport

__all__ = [
    "BroadcastHub",
    "DeliveredEvent",
    "GRAB_ROOM",
    "InMemoryTransport",
    "PAGE_REMOVED",
    "PAGE_UPDATED",
]
