"""
In-process broadcast transport.

Keeps room membership and delivered events in memory. Used by the CLI to
print notifications and by tests to observe what each connection receives.
"""

import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any

from markdown_live_index.core.interfaces import IBroadcastTransport

logger = logging.getLogger(__name__)


@dataclass
class DeliveredEvent:
    """An event as seen by the transport."""

    event: str
    room: str | None = None
    connection: Hashable | None = None
    payload: dict[str, Any] | None = None


@dataclass
class InMemoryTransport(IBroadcastTransport):
    """Transport that fans events out to in-memory inboxes."""

    on_event: Callable[[DeliveredEvent], None] | None = None
    emitted: list[DeliveredEvent] = field(default_factory=list)
    inboxes: dict[Hashable, list[DeliveredEvent]] = field(default_factory=dict)
    rooms: dict[str, set[Hashable]] = field(default_factory=dict)

    async def join(self, connection: Hashable, room: str) -> None:
        self.rooms.setdefault(room, set()).add(connection)
        self.inboxes.setdefault(connection, [])

    async def leave(self, connection: Hashable, room: str) -> None:
        members = self.rooms.get(room)
        if members is not None:
            members.discard(connection)
            if not members:
                del self.rooms[room]

    async def emit(self, room: str, event: str, payload: dict[str, Any] | None = None) -> None:
        delivered = DeliveredEvent(event=event, room=room, payload=payload)
        self.emitted.append(delivered)
        for connection in self.rooms.get(room, set()):
            self.inboxes.setdefault(connection, []).append(delivered)
        if self.on_event:
            self.on_event(delivered)

    async def send(self, connection: Hashable, event: str, payload: dict[str, Any] | None = None) -> None:
        delivered = DeliveredEvent(event=event, connection=connection, payload=payload)
        self.inboxes.setdefault(connection, []).append(delivered)
        if self.on_event:
            self.on_event(delivered)

    def events_for_room(self, room: str, event: str | None = None) -> list[DeliveredEvent]:
        """Get events emitted to a room, optionally filtered by event name."""
        return [e for e in self.emitted if e.room == room and (event is None or e.event == event)]

    def clear(self) -> None:
        self.emitted.clear()
        for inbox in self.inboxes.values():
            inbox.clear()
