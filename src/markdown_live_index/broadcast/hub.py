"""
Broadcast hub for room-based update notifications.

Viewers subscribe to exactly one room at a time: the page they are reading,
a tag listing, or the listing of all pages. When content settles, the hub
tells only the rooms whose view is stale.
"""

import logging
from collections.abc import Hashable, Iterable
from typing import Any

from markdown_live_index.core.interfaces import IBroadcaster, IBroadcastTransport
from markdown_live_index.models.content import ContentRecord
from markdown_live_index.models.exceptions import TransportError

logger = logging.getLogger(__name__)

PAGE_UPDATED = "page_updated"
PAGE_REMOVED = "page_removed"
GRAB_ROOM = "grab_room"

DEFAULT_ALL_PAGES_ROOM = "all-pages"
DEFAULT_PAGE_ROOM_PREFIX = "page:"
DEFAULT_TAG_ROOM_PREFIX = "tag:"
TAG_VIEW_PREFIX = "/tag/"


class BroadcastHub(IBroadcaster):
    """
    Maintains room membership and fans out content events.

    Membership is keyed by the transport's opaque connection handles and is
    dropped when the connection disconnects.
    """

    def __init__(self, transport: IBroadcastTransport, config=None):
        """
        Initialize the hub.

        Args:
            transport: Socket transport providing join/leave/emit primitives
            config: Optional configuration with room naming settings
        """
        self.transport = transport
        self.all_pages_room = getattr(config, "all_pages_room", DEFAULT_ALL_PAGES_ROOM)
        self.page_room_prefix = getattr(config, "page_room_prefix", DEFAULT_PAGE_ROOM_PREFIX)
        self.tag_room_prefix = getattr(config, "tag_room_prefix", DEFAULT_TAG_ROOM_PREFIX)

        self._connections: set[Hashable] = set()
        self._membership: dict[Hashable, str] = {}
        self._rooms: dict[str, set[Hashable]] = {}

        self._stats = {"events_emitted": 0, "emit_failures": 0}

    def page_room(self, uri: str) -> str:
        return f"{self.page_room_prefix}{uri}"

    def tag_room(self, tag: str) -> str:
        return f"{self.tag_room_prefix}{tag}"

    def room_for_view(self, view: str) -> str:
        """
        Map the path a viewer is looking at to its room.

        ``/`` is the page listing, ``/tag/<tag>`` a tag listing and anything
        else a single page.
        """
        view = "/" + view.strip().lstrip("/")
        if view.startswith(TAG_VIEW_PREFIX):
            tag = view[len(TAG_VIEW_PREFIX):].strip("/")
            # A tag view without a tag shows the full listing
            return self.tag_room(tag) if tag else self.all_pages_room

        view = view.rstrip("/")
        if not view:
            return self.all_pages_room
        return self.page_room(view)

    async def connect(self, connection: Hashable) -> None:
        """Register a new connection and ask it which room it is viewing."""
        self._connections.add(connection)
        logger.debug("Connection %s connected", connection)
        await self.transport.send(connection, GRAB_ROOM)

    async def subscribe(self, connection: Hashable, view: str) -> str:
        """Join the room for a viewer's current path and return the room name."""
        room = self.room_for_view(view)
        await self.join(connection, room)
        return room

    async def join(self, connection: Hashable, room: str) -> None:
        """
        Join a room, leaving any previously joined room first.

        Membership is recorded only once the transport has applied each
        step, so a transport failure never leaves a room on record that the
        connection is not in.

        Args:
            connection: Transport connection handle
            room: Room name
        """
        previous = self._membership.get(connection)
        if previous == room:
            return

        self._connections.add(connection)
        if previous is not None:
            await self.transport.leave(connection, previous)
            self._membership.pop(connection, None)
            self._forget(connection, previous)

        await self.transport.join(connection, room)
        self._membership[connection] = room
        self._rooms.setdefault(room, set()).add(connection)

        logger.debug("Connection %s moved from %s to %s", connection, previous, room)

    async def leave(self, connection: Hashable) -> None:
        """Leave the currently joined room, if any."""
        room = self._membership.get(connection)
        if room is None:
            return
        await self.transport.leave(connection, room)
        self._membership.pop(connection, None)
        self._forget(connection, room)

    async def disconnect(self, connection: Hashable) -> None:
        """Tear down all state for a closed connection."""
        room = self._membership.pop(connection, None)
        if room is not None:
            self._forget(connection, room)
        self._connections.discard(connection)
        logger.debug("Connection %s disconnected", connection)

    def room_of(self, connection: Hashable) -> str | None:
        return self._membership.get(connection)

    def members(self, room: str) -> set[Hashable]:
        return set(self._rooms.get(room, set()))

    async def announce_updates(self, records: Iterable[ContentRecord]) -> list[str]:
        """
        Notify every room affected by a settled batch of updates.

        Each distinct room receives a single ``page_updated``: the page room
        of every record, the all-pages room and the room of every tag the
        records carry.

        Returns:
            Rooms that were notified, in emit order
        """
        records = list(records)
        if not records:
            return []

        uris = sorted({record.uri for record in records})
        tag_uris: dict[str, set[str]] = {}
        for record in records:
            for tag in record.tags:
                tag_uris.setdefault(tag, set()).add(record.uri)

        notified = []
        for uri in uris:
            room = self.page_room(uri)
            await self._emit(room, PAGE_UPDATED, {"uri": uri})
            notified.append(room)

        await self._emit(self.all_pages_room, PAGE_UPDATED, {"uris": uris})
        notified.append(self.all_pages_room)

        for tag in sorted(tag_uris):
            room = self.tag_room(tag)
            await self._emit(room, PAGE_UPDATED, {"uris": sorted(tag_uris[tag])})
            notified.append(room)

        return notified

    async def announce_removal(self, record: ContentRecord) -> list[str]:
        """
        Notify viewers that a document was removed.

        The record must be captured before it is deleted from the store.

        Returns:
            Rooms that were notified, in emit order
        """
        uri = record.uri
        notified = [self.page_room(uri), self.all_pages_room]

        await self._emit(self.page_room(uri), PAGE_REMOVED, {"uri": uri})
        await self._emit(self.all_pages_room, PAGE_UPDATED, {"uris": [uri]})

        for tag in sorted(set(record.tags)):
            room = self.tag_room(tag)
            await self._emit(room, PAGE_UPDATED, {"uris": [uri]})
            notified.append(room)

        return notified

    def get_room_stats(self) -> dict[str, Any]:
        return {
            "connections": len(self._connections),
            "rooms": {room: len(members) for room, members in sorted(self._rooms.items())},
            **self._stats,
        }

    async def _emit(self, room: str, event: str, payload: dict[str, Any] | None = None) -> None:
        """Emit to a room; delivery failures are logged and never raised."""
        try:
            await self.transport.emit(room, event, payload)
            self._stats["events_emitted"] += 1
            logger.debug("Emitted %s to %s", event, room)
        except TransportError as e:
            self._stats["emit_failures"] += 1
            logger.error("Failed to emit %s to %s: %s", event, room, e)

    def _forget(self, connection: Hashable, room: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(connection)
        if not members:
            del self._rooms[room]
