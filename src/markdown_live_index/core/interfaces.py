"""
Abstract interfaces for the markdown live index.

These interfaces define the contracts between pipeline components, enabling
dependency injection for testing and alternative implementations of the
external collaborators (remote repository, broadcast transport).
"""

from abc import ABC, abstractmethod
from collections.abc import Hashable, Iterable
from pathlib import Path
from typing import Any

from markdown_live_index.models import ContentRecord


class IContentReader(ABC):
    """Interface for loading a single file into a content record."""

    @abstractmethod
    async def read(self, file_path: Path) -> ContentRecord:
        """
        Load and parse a file.

        Args:
            file_path: Path to the file to read

        Returns:
            ContentRecord with parsed content and metadata

        Raises:
            ReadError: If the file is missing, unreadable or unparsable
        """
        pass

    @abstractmethod
    def uri_for_path(self, file_path: Path) -> str:
        """
        Derive the stable URI for a file path.

        Works for files that no longer exist on disk.

        Raises:
            ReadError: If the path lies outside the document tree
        """
        pass

    @abstractmethod
    def resolve_path(self, file_path: Path) -> Path:
        """
        Get the absolute path a file is read from and recorded under.

        Works for files that no longer exist on disk.
        """
        pass

    @abstractmethod
    def supports_file_type(self, file_path: Path) -> bool:
        """Check if this reader can handle the given file type."""
        pass


class IContentStore(ABC):
    """Interface for the uri -> content record mapping."""

    @abstractmethod
    def update_file(self, record: ContentRecord) -> None:
        """Insert or replace the record for ``record.uri``."""
        pass

    @abstractmethod
    def get_file(self, uri: str) -> ContentRecord:
        """
        Get the record for a URI.

        Raises:
            NotFoundError: If no record exists for the URI
        """
        pass

    @abstractmethod
    def remove_file(self, uri: str) -> ContentRecord | None:
        """
        Remove the record for a URI.

        Idempotent: removing an absent URI returns None.

        Returns:
            The removed record, or None if nothing was stored
        """
        pass

    @abstractmethod
    def has_file(self, uri: str) -> bool:
        pass

    @abstractmethod
    def list_files(self) -> list[ContentRecord]:
        pass

    @abstractmethod
    def is_current(self, record: ContentRecord) -> bool:
        """Check that the record is the one currently stored under its URI."""
        pass


class IContentAnalyzer(ABC):
    """Interface for deriving the link/tag graph over the store."""

    @abstractmethod
    def link_content(self, record: ContentRecord) -> None:
        """
        Re-derive links and tag memberships for a record.

        Replaces the node's outgoing edges wholesale.
        """
        pass

    @abstractmethod
    def unlink_content(self, uri: str) -> set[str]:
        """
        Remove a node with all its edges and tag memberships.

        Returns:
            The tags the node held before removal
        """
        pass

    @abstractmethod
    def get_links(self, uri: str) -> set[str]:
        pass

    @abstractmethod
    def get_backlinks(self, uri: str) -> set[str]:
        pass

    @abstractmethod
    def get_tag_members(self, tag: str) -> set[str]:
        pass


class IBroadcastTransport(ABC):
    """
    Interface for the socket transport that carries push notifications.

    Connections are opaque hashable handles owned by the transport.
    """

    @abstractmethod
    async def join(self, connection: Hashable, room: str) -> None:
        pass

    @abstractmethod
    async def leave(self, connection: Hashable, room: str) -> None:
        pass

    @abstractmethod
    async def emit(self, room: str, event: str, payload: dict[str, Any] | None = None) -> None:
        """
        Fan an event out to every connection in a room.

        Raises:
            TransportError: If the event cannot be delivered
        """
        pass

    @abstractmethod
    async def send(self, connection: Hashable, event: str, payload: dict[str, Any] | None = None) -> None:
        """Send an event to a single connection."""
        pass


class IRemoteRepository(ABC):
    """Interface for the remote repository mirrored into the docs directory."""

    @abstractmethod
    def clone(self) -> None:
        """
        Clone the remote into the working tree (or reuse an existing checkout).

        Raises:
            TransportError: If the clone fails
        """
        pass

    @abstractmethod
    def sync(self) -> None:
        """
        Pull the latest changes into the working tree.

        Raises:
            TransportError: If the pull fails
        """
        pass


class IBroadcaster(ABC):
    """Interface for announcing content changes to subscribed viewers."""

    @abstractmethod
    async def announce_updates(self, records: Iterable[ContentRecord]) -> list[str]:
        pass

    @abstractmethod
    async def announce_removal(self, record: ContentRecord) -> list[str]:
        pass
