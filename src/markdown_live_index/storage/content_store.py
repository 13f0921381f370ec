"""
In-memory content store.

Holds the current ContentRecord for every URI in the document tree. The index
is rebuilt from the file tree at startup, so nothing here is persisted.
"""

import logging
import threading
from pathlib import Path
from typing import Any

from markdown_live_index.core.interfaces import IContentStore
from markdown_live_index.models.content import ContentRecord
from markdown_live_index.models.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class InMemoryContentStore(IContentStore):
    """
    Thread-safe uri -> ContentRecord mapping.

    Records are immutable, so swapping the reference under the lock is enough
    for readers to never observe a half-updated record. Queries may arrive
    from other threads while the event loop writes.
    """

    def __init__(self):
        self._records: dict[str, ContentRecord] = {}
        self._lock = threading.RLock()
        self._stats = {"updates": 0, "removals": 0}

    def update_file(self, record: ContentRecord) -> None:
        """
        Insert or replace the record for its URI. Last write wins.

        Args:
            record: Record to store
        """
        with self._lock:
            previous = self._records.get(record.uri)
            self._records[record.uri] = record
            self._stats["updates"] += 1

        if previous is None:
            logger.debug("Stored new record %s", record.uri)
        else:
            logger.debug("Replaced record %s", record.uri)

    def get_file(self, uri: str) -> ContentRecord:
        """
        Get the record for a URI.

        Raises:
            NotFoundError: If no record is stored for the URI
        """
        with self._lock:
            record = self._records.get(uri)

        if record is None:
            raise NotFoundError(f"No content stored for {uri}", uri=uri)
        return record

    def remove_file(self, uri: str) -> ContentRecord | None:
        """
        Remove the record for a URI.

        Removing an absent URI is a no-op since removal can race with a
        failed read.

        Returns:
            The removed record, or None if nothing was stored
        """
        with self._lock:
            record = self._records.pop(uri, None)
            if record is not None:
                self._stats["removals"] += 1

        if record is None:
            logger.debug("Remove requested for unknown uri %s", uri)
        else:
            logger.debug("Removed record %s", uri)
        return record

    def has_file(self, uri: str) -> bool:
        with self._lock:
            return uri in self._records

    def is_current(self, record: ContentRecord) -> bool:
        """Check that the record is the one currently stored under its URI."""
        with self._lock:
            return self._records.get(record.uri) is record

    def list_files(self) -> list[ContentRecord]:
        """Get all records sorted by URI."""
        with self._lock:
            records = list(self._records.values())
        return sorted(records, key=lambda r: r.uri)

    def list_uris(self) -> list[str]:
        with self._lock:
            return sorted(self._records)

    def find_by_path(self, file_path: str | Path) -> ContentRecord | None:
        """Find the record read from a given file path."""
        path_str = str(file_path)
        with self._lock:
            for record in self._records.values():
                if record.file_path == path_str:
                    return record
        return None

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return {"record_count": len(self._records), **self._stats}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, uri: object) -> bool:
        with self._lock:
            return uri in self._records
