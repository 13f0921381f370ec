"""
Settlement coordinator for live index updates.

Coordinates between file watching, reading, storage, link analysis and
broadcasting. A burst of file events (a git pull touching many files) triggers
many concurrent reads; analysis and notification wait until every in-flight
read has drained so subscribers are told once, against a complete graph.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from markdown_live_index.core.interfaces import IBroadcaster, IContentAnalyzer, IContentReader, IContentStore
from markdown_live_index.models.content import ContentRecord
from markdown_live_index.models.exceptions import MonitoringError, NotFoundError, ReadError
from markdown_live_index.monitoring.file_watcher import MarkdownFileWatcher

logger = logging.getLogger(__name__)


class SettlementCoordinator:
    """
    Drives the update pipeline from file events to room notifications.

    The in-flight counter and the pending batch are only touched from the
    event loop thread with no suspension point between a decrement, the zero
    check and taking the batch, so a settlement can neither be missed nor fire
    twice. Waiters are woken through a condition on every drain.
    """

    def __init__(
        self,
        config,
        reader: IContentReader,
        store: IContentStore,
        analyzer: IContentAnalyzer,
        broadcaster: IBroadcaster,
        file_watcher: MarkdownFileWatcher | None = None,
    ):
        """
        Initialize the settlement coordinator.

        Args:
            config: Live index configuration
            reader: Reader turning files into content records
            store: Content store
            analyzer: Link analyzer over the store
            broadcaster: Hub announcing changes to rooms
            file_watcher: Optional file watcher (will create if not provided)
        """
        self.config = config
        self.reader = reader
        self.store = store
        self.analyzer = analyzer
        self.broadcaster = broadcaster

        self.file_watcher = file_watcher or MarkdownFileWatcher(
            config=config,
            on_file_updated=self.handle_updated,
            on_file_removed=self.handle_removed,
            debounce_seconds=config.monitoring_debounce_seconds,
        )

        # Settlement state
        self._in_flight = 0
        self._settling = 0
        self._pending_batch: dict[str, ContentRecord] = {}
        self._drained = asyncio.Condition()

        # Latest event sequence per path, used to discard superseded reads
        self._event_sequence = 0
        self._generations: dict[str, int] = {}

        # Monitoring state
        self._monitoring_active = False
        self._monitored_directories: list[Path] = []

        self._stats = {
            "files_processed": 0,
            "settlements": 0,
            "stale_reads": 0,
            "duplicates": 0,
            "operations": {"updated": 0, "removed": 0, "failed": 0},
            "errors": [],
        }

    async def start_monitoring(
        self,
        directory_path: Path,
        recursive: bool = True,
        initial_scan: bool = True,
    ) -> None:
        """
        Start monitoring a directory for changes.

        Args:
            directory_path: Directory to monitor
            recursive: Whether to monitor subdirectories
            initial_scan: Whether to ingest the existing files first

        Raises:
            MonitoringError: If monitoring cannot be started
        """
        try:
            if not self.config.monitoring_enabled:
                raise MonitoringError(
                    "File monitoring is disabled in configuration",
                    path=str(directory_path),
                    operation="start_monitoring",
                )

            logger.info(
                "Starting monitoring for directory: %s (recursive: %s, initial_scan: %s)",
                directory_path,
                recursive,
                initial_scan,
            )

            # The observer is scheduled before the tree is listed; events that
            # fire while the scan runs join its settlement window
            async with self.hold_settlement():
                self.file_watcher.start_watching(directory_path, recursive)

                if initial_scan:
                    scan_result = await self.ingest_directory(directory_path, recursive)
                    logger.info("Initial scan complete: %d files found", scan_result["files_found"])

            if directory_path not in self._monitored_directories:
                self._monitored_directories.append(directory_path)

            self._monitoring_active = True
            logger.info("Monitoring started successfully for: %s", directory_path)

        except Exception as e:
            logger.error("Failed to start monitoring for %s: %s", directory_path, e)
            if not self._monitoring_active and self.file_watcher.is_watching:
                self.file_watcher.stop_watching()
            raise MonitoringError(
                f"Failed to start monitoring: {e}",
                path=str(directory_path),
                operation="start_monitoring",
                underlying_error=e,
            ) from e

    def stop_monitoring(self) -> None:
        """Stop all file monitoring."""
        try:
            if not self._monitoring_active:
                logger.debug("Monitoring not active, nothing to stop")
                return

            logger.info("Stopping file monitoring...")
            self.file_watcher.stop_watching()

            self._monitoring_active = False
            self._monitored_directories.clear()

            logger.info("File monitoring stopped successfully")

        except Exception as e:
            logger.error("Error stopping monitoring: %s", e)
            raise MonitoringError("Failed to stop monitoring", operation="stop_monitoring", underlying_error=e) from e

    async def ingest_directory(self, directory_path: Path, recursive: bool = True) -> dict[str, Any]:
        """
        Read every supported file under a directory as one settlement window.

        Args:
            directory_path: Directory to ingest
            recursive: Whether to include subdirectories

        Returns:
            Dictionary with ingest results
        """
        files = await asyncio.to_thread(self._collect_files, directory_path, recursive)
        logger.info("Ingesting %d files from %s", len(files), directory_path)

        async with self.hold_settlement():
            await asyncio.gather(*(self.handle_updated(file_path) for file_path in files))

        return {
            "status": "success",
            "directory": str(directory_path),
            "files_found": len(files),
            "records_stored": len(self.store.list_files()),
        }

    async def handle_updated(self, file_path: Path) -> None:
        """
        Handle a created or modified file.

        The read joins the current settlement window; the batch is analyzed
        and announced once the last in-flight read of the window finishes.

        Args:
            file_path: Path to the updated file
        """
        file_key = self._event_key(file_path)
        generation = self._next_generation(file_key)

        self._in_flight += 1
        try:
            record = await self.reader.read(file_path)

            if self._generations.get(file_key) != generation:
                self._stats["stale_reads"] += 1
                logger.debug("Discarding superseded read of %s", file_path)
            elif not self._claims_uri(record):
                self._stats["duplicates"] += 1
                logger.warning(
                    "Skipping %s: %s is already provided by %s",
                    file_path,
                    record.uri,
                    self.store.get_file(record.uri).file_path,
                )
            else:
                self.store.update_file(record)
                self._pending_batch[record.uri] = record
                self._update_stats("updated", {"status": "success"})
                logger.info("Stored %s from %s", record.uri, file_path)

        except ReadError as e:
            self._update_stats("updated", {"status": "failed", "error": str(e), "file_path": str(file_path)})
            logger.warning("Skipping unreadable file %s: %s", file_path, e)
        except Exception as e:
            self._update_stats("updated", {"status": "failed", "error": str(e), "file_path": str(file_path)})
            logger.error("Error handling update for %s: %s", file_path, e)
        finally:
            batch = self._release()
            await self._complete(batch)

    async def handle_removed(self, file_path: Path) -> None:
        """
        Handle a deleted file.

        Removal does not wait for settlement: the record is captured, unlinked,
        removed from the store and announced immediately. Removing a file that
        does not provide its URI is a no-op; when the providing file goes away,
        a remaining file with the same URI is read in its place.

        Args:
            file_path: Path to the deleted file
        """
        file_key = self._event_key(file_path)
        # Any read still in flight for this path is now stale
        self._generations.pop(file_key, None)

        try:
            uri = self.reader.uri_for_path(file_path)
            pending = self._pending_batch.get(uri)
            if pending is not None and pending.file_path == file_key:
                del self._pending_batch[uri]

            try:
                record = self.store.get_file(uri)
            except NotFoundError:
                logger.debug("Ignoring removal of %s: %s was never stored", file_path, uri)
                return

            if record.file_path != file_key:
                logger.debug("Ignoring removal of %s: %s is provided by %s", file_path, uri, record.file_path)
                return

            self.analyzer.unlink_content(uri)
            self.store.remove_file(uri)
            self._update_stats("removed", {"status": "success"})
            logger.info("Removed %s", uri)

            await self.broadcaster.announce_removal(record)

        except Exception as e:
            self._update_stats("removed", {"status": "failed", "error": str(e), "file_path": str(file_path)})
            logger.error("Error handling removal of %s: %s", file_path, e)
            return

        sibling = self._find_sibling(Path(file_key))
        if sibling is not None:
            logger.info("Re-reading %s, which now provides %s", sibling, uri)
            await self.handle_updated(sibling)

    @asynccontextmanager
    async def hold_settlement(self):
        """Keep the current settlement window open for the duration of the block."""
        self._in_flight += 1
        try:
            yield
        finally:
            batch = self._release()
            await self._complete(batch)

    async def wait_until_settled(self, timeout: float | None = None) -> None:
        """
        Wait until no reads are in flight and no settlement is being announced.

        Raises:
            TimeoutError: If the pipeline does not settle within the timeout
        """
        async with self._drained:
            await asyncio.wait_for(self._drained.wait_for(self._is_idle), timeout)

    def _event_key(self, file_path: Path) -> str:
        """Key per-file state by resolved path so relative and absolute paths agree."""
        return str(self.reader.resolve_path(file_path))

    def _claims_uri(self, record: ContentRecord) -> bool:
        """
        Check whether a freshly read record may take its URI in the store.

        Files that differ only by markdown suffix share a URI. The file with
        the earlier suffix in ``supported_file_extensions`` provides the page;
        the other is skipped while the provider is still on disk.
        """
        try:
            existing = self.store.get_file(record.uri)
        except NotFoundError:
            return True

        if existing.file_path == record.file_path or not Path(existing.file_path).exists():
            return True
        return self._suffix_rank(record.file_path) < self._suffix_rank(existing.file_path)

    def _suffix_rank(self, file_path: str) -> int:
        extensions = self.config.supported_file_extensions
        suffix = Path(file_path).suffix.lower()
        return extensions.index(suffix) if suffix in extensions else len(extensions)

    def _find_sibling(self, file_path: Path) -> Path | None:
        """Find another supported file that maps to the same URI as a removed one."""
        for extension in self.config.supported_file_extensions:
            candidate = file_path.with_suffix(extension)
            if candidate != file_path and candidate.is_file():
                return candidate
        return None

    def _next_generation(self, file_key: str) -> int:
        self._event_sequence += 1
        self._generations[file_key] = self._event_sequence
        return self._event_sequence

    def _release(self) -> dict[str, ContentRecord] | None:
        """
        Leave the settlement window; take the pending batch if this drained it.

        Must not suspend: the decrement, the zero check and taking the batch
        form one step on the event loop.
        """
        self._in_flight -= 1
        if self._in_flight:
            return None

        batch = self._pending_batch
        self._pending_batch = {}
        self._settling += 1
        return batch

    async def _complete(self, batch: dict[str, ContentRecord] | None) -> None:
        if batch is None:
            return
        try:
            if batch:
                await self._settle(list(batch.values()))
        finally:
            self._settling -= 1
            async with self._drained:
                self._drained.notify_all()

    async def _settle(self, records: list[ContentRecord]) -> None:
        """Re-link every record of a drained batch and announce it once."""
        try:
            current = [record for record in records if self.store.is_current(record)]
            if not current:
                return

            for record in current:
                self.analyzer.link_content(record)

            self._stats["settlements"] += 1
            logger.info("Settled %d updated documents", len(current))

            await self.broadcaster.announce_updates(current)

        except Exception as e:
            logger.error("Settlement of %d documents failed: %s", len(records), e)

    def _is_idle(self) -> bool:
        return self._in_flight == 0 and self._settling == 0

    def _collect_files(self, directory_path: Path, recursive: bool) -> list[Path]:
        pattern = "**/*" if recursive else "*"
        return [
            path
            for path in sorted(directory_path.glob(pattern))
            if path.is_file() and self.config.is_file_supported(path) and not self.config.should_ignore_file(path)
        ]

    def _update_stats(self, operation: str, result: dict[str, Any]) -> None:
        """
        Update monitoring statistics.

        Args:
            operation: Type of operation performed
            result: Result of the operation
        """
        if result["status"] == "success":
            self._stats["files_processed"] += 1
            self._stats["operations"][operation] += 1
        else:
            self._stats["operations"]["failed"] += 1
            error_msg = f"{result.get('file_path', 'unknown')} ({operation}): {result.get('error', 'Unknown error')}"
            self._stats["errors"].append(error_msg)

            # Keep only the last 100 errors
            if len(self._stats["errors"]) > 100:
                self._stats["errors"] = self._stats["errors"][-100:]

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def is_settled(self) -> bool:
        return self._is_idle()

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring_active

    def get_monitored_directories(self) -> list[str]:
        return [str(path) for path in self._monitored_directories]

    def get_monitoring_stats(self) -> dict[str, Any]:
        """
        Get monitoring statistics.

        Returns:
            Dictionary with monitoring statistics
        """
        return {
            "monitoring_active": self._monitoring_active,
            "monitored_directories": self.get_monitored_directories(),
            "file_watcher_status": {
                "is_watching": self.file_watcher.is_watching,
                "watched_paths": self.file_watcher.get_watched_paths(),
                "pending_events": self.file_watcher.get_pending_events_count(),
            },
            "settlement_status": {
                "in_flight": self._in_flight,
                "pending_batch": len(self._pending_batch),
                "settled": self._is_idle(),
            },
            "processing_stats": self._stats.copy(),
            "configuration": {
                "monitoring_enabled": self.config.monitoring_enabled,
                "debounce_seconds": self.config.monitoring_debounce_seconds,
            },
        }
