"""
File system watcher for the mirrored document tree.

Normalizes watchdog notifications into two event kinds, ``updated`` (create or
modify) and ``removed``, and debounces rapid repeated notifications for the
same path so a single logical change reaches the pipeline once.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from markdown_live_index.models import MonitoringError

logger = logging.getLogger(__name__)

UPDATED = "updated"
REMOVED = "removed"


class FileChangeEvent:
    """Represents a normalized file system change event."""

    def __init__(self, event_type: str, file_path: Path, is_directory: bool = False):
        self.event_type = event_type  # 'updated' or 'removed'
        self.file_path = file_path
        self.is_directory = is_directory
        self.timestamp = time.time()

    def __str__(self) -> str:
        return f"FileChangeEvent({self.event_type}: {self.file_path})"


class MarkdownFileWatcher(FileSystemEventHandler):
    """
    File system watcher specifically for markdown files.

    Watchdog delivers notifications on its observer thread; they are handed to
    the asyncio loop captured in ``start_watching`` and all debounce state is
    only touched from that loop. For any one path the latest event within the
    debounce window wins, which keeps per-path delivery in change order.
    """

    def __init__(
        self,
        config,
        on_file_updated: Callable[[Path], Awaitable[None] | None] | None = None,
        on_file_removed: Callable[[Path], Awaitable[None] | None] | None = None,
        debounce_seconds: float = 0.5,
    ):
        """
        Initialize the file watcher.

        Args:
            config: Live index configuration with file support settings
            on_file_updated: Callback for created or modified files
            on_file_removed: Callback for deleted files
            debounce_seconds: Quiet period before an event is dispatched
        """
        super().__init__()
        self.config = config
        self.on_file_updated = on_file_updated
        self.on_file_removed = on_file_removed
        self.debounce_seconds = debounce_seconds

        # Event tracking for debouncing
        self._pending_events: dict[str, FileChangeEvent] = {}
        self._debounce_tasks: dict[str, asyncio.Task] = {}
        # Every debounce task until it finishes, including while it dispatches
        self._running_tasks: set[asyncio.Task] = set()

        self._observer: Observer | None = None
        self._watched_paths: set[str] = set()

        # Loop that owns the debounce state
        self._loop: asyncio.AbstractEventLoop | None = None

    def start_watching(self, directory_path: Path, recursive: bool = True) -> None:
        """
        Start watching a directory for file changes.

        Args:
            directory_path: Path to directory to monitor
            recursive: Whether to monitor subdirectories

        Raises:
            MonitoringError: If monitoring cannot be started
        """
        if not directory_path.exists():
            raise MonitoringError(
                f"Directory does not exist: {directory_path}", path=str(directory_path), operation="start_watching"
            )

        if not directory_path.is_dir():
            raise MonitoringError(
                f"Path is not a directory: {directory_path}", path=str(directory_path), operation="start_watching"
            )

        try:
            try:
                self._loop = asyncio.get_running_loop()
                logger.debug("Captured event loop for cross-thread event delivery")
            except RuntimeError:
                logger.warning("No running event loop found - file events will not be processed")

            if self._observer is None:
                self._observer = Observer()

            directory_str = str(directory_path.resolve())
            if directory_str not in self._watched_paths:
                self._observer.schedule(self, directory_str, recursive=recursive)
                self._watched_paths.add(directory_str)
                logger.info("Started monitoring %s (recursive: %s)", directory_path, recursive)

            if not self._observer.is_alive():
                self._observer.start()
                logger.info("File monitoring observer started")

        except Exception as e:
            logger.error("Failed to start file monitoring: %s", e)
            raise MonitoringError(
                f"Failed to start monitoring: {e}",
                path=str(directory_path),
                operation="start_watching",
                underlying_error=e,
            ) from e

    def stop_watching(self) -> None:
        """Stop all file monitoring and drop undelivered events."""
        try:
            if self._observer and self._observer.is_alive():
                self._observer.stop()
                self._observer.join(timeout=5.0)
                logger.info("File monitoring stopped")
            self._observer = None

            for task in self._debounce_tasks.values():
                if not task.done():
                    task.cancel()

            self._debounce_tasks.clear()
            self._pending_events.clear()
            self._watched_paths.clear()

        except Exception as e:
            logger.error("Error stopping file monitoring: %s", e)
            raise MonitoringError("Failed to stop monitoring", operation="stop_watching", underlying_error=e) from e

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_file_event(UPDATED, Path(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_file_event(UPDATED, Path(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle_file_event(REMOVED, Path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        """Treat moves as removal of the source plus update of the destination."""
        if hasattr(event, 'dest_path') and not event.is_directory:
            self._handle_file_event(REMOVED, Path(event.src_path))
            self._handle_file_event(UPDATED, Path(event.dest_path))

    def _handle_file_event(self, event_type: str, file_path: Path) -> None:
        """
        Filter an event and hand it to the event loop. Runs on the observer thread.

        Args:
            event_type: 'updated' or 'removed'
            file_path: Path to the affected file
        """
        try:
            if not self._should_process_file(file_path):
                return

            logger.debug("File event: %s %s", event_type, file_path)
            change_event = FileChangeEvent(event_type, file_path)

            if self._loop and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self._queue_event, change_event)
            else:
                logger.error("No event loop available for %s event on %s", event_type, file_path)

        except Exception as e:
            logger.error("Error handling file event %s for %s: %s", event_type, file_path, e)

    def _queue_event(self, change_event: FileChangeEvent) -> None:
        """
        Record an event and restart the debounce timer for its path.

        Runs on the event loop thread.
        """
        file_key = str(change_event.file_path)

        existing_task = self._debounce_tasks.pop(file_key, None)
        if existing_task is not None and not existing_task.done():
            existing_task.cancel()

        previous = self._pending_events.get(file_key)
        if previous is not None and previous.event_type != change_event.event_type:
            logger.debug("Replacing pending %s with %s for %s", previous.event_type, change_event.event_type, file_key)
        self._pending_events[file_key] = change_event

        task = asyncio.ensure_future(self._process_debounced_event(file_key))
        self._debounce_tasks[file_key] = task
        self._running_tasks.add(task)
        task.add_done_callback(self._running_tasks.discard)

    async def _process_debounced_event(self, file_key: str) -> None:
        """
        Dispatch a path's pending event once the debounce period passes quietly.

        Args:
            file_key: File path key for the pending event
        """
        try:
            await asyncio.sleep(self.debounce_seconds)
        except asyncio.CancelledError:
            # Superseded by a newer event for the same path
            logger.debug("Debounced event cancelled for %s", file_key)
            raise

        event = self._pending_events.pop(file_key, None)
        if self._debounce_tasks.get(file_key) is asyncio.current_task():
            del self._debounce_tasks[file_key]

        if event is None:
            logger.debug("No pending event found for %s", file_key)
            return

        await self._dispatch_event(event)

    async def _dispatch_event(self, event: FileChangeEvent) -> None:
        """
        Dispatch an event to the matching callback.

        Callback failures are logged and never stop the watcher.
        """
        try:
            callback = None

            if event.event_type == UPDATED:
                callback = self.on_file_updated
            elif event.event_type == REMOVED:
                callback = self.on_file_removed

            if callback:
                logger.debug("Dispatching %s event for %s", event.event_type, event.file_path)
                result = callback(event.file_path)
                if asyncio.iscoroutine(result) or hasattr(result, '__await__'):
                    await result

        except Exception as e:
            logger.error("Error dispatching %s event for %s: %s", event.event_type, event.file_path, e)

    def _should_process_file(self, file_path: Path) -> bool:
        """Check if a file should be processed based on configuration."""
        try:
            if not self.config.is_file_supported(file_path):
                return False

            if self.config.should_ignore_file(file_path):
                return False

            return True

        except Exception as e:
            logger.debug("Error checking if file should be processed %s: %s", file_path, e)
            return False

    @property
    def is_watching(self) -> bool:
        """Check if currently watching for file changes."""
        return self._observer is not None and self._observer.is_alive()

    def get_watched_paths(self) -> list[str]:
        return list(self._watched_paths)

    def get_pending_events_count(self) -> int:
        return len(self._pending_events)
