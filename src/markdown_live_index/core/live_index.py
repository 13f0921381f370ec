"""
Live index service wiring.

Builds the pipeline components from configuration, mirrors the remote
repository, rebuilds the index from the working tree and keeps it current
through the file watcher and a periodic pull.
"""

import asyncio
import contextlib
import logging
from typing import Any

from markdown_live_index.analysis import LinkAnalyzer
from markdown_live_index.broadcast import BroadcastHub, InMemoryTransport
from markdown_live_index.config import LiveIndexConfig, get_config
from markdown_live_index.core.interfaces import IBroadcastTransport, IRemoteRepository
from markdown_live_index.models import (
    ContentRecord,
    InitializationError,
    MonitoringError,
    ShutdownError,
    TransportError,
)
from markdown_live_index.monitoring import SettlementCoordinator
from markdown_live_index.parsers import MarkdownReader
from markdown_live_index.remote import GitRemoteRepository
from markdown_live_index.storage import InMemoryContentStore

logger = logging.getLogger(__name__)


class LiveIndex:
    """
    Owns one pipeline: reader, store, analyzer, hub, coordinator and remote.

    Components are created per instance and passed explicitly, so several
    indexes can live in one process.
    """

    def __init__(
        self,
        config: LiveIndexConfig | None = None,
        transport: IBroadcastTransport | None = None,
        remote: IRemoteRepository | None = None,
    ):
        """
        Initialize the live index.

        Args:
            config: Configuration (global configuration if None)
            transport: Broadcast transport (in-memory if None)
            remote: Remote repository (built from ``repo_url`` if None)
        """
        self.config = config or get_config()
        self.directory = self.config.resolve_docs_directory()

        self.transport = transport or InMemoryTransport()
        if remote is None and self.config.repo_url:
            remote = GitRemoteRepository(self.config.repo_url, self.directory, self.config.repo_branch)
        self.remote = remote

        self.store = InMemoryContentStore()
        self.reader = MarkdownReader(self.config, root=self.directory)
        self.analyzer = LinkAnalyzer(self.store, self.config.supported_file_extensions)
        self.hub = BroadcastHub(self.transport, self.config)
        self.coordinator = SettlementCoordinator(self.config, self.reader, self.store, self.analyzer, self.hub)

        self._sync_task: asyncio.Task | None = None
        self._started = False
        self._sync_stats = {"syncs": 0, "sync_failures": 0}

    async def start(self) -> None:
        """
        Clone the remote, build the index and start watching.

        Raises:
            InitializationError: If the initial clone or the first ingest fails
        """
        if self._started:
            return

        if self.remote is not None:
            try:
                await asyncio.to_thread(self.remote.clone)
            except TransportError as e:
                raise InitializationError(
                    f"Initial clone failed: {e}",
                    component="remote",
                    initialization_stage="clone",
                    underlying_error=e,
                ) from e

        if not self.directory.is_dir():
            raise InitializationError(
                f"Docs directory does not exist: {self.directory}",
                component="live_index",
                initialization_stage="directory_check",
            )

        try:
            if self.config.monitoring_enabled:
                await self.coordinator.start_monitoring(self.directory)
            else:
                await self.coordinator.ingest_directory(self.directory)
        except MonitoringError as e:
            raise InitializationError(
                f"Failed to build index: {e}",
                component="coordinator",
                initialization_stage="monitoring",
                underlying_error=e,
            ) from e

        if self.remote is not None:
            self._sync_task = asyncio.create_task(self._sync_loop())

        self._started = True
        logger.info("Live index started: %d documents from %s", len(self.store), self.directory)

    async def stop(self) -> None:
        """
        Stop syncing and watching, then let in-flight reads settle.

        Raises:
            ShutdownError: If the watcher cannot be stopped
        """
        if not self._started:
            return

        if self._sync_task is not None:
            self._sync_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sync_task
            self._sync_task = None

        try:
            self.coordinator.stop_monitoring()
        except MonitoringError as e:
            raise ShutdownError(
                f"Failed to stop monitoring: {e}",
                component="coordinator",
                shutdown_stage="stop_monitoring",
                underlying_error=e,
            ) from e

        await self.coordinator.wait_until_settled()
        self._started = False
        logger.info("Live index stopped")

    async def sync_once(self) -> bool:
        """
        Pull the remote once. Failures are logged and retried on the next interval.

        Returns:
            True if the pull succeeded
        """
        if self.remote is None:
            return False

        try:
            await asyncio.to_thread(self.remote.sync)
        except TransportError as e:
            self._sync_stats["sync_failures"] += 1
            logger.warning("Periodic sync failed, retrying in %ss: %s", self.config.sync_interval_seconds, e)
            return False

        self._sync_stats["syncs"] += 1
        return True

    async def _sync_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.sync_interval_seconds)
            await self.sync_once()

    def get_page(self, uri: str) -> dict[str, Any]:
        """
        Get a page with its derived relationships.

        Raises:
            NotFoundError: If no page is stored under the URI
        """
        record = self.store.get_file(uri)
        return {
            "record": record,
            "links": sorted(self.analyzer.get_links(uri)),
            "backlinks": sorted(self.analyzer.get_backlinks(uri)),
        }

    def list_pages(self, tag: str | None = None) -> list[ContentRecord]:
        """List stored pages, optionally only those carrying a tag."""
        records = self.store.list_files()
        if tag is None:
            return records
        members = self.analyzer.get_tag_members(tag)
        return [record for record in records if record.uri in members]

    def get_status(self) -> dict[str, Any]:
        return {
            "started": self._started,
            "directory": str(self.directory),
            "remote": getattr(self.remote, "url", None),
            "store": self.store.get_stats(),
            "graph": self.analyzer.get_graph_stats(),
            "rooms": self.hub.get_room_stats(),
            "sync": self._sync_stats.copy(),
            "monitoring": self.coordinator.get_monitoring_stats(),
        }

    async def __aenter__(self) -> "LiveIndex":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
