"""Unit tests for the live index service."""

from unittest.mock import Mock

import pytest
from markdown_live_index.broadcast import PAGE_UPDATED, InMemoryTransport
from markdown_live_index.config import LiveIndexConfig
from markdown_live_index.core import IRemoteRepository
from markdown_live_index.core.live_index import LiveIndex
from markdown_live_index.models import InitializationError, NotFoundError, TransportError
from markdown_live_index.remote import GitRemoteRepository


class TestLiveIndex:
    """Test cases for LiveIndex."""

    @pytest.fixture
    def docs(self, tmp_path):
        docs = tmp_path / "docs"
        docs.mkdir()
        (docs / "intro.md").write_text("---\ntags: [start]\n---\n# Intro\n\nNext: [guide](guide.md)", encoding="utf-8")
        (docs / "guide.md").write_text("---\ntags: [start, howto]\n---\n# Guide", encoding="utf-8")
        return docs

    @pytest.fixture
    def config(self, docs):
        return LiveIndexConfig(docs_directory=docs, monitoring_enabled=False, sync_interval_seconds=1)

    @pytest.fixture
    def mock_remote(self):
        return Mock(spec=IRemoteRepository)

    @pytest.mark.asyncio
    async def test_start_builds_index(self, config):
        """Test that starting ingests the tree and announces it once."""
        transport = InMemoryTransport()
        index = LiveIndex(config, transport=transport)

        await index.start()

        assert [record.uri for record in index.list_pages()] == ["/guide", "/intro"]
        assert [record.uri for record in index.list_pages(tag="howto")] == ["/guide"]
        assert len(transport.events_for_room("all-pages", PAGE_UPDATED)) == 1
        assert index.get_status()["started"] is True

        await index.stop()
        assert index.get_status()["started"] is False

    @pytest.mark.asyncio
    async def test_get_page(self, config):
        async with LiveIndex(config) as index:
            page = index.get_page("/intro")

            assert page["record"].title == "Intro"
            assert page["links"] == ["/guide"]
            assert page["backlinks"] == []
            assert index.get_page("/guide")["backlinks"] == ["/intro"]

            with pytest.raises(NotFoundError):
                index.get_page("/missing")

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, config, mock_remote):
        index = LiveIndex(config, remote=mock_remote)

        await index.start()
        await index.start()
        await index.stop()

        mock_remote.clone.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_directory_fails_initialization(self, tmp_path):
        index = LiveIndex(LiveIndexConfig(docs_directory=tmp_path / "absent", monitoring_enabled=False))

        with pytest.raises(InitializationError) as exc_info:
            await index.start()

        assert exc_info.value.context["initialization_stage"] == "directory_check"

    @pytest.mark.asyncio
    async def test_clone_failure_is_fatal(self, config, mock_remote):
        """Test that a failed initial clone aborts startup."""
        mock_remote.clone.side_effect = TransportError("unreachable", operation="clone")
        index = LiveIndex(config, remote=mock_remote)

        with pytest.raises(InitializationError) as exc_info:
            await index.start()

        assert exc_info.value.context == {"component": "remote", "initialization_stage": "clone"}
        assert isinstance(exc_info.value.cause, TransportError)
        assert len(index.store) == 0

    @pytest.mark.asyncio
    async def test_sync_failure_is_not_fatal(self, config, mock_remote):
        """Test that a failed periodic pull is logged and reported, not raised."""
        mock_remote.sync.side_effect = [TransportError("network down", operation="sync"), None]
        index = LiveIndex(config, remote=mock_remote)

        assert await index.sync_once() is False
        assert await index.sync_once() is True
        assert index.get_status()["sync"] == {"syncs": 1, "sync_failures": 1}

    @pytest.mark.asyncio
    async def test_sync_once_without_remote(self, config):
        assert await LiveIndex(config).sync_once() is False

    @pytest.mark.asyncio
    async def test_stop_cancels_sync_loop(self, config, mock_remote):
        index = LiveIndex(config, remote=mock_remote)

        await index.start()
        sync_task = index._sync_task
        assert sync_task is not None and not sync_task.done()

        await index.stop()

        assert sync_task.cancelled()
        assert index._sync_task is None

    def test_remote_built_from_config(self, docs):
        config = LiveIndexConfig(docs_directory=docs, repo_url="https://example.com/docs.git", repo_branch="main")

        index = LiveIndex(config)

        assert isinstance(index.remote, GitRemoteRepository)
        assert index.remote.branch == "main"
        assert index.remote.directory == docs.resolve()

    @pytest.mark.asyncio
    async def test_start_with_monitoring_uses_watcher(self, docs):
        config = LiveIndexConfig(docs_directory=docs)
        index = LiveIndex(config)
        index.coordinator.file_watcher = Mock()
        index.coordinator.file_watcher.is_watching = True

        await index.start()

        index.coordinator.file_watcher.start_watching.assert_called_once_with(index.directory, True)
        assert index.coordinator.is_monitoring
        assert len(index.store) == 2

        await index.stop()

        index.coordinator.file_watcher.stop_watching.assert_called_once()
