"""Unit tests for file watcher implementation."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest
from markdown_live_index.config import LiveIndexConfig
from markdown_live_index.models import MonitoringError
from markdown_live_index.monitoring import REMOVED, UPDATED, FileChangeEvent, MarkdownFileWatcher
from watchdog.events import FileSystemEvent


class TestFileChangeEvent:
    """Test cases for FileChangeEvent."""

    def test_create_event(self):
        file_path = Path("/test/file.md")
        event = FileChangeEvent(UPDATED, file_path)

        assert event.event_type == "updated"
        assert event.file_path == file_path
        assert event.is_directory is False
        assert event.timestamp > 0

    def test_event_string_representation(self):
        event = FileChangeEvent(REMOVED, Path("/test/file.md"))

        assert "FileChangeEvent(removed: /test/file.md)" in str(event)


class TestMarkdownFileWatcher:
    """Test cases for MarkdownFileWatcher."""

    @pytest.fixture
    def mock_config(self):
        """Create a mock live index configuration."""
        config = Mock(spec=LiveIndexConfig)
        config.is_file_supported.return_value = True
        config.should_ignore_file.return_value = False
        return config

    @pytest.fixture
    def mock_callbacks(self):
        return {"on_updated": AsyncMock(), "on_removed": AsyncMock()}

    @pytest.fixture
    def file_watcher(self, mock_config, mock_callbacks):
        return MarkdownFileWatcher(
            config=mock_config,
            on_file_updated=mock_callbacks["on_updated"],
            on_file_removed=mock_callbacks["on_removed"],
            debounce_seconds=0.05,
        )

    def _fs_event(self, src_path, dest_path=None, is_directory=False):
        event = Mock(spec=FileSystemEvent)
        event.is_directory = is_directory
        event.src_path = src_path
        if dest_path is not None:
            event.dest_path = dest_path
        return event

    def test_initialization(self, file_watcher, mock_config):
        assert file_watcher.config == mock_config
        assert file_watcher.debounce_seconds == 0.05
        assert file_watcher._observer is None
        assert not file_watcher.is_watching

    @patch("markdown_live_index.monitoring.file_watcher.Observer")
    def test_start_watching_success(self, mock_observer_class, file_watcher, tmp_path):
        """Test successful start of directory watching."""
        mock_observer = Mock()
        mock_observer_class.return_value = mock_observer
        mock_observer.is_alive.return_value = False

        file_watcher.start_watching(tmp_path, recursive=True)

        mock_observer.schedule.assert_called_once_with(file_watcher, str(tmp_path.resolve()), recursive=True)
        mock_observer.start.assert_called_once()
        assert file_watcher.get_watched_paths() == [str(tmp_path.resolve())]

    @patch("markdown_live_index.monitoring.file_watcher.Observer")
    def test_start_watching_same_directory_twice(self, mock_observer_class, file_watcher, tmp_path):
        mock_observer = Mock()
        mock_observer_class.return_value = mock_observer
        mock_observer.is_alive.side_effect = [False, True]

        file_watcher.start_watching(tmp_path)
        file_watcher.start_watching(tmp_path)

        mock_observer.schedule.assert_called_once()
        mock_observer.start.assert_called_once()

    def test_start_watching_nonexistent_directory(self, file_watcher):
        with pytest.raises(MonitoringError) as exc_info:
            file_watcher.start_watching(Path("/nonexistent/directory"))

        assert "Directory does not exist" in str(exc_info.value)
        assert not file_watcher.is_watching

    def test_start_watching_file_not_directory(self, file_watcher, tmp_path):
        test_file = tmp_path / "test.md"
        test_file.write_text("# Test")

        with pytest.raises(MonitoringError) as exc_info:
            file_watcher.start_watching(test_file)

        assert "Path is not a directory" in str(exc_info.value)

    @patch("markdown_live_index.monitoring.file_watcher.Observer")
    def test_start_watching_observer_failure(self, mock_observer_class, file_watcher, tmp_path):
        mock_observer_class.return_value.schedule.side_effect = OSError("inotify limit reached")

        with pytest.raises(MonitoringError) as exc_info:
            file_watcher.start_watching(tmp_path)

        assert exc_info.value.context["operation"] == "start_watching"
        assert isinstance(exc_info.value.cause, OSError)

    def test_stop_watching(self, file_watcher):
        """Test stopping file watching."""
        mock_observer = Mock()
        mock_observer.is_alive.return_value = True
        file_watcher._observer = mock_observer
        file_watcher._watched_paths.add("/test/path")
        file_watcher._pending_events["/test/path/a.md"] = FileChangeEvent(UPDATED, Path("/test/path/a.md"))

        file_watcher.stop_watching()

        mock_observer.stop.assert_called_once()
        mock_observer.join.assert_called_once_with(timeout=5.0)
        assert file_watcher._observer is None
        assert file_watcher.get_watched_paths() == []
        assert file_watcher.get_pending_events_count() == 0

    @pytest.mark.asyncio
    async def test_created_and_modified_become_updated(self, file_watcher, mock_callbacks):
        """Test that create and modify notifications normalize to a single updated event."""
        file_watcher._loop = asyncio.get_running_loop()

        file_watcher.on_created(self._fs_event("/test/a.md"))
        file_watcher.on_modified(self._fs_event("/test/a.md"))
        file_watcher.on_modified(self._fs_event("/test/a.md"))

        await asyncio.sleep(0.2)

        mock_callbacks["on_updated"].assert_awaited_once_with(Path("/test/a.md"))
        mock_callbacks["on_removed"].assert_not_called()

    @pytest.mark.asyncio
    async def test_dispatching_task_stays_referenced(self, mock_config):
        """Test that a task remains tracked while its callback runs and is dropped after."""
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_update(file_path):
            started.set()
            await release.wait()

        watcher = MarkdownFileWatcher(config=mock_config, on_file_updated=slow_update, debounce_seconds=0.01)
        watcher._loop = asyncio.get_running_loop()

        watcher.on_modified(self._fs_event("/test/a.md"))
        await asyncio.wait_for(started.wait(), timeout=1.0)

        assert watcher._debounce_tasks == {}
        assert len(watcher._running_tasks) == 1

        release.set()
        await asyncio.gather(*watcher._running_tasks)
        await asyncio.sleep(0)

        assert watcher._running_tasks == set()

    @pytest.mark.asyncio
    async def test_latest_event_within_window_wins(self, file_watcher, mock_callbacks):
        file_watcher._loop = asyncio.get_running_loop()

        file_watcher.on_modified(self._fs_event("/test/a.md"))
        file_watcher.on_deleted(self._fs_event("/test/a.md"))

        await asyncio.sleep(0.2)

        mock_callbacks["on_removed"].assert_awaited_once_with(Path("/test/a.md"))
        mock_callbacks["on_updated"].assert_not_called()

    @pytest.mark.asyncio
    async def test_paths_are_debounced_independently(self, file_watcher, mock_callbacks):
        file_watcher._loop = asyncio.get_running_loop()

        file_watcher.on_modified(self._fs_event("/test/a.md"))
        file_watcher.on_modified(self._fs_event("/test/b.md"))

        await asyncio.sleep(0.2)

        assert mock_callbacks["on_updated"].await_count == 2
        assert file_watcher.get_pending_events_count() == 0

    @pytest.mark.asyncio
    async def test_move_becomes_removed_and_updated(self, file_watcher, mock_callbacks):
        """Test that a move removes the source path and updates the destination."""
        file_watcher._loop = asyncio.get_running_loop()

        file_watcher.on_moved(self._fs_event("/test/old.md", dest_path="/test/new.md"))

        await asyncio.sleep(0.2)

        mock_callbacks["on_removed"].assert_awaited_once_with(Path("/test/old.md"))
        mock_callbacks["on_updated"].assert_awaited_once_with(Path("/test/new.md"))

    @pytest.mark.asyncio
    async def test_directory_events_are_ignored(self, file_watcher, mock_callbacks):
        file_watcher._loop = asyncio.get_running_loop()

        file_watcher.on_created(self._fs_event("/test/sub", is_directory=True))
        file_watcher.on_deleted(self._fs_event("/test/sub", is_directory=True))

        await asyncio.sleep(0.1)

        mock_callbacks["on_updated"].assert_not_called()
        mock_callbacks["on_removed"].assert_not_called()

    def test_events_without_loop_are_dropped(self, file_watcher):
        file_watcher.on_modified(self._fs_event("/test/a.md"))

        assert file_watcher.get_pending_events_count() == 0

    def test_should_process_file(self, file_watcher):
        test_file = Path("/test/document.md")

        assert file_watcher._should_process_file(test_file) is True
        file_watcher.config.is_file_supported.assert_called_once_with(test_file)
        file_watcher.config.should_ignore_file.assert_called_once_with(test_file)

    def test_should_process_file_unsupported(self, file_watcher):
        file_watcher.config.is_file_supported.return_value = False

        assert file_watcher._should_process_file(Path("/test/document.txt")) is False

    def test_should_process_file_ignored(self, file_watcher):
        file_watcher.config.should_ignore_file.return_value = True

        assert file_watcher._should_process_file(Path("/test/.DS_Store")) is False

    @pytest.mark.asyncio
    async def test_dispatch_calls_sync_callback(self, mock_config):
        """Test that plain functions work as callbacks too."""
        seen = []
        watcher = MarkdownFileWatcher(config=mock_config, on_file_updated=seen.append)

        await watcher._dispatch_event(FileChangeEvent(UPDATED, Path("/test/a.md")))

        assert seen == [Path("/test/a.md")]

    @pytest.mark.asyncio
    async def test_dispatch_no_callback(self, mock_config):
        watcher = MarkdownFileWatcher(config=mock_config)

        await watcher._dispatch_event(FileChangeEvent(REMOVED, Path("/test/a.md")))

    @pytest.mark.asyncio
    async def test_error_handling_in_callbacks(self, mock_config):
        """Test that a failing callback does not propagate out of the watcher."""
        error_callback = AsyncMock(side_effect=Exception("Callback error"))
        watcher = MarkdownFileWatcher(config=mock_config, on_file_updated=error_callback)

        await watcher._dispatch_event(FileChangeEvent(UPDATED, Path("/test/a.md")))

        error_callback.assert_awaited_once_with(Path("/test/a.md"))
