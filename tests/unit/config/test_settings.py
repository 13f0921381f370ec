"""Unit tests for configuration settings."""

from pathlib import Path

import pytest
from markdown_live_index.config import LiveIndexConfig, get_config, set_config
from markdown_live_index.models import ConfigurationError


class TestLiveIndexConfig:
    """Test cases for LiveIndexConfig."""

    def test_defaults(self):
        """Test default configuration values."""
        config = LiveIndexConfig()

        assert config.docs_directory == Path("./docs")
        assert config.repo_url is None
        assert config.sync_interval_seconds == 30.0
        assert config.supported_file_extensions == [".md", ".markdown"]
        assert config.all_pages_room == "all-pages"
        assert config.page_room_prefix == "page:"
        assert config.tag_room_prefix == "tag:"

    def test_environment_override(self, monkeypatch):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("MARKDOWN_LIVE_INDEX_REPO_URL", "https://example.com/docs.git")
        monkeypatch.setenv("MARKDOWN_LIVE_INDEX_SYNC_INTERVAL_SECONDS", "120")

        config = LiveIndexConfig()

        assert config.repo_url == "https://example.com/docs.git"
        assert config.sync_interval_seconds == 120.0

    def test_file_extensions_normalized(self):
        """Test that extensions get a leading dot and lower case."""
        config = LiveIndexConfig(supported_file_extensions=["MD", ".Markdown"])

        assert config.supported_file_extensions == [".md", ".markdown"]

    def test_room_prefixes_must_differ(self):
        """Test that page and tag rooms cannot share a prefix."""
        with pytest.raises(ConfigurationError) as exc_info:
            LiveIndexConfig(page_room_prefix="room:", tag_room_prefix="room:")

        assert "must differ" in str(exc_info.value)

    def test_is_file_supported(self):
        config = LiveIndexConfig()

        assert config.is_file_supported(Path("/docs/intro.md"))
        assert config.is_file_supported("/docs/intro.MARKDOWN")
        assert not config.is_file_supported(Path("/docs/image.png"))

    def test_should_ignore_file(self):
        """Test ignore patterns against full paths and file names."""
        config = LiveIndexConfig()

        assert config.should_ignore_file(Path("/docs/.git/HEAD"))
        assert config.should_ignore_file(Path("/docs/notes.md.swp"))
        assert config.should_ignore_file(Path("/docs/sub/.DS_Store"))
        assert not config.should_ignore_file(Path("/docs/intro.md"))

    def test_resolve_docs_directory(self, tmp_path):
        config = LiveIndexConfig(docs_directory=tmp_path / "docs")

        assert config.resolve_docs_directory() == (tmp_path / "docs").resolve()

    def test_log_config(self, tmp_path):
        """Test logging configuration dictionary."""
        config = LiveIndexConfig(log_level="DEBUG", log_file=tmp_path / "index.log")

        log_config = config.get_log_config()

        handler = log_config["handlers"]["default"]
        assert handler["class"] == "logging.FileHandler"
        assert handler["filename"] == str(tmp_path / "index.log")
        assert log_config["loggers"]["markdown_live_index"]["level"] == "DEBUG"

    def test_global_config(self):
        """Test setting and getting the global configuration."""
        custom = LiveIndexConfig(sync_interval_seconds=5)
        set_config(custom)

        try:
            assert get_config() is custom
        finally:
            set_config(None)
