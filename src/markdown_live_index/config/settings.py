"""
Configuration management for the markdown live index.

Handles environment variables, configuration file loading, and provides
default settings with validation for all pipeline components.
"""

import fnmatch
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from markdown_live_index.models.exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Logging level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LiveIndexConfig(BaseSettings):
    """
    Central configuration class for the markdown live index.

    Handles all configuration options with environment variable support,
    validation, and sensible defaults for development and production use.
    """

    model_config = SettingsConfigDict(
        env_prefix="MARKDOWN_LIVE_INDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        use_enum_values=True,
    )

    # === Document Tree Configuration ===
    docs_directory: Path = Field(default=Path("./docs"), description="Working tree holding the mirrored documents")
    supported_file_extensions: list[str] = Field(
        default=[".md", ".markdown"], description="File extensions to index"
    )
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Maximum file size to read (MB)")

    # === Remote Repository Configuration ===
    repo_url: str | None = Field(default=None, description="Remote git repository to mirror (watch as-is if None)")
    repo_branch: str | None = Field(default=None, description="Branch to check out (remote default if None)")
    sync_interval_seconds: float = Field(
        default=30.0, ge=1.0, le=86400.0, description="Interval between periodic pulls of the remote"
    )

    # === File Monitoring Configuration ===
    monitoring_enabled: bool = Field(default=True, description="Enable file system monitoring for live updates")
    monitoring_debounce_seconds: float = Field(
        default=0.5, ge=0.0, le=30.0, description="Debounce time for file change events"
    )
    monitoring_ignored_patterns: list[str] = Field(
        default=["*.tmp", "*.swp", "*/.git/*", ".DS_Store"], description="File patterns to ignore during monitoring"
    )

    # === Broadcast Configuration ===
    all_pages_room: str = Field(default="all-pages", min_length=1, description="Room for the page listing view")
    page_room_prefix: str = Field(default="page:", min_length=1, description="Prefix for per-page rooms")
    tag_room_prefix: str = Field(default="tag:", min_length=1, description="Prefix for per-tag rooms")

    # === Logging Configuration ===
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_file: Path | None = Field(default=None, description="Log file path (stderr if None)")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log message format"
    )

    @field_validator('supported_file_extensions')
    @classmethod
    def validate_file_extensions(cls, v):
        """Ensure file extensions start with dot."""
        validated = []
        for ext in v:
            if not ext.startswith('.'):
                ext = f'.{ext}'
            validated.append(ext.lower())
        return validated

    @model_validator(mode='after')
    def validate_room_prefixes(self):
        """Ensure page and tag rooms can never collide."""
        if self.page_room_prefix == self.tag_room_prefix:
            raise ConfigurationError(
                "page_room_prefix and tag_room_prefix must differ",
                config_key="tag_room_prefix",
                expected_type="str != page_room_prefix",
                actual_value=self.tag_room_prefix,
            )
        return self

    def resolve_docs_directory(self) -> Path:
        """Get the absolute docs directory."""
        return self.docs_directory.expanduser().resolve()

    def is_file_supported(self, file_path: str | Path) -> bool:
        """Check if a file type is supported for processing."""
        extension = Path(file_path).suffix.lower()
        return extension in self.supported_file_extensions

    def should_ignore_file(self, file_path: str | Path) -> bool:
        """Check if a file should be ignored based on patterns."""
        path_str = str(file_path)
        name = Path(file_path).name
        return any(
            fnmatch.fnmatch(path_str, pattern) or fnmatch.fnmatch(name, pattern)
            for pattern in self.monitoring_ignored_patterns
        )

    def get_log_config(self) -> dict[str, Any]:
        """Get logging configuration dictionary."""
        level = self.log_level.value if isinstance(self.log_level, LogLevel) else str(self.log_level)
        config = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": self.log_format}},
            "handlers": {
                "default": {
                    "level": level,
                    "formatter": "standard",
                    "class": "logging.StreamHandler" if not self.log_file else "logging.FileHandler",
                }
            },
            "loggers": {"markdown_live_index": {"handlers": ["default"], "level": level, "propagate": False}},
        }

        if self.log_file:
            config["handlers"]["default"]["filename"] = str(self.log_file)

        return config


# Global configuration instance
_config: LiveIndexConfig | None = None


def get_config() -> LiveIndexConfig:
    """
    Get the global configuration instance.

    Creates a new instance on first call and reuses it for subsequent calls.
    """
    global _config
    if _config is None:
        _config = LiveIndexConfig()
    return _config


def reload_config() -> LiveIndexConfig:
    """Force reload the configuration from environment/files."""
    global _config
    _config = LiveIndexConfig()
    return _config


def set_config(config: LiveIndexConfig) -> None:
    """
    Set a custom configuration instance.

    Primarily used for testing or advanced configuration scenarios.
    """
    global _config
    _config = config
