"""Configuration management and settings."""

from markdown_live_index.config.settings import LiveIndexConfig, LogLevel, get_config, reload_config, set_config

__all__ = ["LiveIndexConfig", "LogLevel", "get_config", "reload_config", "set_config"]
