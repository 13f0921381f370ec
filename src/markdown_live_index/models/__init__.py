"""Data models and exceptions for the live index."""

from markdown_live_index.models.content import ContentRecord
from markdown_live_index.models.exceptions import (
    BaseError,
    ConfigurationError,
    InitializationError,
    MonitoringError,
    NotFoundError,
    ReadError,
    ShutdownError,
    TransportError,
)

__all__ = [
    "ContentRecord",
    "BaseError",
    "ConfigurationError",
    "InitializationError",
    "MonitoringError",
    "NotFoundError",
    "ReadError",
    "ShutdownError",
    "TransportError",
]
