"""Component contracts and service wiring."""

from markdown_live_index.core.interfaces import (
    IBroadcaster,
    IBroadcastTransport,
    IContentAnalyzer,
    IContentReader,
    IContentStore,
    IRemoteRepository,
)

__all__ = [
    "IBroadcaster",
    "IBroadcastTransport",
    "IContentAnalyzer",
    "IContentReader",
    "IContentStore",
    "IRemoteRepository",
]
