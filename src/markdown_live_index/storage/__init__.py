"""Content storage for the live index."""

from markdown_live_index.storage.content_store import InMemoryContentStore

__all__ = ["InMemoryContentStore"]
