"""
Monitoring package for file system change detection.

This package provides the watcher that observes the document tree and the
settlement coordinator that turns its events into store updates, link
analysis and room notifications.
"""

from .file_watcher import REMOVED, UPDATED, FileChangeEvent, MarkdownFileWatcher
from .settlement_coordinator import SettlementCoordinator

__all__ = [
    "FileChangeEvent",
    "MarkdownFileWatcher",
    "REMOVED",
    "SettlementCoordinator",
    "UPDATED",
]
