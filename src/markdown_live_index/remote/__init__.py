"""Remote repository mirroring."""

from markdown_live_index.remote.git_remote import GitRemoteRepository

__all__ = ["GitRemoteRepository"]
