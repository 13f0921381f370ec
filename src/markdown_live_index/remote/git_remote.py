"""
Remote git repository mirrored into the docs directory.

The remote is treated as read-only: it is cloned once at startup and pulled
periodically. File changes produced by a pull reach the index through the
file watcher, never through this module.
"""

import logging
import time
from pathlib import Path

import git

from markdown_live_index.core.interfaces import IRemoteRepository
from markdown_live_index.models.exceptions import TransportError

logger = logging.getLogger(__name__)


class GitRemoteRepository(IRemoteRepository):
    """Clones and pulls a remote git repository with GitPython."""

    def __init__(self, url: str, directory: Path, branch: str | None = None):
        """
        Initialize the remote.

        Args:
            url: Remote repository URL
            directory: Working tree to clone into
            branch: Branch to check out (remote default if None)
        """
        self.url = url
        self.directory = Path(directory)
        self.branch = branch
        self.repo: git.Repo | None = None

    def clone(self) -> None:
        """
        Clone the remote, or reuse and pull an existing checkout of it.

        Raises:
            TransportError: If the clone fails
        """
        started = time.monotonic()
        try:
            if (self.directory / ".git").exists():
                self.repo = git.Repo(self.directory)
                logger.info("Reusing existing checkout at %s", self.directory)
                self.sync()
            else:
                self.directory.mkdir(parents=True, exist_ok=True)
                kwargs = {"branch": self.branch} if self.branch else {}
                self.repo = git.Repo.clone_from(self.url, self.directory, **kwargs)
        except TransportError:
            raise
        except (git.exc.GitError, OSError) as e:
            raise TransportError(
                f"Failed to clone {self.url}: {e}",
                remote=self.url,
                operation="clone",
                underlying_error=e,
            ) from e

        logger.info("Repository cloned in %dms", (time.monotonic() - started) * 1000)

    def sync(self) -> None:
        """
        Fast-forward to the latest changes from the remote.

        Raises:
            TransportError: If the repository is not cloned or the pull fails
        """
        if self.repo is None:
            raise TransportError("Repository has not been cloned", remote=self.url, operation="sync")

        started = time.monotonic()
        try:
            origin = self.repo.remotes.origin
            if self.branch:
                origin.pull(self.branch, ff_only=True)
            else:
                origin.pull(ff_only=True)
        except (git.exc.GitError, AttributeError, ValueError) as e:
            raise TransportError(
                f"Failed to pull {self.url}: {e}",
                remote=self.url,
                operation="sync",
                underlying_error=e,
            ) from e

        logger.info("Synced in %dms", (time.monotonic() - started) * 1000)

    @property
    def head_commit(self) -> str | None:
        if self.repo is None:
            return None
        try:
            return self.repo.head.commit.hexsha
        except ValueError:
            return None
