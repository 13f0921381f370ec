"""
Markdown document reader implementation.

Loads markdown files from the document tree, parses frontmatter using
FrontmatterParser and creates immutable ContentRecord objects. Disk I/O runs
in a worker thread so reads never block the event loop.
"""

import asyncio
import hashlib
import logging
import os
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from markdown_live_index.core.interfaces import IContentReader
from markdown_live_index.models.content import ContentRecord
from markdown_live_index.models.exceptions import ReadError
from markdown_live_index.parsers.frontmatter_parser import FrontmatterParser

logger = logging.getLogger(__name__)

HEADING_PATTERN = re.compile(r'^#\s+(.+?)\s*#*\s*$', re.MULTILINE)


class MarkdownReader(IContentReader):
    """
    Reader for markdown files with frontmatter support.

    URIs are derived from the path relative to the docs root: POSIX
    separators, a leading slash and the markdown suffix stripped, so
    ``<root>/guide/setup.md`` becomes ``/guide/setup``.
    """

    def __init__(self, config, root: Path | None = None):
        """
        Initialize the reader.

        Args:
            config: Live index configuration
            root: Document tree root (defaults to the configured docs directory)
        """
        self.config = config
        self.root = (root or config.docs_directory).expanduser().resolve()
        self.frontmatter_parser = FrontmatterParser()

    async def read(self, file_path: Path) -> ContentRecord:
        """
        Read a markdown file and return a ContentRecord.

        Args:
            file_path: Path to the markdown file

        Returns:
            ContentRecord with parsed content and metadata

        Raises:
            ReadError: If the file cannot be read or parsed
        """
        file_path = self.resolve_path(Path(file_path))
        uri = self.uri_for_path(file_path)

        logger.debug("Reading %s as %s", file_path, uri)

        try:
            text, modified_at = await asyncio.to_thread(self._load, file_path)
            metadata, body = self.frontmatter_parser.parse_string(text, str(file_path))

            record = ContentRecord(
                uri=uri,
                file_path=str(file_path),
                title=self._extract_title(metadata, body, file_path),
                tags=metadata.get("tags", []),
                frontmatter=metadata,
                body=body,
                content_hash=self._calculate_content_hash(body, metadata),
                modified_at=modified_at,
            )
        except ReadError:
            raise
        except Exception as e:
            logger.error("Unexpected error reading %s: %s", file_path, e)
            raise ReadError(
                f"Unexpected read error: {e}",
                file_path=str(file_path),
                read_stage="record_creation",
                underlying_error=e,
            ) from e

        logger.debug("Successfully read %s (%d tags)", uri, len(record.tags))
        return record

    def uri_for_path(self, file_path: Path) -> str:
        """
        Derive the URI for a file path, whether or not it still exists.

        Raises:
            ReadError: If the path lies outside the docs root
        """
        file_path = self.resolve_path(Path(file_path))
        try:
            relative = file_path.relative_to(self.root)
        except ValueError as e:
            raise ReadError(
                f"Path is outside the document tree {self.root}: {file_path}",
                file_path=str(file_path),
                read_stage="uri_resolution",
                underlying_error=e,
            ) from e

        if self.config.is_file_supported(relative):
            relative = relative.with_suffix("")
        return "/" + relative.as_posix()

    def supports_file_type(self, file_path: Path) -> bool:
        return self.config.is_file_supported(file_path)

    def resolve_path(self, file_path: Path) -> Path:
        file_path = Path(file_path)
        if not file_path.is_absolute():
            file_path = self.root / file_path
        # Parent is resolved separately so removed files still map to their URI
        return Path(os.path.realpath(file_path.parent)) / file_path.name

    def _load(self, file_path: Path) -> tuple[str, datetime]:
        """Read file text and modification time. Runs in a worker thread."""
        try:
            if not file_path.is_file():
                raise ReadError(
                    f"File does not exist: {file_path}",
                    file_path=str(file_path),
                    read_stage="file_validation",
                )

            stat = file_path.stat()
            max_size_bytes = self.config.max_file_size_mb * 1024 * 1024
            if stat.st_size > max_size_bytes:
                raise ReadError(
                    f"File too large: {stat.st_size} bytes (max: {max_size_bytes})",
                    file_path=str(file_path),
                    read_stage="size_validation",
                )

            raw = file_path.read_bytes()
        except OSError as e:
            raise ReadError(
                f"Failed to read file: {e}",
                file_path=str(file_path),
                read_stage="file_reading",
                underlying_error=e,
            ) from e

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ReadError(
                f"File encoding error: {e}",
                file_path=str(file_path),
                read_stage="decoding",
                underlying_error=e,
            ) from e

        return text, datetime.fromtimestamp(stat.st_mtime, UTC)

    def _extract_title(self, metadata: dict[str, Any], body: str, file_path: Path) -> str:
        """Title from frontmatter, then the first level-one heading, then the file stem."""
        if title := metadata.get("title"):
            return title
        if match := HEADING_PATTERN.search(body):
            return match.group(1)
        return file_path.stem

    def _calculate_content_hash(self, content: str, metadata: dict[str, Any]) -> str:
        """
        Calculate SHA-256 hash of body and metadata.

        Args:
            content: Markdown body
            metadata: Frontmatter metadata dictionary

        Returns:
            SHA-256 hash as hexadecimal string
        """
        combined_content = content or ""

        if metadata:
            # Sort metadata keys for consistent hashing
            sorted_metadata = {k: metadata[k] for k in sorted(metadata.keys())}
            combined_content += str(sorted_metadata)

        return hashlib.sha256(combined_content.encode('utf-8')).hexdigest()
