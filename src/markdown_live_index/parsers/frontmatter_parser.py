"""
Frontmatter parser for extracting YAML metadata from markdown files.

This module handles parsing of frontmatter sections containing structured
metadata like title, tags, summary and aliases that feed the tag rooms and
the page listings.
"""

import logging
from typing import Any

import frontmatter

from markdown_live_index.models.exceptions import ReadError

logger = logging.getLogger(__name__)


class FrontmatterParser:
    """
    Parser for extracting YAML frontmatter from markdown content.

    Handles optional frontmatter sections; documents without one parse to an
    empty metadata dictionary.
    """

    SUPPORTED_FIELDS = {"title", "tags", "summary", "description", "aliases"}
    LIST_FIELDS = {"tags", "aliases"}

    def parse_string(self, content: str, file_path: str | None = None) -> tuple[dict[str, Any], str]:
        """
        Parse frontmatter from a markdown string.

        Args:
            content: Markdown content string with optional frontmatter
            file_path: Optional file path for error context

        Returns:
            Tuple of (frontmatter_dict, markdown_content)

        Raises:
            ReadError: If the frontmatter cannot be parsed
        """
        try:
            post = frontmatter.loads(content)
        except Exception as e:
            raise ReadError(
                f"Failed to parse frontmatter: {e}",
                file_path=file_path,
                read_stage="frontmatter_parsing",
                underlying_error=e,
            ) from e

        metadata = self._extract_metadata(post.metadata, file_path)
        return metadata, post.content

    def _extract_metadata(self, raw_metadata: dict[str, Any], file_path: str | None = None) -> dict[str, Any]:
        """
        Extract and clean supported frontmatter fields.

        Args:
            raw_metadata: Raw frontmatter metadata dictionary
            file_path: Optional file path for logging context

        Returns:
            Dictionary with cleaned metadata
        """
        metadata = {}

        for field, value in raw_metadata.items():
            if field in self.SUPPORTED_FIELDS:
                cleaned_value = self._clean_field_value(field, value)
                if cleaned_value is not None:
                    metadata[field] = cleaned_value
            else:
                logger.debug("Unsupported frontmatter field '%s' found in %s", field, file_path or "string content")

        return metadata

    def _clean_field_value(self, field: str, value: Any) -> Any:
        """
        Clean a frontmatter field value.

        Returns:
            Cleaned value or None if empty
        """
        if value is None:
            return None

        if field in self.LIST_FIELDS:
            if isinstance(value, (list, tuple, set)):
                items = [str(item).strip() for item in value]
            else:
                # Comma-separated string
                items = [item.strip() for item in str(value).split(",")]

            if field == "tags":
                items = [item.lstrip("#").strip() for item in items]

            items = [item for item in items if item]
            return items or None

        text = str(value).strip()
        return text or None

    def has_frontmatter(self, content: str) -> bool:
        """Check if content appears to start with a frontmatter block."""
        return content.lstrip().startswith("---")

    def get_supported_fields(self) -> set[str]:
        return self.SUPPORTED_FIELDS.copy()
