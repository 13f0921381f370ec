"""
Data model for parsed documents.

A ContentRecord is the unit the reader produces and the store holds. Records
are immutable: an update replaces the whole record, so readers of the store
never observe a half-updated document.
"""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class ContentRecord(BaseModel):
    """
    Represents one markdown document in the live index.

    Links and back-links are not part of the record; they are derived and
    owned by the link analyzer.
    """

    uri: str = Field(..., min_length=1, description="Stable identifier derived from the file path")
    file_path: str = Field(..., min_length=1, description="Absolute path to the source file")
    title: str | None = Field(None, description="Document title")
    tags: list[str] = Field(default_factory=list, description="Tags associated with the document")
    frontmatter: dict[str, Any] = Field(default_factory=dict, description="Parsed YAML frontmatter")
    body: str = Field(default="", description="Raw markdown body without frontmatter")
    content_hash: str = Field(..., min_length=64, max_length=64, description="SHA-256 content hash")
    modified_at: datetime = Field(..., description="File last modification timestamp")
    read_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the file was read from disk",
    )

    @field_validator('uri')
    @classmethod
    def validate_uri(cls, v):
        """Ensure the URI is rooted."""
        if not v.startswith('/'):
            raise ValueError("uri must start with '/'")
        return v

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        """Strip tags and drop empty or duplicate entries, keeping first occurrence order."""
        cleaned = []
        for tag in v:
            tag = str(tag).strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned

    @field_validator('content_hash')
    @classmethod
    def validate_content_hash(cls, v):
        """Ensure content hash is valid SHA-256."""
        if not all(c in '0123456789abcdef' for c in v.lower()):
            raise ValueError("content_hash must be a valid SHA-256 hex string")
        return v.lower()

    @computed_field
    @property
    def filename(self) -> str:
        """Get the filename without path."""
        return Path(self.file_path).name

    @computed_field
    @property
    def word_count(self) -> int:
        """Get the word count of the body."""
        return len(self.body.split())

    @computed_field
    @property
    def summary(self) -> str | None:
        """Get document summary from frontmatter."""
        if summary := self.frontmatter.get('summary') or self.frontmatter.get('description'):
            return str(summary)
        return None

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def __str__(self) -> str:
        return f"ContentRecord({self.uri}, {len(self.tags)} tags)"

    model_config = ConfigDict(frozen=True)
