"""Shared fixtures for unit tests."""

import hashlib
from datetime import UTC, datetime

import pytest
from markdown_live_index.models import ContentRecord


@pytest.fixture
def make_record():
    """Build ContentRecord objects without touching the file system."""

    def _make_record(uri: str, tags: list[str] | None = None, body: str = "") -> ContentRecord:
        return ContentRecord(
            uri=uri,
            file_path=f"/docs{uri}.md",
            title=uri.rsplit("/", 1)[-1],
            tags=tags or [],
            body=body,
            content_hash=hashlib.sha256(f"{uri}{body}".encode()).hexdigest(),
            modified_at=datetime.now(UTC),
        )

    return _make_record
