"""
Parsers package for reading documents into content records.

Provides the markdown reader and the YAML frontmatter parser it relies on.
"""

from .frontmatter_parser import FrontmatterParser
from .markdown_reader import MarkdownReader

__all__ = [
    "FrontmatterParser",
    "MarkdownReader",
]
