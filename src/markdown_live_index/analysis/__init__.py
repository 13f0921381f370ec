"""Cross-document relationship analysis."""

from markdown_live_index.analysis.link_analyzer import LinkAnalyzer

__all__ = ["LinkAnalyzer"]
