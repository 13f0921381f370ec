"""
Link analyzer deriving cross-document relationships.

Maintains a directed link graph between documents plus tag memberships. The
graph is derived from the store's current contents and is never persisted on
its own. Every update re-derives the node's outgoing edges from scratch, so no
diff state is tracked between versions of a document.
"""

import logging
import posixpath
import re
from typing import Any
from urllib.parse import unquote

from markdown_live_index.core.interfaces import IContentAnalyzer, IContentStore
from markdown_live_index.models.content import ContentRecord

logger = logging.getLogger(__name__)

FENCED_CODE_PATTERN = re.compile(r'^(`{3,}|~{3,}).*?^\1', re.MULTILINE | re.DOTALL)
INLINE_CODE_PATTERN = re.compile(r'`[^`\n]*`')
INLINE_LINK_PATTERN = re.compile(r'(?<!!)\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+["\'(][^)]*)?\)')
REFERENCE_DEFINITION_PATTERN = re.compile(r'^ {0,3}\[[^\]]+\]:\s*<?(\S+?)>?(?:\s+.*)?$', re.MULTILINE)
WIKI_LINK_PATTERN = re.compile(r'\[\[([^\]|]+)(?:\|[^\]]*)?\]\]')
SCHEME_PATTERN = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.-]*:')


class LinkAnalyzer(IContentAnalyzer):
    """
    Derives and maintains the bidirectional link/tag graph over the store.

    Besides the edges between linked documents, the analyzer remembers every
    reference a document makes, including references to pages that do not
    exist yet, so that edges appear as soon as the target is linked.
    """

    def __init__(self, store: IContentStore, file_extensions: list[str] | None = None):
        """
        Initialize the analyzer.

        Args:
            store: Content store the graph is derived from
            file_extensions: Markdown suffixes stripped from link targets
        """
        self.store = store
        self.file_extensions = [ext.lower() for ext in (file_extensions or [".md", ".markdown"])]

        self._nodes: set[str] = set()
        self._references: dict[str, set[str]] = {}
        self._referrers: dict[str, set[str]] = {}
        self._outgoing: dict[str, set[str]] = {}
        self._incoming: dict[str, set[str]] = {}
        self._node_tags: dict[str, set[str]] = {}
        self._tag_members: dict[str, set[str]] = {}

    def link_content(self, record: ContentRecord) -> None:
        """
        Re-derive edges and tag memberships for a record.

        Args:
            record: Record currently held by the store
        """
        uri = record.uri
        if not self.store.has_file(uri):
            logger.warning("Refusing to link %s: not present in the store", uri)
            return

        references = self.extract_references(record)

        self._clear_outgoing(uri)
        self._clear_references(uri)
        self._clear_tags(uri)

        self._nodes.add(uri)
        self._references[uri] = references
        for target in references:
            self._referrers.setdefault(target, set()).add(uri)
            if target in self._nodes:
                self._add_edge(uri, target)

        for source in self._referrers.get(uri, set()):
            if source != uri and source in self._nodes:
                self._add_edge(source, uri)

        for tag in record.tags:
            self._node_tags.setdefault(uri, set()).add(tag)
            self._tag_members.setdefault(tag, set()).add(uri)

        logger.debug(
            "Linked %s: %d references, %d links, %d backlinks, %d tags",
            uri,
            len(references),
            len(self._outgoing.get(uri, ())),
            len(self._incoming.get(uri, ())),
            len(record.tags),
        )

    def unlink_content(self, uri: str) -> set[str]:
        """
        Remove a node, all edges touching it and its tag memberships.

        Args:
            uri: URI of the node to remove

        Returns:
            The tags the node held
        """
        tags = set(self._node_tags.get(uri, set()))

        self._clear_outgoing(uri)
        for source in list(self._incoming.get(uri, set())):
            self._remove_edge(source, uri)
        self._clear_references(uri)
        self._clear_tags(uri)
        self._nodes.discard(uri)

        logger.debug("Unlinked %s (%d tags)", uri, len(tags))
        return tags

    def extract_references(self, record: ContentRecord) -> set[str]:
        """
        Find every document URI a record's body refers to.

        Inline links, reference-style definitions and wiki links are
        recognized. Code blocks and external URLs are ignored.
        """
        body = FENCED_CODE_PATTERN.sub("", record.body)
        body = INLINE_CODE_PATTERN.sub("", body)

        targets = INLINE_LINK_PATTERN.findall(body)
        targets += REFERENCE_DEFINITION_PATTERN.findall(body)
        targets += WIKI_LINK_PATTERN.findall(body)

        references = set()
        for target in targets:
            resolved = self.resolve_reference(target, record.uri)
            if resolved and resolved != record.uri:
                references.add(resolved)
        return references

    def resolve_reference(self, target: str, source_uri: str) -> str | None:
        """
        Resolve a link target against the URI of the document containing it.

        Returns:
            The target URI, or None for external, empty or anchor-only links
        """
        target = target.strip()
        if not target or target.startswith(("#", "//")) or SCHEME_PATTERN.match(target):
            return None

        target = unquote(target.split("#", 1)[0].split("?", 1)[0]).strip()
        if not target:
            return None

        if target.startswith("/"):
            resolved = posixpath.normpath(target)
        else:
            resolved = posixpath.normpath(posixpath.join(posixpath.dirname(source_uri), target))

        # normpath keeps a leading double slash
        resolved = "/" + resolved.lstrip("/")

        root, ext = posixpath.splitext(resolved)
        if ext.lower() in self.file_extensions:
            resolved = root

        return resolved if resolved != "/" else None

    def get_links(self, uri: str) -> set[str]:
        return set(self._outgoing.get(uri, set()))

    def get_backlinks(self, uri: str) -> set[str]:
        return set(self._incoming.get(uri, set()))

    def get_tags(self, uri: str) -> set[str]:
        return set(self._node_tags.get(uri, set()))

    def get_tag_members(self, tag: str) -> set[str]:
        return set(self._tag_members.get(tag, set()))

    def list_tags(self) -> list[str]:
        return sorted(self._tag_members)

    def is_linked(self, uri: str) -> bool:
        return uri in self._nodes

    def get_unresolved_references(self, uri: str) -> set[str]:
        """Get references from a node to pages that are not linked."""
        return {target for target in self._references.get(uri, set()) if target not in self._nodes}

    def export_graph(self) -> dict[str, Any]:
        """Get a plain snapshot of the graph for queries and diagnostics."""
        return {
            "nodes": sorted(self._nodes),
            "links": {uri: sorted(targets) for uri, targets in sorted(self._outgoing.items())},
            "tags": {tag: sorted(members) for tag, members in sorted(self._tag_members.items())},
        }

    def get_graph_stats(self) -> dict[str, int]:
        return {
            "node_count": len(self._nodes),
            "edge_count": sum(len(targets) for targets in self._outgoing.values()),
            "tag_count": len(self._tag_members),
        }

    def _add_edge(self, source: str, target: str) -> None:
        self._outgoing.setdefault(source, set()).add(target)
        self._incoming.setdefault(target, set()).add(source)

    def _remove_edge(self, source: str, target: str) -> None:
        _discard(self._outgoing, source, target)
        _discard(self._incoming, target, source)

    def _clear_outgoing(self, uri: str) -> None:
        for target in list(self._outgoing.get(uri, set())):
            self._remove_edge(uri, target)

    def _clear_references(self, uri: str) -> None:
        for target in self._references.pop(uri, set()):
            _discard(self._referrers, target, uri)

    def _clear_tags(self, uri: str) -> None:
        for tag in self._node_tags.pop(uri, set()):
            _discard(self._tag_members, tag, uri)


def _discard(mapping: dict[str, set[str]], key: str, value: str) -> None:
    """Remove value from mapping[key], dropping the key once its set is empty."""
    members = mapping.get(key)
    if members is None:
        return
    members.discard(value)
    if not members:
        del mapping[key]
