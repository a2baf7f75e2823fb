"""Search-match classification for highlighting and dimming nodes."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from .models import GraphNode, NodeKind


class SearchIndex:
    """Case-insensitive substring matching over kind-specific fields.

    Documents match on title, file path and description; external-link
    nodes match on domain and any of their URLs.
    """

    def fields(self, node: GraphNode) -> list[str]:
        data = node.data
        if node.kind == NodeKind.DOCUMENT:
            values = [data.get("title") or "", data.get("file_path") or node.id, data.get("description") or ""]
        elif node.kind == NodeKind.EXTERNAL_LINK:
            values = [data.get("domain") or "", *(data.get("urls") or [])]
        else:
            return []
        return [str(v) for v in values]

    def matches(self, node: GraphNode, query: str) -> bool:
        needle = query.strip().lower()
        if not needle:
            return True
        return any(needle in value.lower() for value in self.fields(node))

    def classify(self, nodes: Iterable[GraphNode], query: str) -> list[GraphNode]:
        """Copies of `nodes` carrying fresh search_active / search_match flags."""
        active = bool(query.strip())
        return [
            replace(
                node,
                search_active=active,
                search_match=self.matches(node, query) if active else True,
            )
            for node in nodes
        ]

    def count_matches(self, nodes: Iterable[GraphNode], query: str) -> int:
        return sum(1 for n in nodes if self.matches(n, query))
