"""Structural diff between two rendered node lists."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .models import GraphNode


@dataclass
class DiffResult:
    """Disjoint added / removed / unchanged identities between two node lists."""

    added: list[GraphNode] = field(default_factory=list)  # from the new list
    removed: list[GraphNode] = field(default_factory=list)  # from the previous list
    unchanged: list[GraphNode] = field(default_factory=list)  # from the new list

    @property
    def added_ids(self) -> set[str]:
        return {n.id for n in self.added}

    @property
    def removed_ids(self) -> set[str]:
        return {n.id for n in self.removed}

    @property
    def unchanged_ids(self) -> set[str]:
        return {n.id for n in self.unchanged}

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "added": [n.id for n in self.added],
            "removed": [n.id for n in self.removed],
            "unchanged": [n.id for n in self.unchanged],
        }


def diff_nodes(previous: Sequence[GraphNode], new: Sequence[GraphNode]) -> DiffResult:
    """Classify nodes by identity; positions play no part. Input order is kept."""
    previous_ids = {n.id for n in previous}
    new_ids = {n.id for n in new}

    result = DiffResult()
    for node in new:
        if node.id in previous_ids:
            result.unchanged.append(node)
        else:
            result.added.append(node)
    result.removed = [n for n in previous if n.id not in new_ids]
    return result
