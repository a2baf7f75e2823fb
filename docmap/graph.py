"""Adjacency views over a graph snapshot."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from .models import GraphEdge, GraphSnapshot


def sanitize_edges(node_ids: Iterable[str], edges: Iterable[GraphEdge]) -> list[GraphEdge]:
    """Drop edges whose endpoints are not in `node_ids`."""
    ids = set(node_ids)
    return [e for e in edges if e.source in ids and e.target in ids]


@dataclass
class LinkGraph:
    """Directed link graph with undirected neighbour lookups."""

    nodes: list[str] = field(default_factory=list)  # insertion order
    edges: dict[str, set[str]] = field(default_factory=dict)  # src -> dsts
    reverse_edges: dict[str, set[str]] = field(default_factory=dict)  # dst -> srcs

    @classmethod
    def from_edges(cls, node_ids: Iterable[str], edges: Iterable[GraphEdge]) -> "LinkGraph":
        graph = cls()
        for node_id in node_ids:
            graph.add_node(node_id)
        known = set(graph.nodes)
        for edge in edges:
            if edge.source in known and edge.target in known:
                graph.add_edge(edge.source, edge.target)
        return graph

    @classmethod
    def from_snapshot(cls, snapshot: GraphSnapshot) -> "LinkGraph":
        return cls.from_edges((n.id for n in snapshot.nodes), snapshot.edges)

    def add_node(self, name: str) -> None:
        if name not in self.edges:
            self.nodes.append(name)
            self.edges[name] = set()
            self.reverse_edges[name] = set()

    def add_edge(self, src: str, dst: str) -> None:
        self.add_node(src)
        self.add_node(dst)
        self.edges[src].add(dst)
        self.reverse_edges[dst].add(src)

    def out_degree(self, name: str) -> int:
        return len(self.edges.get(name, set()))

    def in_degree(self, name: str) -> int:
        return len(self.reverse_edges.get(name, set()))

    def neighbors_undirected(self, name: str) -> set[str]:
        out_n = self.edges.get(name, set())
        in_n = self.reverse_edges.get(name, set())
        return set(out_n) | set(in_n)

    def connected_components(self) -> list[list[str]]:
        """Undirected components, largest first, ties broken by smallest member.

        Members keep the graph's insertion order.
        """
        order = {n: i for i, n in enumerate(self.nodes)}
        seen: set[str] = set()
        components: list[list[str]] = []

        for start in self.nodes:
            if start in seen:
                continue
            seen.add(start)
            members = [start]
            queue = deque([start])
            while queue:
                current = queue.popleft()
                for nbr in sorted(self.neighbors_undirected(current)):
                    if nbr not in seen:
                        seen.add(nbr)
                        members.append(nbr)
                        queue.append(nbr)
            components.append(sorted(members, key=order.__getitem__))

        components.sort(key=lambda ms: (-len(ms), min(ms)))
        return components

    def back_edges(self) -> set[tuple[str, str]]:
        """Edges closing a cycle during depth-first traversal (sorted visiting order).

        Self loops are always reported. Iterative to stay clear of the recursion limit.
        """
        white, grey, black = 0, 1, 2
        state = {n: white for n in self.nodes}
        back: set[tuple[str, str]] = set()

        for root in sorted(self.nodes):
            if state[root] != white:
                continue
            state[root] = grey
            stack: list[tuple[str, list[str]]] = [(root, sorted(self.edges[root]))]
            while stack:
                node, pending = stack[-1]
                if not pending:
                    state[node] = black
                    stack.pop()
                    continue
                nxt = pending.pop(0)
                if state[nxt] == grey:
                    back.add((node, nxt))
                elif state[nxt] == white:
                    state[nxt] = grey
                    stack.append((nxt, sorted(self.edges[nxt])))

        return back

    def bfs_depths(self, start: str, *, max_depth: int | None = None) -> dict[str, int]:
        """Undirected hop distance from `start` (empty if start is unknown)."""
        if start not in self.edges:
            return {}
        depths = {start: 0}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            depth = depths[current]
            if max_depth is not None and depth >= max_depth:
                continue
            for nbr in sorted(self.neighbors_undirected(current)):
                if nbr not in depths:
                    depths[nbr] = depth + 1
                    queue.append(nbr)
        return depths

    def subgraph(self, members: Iterable[str]) -> "LinkGraph":
        keep = list(members)
        keep_set = set(keep)
        sub = LinkGraph()
        for n in keep:
            sub.add_node(n)
        for n in keep:
            for dst in self.edges.get(n, set()):
                if dst in keep_set:
                    sub.add_edge(n, dst)
        return sub
