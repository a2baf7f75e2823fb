"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import Callable

import pytest

from docmap.animation import ManualFrameScheduler
from docmap.models import EdgeKind, GraphEdge, GraphNode, GraphSnapshot, NodeKind
from docmap.session import GraphSession
from docmap.store import PositionStore

SnapshotFactory = Callable[..., GraphSnapshot]


def doc(node_id: str, title: str | None = None, **data) -> GraphNode:
    return GraphNode(
        id=node_id,
        kind=NodeKind.DOCUMENT,
        data={"title": title or node_id.removesuffix(".md").upper(), "file_path": node_id, **data},
    )


def ext(node_id: str, domain: str, *urls: str) -> GraphNode:
    return GraphNode(id=node_id, kind=NodeKind.EXTERNAL_LINK, data={"domain": domain, "urls": list(urls)})


@pytest.fixture
def make_snapshot() -> SnapshotFactory:
    """Build a snapshot from node ids and (source, target) pairs.

    Ids starting with "ext:" become external-link nodes and edges into them
    are external edges.
    """

    def factory(ids: list[str], links: list[tuple[str, str]] | None = None, **counters) -> GraphSnapshot:
        nodes = [ext(i, i.removeprefix("ext:")) if i.startswith("ext:") else doc(i) for i in ids]
        edges = [
            GraphEdge(s, t, EdgeKind.EXTERNAL if t.startswith("ext:") else EdgeKind.INTERNAL)
            for s, t in (links or [])
        ]
        return GraphSnapshot.build(nodes, edges, **counters)

    return factory


@pytest.fixture
def store() -> PositionStore:
    return PositionStore()


@pytest.fixture
def scheduler() -> ManualFrameScheduler:
    return ManualFrameScheduler()


@pytest.fixture
def renders() -> list[list[GraphNode]]:
    """Every node list handed to the renderer, in order."""
    return []


@pytest.fixture
def session(
    tmp_path: Path,
    store: PositionStore,
    scheduler: ManualFrameScheduler,
    renders: list[list[GraphNode]],
) -> GraphSession:
    return GraphSession(
        tmp_path / "vault",
        store=store,
        scheduler=scheduler,
        on_render=renders.append,
        rng=random.Random(7),
    )


@pytest.fixture
def snapshot_file(tmp_path: Path) -> Callable[[str, dict], Path]:
    """Write a JSON snapshot into tmp_path and return its path."""

    def write(name: str, payload: dict) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return write
