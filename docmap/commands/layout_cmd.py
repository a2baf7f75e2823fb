"""Layout, diff and search commands - run the engine over snapshot files."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..animation import ManualFrameScheduler
from ..config import EngineConfig
from ..graph import LinkGraph
from ..layout import LAYOUT_LABELS, LayoutEngine, resolve_focus_node
from ..layout.geometry import bounds_of, sizes_of
from ..models import GraphSnapshot, LayoutAlgorithm
from ..search import SearchIndex
from ..session import GraphSession
from ..snapshot_io import load_snapshot, positions_to_dict
from ..store import PositionStore

STATE_DIR = ".docmap"
STATE_FILE = "positions.json"


def default_state_path(root: Path) -> Path:
    return root / STATE_DIR / STATE_FILE


def _emit(text: str, out: Path | None, console: Console) -> None:
    if out:
        out.write_text(text, encoding="utf-8")
        console.print(f"Wrote output to {out}", style="green")
    else:
        print(text, end="" if text.endswith("\n") else "\n")


def run_layout(
    snapshot_path: Path,
    *,
    config: EngineConfig,
    algorithm: str | None = None,
    focus: str | None = None,
    depth: int | None = None,
    fmt: str = "json",
    out: Path | None = None,
) -> int:
    """Lay out a snapshot from scratch and print node positions."""
    console = Console(stderr=True)

    snapshot = load_snapshot(snapshot_path)
    algo = LayoutAlgorithm(algorithm or config.default_algorithm)

    if depth is not None:
        focus_id = resolve_focus_node(snapshot.nodes, focus)
        if focus_id is None:
            console.print("[yellow]No document to focus on; using the whole graph[/yellow]")
        else:
            snapshot = snapshot.neighborhood(focus_id, depth)

    engine = LayoutEngine(config)
    positions = engine.layout(snapshot, algo, focus=focus)
    payload = _layout_payload(snapshot, algo, positions)

    if fmt == "rich":
        if out:
            rich_console = Console(record=True)
            _print_layout_rich(payload, console=rich_console)
            out.write_text(rich_console.export_text(), encoding="utf-8")
            console.print(f"Wrote output to {out}", style="green")
        else:
            _print_layout_rich(payload, console=Console())
        return 0

    if fmt == "md":
        text = _layout_markdown(payload)
    else:
        text = json.dumps(payload, indent=2, sort_keys=True) + "\n"
    _emit(text, out, console)
    return 0


def _layout_payload(snapshot: GraphSnapshot, algorithm: LayoutAlgorithm, positions: dict) -> dict:
    components = LinkGraph.from_snapshot(snapshot).connected_components() if snapshot.nodes else []
    bounds = bounds_of(positions, sizes_of(snapshot.nodes))
    return {
        "algorithm": algorithm.value,
        "node_count": len(snapshot.nodes),
        "edge_count": len(snapshot.edges),
        "component_count": len(components),
        "bounds": {k: round(v, 2) for k, v in bounds.to_dict().items()},
        "positions": positions_to_dict(positions),
    }


def _layout_markdown(payload: dict) -> str:
    label, description = LAYOUT_LABELS[LayoutAlgorithm(payload["algorithm"])]
    lines = [
        f"## {label} layout",
        "",
        f"_{description}_",
        "",
        f"- Nodes: {payload['node_count']}",
        f"- Edges: {payload['edge_count']}",
        f"- Components: {payload['component_count']}",
        "",
        "| Node | x | y |",
        "|---|---:|---:|",
    ]
    for node_id, pos in payload["positions"].items():
        lines.append(f"| `{node_id}` | {pos['x']} | {pos['y']} |")
    return "\n".join(lines).rstrip() + "\n"


def _print_layout_rich(payload: dict, *, console: Console) -> None:
    label, description = LAYOUT_LABELS[LayoutAlgorithm(payload["algorithm"])]
    console.print(f"[bold]{label} layout[/bold] [dim]{description}[/dim]")
    console.print(
        f"Nodes: {payload['node_count']}  Edges: {payload['edge_count']}  "
        f"Components: {payload['component_count']}"
    )
    console.print()

    t = Table(show_header=True, header_style="bold")
    t.add_column("Node", style="cyan", no_wrap=True)
    t.add_column("x", justify="right")
    t.add_column("y", justify="right")
    for node_id, pos in payload["positions"].items():
        t.add_row(node_id, f"{pos['x']:.1f}", f"{pos['y']:.1f}")
    console.print(t)


def run_diff(
    previous_path: Path,
    new_path: Path,
    *,
    config: EngineConfig,
    root: Path,
    state_path: Path | None = None,
    fmt: str = "rich",
) -> int:
    """Replay a rebuild from one snapshot to the next and report what moved.

    With `state_path`, cached positions are read from and written back to
    that file, the way an open view would keep them.
    """
    console = Console(stderr=True)

    previous = load_snapshot(previous_path)
    new = load_snapshot(new_path)
    store = PositionStore.load(state_path) if state_path else PositionStore()

    scheduler = ManualFrameScheduler()
    session = GraphSession(root, store=store, scheduler=scheduler, config=config)
    session.rebuild(previous)
    scheduler.run_until_idle()

    result = session.rebuild(new)
    frames = scheduler.run_until_idle()

    if state_path:
        store.dump(state_path)

    payload = {
        "tier": int(result.tier),
        "animated": result.animated,
        "frames": frames,
        **result.diff.to_dict(),
        "positions": positions_to_dict(session.positions),
    }

    if fmt == "json":
        print(json.dumps(payload, indent=2, sort_keys=True))
        return 0

    console.print(f"[bold]Rebuild[/bold] {previous_path.name} -> {new_path.name}")
    console.print(f"  Tier: {result.tier.name.lower()}  Animated frames: {frames}")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Change")
    table.add_column("Node", style="cyan", no_wrap=True)
    table.add_column("Position", justify="right")
    positions = payload["positions"]
    for change, style, ids in (
        ("+", "green", payload["added"]),
        ("-", "red", payload["removed"]),
        ("=", "dim", payload["unchanged"]),
    ):
        for node_id in ids:
            pos = positions.get(node_id)
            where = f"({pos['x']:.1f}, {pos['y']:.1f})" if pos else ""
            table.add_row(f"[{style}]{change}[/{style}]", node_id, where)
    Console().print(table)
    return 0


def run_search(snapshot_path: Path, query: str, *, fmt: str = "rich") -> int:
    """List nodes matching `query`. Exit code 1 when nothing matches."""
    snapshot = load_snapshot(snapshot_path)
    index = SearchIndex()
    matches = [n for n in snapshot.nodes if index.matches(n, query)]

    if fmt == "json":
        print(json.dumps([{"id": n.id, "kind": n.kind.value, "title": n.title} for n in matches], indent=2))
    else:
        console = Console()
        if not matches:
            console.print(f"[dim]No nodes match {query!r}.[/dim]")
        else:
            t = Table(title=f"{len(matches)} of {len(snapshot.nodes)} nodes match", header_style="bold")
            t.add_column("Node", style="cyan", no_wrap=True)
            t.add_column("Kind")
            t.add_column("Title")
            for n in matches:
                t.add_row(n.id, n.kind.value, n.title)
            console.print(t)

    return 0 if matches else 1
