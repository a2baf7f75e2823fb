"""Positions commands - inspect and forget cached node positions."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..store import PositionStore, graph_id_for


def run_positions_show(state_path: Path, *, root: Path | None = None, fmt: str = "rich") -> int:
    """Print cached positions, for one graph or all of them."""
    store = PositionStore.load(state_path)
    graph_ids = [graph_id_for(root)] if root else store.graph_ids()

    if fmt == "json":
        payload = {gid: {nid: p.to_dict() for nid, p in store.positions(gid).items()} for gid in graph_ids}
        print(json.dumps(payload, indent=2, sort_keys=True))
        return 0

    console = Console()
    shown = 0
    for gid in graph_ids:
        positions = store.positions(gid)
        if not positions:
            continue
        shown += 1
        t = Table(title=gid, show_header=True, header_style="bold")
        t.add_column("Node", style="cyan", no_wrap=True)
        t.add_column("x", justify="right")
        t.add_column("y", justify="right")
        for node_id, pos in sorted(positions.items()):
            t.add_row(node_id, f"{pos.x:.1f}", f"{pos.y:.1f}")
        console.print(t)
        console.print()

    if not shown:
        console.print("[dim]No cached positions.[/dim]")
    return 0


def run_positions_forget(state_path: Path, *, root: Path | None = None, forget_all: bool = False) -> int:
    """Drop cached positions so the next load lays the graph out afresh."""
    console = Console(stderr=True)
    store = PositionStore.load(state_path)

    if forget_all:
        count = len(store.graph_ids())
        store.clear_all()
        console.print(f"Forgot positions for {count} graph(s)", style="green")
    elif root is not None:
        gid = graph_id_for(root)
        if not store.has_saved(gid):
            console.print(f"[yellow]No cached positions for {gid}[/yellow]")
            return 1
        store.clear(gid)
        console.print(f"Forgot positions for {gid}", style="green")
    else:
        console.print("[red]Pass --root or --all[/red]")
        return 2

    store.dump(state_path)
    return 0
