"""Watch command - keep a graph session live while its snapshot changes."""

from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..animation import ManualFrameScheduler
from ..config import EngineConfig
from ..session import GraphSession
from ..snapshot_io import load_snapshot
from ..store import PositionStore
from ..watcher import watch_snapshot


def run_watch(
    snapshot_path: Path,
    *,
    config: EngineConfig,
    root: Path,
    state_path: Path,
    focus: str | None = None,
    max_ticks: int | None = None,
) -> int:
    """
    Rebuild the graph every time the snapshot file changes.

    This is a blocking command that runs until interrupted (Ctrl+C), or for
    `max_ticks` frames when given. Positions are written to `state_path`
    after every completed rebuild and on exit.
    """
    console = Console(stderr=True)

    store = PositionStore.load(state_path)
    scheduler = ManualFrameScheduler()
    session = GraphSession(root, store=store, scheduler=scheduler, config=config, focus_path=focus)

    rebuilds = 0

    def rebuild(path: Path) -> None:
        nonlocal rebuilds
        try:
            snapshot = load_snapshot(path)
        except (OSError, ValueError) as e:
            console.print(f"[yellow]Skipping unreadable snapshot: {e}[/yellow]")
            return

        result = session.rebuild(snapshot)
        rebuilds += 1
        timestamp = datetime.now().strftime("%H:%M:%S")
        diff = result.diff
        console.print(
            f"[dim]{timestamp}[/dim] {len(snapshot.nodes)} nodes "
            f"[green]+{len(diff.added)}[/green] [red]-{len(diff.removed)}[/red] "
            f"[dim](tier {int(result.tier)})[/dim]"
        )
        focus_id = session.consume_focus()
        if focus_id:
            console.print(f"  Focus: [cyan]{focus_id}[/cyan]")

    console.print(f"[bold]Watching[/bold] {snapshot_path}")
    console.print(f"  Graph: {session.graph_id}")
    console.print(f"  Positions: {state_path}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    if snapshot_path.exists():
        rebuild(snapshot_path)

    observer, handler = watch_snapshot(snapshot_path, on_rescan=rebuild)
    frame_seconds = 1.0 / config.animation.fps
    ticks = 0
    was_animating = False

    try:
        while max_ticks is None or ticks < max_ticks:
            time.sleep(frame_seconds)
            handler.flush_pending()
            scheduler.tick()
            ticks += 1

            animating = session.animator.is_animating
            if was_animating and not animating:
                store.dump(state_path)
            was_animating = animating
    except KeyboardInterrupt:
        console.print()
    finally:
        observer.stop()
        observer.join()
        session.close()
        store.dump(state_path)

    console.print(f"[bold]Stopped.[/bold] Rebuilt {rebuilds} times.")
    return 0
