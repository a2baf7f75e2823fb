from __future__ import annotations

from pathlib import Path

from watchdog.events import DirModifiedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from docmap.watcher import SnapshotEventHandler


def _handler(tmp_path: Path, calls: list[Path]) -> SnapshotEventHandler:
    snapshot = tmp_path / "graph.json"
    snapshot.write_text("{}", encoding="utf-8")
    return SnapshotEventHandler(snapshot, on_rescan=calls.append)


def test_modifications_are_debounced(tmp_path: Path) -> None:
    calls: list[Path] = []
    handler = _handler(tmp_path, calls)

    handler.on_modified(FileModifiedEvent(str(tmp_path / "graph.json")))
    handler.on_modified(FileModifiedEvent(str(tmp_path / "graph.json")))
    started = handler.pending_since
    assert started is not None

    assert handler.flush_pending(now=started + 0.1) is False
    assert calls == []

    assert handler.flush_pending(now=started + handler.DEBOUNCE_SECONDS) is True
    assert calls == [handler.snapshot_path]
    assert not handler.has_pending
    assert handler.flush_pending(now=started + 10) is False


def test_other_paths_are_ignored(tmp_path: Path) -> None:
    handler = _handler(tmp_path, [])

    handler.on_modified(FileModifiedEvent(str(tmp_path / "notes.md")))
    handler.on_modified(DirModifiedEvent(str(tmp_path)))

    assert not handler.has_pending


def test_atomic_save_counts_as_change(tmp_path: Path) -> None:
    handler = _handler(tmp_path, [])

    handler.on_moved(FileMovedEvent(str(tmp_path / "graph.json.tmp"), str(tmp_path / "graph.json")))

    assert handler.has_pending


def test_deletion_waits_for_rewrite(tmp_path: Path) -> None:
    handler = _handler(tmp_path, [])

    handler.on_deleted(FileDeletedEvent(str(tmp_path / "graph.json")))

    assert not handler.has_pending


def test_debounce_window_is_configurable(tmp_path: Path) -> None:
    calls: list[Path] = []
    handler = SnapshotEventHandler(tmp_path / "graph.json", on_rescan=calls.append, debounce_seconds=0.0)

    handler.on_modified(FileModifiedEvent(str(tmp_path / "graph.json")))

    assert handler.flush_pending() is True
    assert handler.rescans == 1
