"""
File system watcher that turns snapshot changes into rescan signals.

The document collaborator rewrites the snapshot file whenever the vault
changes. Editors and exporters tend to save in bursts (truncate, write,
rename), so events are debounced: a rescan fires once the file has been
quiet for DEBOUNCE_SECONDS.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class SnapshotEventHandler(FileSystemEventHandler):
    """
    Collects events for one snapshot file and reports when a rescan is due.

    Key behaviors:
    - Ignores every path except the watched snapshot file
    - Treats moves onto the file (atomic saves) as modifications
    - Coalesces bursts of events into one rescan
    """

    DEBOUNCE_SECONDS = 0.3

    def __init__(
        self,
        snapshot_path: Path,
        on_rescan: Callable[[Path], None] | None = None,
        debounce_seconds: float | None = None,
    ):
        super().__init__()
        self.snapshot_path = snapshot_path.resolve()
        self.on_rescan = on_rescan
        if debounce_seconds is not None:
            self.DEBOUNCE_SECONDS = debounce_seconds

        # Time of the latest unflushed event, None when quiet
        self.pending_since: float | None = None
        self.rescans = 0

    def _is_snapshot(self, path: str | bytes) -> bool:
        if isinstance(path, bytes):
            path = path.decode()
        return Path(path).resolve() == self.snapshot_path

    def _mark(self) -> None:
        self.pending_since = time.monotonic()

    @property
    def has_pending(self) -> bool:
        return self.pending_since is not None

    def flush_pending(self, now: float | None = None) -> bool:
        """Fire the rescan callback if the debounce window has passed.

        Returns True when a rescan was signalled.
        """
        if self.pending_since is None:
            return False
        now = time.monotonic() if now is None else now
        if now - self.pending_since < self.DEBOUNCE_SECONDS:
            return False

        self.pending_since = None
        self.rescans += 1
        logger.debug("Snapshot %s changed; rescan #%d", self.snapshot_path, self.rescans)
        if self.on_rescan:
            self.on_rescan(self.snapshot_path)
        return True

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_snapshot(event.src_path):
            self._mark()

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._is_snapshot(event.src_path):
            self._mark()

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if self._is_snapshot(event.dest_path) or self._is_snapshot(event.src_path):
            self._mark()

    def on_deleted(self, event: FileSystemEvent) -> None:
        # A deleted snapshot is usually about to be rewritten; wait for it
        if not event.is_directory and self._is_snapshot(event.src_path):
            logger.debug("Snapshot %s deleted", self.snapshot_path)


def watch_snapshot(
    snapshot_path: Path,
    on_rescan: Callable[[Path], None] | None = None,
) -> tuple[Observer, SnapshotEventHandler]:
    """
    Start watching a snapshot file.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = SnapshotEventHandler(snapshot_path, on_rescan=on_rescan)

    observer = Observer()
    observer.schedule(handler, str(handler.snapshot_path.parent), recursive=False)
    observer.start()

    return observer, handler
