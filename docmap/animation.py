"""Frame-stepped animation of entering, exiting and moving nodes.

Frames are driven by a `FrameScheduler` (a display refresh callback in a UI,
`ManualFrameScheduler` in the CLI and in tests). Each scheduled tick applies
one frame through the controller's apply callback; after the last frame the
final state is applied and the completion callback runs exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from itertools import count
from typing import Callable, Protocol, Sequence

from .config import AnimationConfig
from .models import GraphNode, Position

logger = logging.getLogger(__name__)

ENTER_START_SCALE = 0.5
EXIT_END_SCALE = 0.5


def linear(t: float) -> float:
    return t


def ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


def ease_in_cubic(t: float) -> float:
    return t**3


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4 * t**3
    return 1 - (-2 * t + 2) ** 3 / 2


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _progress(index: int, frames: int) -> float:
    """Progress of frame `index` out of `frames`: 0 on the first, 1 on the last."""
    if frames <= 1:
        return 1.0
    return index / (frames - 1)


@dataclass(frozen=True)
class AnimationFrame:
    """Display attributes of one node in one frame."""

    node_id: str
    position: Position
    opacity: float = 1.0
    scale: float = 1.0

    def apply(self, node: GraphNode) -> GraphNode:
        return replace(node, position=self.position, opacity=self.opacity, scale=self.scale)


FrameSet = dict[str, AnimationFrame]
Timeline = list[FrameSet]


def entering_frames(nodes: Sequence[GraphNode], frames: int) -> Timeline:
    """Fade in from transparent and grow from half size, easing out."""
    timeline: Timeline = []
    for i in range(frames):
        e = ease_out_cubic(_progress(i, frames))
        timeline.append(
            {
                n.id: AnimationFrame(n.id, n.position, opacity=e, scale=_lerp(ENTER_START_SCALE, 1.0, e))
                for n in nodes
            }
        )
    return timeline


def exiting_frames(nodes: Sequence[GraphNode], frames: int) -> Timeline:
    """Fade out and shrink to half size, easing in."""
    timeline: Timeline = []
    for i in range(frames):
        e = ease_in_cubic(_progress(i, frames))
        timeline.append(
            {
                n.id: AnimationFrame(n.id, n.position, opacity=1.0 - e, scale=_lerp(1.0, EXIT_END_SCALE, e))
                for n in nodes
            }
        )
    return timeline


def transition_frames(
    from_nodes: Sequence[GraphNode], to_nodes: Sequence[GraphNode], frames: int
) -> Timeline:
    """Move every node from its old to its new position, easing in and out.

    Nodes absent from `from_nodes` start at their destination.
    """
    origins = {n.id: n.position for n in from_nodes}
    timeline: Timeline = []
    for i in range(frames):
        e = ease_in_out_cubic(_progress(i, frames))
        frame: FrameSet = {}
        for n in to_nodes:
            start = origins.get(n.id, n.position)
            frame[n.id] = AnimationFrame(
                n.id, Position(_lerp(start.x, n.position.x, e), _lerp(start.y, n.position.y, e))
            )
        timeline.append(frame)
    return timeline


def merge_animating_nodes(
    static: Sequence[GraphNode], animating: Sequence[GraphNode], frame: FrameSet
) -> list[GraphNode]:
    """Static nodes as they are followed by the animating nodes at `frame`."""
    out = list(static)
    for node in animating:
        f = frame.get(node.id)
        out.append(f.apply(node) if f else node)
    return out


class FrameScheduler(Protocol):
    def request_frame(self, callback: Callable[[], None]) -> int: ...

    def cancel_frame(self, handle: int) -> None: ...


class ManualFrameScheduler:
    """Scheduler stepped by explicit `tick()` calls.

    A tick runs the callbacks requested before it; callbacks requested while
    ticking wait for the next tick, like display refresh callbacks do.
    """

    def __init__(self) -> None:
        self._handles = count(1)
        self._queue: dict[int, Callable[[], None]] = {}
        self.ticks = 0

    def request_frame(self, callback: Callable[[], None]) -> int:
        handle = next(self._handles)
        self._queue[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._queue.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def tick(self) -> int:
        """Run one frame. Returns the number of callbacks run."""
        due = list(self._queue.items())
        self._queue.clear()
        self.ticks += 1
        for _, callback in due:
            callback()
        return len(due)

    def run_until_idle(self, max_ticks: int = 10_000) -> int:
        """Tick until nothing is pending. Returns the number of ticks taken."""
        taken = 0
        while self._queue:
            if taken >= max_ticks:
                raise RuntimeError(f"Animation still running after {max_ticks} frames")
            self.tick()
            taken += 1
        return taken


class AnimationController:
    """Runs at most one timeline at a time.

    Starting a new animation cancels the one in flight; a cancelled
    animation never calls its completion callback.
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        apply: Callable[[list[GraphNode]], None],
        config: AnimationConfig | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.config = config or AnimationConfig()
        self._apply = apply
        self._handle: int | None = None
        self._timeline: list[list[GraphNode]] = []
        self._final: list[GraphNode] = []
        self._index = 0
        self._on_complete: Callable[[], None] | None = None
        self.kind: str | None = None

    @property
    def is_animating(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        if self._handle is not None:
            self.scheduler.cancel_frame(self._handle)
            logger.debug("Cancelled %s animation at frame %d", self.kind, self._index)
        self._reset()

    def animate_entering(
        self,
        nodes: Sequence[GraphNode],
        context: Sequence[GraphNode],
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        """Fade `nodes` in while the `context` nodes stay still."""
        timeline = entering_frames(nodes, self.config.entering_frames)
        rendered = [merge_animating_nodes(context, nodes, frame) for frame in timeline]
        self._start("entering", nodes, rendered, [*context, *nodes], on_complete)

    def animate_exiting(
        self,
        nodes: Sequence[GraphNode],
        context: Sequence[GraphNode],
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        """Fade `nodes` out; once done only the `context` nodes remain."""
        timeline = exiting_frames(nodes, self.config.exiting_frames)
        rendered = [merge_animating_nodes(context, nodes, frame) for frame in timeline]
        self._start("exiting", nodes, rendered, list(context), on_complete)

    def animate_transition(
        self,
        from_nodes: Sequence[GraphNode],
        to_nodes: Sequence[GraphNode],
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        """Move every node from its position in `from_nodes` to the one in `to_nodes`."""
        timeline = transition_frames(from_nodes, to_nodes, self.config.transition_frames)
        rendered = [merge_animating_nodes([], to_nodes, frame) for frame in timeline]
        self._start("transition", to_nodes, rendered, list(to_nodes), on_complete)

    def _start(
        self,
        kind: str,
        nodes: Sequence[GraphNode],
        rendered: list[list[GraphNode]],
        final: list[GraphNode],
        on_complete: Callable[[], None] | None,
    ) -> None:
        self.cancel()
        if not nodes:
            self._apply(final)
            if on_complete:
                on_complete()
            return

        self.kind = kind
        self._timeline = rendered
        self._final = final
        self._on_complete = on_complete
        self._index = 0
        logger.debug("Starting %s animation of %d nodes", kind, len(nodes))
        self._handle = self.scheduler.request_frame(self._step)

    def _step(self) -> None:
        frame = self._timeline[self._index]
        self._index += 1
        if self._index < len(self._timeline):
            self._apply(frame)
            self._handle = self.scheduler.request_frame(self._step)
            return

        final = self._final
        on_complete = self._on_complete
        self._reset()
        self._apply(final)
        if on_complete:
            on_complete()

    def _reset(self) -> None:
        self._handle = None
        self._timeline = []
        self._final = []
        self._index = 0
        self._on_complete = None
        self.kind = None
