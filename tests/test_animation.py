from __future__ import annotations

import pytest

from conftest import doc

from docmap.animation import (
    AnimationController,
    ManualFrameScheduler,
    ease_in_cubic,
    ease_in_out_cubic,
    ease_out_cubic,
    entering_frames,
    exiting_frames,
    transition_frames,
)
from docmap.models import GraphNode, Position


@pytest.fixture
def applied() -> list[list[GraphNode]]:
    return []


@pytest.fixture
def controller(scheduler: ManualFrameScheduler, applied: list) -> AnimationController:
    return AnimationController(scheduler, applied.append)


@pytest.mark.parametrize("ease", [ease_in_cubic, ease_out_cubic, ease_in_out_cubic])
def test_easing_endpoints(ease) -> None:
    assert ease(0.0) == 0.0
    assert ease(1.0) == 1.0


def test_entering_timeline_fades_and_grows() -> None:
    timeline = entering_frames([doc("a")], 15)

    assert len(timeline) == 15
    first, last = timeline[0]["a"], timeline[-1]["a"]
    assert (first.opacity, first.scale) == (0.0, 0.5)
    assert (last.opacity, last.scale) == (1.0, 1.0)
    opacities = [f["a"].opacity for f in timeline]
    assert opacities == sorted(opacities)


def test_exiting_timeline_mirrors_entering() -> None:
    timeline = exiting_frames([doc("a")], 10)

    assert len(timeline) == 10
    first, last = timeline[0]["a"], timeline[-1]["a"]
    assert (first.opacity, first.scale) == (1.0, 1.0)
    assert (last.opacity, last.scale) == (0.0, 0.5)


def test_transition_ends_on_destination() -> None:
    start = [doc("a").with_position(Position(0, 0))]
    end = [doc("a").with_position(Position(100, -50))]

    timeline = transition_frames(start, end, 20)

    assert timeline[0]["a"].position == Position(0, 0)
    assert timeline[-1]["a"].position == Position(100, -50)
    assert 0 < timeline[10]["a"].position.x < 100


def test_timelines_are_deterministic() -> None:
    nodes = [doc("a").with_position(Position(3, 4)), doc("b")]
    assert entering_frames(nodes, 15) == entering_frames(nodes, 15)


def test_entering_runs_one_frame_per_tick(
    controller: AnimationController, scheduler: ManualFrameScheduler, applied: list
) -> None:
    done: list[bool] = []
    context = [doc("ctx")]

    controller.animate_entering([doc("new")], context, on_complete=lambda: done.append(True))

    assert applied == []
    assert scheduler.run_until_idle() == 15
    assert done == [True]
    assert len(applied) == 15
    assert applied[0][-1].opacity == 0.0
    final = applied[-1]
    assert [n.id for n in final] == ["ctx", "new"]
    assert final[-1].opacity == 1.0 and final[-1].scale == 1.0


def test_exiting_leaves_only_context(
    controller: AnimationController, scheduler: ManualFrameScheduler, applied: list
) -> None:
    controller.animate_exiting([doc("gone")], [doc("stay")])

    assert scheduler.run_until_idle() == 10
    assert [n.id for n in applied[0]] == ["stay", "gone"]
    assert [n.id for n in applied[-1]] == ["stay"]


def test_new_request_cancels_in_flight_timeline(
    controller: AnimationController, scheduler: ManualFrameScheduler
) -> None:
    calls: list[str] = []
    controller.animate_entering([doc("a")], [], on_complete=lambda: calls.append("first"))
    scheduler.tick()
    scheduler.tick()

    controller.animate_exiting([doc("a")], [], on_complete=lambda: calls.append("second"))
    scheduler.run_until_idle()

    assert calls == ["second"]


def test_cancel_never_completes(controller: AnimationController, scheduler: ManualFrameScheduler) -> None:
    calls: list[str] = []
    controller.animate_transition([doc("a")], [doc("a").with_position(Position(9, 9))], lambda: calls.append("x"))
    scheduler.tick()

    controller.cancel()

    assert not controller.is_animating
    assert scheduler.pending == 0
    assert calls == []


def test_empty_node_set_completes_immediately(
    controller: AnimationController, scheduler: ManualFrameScheduler, applied: list
) -> None:
    calls: list[str] = []

    controller.animate_entering([], [doc("ctx")], on_complete=lambda: calls.append("done"))

    assert calls == ["done"]
    assert scheduler.pending == 0
    assert [n.id for n in applied[-1]] == ["ctx"]


def test_completion_callback_can_chain(
    controller: AnimationController, scheduler: ManualFrameScheduler, applied: list
) -> None:
    def enter() -> None:
        controller.animate_entering([doc("new")], [doc("stay")])

    controller.animate_exiting([doc("old")], [doc("stay")], on_complete=enter)

    assert scheduler.run_until_idle() == 25
    ids_per_frame = [{n.id for n in frame} for frame in applied]
    first_with_new = next(i for i, ids in enumerate(ids_per_frame) if "new" in ids)
    assert all("new" not in ids for ids in ids_per_frame[:10])
    assert first_with_new == 10
    assert "old" not in ids_per_frame[first_with_new]
