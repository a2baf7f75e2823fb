"""Shared geometry helpers for layout algorithms.

Positions are node centres; sizes are (width, height) pairs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from ..models import GraphNode, Position

Size = tuple[float, float]


@dataclass(frozen=True)
class Bounds:
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Position:
        return Position((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    def to_dict(self) -> dict[str, float]:
        return {"min_x": self.min_x, "max_x": self.max_x, "min_y": self.min_y, "max_y": self.max_y}


def sizes_of(nodes: Iterable[GraphNode]) -> dict[str, Size]:
    return {n.id: (n.width, n.height) for n in nodes}


def bounds_of(
    positions: Mapping[str, Position],
    sizes: Mapping[str, Size] | None = None,
    *,
    padding: float = 0.0,
) -> Bounds:
    """Bounding box of node boxes (or bare points when sizes are omitted)."""
    if not positions:
        return Bounds(0.0, 0.0, 0.0, 0.0)

    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for node_id, pos in positions.items():
        w, h = (sizes or {}).get(node_id, (0.0, 0.0))
        min_x = min(min_x, pos.x - w / 2)
        max_x = max(max_x, pos.x + w / 2)
        min_y = min(min_y, pos.y - h / 2)
        max_y = max(max_y, pos.y + h / 2)

    return Bounds(min_x - padding, max_x + padding, min_y - padding, max_y + padding)


def centroid(points: Iterable[Position]) -> Position | None:
    xs: list[float] = []
    ys: list[float] = []
    for p in points:
        xs.append(p.x)
        ys.append(p.y)
    if not xs:
        return None
    return Position(sum(xs) / len(xs), sum(ys) / len(ys))


def translate(positions: Mapping[str, Position], dx: float, dy: float) -> dict[str, Position]:
    return {node_id: pos.offset(dx, dy) for node_id, pos in positions.items()}


def tile_components(
    layouts: list[dict[str, Position]],
    sizes: Mapping[str, Size],
    *,
    gap: float,
) -> dict[str, Position]:
    """Merge independently laid-out components without overlap.

    The first layout keeps its coordinates. The rest are packed into shelves
    below it, left-aligned with it, wrapping at the wider of the first
    component and the widest remaining one.
    """
    layouts = [lay for lay in layouts if lay]
    if not layouts:
        return {}

    merged = dict(layouts[0])
    if len(layouts) == 1:
        return merged

    main = bounds_of(layouts[0], sizes)
    rest = [(lay, bounds_of(lay, sizes)) for lay in layouts[1:]]
    row_limit = max(main.width, max(b.width for _, b in rest))

    cursor_x = main.min_x
    cursor_y = main.max_y + gap
    row_height = 0.0

    for layout, b in rest:
        if cursor_x > main.min_x and (cursor_x - main.min_x) + b.width > row_limit:
            cursor_x = main.min_x
            cursor_y += row_height + gap
            row_height = 0.0

        merged.update(translate(layout, cursor_x - b.min_x, cursor_y - b.min_y))
        cursor_x += b.width + gap
        row_height = max(row_height, b.height)

    return merged


def boxes_overlap(a: Position, a_size: Size, b: Position, b_size: Size) -> bool:
    return (
        abs(a.x - b.x) * 2 < a_size[0] + b_size[0]
        and abs(a.y - b.y) * 2 < a_size[1] + b_size[1]
    )
