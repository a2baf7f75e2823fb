"""Force-directed layout with a Barnes-Hut many-body approximation.

Nodes are charged particles, edges are springs. Each tick applies
many-body repulsion (quadtree approximation, O(n log n)), link attraction,
collision separation and a centring pull, then integrates velocities with
decay. The simulation stops after the iteration cap or as soon as a tick
moves the whole system by less than the convergence threshold.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Iterable, Mapping

from ..config import ForceConfig
from ..models import GraphEdge, Position
from .geometry import Size

logger = logging.getLogger(__name__)

# Initial phyllotaxis spiral
INITIAL_SPACING = 50.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))

COLLIDE_ITERATIONS = 3
MAX_TREE_DEPTH = 32


class Body:
    """A simulated particle."""

    __slots__ = ("id", "index", "x", "y", "vx", "vy", "radius", "charge", "pinned")

    def __init__(self, node_id: str, index: int, x: float, y: float, radius: float, charge: float) -> None:
        self.id = node_id
        self.index = index
        self.x = x
        self.y = y
        self.vx = 0.0
        self.vy = 0.0
        self.radius = radius
        self.charge = charge
        self.pinned = False


class _Quad:
    __slots__ = ("x0", "y0", "size", "children", "bodies", "charge", "weight", "cx", "cy")

    def __init__(self, x0: float, y0: float, size: float) -> None:
        self.x0 = x0
        self.y0 = y0
        self.size = size
        self.children: list[_Quad | None] | None = None
        self.bodies: list[Body] = []
        self.charge = 0.0
        self.weight = 0.0
        self.cx = 0.0
        self.cy = 0.0

    def child_index(self, x: float, y: float) -> int:
        half = self.size / 2
        return int(x >= self.x0 + half) + 2 * int(y >= self.y0 + half)

    def make_child(self, i: int) -> "_Quad":
        half = self.size / 2
        return _Quad(self.x0 + half * (i & 1), self.y0 + half * (i >> 1), half)


class QuadTree:
    """Region quadtree over bodies, aggregating charge at each cell's centre of charge."""

    def __init__(self, bodies: Iterable[Body]) -> None:
        bodies = list(bodies)
        if bodies:
            min_x = min(b.x for b in bodies)
            min_y = min(b.y for b in bodies)
            max_x = max(b.x for b in bodies)
            max_y = max(b.y for b in bodies)
        else:
            min_x = min_y = max_x = max_y = 0.0
        size = max(max_x - min_x, max_y - min_y, 1.0) * 1.0001
        self.root = _Quad(min_x, min_y, size)
        for body in bodies:
            self._insert(self.root, body, 0)
        self._accumulate(self.root)

    def _insert(self, quad: _Quad, body: Body, depth: int) -> None:
        while True:
            if quad.children is None:
                if not quad.bodies or depth >= MAX_TREE_DEPTH:
                    quad.bodies.append(body)
                    return
                # Split the leaf and push its bodies down one level
                existing = quad.bodies
                quad.bodies = []
                quad.children = [None, None, None, None]
                for other in existing:
                    self._insert_child(quad, other, depth)
            i = quad.child_index(body.x, body.y)
            child = quad.children[i]
            if child is None:
                child = quad.make_child(i)
                quad.children[i] = child
            quad = child
            depth += 1

    def _insert_child(self, quad: _Quad, body: Body, depth: int) -> None:
        i = quad.child_index(body.x, body.y)
        child = quad.children[i]
        if child is None:
            child = quad.make_child(i)
            quad.children[i] = child
        self._insert(child, body, depth + 1)

    def _accumulate(self, quad: _Quad) -> None:
        # Post-order without recursion
        order: list[_Quad] = []
        stack = [quad]
        while stack:
            q = stack.pop()
            order.append(q)
            if q.children:
                stack.extend(c for c in q.children if c is not None)

        for q in reversed(order):
            members: list[tuple[float, float, float, float]] = []
            if q.children is None:
                members = [(b.charge, abs(b.charge), b.x, b.y) for b in q.bodies]
            else:
                members = [(c.charge, c.weight, c.cx, c.cy) for c in q.children if c is not None]
            q.charge = sum(m[0] for m in members)
            q.weight = sum(m[1] for m in members)
            if q.weight > 0:
                q.cx = sum(m[1] * m[2] for m in members) / q.weight
                q.cy = sum(m[1] * m[3] for m in members) / q.weight

    def query(self, x: float, y: float, radius: float) -> list[Body]:
        """Bodies inside the axis-aligned square of half-side `radius` around (x, y)."""
        found: list[Body] = []
        stack = [self.root]
        while stack:
            q = stack.pop()
            if (
                q.x0 > x + radius
                or q.y0 > y + radius
                or q.x0 + q.size < x - radius
                or q.y0 + q.size < y - radius
            ):
                continue
            if q.children is None:
                for b in q.bodies:
                    if abs(b.x - x) <= radius and abs(b.y - y) <= radius:
                        found.append(b)
            else:
                stack.extend(c for c in q.children if c is not None)
        return found


class ForceSimulation:
    """Synchronous force simulation over one connected set of nodes."""

    def __init__(
        self,
        node_ids: list[str],
        edges: Iterable[GraphEdge],
        sizes: Mapping[str, Size],
        config: ForceConfig,
        *,
        initial: Mapping[str, Position] | None = None,
        pinned: Iterable[str] = (),
        center: Position = Position(),
    ) -> None:
        self.config = config
        self.center = center
        self._rng = random.Random(config.seed)
        initial = initial or {}

        self.bodies: list[Body] = []
        self._by_id: dict[str, Body] = {}
        for i, node_id in enumerate(node_ids):
            w, h = sizes.get(node_id, (0.0, 0.0))
            if node_id in initial:
                x, y = initial[node_id].x, initial[node_id].y
            else:
                r = INITIAL_SPACING * math.sqrt(0.5 + i)
                angle = i * INITIAL_ANGLE
                x, y = center.x + r * math.cos(angle), center.y + r * math.sin(angle)
            body = Body(node_id, i, x, y, max(w, h) / 2 + config.collide_padding, config.charge_strength)
            self.bodies.append(body)
            self._by_id[node_id] = body

        for node_id in pinned:
            if node_id in self._by_id:
                self._by_id[node_id].pinned = True

        # Undirected, de-duplicated springs
        self.links: list[tuple[Body, Body]] = []
        seen: set[tuple[str, str]] = set()
        for edge in edges:
            if edge.source == edge.target:
                continue
            if edge.source not in self._by_id or edge.target not in self._by_id:
                continue
            key = (edge.source, edge.target) if edge.source < edge.target else (edge.target, edge.source)
            if key in seen:
                continue
            seen.add(key)
            self.links.append((self._by_id[edge.source], self._by_id[edge.target]))

        self._degree: dict[str, int] = {b.id: 0 for b in self.bodies}
        for a, b in self.links:
            self._degree[a.id] += 1
            self._degree[b.id] += 1

        self.alpha = 1.0
        self.alpha_decay = 1 - config.alpha_min ** (1 / max(1, config.iterations))
        self.iterations_run = 0
        self.converged = False

    def _jiggle(self) -> float:
        return (self._rng.random() - 0.5) * 1e-6

    def _apply_links(self) -> None:
        distance = self.config.link_distance
        strength = self.config.link_strength
        for source, target in self.links:
            dx = target.x + target.vx - source.x - source.vx or self._jiggle()
            dy = target.y + target.vy - source.y - source.vy or self._jiggle()
            length = math.sqrt(dx * dx + dy * dy)
            k = (length - distance) / length * self.alpha * strength
            dx *= k
            dy *= k
            ds, dt = self._degree[source.id], self._degree[target.id]
            bias = ds / (ds + dt)
            target.vx -= dx * bias
            target.vy -= dy * bias
            source.vx += dx * (1 - bias)
            source.vy += dy * (1 - bias)

    def _apply_many_body(self, tree: QuadTree) -> None:
        theta2 = self.config.theta * self.config.theta
        dmax2 = self.config.distance_max * self.config.distance_max
        alpha = self.alpha

        for body in self.bodies:
            stack = [tree.root]
            while stack:
                q = stack.pop()
                if q.weight == 0:
                    continue
                if q.children is not None:
                    dx = q.cx - body.x
                    dy = q.cy - body.y
                    dist2 = dx * dx + dy * dy
                    if q.size * q.size / theta2 < dist2:
                        # Far enough: treat the whole cell as one particle
                        if dist2 < dmax2:
                            if dist2 < 1:
                                dist2 = math.sqrt(dist2)
                            body.vx += dx * q.charge * alpha / dist2
                            body.vy += dy * q.charge * alpha / dist2
                        continue
                    stack.extend(c for c in q.children if c is not None)
                    continue

                for other in q.bodies:
                    if other is body:
                        continue
                    dx = other.x - body.x
                    dy = other.y - body.y
                    if dx == 0:
                        dx = self._jiggle()
                    if dy == 0:
                        dy = self._jiggle()
                    dist2 = dx * dx + dy * dy
                    if dist2 >= dmax2:
                        continue
                    if dist2 < 1:
                        dist2 = math.sqrt(dist2)
                    body.vx += dx * other.charge * alpha / dist2
                    body.vy += dy * other.charge * alpha / dist2

    def _apply_collide(self, tree: QuadTree) -> None:
        if len(self.bodies) < 2:
            return
        max_radius = max(b.radius for b in self.bodies)
        for _ in range(COLLIDE_ITERATIONS):
            max_speed = max(math.hypot(b.vx, b.vy) for b in self.bodies)
            for body in self.bodies:
                xi = body.x + body.vx
                yi = body.y + body.vy
                reach = body.radius + max_radius + 2 * max_speed
                for other in tree.query(body.x, body.y, reach):
                    if other.index <= body.index:
                        continue
                    r = body.radius + other.radius
                    dx = xi - other.x - other.vx
                    dy = yi - other.y - other.vy
                    dist2 = dx * dx + dy * dy
                    if dist2 >= r * r:
                        continue
                    if dx == 0:
                        dx = self._jiggle()
                        dist2 += dx * dx
                    if dy == 0:
                        dy = self._jiggle()
                        dist2 += dy * dy
                    dist = math.sqrt(dist2)
                    push = (r - dist) / dist
                    ri2 = body.radius * body.radius
                    rj2 = other.radius * other.radius
                    share = rj2 / (ri2 + rj2)
                    body.vx += dx * push * share
                    body.vy += dy * push * share
                    other.vx -= dx * push * (1 - share)
                    other.vy -= dy * push * (1 - share)

    def _apply_gravity(self) -> None:
        strength = self.config.center_strength * self.alpha
        for body in self.bodies:
            body.vx += (self.center.x - body.x) * strength
            body.vy += (self.center.y - body.y) * strength

    def tick(self) -> float:
        """Advance one iteration; returns the total displacement it caused."""
        self.alpha += (0.0 - self.alpha) * self.alpha_decay

        tree = QuadTree(self.bodies)
        self._apply_links()
        self._apply_many_body(tree)
        self._apply_collide(tree)
        self._apply_gravity()

        keep = 1 - self.config.velocity_decay
        before = [(b.x, b.y) for b in self.bodies]
        for body in self.bodies:
            if body.pinned:
                body.vx = body.vy = 0.0
                continue
            body.vx *= keep
            body.vy *= keep
            body.x += body.vx
            body.y += body.vy

        if not any(b.pinned for b in self.bodies):
            # Keep the centre of mass on the centre point
            n = len(self.bodies)
            sx = sum(b.x for b in self.bodies) / n - self.center.x
            sy = sum(b.y for b in self.bodies) / n - self.center.y
            for body in self.bodies:
                body.x -= sx
                body.y -= sy

        self.iterations_run += 1
        return sum(math.hypot(b.x - x0, b.y - y0) for b, (x0, y0) in zip(self.bodies, before))

    def run(self) -> dict[str, Position]:
        if not self.bodies:
            return {}
        for _ in range(self.config.iterations):
            displacement = self.tick()
            if displacement < self.config.convergence_threshold:
                self.converged = True
                break

        if not self.converged:
            logger.debug(
                "Force layout ran all %d iterations without settling",
                self.config.iterations,
            )
        return self.positions()

    def positions(self) -> dict[str, Position]:
        return {b.id: Position(b.x, b.y) for b in self.bodies}


def force_layout(
    node_ids: list[str],
    edges: Iterable[GraphEdge],
    sizes: Mapping[str, Size],
    config: ForceConfig,
    *,
    initial: Mapping[str, Position] | None = None,
    pinned: Iterable[str] = (),
) -> dict[str, Position]:
    """Lay out one component with the force simulation."""
    if not node_ids:
        return {}
    if len(node_ids) == 1:
        start = (initial or {}).get(node_ids[0], Position())
        return {node_ids[0]: start}

    sim = ForceSimulation(node_ids, edges, sizes, config, initial=initial, pinned=pinned)
    positions = sim.run()
    logger.debug(
        "Force layout: %d nodes, %d links, %d iterations (converged=%s)",
        len(node_ids),
        len(sim.links),
        sim.iterations_run,
        sim.converged,
    )
    return positions
