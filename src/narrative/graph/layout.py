# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Deterministic force-directed layout for trust graphs."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from ..core.config import get_config

if TYPE_CHECKING:
    from .model import TrustEdge, TrustGraph, TrustNode

REPULSION_STRENGTH = 25000.0
ATTRACTION_STRENGTH = 0.02
CENTER_PULL = 0.005
DAMPING = 0.85
MIN_DISTANCE = 120.0  # repulsion triples below this
IDEAL_EDGE_LENGTH = 180.0  # edges only attract beyond this
PADDING = 50.0
DEFAULT_ITERATIONS = 200

_INT32 = 2**32
_LCG_MULTIPLIER = 1103515245
_LCG_INCREMENT = 12345
_LCG_MASK = 0x7FFFFFFF


def _string_hash(seed: str) -> int:
    """31-based string hash wrapped to a signed 32-bit integer."""
    h = 0
    for char in seed:
        h = (h << 5) - h + ord(char)
        h = (h + 2**31) % _INT32 - 2**31
    return h


def seeded_random(seed: str) -> Callable[[], float]:
    """Return a generator of floats in [0, 1] fully determined by ``seed``."""
    state = _string_hash(seed)

    def next_random() -> float:
        nonlocal state
        state = (state * _LCG_MULTIPLIER + _LCG_INCREMENT) & _LCG_MASK
        return state / _LCG_MASK

    return next_random


def simulate_forces(
    nodes: Sequence[TrustNode],
    edges: Sequence[TrustEdge],
    width: float,
    height: float,
    iterations: int = DEFAULT_ITERATIONS,
) -> None:
    """Run the force simulation in place on ``nodes``.

    Each iteration applies pairwise repulsion, spring attraction along
    edges, a weak pull to the centre, then moves every node by its damped
    velocity and clamps it inside the canvas. The current user's node is
    pinned at the centre.
    """
    center_x = width / 2
    center_y = height / 2
    index = {node.id: node for node in nodes}

    for _ in range(iterations):
        for a in range(len(nodes)):
            for b in range(a + 1, len(nodes)):
                na, nb = nodes[a], nodes[b]
                dx = nb.x - na.x
                dy = nb.y - na.y
                dist = math.hypot(dx, dy)
                if dist < 1:
                    # Coincident nodes: index-based offset keeps this deterministic
                    dx = (a * 7 + b * 13) % 10 - 5
                    dy = (a * 11 + b * 3) % 10 - 5
                    if dx == 0 and dy == 0:
                        dx = 1
                    dist = math.hypot(dx, dy)

                force = REPULSION_STRENGTH / (dist * dist)
                if dist < MIN_DISTANCE:
                    force *= 3

                fx = dx / dist * force
                fy = dy / dist * force
                na.vx -= fx
                na.vy -= fy
                nb.vx += fx
                nb.vy += fy

        for edge in edges:
            source = index.get(edge.source)
            target = index.get(edge.target)
            if source is None or target is None:
                continue
            dx = target.x - source.x
            dy = target.y - source.y
            dist = math.hypot(dx, dy)
            if dist > IDEAL_EDGE_LENGTH:
                strength = (dist - IDEAL_EDGE_LENGTH) * ATTRACTION_STRENGTH
                fx = dx / dist * strength
                fy = dy / dist * strength
                source.vx += fx
                source.vy += fy
                target.vx -= fx
                target.vy -= fy

        for node in nodes:
            node.vx += (center_x - node.x) * CENTER_PULL
            node.vy += (center_y - node.y) * CENTER_PULL

        for node in nodes:
            if node.is_current_user:
                node.x = center_x
                node.y = center_y
                node.vx = 0.0
                node.vy = 0.0
                continue
            node.x += node.vx
            node.y += node.vy
            node.vx *= DAMPING
            node.vy *= DAMPING
            node.x = max(PADDING, min(width - PADDING, node.x))
            node.y = max(PADDING, min(height - PADDING, node.y))


def layout_graph(
    graph: TrustGraph,
    width: float | None = None,
    height: float | None = None,
    iterations: int | None = None,
) -> TrustGraph:
    """Lay out ``graph`` in place and return it."""
    config = get_config()
    simulate_forces(
        graph.nodes,
        graph.edges,
        width if width is not None else config.graph_width,
        height if height is not None else config.graph_height,
        iterations if iterations is not None else config.layout_iterations,
    )
    return graph
