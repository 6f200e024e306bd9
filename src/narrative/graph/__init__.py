# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Trust graph model and deterministic layout."""

from .layout import layout_graph, seeded_random, simulate_forces
from .model import (
    NEUTRAL_EDGE_COLOR,
    EdgeKind,
    TrustEdge,
    TrustGraph,
    TrustNode,
    TrustScope,
    build_graph,
)

__all__ = [
    "NEUTRAL_EDGE_COLOR",
    "EdgeKind",
    "TrustEdge",
    "TrustGraph",
    "TrustNode",
    "TrustScope",
    "build_graph",
    "layout_graph",
    "seeded_random",
    "simulate_forces",
]
