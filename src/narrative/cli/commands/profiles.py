# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Profile discovery and trust graph commands."""

from __future__ import annotations

import argparse
import asyncio
import logging

from ...core.exceptions import NarrativeException
from ...graph.layout import layout_graph
from ...graph.model import TrustGraph, build_graph
from ...identity.did import short_id
from ...profiles.models import KnownProfile, ProfileSource
from ...profiles.registry import ProfileRegistry
from ..output import output_error, output_json, status_icon
from ..utils import load_identity, open_repo, require_user_doc

logger = logging.getLogger(__name__)


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the profiles and graph commands on the CLI parser."""
    profiles_parser = subparsers.add_parser("profiles", help="Discover and list known profiles")
    profiles_parser.add_argument(
        "--external",
        nargs="+",
        action="append",
        metavar=("URL", "DID"),
        help="Register an out-of-band document: URL [DID [NAME]] (repeatable)",
    )
    profiles_parser.add_argument("--json", action="store_true", help="Output as JSON")
    profiles_parser.set_defaults(func=cmd_profiles)

    graph_parser = subparsers.add_parser("graph", help="Build and lay out the trust graph")
    graph_parser.add_argument("--width", type=float, help="Canvas width")
    graph_parser.add_argument("--height", type=float, help="Canvas height")
    graph_parser.add_argument("--iterations", type=int, help="Force simulation steps")
    graph_parser.add_argument("--json", action="store_true", help="Output as JSON")
    graph_parser.set_defaults(func=cmd_graph)


async def _discover(
    args: argparse.Namespace,
    with_graph: bool = False,
) -> tuple[list[KnownProfile], TrustGraph | None]:
    identity = load_identity(args)
    repo = open_repo(args)
    handle = require_user_doc(repo, identity)
    registry = ProfileRegistry(identity.id, repo, user_handle=handle)
    try:
        for entry in getattr(args, "external", None) or []:
            url = entry[0]
            did = entry[1] if len(entry) > 1 else None
            name = " ".join(entry[2:]) or None
            registry.register_external_doc(url, did, name)
        await registry.wait_idle()

        known = [k for k in (registry.known_profile(did) for did in registry.profiles) if k is not None]
        graph = None
        if with_graph:
            graph = build_graph(
                handle.doc() or {},
                registry.peer_documents(),
                registry.profiles,
                width=args.width,
                height=args.height,
            )
            layout_graph(graph, args.width, args.height, args.iterations)
        return known, graph
    finally:
        await registry.close()


def cmd_profiles(args: argparse.Namespace) -> int:
    """Load every reachable document and print the merged profiles."""
    try:
        known, _graph = asyncio.run(_discover(args))
    except NarrativeException as e:
        output_error(e.message)
        return 1

    if args.json:
        output_json([k.to_dict() for k in known])
        return 0

    print(f"👥 Known profiles ({len(known)})")
    for k in known:
        p = k.profile
        arrows = "⇄" if k.is_mutual_trust else "→" if k.is_trust_given else "←" if k.is_trust_received else " "
        name = p.display_name or short_id(p.did)
        tag = "you" if p.source == ProfileSource.SELF else p.discovery_source.value
        print(f"   {arrows} {status_icon(p.signature_status)} {name:<24} {tag:<12} {p.load_state:<12} {p.did}")
    return 0


def cmd_graph(args: argparse.Namespace) -> int:
    """Print the laid-out trust graph."""
    try:
        _known, graph = asyncio.run(_discover(args, with_graph=True))
    except NarrativeException as e:
        output_error(e.message)
        return 1
    if graph is None:
        return 1

    if args.json:
        output_json(graph.to_dict())
        return 0

    labels = {n.id: n.label for n in graph.nodes}
    print(f"🕸  Trust graph: {len(graph.nodes)} nodes, {len(graph.edges)} edges")
    for node in graph.nodes:
        print(f"   ({node.x:7.1f}, {node.y:7.1f})  {node.label}  [{node.scope}]")
    for edge in graph.edges:
        degree = " (2nd degree)" if edge.is_second_degree else ""
        print(f"   {labels[edge.source]} → {labels[edge.target]}  {edge.kind} {edge.level}{degree}")
    return 0
