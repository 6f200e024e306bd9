# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Trust graph derived from the local user's document and loaded peers.

The graph is recomputed from scratch whenever its inputs change and is
never persisted. There is one node per DID referenced by any attestation and
one edge per unordered pair; an attestation in each direction makes the edge
bidirectional instead of adding a second edge.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

from ..core.config import get_config
from ..core.exceptions import ValidationException
from ..identity.did import short_id
from ..profiles.loader import PeerDocument
from ..profiles.models import TrackedProfile
from ..trust.models import TrustLevel, parse_attestations
from .layout import seeded_random

NEUTRAL_EDGE_COLOR = "#9ca3af"
LEVEL_COLORS = {TrustLevel.FULL: "#22c55e", TrustLevel.LIMITED: "#f59e0b"}

# Spread of initial positions around the centre
DIRECT_SPREAD = 200
INDIRECT_SPREAD = 300


class TrustScope(enum.StrEnum):
    SELF = "self"
    DIRECT = "direct"
    INDIRECT = "indirect"


class EdgeKind(enum.StrEnum):
    BIDIRECTIONAL = "bidirectional"
    OUTGOING = "outgoing"  # self trusts other
    INCOMING = "incoming"  # other trusts self
    DIRECTED = "directed"  # between two other identities


@dataclass
class TrustNode:
    id: str
    label: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    is_current_user: bool = False
    scope: TrustScope = TrustScope.DIRECT
    avatar_url: str | None = None


@dataclass
class TrustEdge:
    source: str
    target: str
    level: TrustLevel
    bidirectional: bool = False
    is_second_degree: bool = False
    self_did: str | None = None

    @property
    def kind(self) -> EdgeKind:
        if self.bidirectional:
            return EdgeKind.BIDIRECTIONAL
        if self.self_did is not None and self.source == self.self_did:
            return EdgeKind.OUTGOING
        if self.self_did is not None and self.target == self.self_did:
            return EdgeKind.INCOMING
        return EdgeKind.DIRECTED

    @property
    def color(self) -> str:
        if self.is_second_degree:
            return NEUTRAL_EDGE_COLOR
        return LEVEL_COLORS[self.level]

    def connects(self, a: str, b: str) -> bool:
        return {self.source, self.target} == {a, b}


@dataclass
class TrustGraph:
    self_did: str
    nodes: list[TrustNode] = field(default_factory=list)
    edges: list[TrustEdge] = field(default_factory=list)

    def node(self, did: str) -> TrustNode | None:
        return next((n for n in self.nodes if n.id == did), None)

    def edge_between(self, a: str, b: str) -> TrustEdge | None:
        return next((e for e in self.edges if e.connects(a, b)), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "selfDid": self.self_did,
            "nodes": [asdict(n) for n in self.nodes],
            "edges": [
                {
                    "source": e.source,
                    "target": e.target,
                    "level": e.level.value,
                    "kind": e.kind.value,
                    "bidirectional": e.bidirectional,
                    "isSecondDegree": e.is_second_degree,
                    "color": e.color,
                }
                for e in self.edges
            ],
        }


class _GraphBuilder:
    def __init__(
        self,
        self_doc: Mapping[str, Any],
        peers: list[PeerDocument],
        profiles: Mapping[str, TrackedProfile],
        width: float,
        height: float,
    ) -> None:
        self.self_doc = self_doc
        self.self_did: str = self_doc["did"]
        self.peers = {p.did: p for p in peers}
        self.profiles = profiles
        self.center_x = width / 2
        self.center_y = height / 2
        self.random = seeded_random(self.self_did)
        self.nodes: dict[str, TrustNode] = {}
        self.edges: dict[tuple[str, str], TrustEdge] = {}

    def label(self, did: str) -> str:
        profile = self.profiles.get(did)
        if profile is not None and profile.display_name:
            return profile.display_name
        peer = self.peers.get(did)
        if peer is not None and peer.display_name:
            return peer.display_name
        return short_id(did)

    def avatar(self, did: str) -> str | None:
        profile = self.profiles.get(did)
        if profile is not None and profile.avatar_url:
            return profile.avatar_url
        peer = self.peers.get(did)
        return peer.avatar_url if peer is not None else None

    def add_self(self) -> None:
        own = self.self_doc.get("profile") or {}
        self.nodes[self.self_did] = TrustNode(
            id=self.self_did,
            label=own.get("displayName") or short_id(self.self_did),
            x=self.center_x,
            y=self.center_y,
            is_current_user=True,
            scope=TrustScope.SELF,
            avatar_url=own.get("avatarUrl"),
        )

    def add_node(self, did: str, scope: TrustScope) -> None:
        if did in self.nodes:
            return
        spread = DIRECT_SPREAD if scope == TrustScope.DIRECT else INDIRECT_SPREAD
        self.nodes[did] = TrustNode(
            id=did,
            label=self.label(did),
            x=self.center_x + (self.random() - 0.5) * spread,
            y=self.center_y + (self.random() - 0.5) * spread,
            scope=scope,
            avatar_url=self.avatar(did),
        )

    def add_edge(self, source: str, target: str, level: TrustLevel, second_degree: bool) -> None:
        key = (min(source, target), max(source, target))
        existing = self.edges.get(key)
        if existing is None:
            self.edges[key] = TrustEdge(
                source=source,
                target=target,
                level=level,
                is_second_degree=second_degree,
                self_did=self.self_did,
            )
        elif existing.source == target and existing.target == source:
            existing.bidirectional = True

    def build(self) -> TrustGraph:
        self.add_self()

        for att in parse_attestations(self.self_doc.get("trustGiven"), source="trustGiven"):
            self.add_node(att.trustee_id, TrustScope.DIRECT)
            self.add_edge(self.self_did, att.trustee_id, att.level, second_degree=False)
        for att in parse_attestations(self.self_doc.get("trustReceived"), source="trustReceived"):
            self.add_node(att.trustor_id, TrustScope.DIRECT)
            self.add_edge(att.trustor_id, self.self_did, att.level, second_degree=False)

        for peer in self.peers.values():
            if peer.did == self.self_did:
                continue
            for att in (*peer.trust_given, *peer.trust_received):
                if self.self_did in (att.trustor_id, att.trustee_id):
                    continue
                self.add_node(att.trustor_id, TrustScope.INDIRECT)
                self.add_node(att.trustee_id, TrustScope.INDIRECT)
                self.add_edge(att.trustor_id, att.trustee_id, att.level, second_degree=True)

        return TrustGraph(self.self_did, list(self.nodes.values()), list(self.edges.values()))


def build_graph(
    self_doc: Mapping[str, Any],
    peer_docs: Iterable[PeerDocument] = (),
    profiles: Mapping[str, TrackedProfile] | None = None,
    *,
    width: float | None = None,
    height: float | None = None,
) -> TrustGraph:
    """Derive the trust graph around the owner of ``self_doc``.

    Args:
        self_doc: The local user's document snapshot.
        peer_docs: Loaded peer documents; their attestations not involving
            the local user become 2nd-degree edges.
        profiles: Merged profiles used for node labels and avatars.
        width: Canvas width; defaults to the configured graph width.
        height: Canvas height; defaults to the configured graph height.

    Raises:
        ValidationException: If ``self_doc`` has no DID.
    """
    if not self_doc.get("did"):
        raise ValidationException("User document has no DID", field="did")
    config = get_config()
    return _GraphBuilder(
        self_doc,
        list(peer_docs),
        profiles or {},
        width if width is not None else config.graph_width,
        height if height is not None else config.graph_height,
    ).build()
