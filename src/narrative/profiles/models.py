# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Profile registry models.

A :class:`TrackedProfile` is the merged view of one identity. A
:class:`DocUrlEntry` is a user document the registry intends to fetch. Both
carry the :class:`ProfileSource` through which they were discovered; the
source's priority decides which facts win when sources disagree.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from ..identity.signing import SignatureStatus

# Maximum number of 2nd-degree profiles to track
MAX_2ND_DEGREE_PROFILES = 50


class DiscoverySource(enum.StrEnum):
    """How a profile was found."""

    SELF = "self"
    TRUST = "trust"  # 1st degree
    NETWORK_2ND = "network-2nd"  # 2nd degree
    EXTERNAL = "external"  # out-of-band, e.g. a scanned code
    WORKSPACE = "workspace"  # shared-document fallback


class ProfileSource(enum.StrEnum):
    """Discovery channel, split by trust direction for 1st degree."""

    SELF = "self"
    TRUST_GIVEN = "trust-given"
    TRUST_RECEIVED = "trust-received"
    NETWORK_2ND = "network-2nd"
    EXTERNAL = "external"
    WORKSPACE = "workspace"

    @property
    def priority(self) -> int:
        return SOURCE_PRIORITY[self]

    @property
    def discovery(self) -> DiscoverySource:
        if self in FIRST_DEGREE_SOURCES:
            return DiscoverySource.TRUST
        return DiscoverySource(self.value)

    @property
    def is_first_degree(self) -> bool:
        return self in FIRST_DEGREE_SOURCES


SOURCE_PRIORITY: dict[ProfileSource, int] = {
    ProfileSource.SELF: 5,
    ProfileSource.TRUST_GIVEN: 4,
    ProfileSource.TRUST_RECEIVED: 4,
    ProfileSource.NETWORK_2ND: 3,
    ProfileSource.EXTERNAL: 2,
    ProfileSource.WORKSPACE: 1,
}

FIRST_DEGREE_SOURCES = frozenset({ProfileSource.TRUST_GIVEN, ProfileSource.TRUST_RECEIVED})


class LoadState(enum.StrEnum):
    LOADING = "loading"
    LOADED = "loaded"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class TrackedProfile:
    """Merged profile of one DID.

    Attributes:
        did: The identity this profile describes.
        source: Strongest channel through which the profile is known.
        signature_status: Result of verifying the profile signature.
        last_updated: Freshness of the display fields, ms since epoch.
            Placeholders use 0 so any real data supersedes them.
        load_state: Whether the backing document has been fetched.
        registered_at: When the profile was first registered, ms since epoch.
        display_name: Display name, if any source supplied one.
        avatar_url: Avatar URL, if any source supplied one.
        user_doc_url: URL of the user document the data came from.
    """

    did: str
    source: ProfileSource
    signature_status: SignatureStatus = SignatureStatus.PENDING
    last_updated: int = 0
    load_state: LoadState = LoadState.LOADING
    registered_at: int = 0
    display_name: str | None = None
    avatar_url: str | None = None
    user_doc_url: str | None = None

    @property
    def discovery_source(self) -> DiscoverySource:
        return self.source.discovery

    @property
    def priority(self) -> int:
        return self.source.priority

    def to_dict(self) -> dict[str, Any]:
        return {
            "did": self.did,
            "displayName": self.display_name,
            "avatarUrl": self.avatar_url,
            "userDocUrl": self.user_doc_url,
            "discoverySource": self.discovery_source.value,
            "source": self.source.value,
            "signatureStatus": self.signature_status.value,
            "lastUpdated": self.last_updated,
            "loadState": self.load_state.value,
            "registeredAt": self.registered_at,
        }


@dataclass(frozen=True)
class DocUrlEntry:
    """A user document the registry tracks."""

    url: str
    source: ProfileSource
    registered_at: int
    expected_did: str | None = None
    load_state: LoadState = LoadState.LOADING

    @property
    def discovery_source(self) -> DiscoverySource:
        return self.source.discovery

    @property
    def is_first_degree(self) -> bool:
        return self.source.is_first_degree

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "expectedDid": self.expected_did,
            "discoverySource": self.discovery_source.value,
            "source": self.source.value,
            "loadState": self.load_state.value,
            "registeredAt": self.registered_at,
        }


@dataclass(frozen=True)
class KnownProfile:
    """A tracked profile plus trust flags computed from the local document."""

    profile: TrackedProfile
    is_trust_given: bool
    is_trust_received: bool

    @property
    def did(self) -> str:
        return self.profile.did

    @property
    def display_name(self) -> str | None:
        return self.profile.display_name

    @property
    def is_mutual_trust(self) -> bool:
        return self.is_trust_given and self.is_trust_received

    def to_dict(self) -> dict[str, Any]:
        data = self.profile.to_dict()
        data.update(
            {
                "isTrustGiven": self.is_trust_given,
                "isTrustReceived": self.is_trust_received,
                "isMutualTrust": self.is_mutual_trust,
            }
        )
        return data
