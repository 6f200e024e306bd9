# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Profile discovery and source-priority merging."""

from .loader import DocumentLoader, PeerDocument
from .merge import merge_profile
from .models import (
    MAX_2ND_DEGREE_PROFILES,
    SOURCE_PRIORITY,
    DiscoverySource,
    DocUrlEntry,
    KnownProfile,
    LoadState,
    ProfileSource,
    TrackedProfile,
)
from .registry import ProfileRegistry

__all__ = [
    "MAX_2ND_DEGREE_PROFILES",
    "SOURCE_PRIORITY",
    "DiscoverySource",
    "DocUrlEntry",
    "DocumentLoader",
    "KnownProfile",
    "LoadState",
    "PeerDocument",
    "ProfileRegistry",
    "ProfileSource",
    "TrackedProfile",
    "merge_profile",
]
