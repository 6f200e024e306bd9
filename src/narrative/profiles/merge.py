# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Source-priority merge of profile updates.

Rules, applied to an ``incoming`` update for a DID that may already be known:

1. Unknown DID: ``incoming`` is stored as-is.
2. ``force``: ``incoming`` overwrites unconditionally (own profile only).
3. Existing source has strictly higher priority: the existing record keeps
   its source and ``last_updated``, but the display fields and their
   signature status are refreshed from ``incoming`` if it is strictly newer.
4. Incoming source has strictly higher priority: ``incoming`` replaces the
   existing record in full.
5. Equal priority: ``incoming`` replaces the existing record unless it is
   older, so concurrent writes from one tier converge on the newest.

A profile's source therefore only ever gets stronger, and its
``last_updated`` is the newest timestamp seen from its winning tier,
whatever order the updates arrive in.
"""

from __future__ import annotations

from dataclasses import replace

from .models import TrackedProfile


def merge_profile(
    existing: TrackedProfile | None,
    incoming: TrackedProfile,
    force: bool = False,
) -> TrackedProfile:
    """Return the profile that results from applying ``incoming``."""
    if existing is None or force:
        return incoming

    if existing.priority > incoming.priority:
        if incoming.last_updated > existing.last_updated:
            return replace(
                existing,
                display_name=incoming.display_name if incoming.display_name is not None else existing.display_name,
                avatar_url=incoming.avatar_url if incoming.avatar_url is not None else existing.avatar_url,
                signature_status=incoming.signature_status,
            )
        return existing

    if existing.priority == incoming.priority and incoming.last_updated < existing.last_updated:
        return existing

    return incoming
