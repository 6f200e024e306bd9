# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Document shapes shared by every Narrative app.

Two document kinds matter to the trust layer:

- The **user document**: one per identity, owned and written by that user.
  Holds the signed profile plus the ``trustGiven`` / ``trustReceived`` maps.
- The **workspace document**: shared by collaborators. Its ``identities``
  table is the lowest-priority fallback for display names.

Timestamps are integer milliseconds since the epoch.
"""

from __future__ import annotations

import base64
import secrets
import time
from typing import Any

from .identity.did import Identity
from .identity.signing import sign_profile

SCHEMA_VERSION = "1.0.0"


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id(prefix: str | None = None) -> str:
    """Generate a unique entity ID, e.g. ``trust-1718000000000-k3j9x0q2m``."""
    base = f"{now_ms()}-{secrets.token_hex(5)}"
    return f"{prefix}-{base}" if prefix else base


# =============================================================================
# USER DOCUMENT
# =============================================================================


def create_user_document(
    did: str,
    display_name: str,
    *,
    avatar_url: str | None = None,
    private_key: bytes | None = None,
    now: int | None = None,
) -> dict[str, Any]:
    """Build a fresh user document, signing the profile when a key is given."""
    now = now if now is not None else now_ms()
    doc: dict[str, Any] = {
        "version": SCHEMA_VERSION,
        "did": did,
        "profile": {"displayName": display_name, "updatedAt": now},
        "trustGiven": {},
        "trustReceived": {},
        "workspaces": {},
        "lastModified": now,
    }
    if avatar_url is not None:
        doc["profile"]["avatarUrl"] = avatar_url
    if private_key is not None:
        doc["profile"]["signature"] = sign_profile(doc["profile"], private_key)
    return doc


def update_user_profile(
    doc: dict[str, Any],
    changes: dict[str, Any],
    *,
    private_key: bytes | None = None,
    now: int | None = None,
) -> None:
    """Apply profile changes in place and re-sign.

    Without a private key the old signature is dropped, since it no longer
    covers the profile content.
    """
    now = now if now is not None else now_ms()
    profile = doc.setdefault("profile", {})
    for field in ("displayName", "avatarUrl"):
        if field in changes:
            if changes[field] is None:
                profile.pop(field, None)
            else:
                profile[field] = changes[field]
    profile["updatedAt"] = now
    profile.pop("signature", None)
    if private_key is not None:
        profile["signature"] = sign_profile(profile, private_key)
    doc["lastModified"] = now


# =============================================================================
# WORKSPACE DOCUMENT
# =============================================================================


def identity_profile(identity: Identity, display_name: str | None = None, avatar_url: str | None = None) -> dict:
    """Entry for a workspace ``identities`` table."""
    profile: dict[str, Any] = {"publicKey": base64.b64encode(identity.public_key).decode("ascii")}
    if display_name is not None:
        profile["displayName"] = display_name
    if avatar_url is not None:
        profile["avatarUrl"] = avatar_url
    return profile


def create_workspace_document(
    name: str,
    creator: Identity,
    display_name: str | None = None,
    *,
    now: int | None = None,
) -> dict[str, Any]:
    now = now if now is not None else now_ms()
    return {
        "version": SCHEMA_VERSION,
        "lastModified": now,
        "context": {"name": name},
        "identities": {creator.id: identity_profile(creator, display_name)},
        "trustAttestations": {},
        "data": {},
    }


def add_workspace_identity(
    doc: dict[str, Any],
    did: str,
    display_name: str | None = None,
    avatar_url: str | None = None,
    *,
    now: int | None = None,
) -> None:
    entry = doc.setdefault("identities", {}).setdefault(did, {})
    if display_name is not None:
        entry["displayName"] = display_name
    if avatar_url is not None:
        entry["avatarUrl"] = avatar_url
    doc["lastModified"] = now if now is not None else now_ms()
