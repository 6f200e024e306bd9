# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Signing and verification of structured payloads.

Two layers:

- Raw Ed25519 over bytes: :func:`sign` / :func:`verify`.
- Entity signatures: a mapping is canonicalised (sorted keys, no whitespace,
  ``signature`` and ``None`` values dropped) and signed as a compact JWS
  (``header.payload.signature``, ``alg=EdDSA``). Verification checks the JWS
  against the signer's key *and* that the embedded payload is the canonical
  form of the entity being presented, so a valid signature cannot be moved
  onto different content.

Verification never raises. Malformed DIDs, bad encodings and forged
signatures are all reported the same way (``False`` / ``INVALID``): the
result means "do not trust", not "proven tampered".
"""

from __future__ import annotations

import enum
import json
import logging
from collections.abc import Mapping
from typing import Any

import jwt
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ..core.exceptions import InvalidIdentityError
from .did import id_to_public_key

logger = logging.getLogger(__name__)

JWS_ALGORITHM = "EdDSA"
SIGNATURE_FIELD = "signature"

# Profile fields covered by a profile signature
PROFILE_SIGNED_FIELDS = ("displayName", "avatarUrl", "updatedAt")


class SignatureStatus(enum.StrEnum):
    """Outcome of checking a signature attached to a document entity."""

    VALID = "valid"
    INVALID = "invalid"
    MISSING = "missing"
    PENDING = "pending"


# =============================================================================
# CANONICALISATION
# =============================================================================


def signable(entity: Mapping[str, Any]) -> dict[str, Any]:
    """The part of ``entity`` that a signature covers."""
    return {k: v for k, v in entity.items() if k != SIGNATURE_FIELD and v is not None}


def canonical_json(obj: Any) -> bytes:
    """Convert object to canonical JSON for signing.

    - Keys sorted lexicographically
    - No whitespace
    - UTF-8 encoding
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


# =============================================================================
# RAW ED25519
# =============================================================================


def sign(payload: bytes, private_key: bytes) -> bytes:
    """Sign ``payload`` with a raw 32-byte Ed25519 private key."""
    return Ed25519PrivateKey.from_private_bytes(private_key).sign(payload)


def verify(payload: bytes, signature: bytes, public_key: bytes) -> bool:
    """Verify an Ed25519 signature. Returns False on any malformed input."""
    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, payload)
    except (InvalidSignature, ValueError, TypeError):
        return False
    return True


# =============================================================================
# ENTITY SIGNATURES (compact JWS)
# =============================================================================


def sign_entity(entity: Mapping[str, Any], private_key: bytes) -> str:
    """Sign the canonical form of ``entity`` and return a compact JWS."""
    key = Ed25519PrivateKey.from_private_bytes(private_key)
    return jwt.api_jws.encode(
        canonical_json(signable(entity)),
        key,
        algorithm=JWS_ALGORITHM,
    )


def verify_entity_signature(entity: Mapping[str, Any], public_key: bytes) -> bool:
    """Check ``entity["signature"]`` against ``public_key``.

    Returns:
        True only if the JWS verifies and its payload is the canonical form
        of ``entity`` (minus the signature).
    """
    token = entity.get(SIGNATURE_FIELD)
    if not token or not isinstance(token, str):
        return False

    try:
        key = Ed25519PublicKey.from_public_bytes(public_key)
        decoded = jwt.api_jws.decode_complete(token, key=key, algorithms=[JWS_ALGORITHM])
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        logger.debug(f"Entity signature rejected: {e}")
        return False

    return decoded["payload"] == canonical_json(signable(entity))


def entity_signature_status(entity: Mapping[str, Any] | None, signer_did: str) -> SignatureStatus:
    """Verify an entity against the key recovered from ``signer_did``."""
    if not entity or not entity.get(SIGNATURE_FIELD):
        return SignatureStatus.MISSING

    try:
        public_key = id_to_public_key(signer_did)
    except InvalidIdentityError:
        return SignatureStatus.INVALID

    if verify_entity_signature(entity, public_key):
        return SignatureStatus.VALID
    return SignatureStatus.INVALID


# =============================================================================
# PROFILE SIGNATURES
# =============================================================================


def profile_payload(profile: Mapping[str, Any]) -> dict[str, Any]:
    """Fields of a profile that its signature covers."""
    payload = {field: profile.get(field) for field in PROFILE_SIGNED_FIELDS}
    payload["displayName"] = payload["displayName"] or ""
    return {k: v for k, v in payload.items() if v is not None}


def sign_profile(profile: Mapping[str, Any], private_key: bytes) -> str:
    return sign_entity(profile_payload(profile), private_key)


def profile_signature_status(profile: Mapping[str, Any] | None, did: str) -> SignatureStatus:
    """Verify a user document's profile block against the owner's DID."""
    if not profile or not profile.get(SIGNATURE_FIELD):
        return SignatureStatus.MISSING
    entity = profile_payload(profile)
    entity[SIGNATURE_FIELD] = profile[SIGNATURE_FIELD]
    return entity_signature_status(entity, did)
