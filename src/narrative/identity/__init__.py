# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Identity & signature primitives.

Key concepts:
- **Identity**: an Ed25519 keypair plus the ``did:key`` identifier derived from
  the public key. Anyone holding the DID can recover the public key.
- **Canonical signing**: structured payloads are serialised with sorted keys
  before signing so verification is reproducible across implementations.
- **SignatureStatus**: verification outcomes (valid / invalid / missing /
  pending) are values, never exceptions.
"""

from .did import (
    DID_KEY_PREFIX,
    Identity,
    generate_identity,
    id_to_public_key,
    identity_from_private_key,
    is_valid_id,
    public_key_to_id,
    short_id,
)
from .keystore import IdentityStore
from .signing import (
    SignatureStatus,
    canonical_json,
    entity_signature_status,
    profile_signature_status,
    sign,
    sign_entity,
    sign_profile,
    verify,
    verify_entity_signature,
)

__all__ = [
    "DID_KEY_PREFIX",
    "Identity",
    "IdentityStore",
    "SignatureStatus",
    "canonical_json",
    "entity_signature_status",
    "generate_identity",
    "id_to_public_key",
    "identity_from_private_key",
    "is_valid_id",
    "profile_signature_status",
    "public_key_to_id",
    "short_id",
    "sign",
    "sign_entity",
    "sign_profile",
    "verify",
    "verify_entity_signature",
]
