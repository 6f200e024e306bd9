# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Self-certifying ``did:key`` identities.

Every participant generates an Ed25519 keypair on first run. The identifier
is the public key itself, multicodec-tagged and multibase-encoded, so any
party can recover the key from the DID and verify signatures without a
directory lookup.

DID format::

    did:key:z<base58btc(0xed 0x01 || public_key)>

Example::

    did:key:z6MkhaXgBZDvotDkL5257faiztiGiC2QtKLGpbnnEGta2doK
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ..core.exceptions import InvalidIdentityError

# =============================================================================
# CONSTANTS
# =============================================================================

DID_KEY_PREFIX = "did:key:"

# Multibase prefix for base58btc encoding
MULTIBASE_BASE58BTC = "z"

# Multicodec prefix for Ed25519 public key (0xed01)
MULTICODEC_ED25519_PUB = bytes([0xED, 0x01])

ED25519_KEY_LENGTH = 32

# =============================================================================
# BASE58 ENCODING
# =============================================================================

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {char: i for i, char in enumerate(BASE58_ALPHABET)}


def base58_encode(data: bytes) -> str:
    """Encode bytes to base58 string."""
    num = int.from_bytes(data, "big")
    result = ""
    while num > 0:
        num, remainder = divmod(num, 58)
        result = BASE58_ALPHABET[remainder] + result

    # Leading zero bytes map to leading '1's
    for byte in data:
        if byte == 0:
            result = BASE58_ALPHABET[0] + result
        else:
            break

    return result


def base58_decode(string: str) -> bytes:
    """Decode base58 string to bytes.

    Raises:
        ValueError: If the string contains characters outside the alphabet.
    """
    num = 0
    for char in string:
        index = _BASE58_INDEX.get(char)
        if index is None:
            raise ValueError(f"Invalid base58 character: {char!r}")
        num = num * 58 + index

    body = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""

    leading = len(string) - len(string.lstrip(BASE58_ALPHABET[0]))
    return b"\x00" * leading + body


def multibase_encode(data: bytes) -> str:
    """Encode bytes to multibase (base58btc)."""
    return MULTIBASE_BASE58BTC + base58_encode(data)


def multibase_decode(string: str) -> bytes:
    """Decode a multibase string to bytes.

    Raises:
        ValueError: For empty input or an encoding other than base58btc.
    """
    if not string:
        raise ValueError("Empty multibase string")
    if not string.startswith(MULTIBASE_BASE58BTC):
        raise ValueError(f"Unsupported multibase encoding: {string[0]}")
    return base58_decode(string[1:])


# =============================================================================
# DERIVATION
# =============================================================================


def public_key_to_id(public_key: bytes) -> str:
    """Derive the ``did:key`` identifier for a raw Ed25519 public key."""
    if len(public_key) != ED25519_KEY_LENGTH:
        raise InvalidIdentityError(
            f"Ed25519 public key must be {ED25519_KEY_LENGTH} bytes, got {len(public_key)}",
            value=len(public_key),
        )
    return DID_KEY_PREFIX + multibase_encode(MULTICODEC_ED25519_PUB + public_key)


def id_to_public_key(did: str) -> bytes:
    """Recover the raw Ed25519 public key from a ``did:key`` identifier.

    Raises:
        InvalidIdentityError: If ``did`` is not a well-formed Ed25519 did:key.
    """
    if not isinstance(did, str) or not did.startswith(DID_KEY_PREFIX):
        raise InvalidIdentityError(f"Invalid DID: must start with '{DID_KEY_PREFIX}'", value=did)

    try:
        decoded = multibase_decode(did[len(DID_KEY_PREFIX) :])
    except ValueError as e:
        raise InvalidIdentityError(f"Invalid DID encoding: {e}", value=did) from e

    if decoded[:2] != MULTICODEC_ED25519_PUB:
        raise InvalidIdentityError("Unsupported key type: expected Ed25519 multicodec", value=did)

    public_key = decoded[2:]
    if len(public_key) != ED25519_KEY_LENGTH:
        raise InvalidIdentityError(
            f"Invalid key length {len(public_key)}, expected {ED25519_KEY_LENGTH}",
            value=did,
        )
    return public_key


def is_valid_id(did: str) -> bool:
    try:
        id_to_public_key(did)
    except InvalidIdentityError:
        return False
    return True


def short_id(did: str, length: int = 16) -> str:
    """Abbreviated DID for display when no name is known."""
    if len(did) <= length:
        return did
    return did[:length] + "..."


# =============================================================================
# IDENTITY
# =============================================================================


@dataclass(frozen=True)
class Identity:
    """A participant identity.

    Attributes:
        id: The ``did:key`` identifier derived from ``public_key``.
        public_key: Raw 32-byte Ed25519 public key.
        private_key: Raw 32-byte Ed25519 private key, present only for the
            local user's own identity.
    """

    id: str
    public_key: bytes
    private_key: bytes | None = None

    @property
    def can_sign(self) -> bool:
        return self.private_key is not None

    def public_identity(self) -> Identity:
        """Copy of this identity without the private key."""
        return Identity(id=self.id, public_key=self.public_key)

    def to_dict(self, include_private: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "publicKey": base64.b64encode(self.public_key).decode("ascii"),
        }
        if include_private and self.private_key is not None:
            data["privateKey"] = base64.b64encode(self.private_key).decode("ascii")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Identity:
        """Load an identity and check that its id matches its keys.

        Raises:
            InvalidIdentityError: On missing fields, bad encoding, or an id
                that was not derived from the stored public key.
        """
        try:
            public_key = base64.b64decode(data["publicKey"], validate=True)
            private_raw = data.get("privateKey")
            private_key = base64.b64decode(private_raw, validate=True) if private_raw else None
            did = data["id"]
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidIdentityError(f"Malformed identity record: {e}") from e

        if public_key_to_id(public_key) != did:
            raise InvalidIdentityError("Identity id does not match its public key", value=did)

        if private_key is not None:
            try:
                derived = _raw_public(Ed25519PrivateKey.from_private_bytes(private_key).public_key())
            except ValueError as e:
                raise InvalidIdentityError(f"Invalid private key: {e}", value=did) from e
            if derived != public_key:
                raise InvalidIdentityError("Private key does not match public key", value=did)

        return cls(id=did, public_key=public_key, private_key=private_key)


def _raw_public(pub: Ed25519PublicKey) -> bytes:
    return pub.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def identity_from_private_key(private_key: bytes) -> Identity:
    """Rebuild a full identity from a stored raw private key."""
    try:
        key = Ed25519PrivateKey.from_private_bytes(private_key)
    except ValueError as e:
        raise InvalidIdentityError(f"Invalid private key: {e}") from e
    public_key = _raw_public(key.public_key())
    return Identity(id=public_key_to_id(public_key), public_key=public_key, private_key=private_key)


def generate_identity() -> Identity:
    """Generate a fresh Ed25519 keypair and derive its DID."""
    key = Ed25519PrivateKey.generate()
    private_key = key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_key = _raw_public(key.public_key())
    return Identity(id=public_key_to_id(public_key), public_key=public_key, private_key=private_key)
