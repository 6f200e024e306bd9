# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Trust attestation models.

An attestation is the signed claim "trustor vouches for trustee at level L".
It lives in the trustor's user document under ``trustGiven[trusteeId]`` and
is optionally copied into the trustee's document under
``trustReceived[trustorId]``.

Two record schemas exist on the wire:

- **legacy** (schema 1): ``trusterDid`` / ``trusteeDid``, levels
  ``verified`` / ``endorsed``, ``trusterUserDocUrl`` / ``trusteeUserDocUrl``.
  Every released app writes this shape.
- **current** (schema 2): ``trustorId`` / ``trusteeId``, levels ``full`` /
  ``limited``, ``trustorDocUrl`` / ``trusteeDocUrl`` and ``"schema": 2``.

Raw records are parsed into one of the two record classes by
:func:`parse_attestation_record` and turned into a :class:`TrustAttestation`
by :func:`normalize_attestation`. Nothing else looks at raw shapes.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, ClassVar

from ..core.exceptions import ValidationException
from ..schema import new_id, now_ms

logger = logging.getLogger(__name__)


class TrustLevel(enum.StrEnum):
    FULL = "full"
    LIMITED = "limited"

    @property
    def wire(self) -> str:
        """Legacy wire name (``verified`` / ``endorsed``)."""
        return _LEVEL_TO_LEGACY[self]

    @classmethod
    def parse(cls, value: str | None) -> TrustLevel:
        """Accept current and legacy level names. A missing level means full trust.

        Raises:
            ValidationException: For any other value.
        """
        if value is None:
            return cls.FULL
        if isinstance(value, TrustLevel):
            return value
        key = str(value).lower()
        if key in _LEGACY_TO_LEVEL:
            return _LEGACY_TO_LEVEL[key]
        try:
            return cls(key)
        except ValueError:
            raise ValidationException(f"Unknown trust level: {value}", field="level", value=value) from None


_LEVEL_TO_LEGACY = {TrustLevel.FULL: "verified", TrustLevel.LIMITED: "endorsed"}
_LEGACY_TO_LEVEL = {v: k for k, v in _LEVEL_TO_LEGACY.items()}


# =============================================================================
# NORMALISED ATTESTATION
# =============================================================================


@dataclass(frozen=True)
class TrustAttestation:
    """A trust attestation, independent of its wire schema.

    Attributes:
        id: Unique attestation ID (fresh on every ``setTrust``).
        trustor_id: DID of the party vouching.
        trustee_id: DID of the party vouched for.
        level: Trust level.
        created_at: Creation time, ms since epoch. Covered by the signature.
        signature: Compact JWS by the trustor, or None for unsigned records.
        trustor_doc_url: URL of the trustor's user document, if known.
        trustee_doc_url: URL of the trustee's user document, if known.
        updated_at: Last write time, ms since epoch. Not signed.
    """

    id: str
    trustor_id: str
    trustee_id: str
    level: TrustLevel
    created_at: int
    signature: str | None = None
    trustor_doc_url: str | None = None
    trustee_doc_url: str | None = None
    updated_at: int | None = None

    def __post_init__(self) -> None:
        if not self.trustor_id or not self.trustee_id:
            raise ValidationException("Attestation requires trustor and trustee", field="trustorId")
        if not isinstance(self.trustor_id, str) or not isinstance(self.trustee_id, str):
            raise ValidationException("Attestation DIDs must be strings", field="trustorId")
        if self.trustor_id == self.trustee_id:
            raise ValidationException(
                "An identity cannot attest trust in itself",
                field="trusteeId",
                value=self.trustee_id,
            )

    @property
    def is_signed(self) -> bool:
        return bool(self.signature)

    def signing_payload(self) -> dict[str, Any]:
        """The canonical content a signature covers (legacy field names)."""
        return {
            "id": self.id,
            "trusterDid": self.trustor_id,
            "trusteeDid": self.trustee_id,
            "level": self.level.wire,
            "createdAt": self.created_at,
        }

    def signed_entity(self) -> dict[str, Any]:
        """Signing payload plus the signature, ready for verification."""
        entity = self.signing_payload()
        entity["signature"] = self.signature
        return entity

    def with_signature(self, signature: str | None) -> TrustAttestation:
        return replace(self, signature=signature)

    def to_record(self) -> dict[str, Any]:
        """Serialise in the legacy wire shape that every peer reads."""
        record = self.signing_payload()
        record.update(
            {
                "updatedAt": self.updated_at if self.updated_at is not None else self.created_at,
                "signature": self.signature,
                "trusterUserDocUrl": self.trustor_doc_url,
                "trusteeUserDocUrl": self.trustee_doc_url,
            }
        )
        return {k: v for k, v in record.items() if v is not None}


# =============================================================================
# WIRE RECORDS
# =============================================================================


@dataclass(frozen=True)
class LegacyAttestationRecord:
    """Schema 1 record (``trusterDid`` / ``verified``)."""

    schema: ClassVar[int] = 1

    truster_did: str
    trustee_did: str
    id: str | None = None
    level: str | None = None
    created_at: int | None = None
    updated_at: int | None = None
    signature: str | None = None
    truster_user_doc_url: str | None = None
    trustee_user_doc_url: str | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> LegacyAttestationRecord:
        return cls(
            truster_did=raw.get("trusterDid") or "",
            trustee_did=raw.get("trusteeDid") or "",
            id=raw.get("id"),
            level=raw.get("level"),
            created_at=raw.get("createdAt"),
            updated_at=raw.get("updatedAt"),
            signature=raw.get("signature"),
            truster_user_doc_url=raw.get("trusterUserDocUrl"),
            trustee_user_doc_url=raw.get("trusteeUserDocUrl"),
        )


@dataclass(frozen=True)
class AttestationRecord:
    """Schema 2 record (``trustorId`` / ``full``)."""

    schema: ClassVar[int] = 2

    trustor_id: str
    trustee_id: str
    id: str | None = None
    level: str | None = None
    created_at: int | None = None
    updated_at: int | None = None
    signature: str | None = None
    trustor_doc_url: str | None = None
    trustee_doc_url: str | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> AttestationRecord:
        return cls(
            trustor_id=raw.get("trustorId") or "",
            trustee_id=raw.get("trusteeId") or "",
            id=raw.get("id"),
            level=raw.get("level"),
            created_at=raw.get("createdAt"),
            updated_at=raw.get("updatedAt"),
            signature=raw.get("signature"),
            trustor_doc_url=raw.get("trustorDocUrl"),
            trustee_doc_url=raw.get("trusteeDocUrl"),
        )


AnyAttestationRecord = LegacyAttestationRecord | AttestationRecord


def parse_attestation_record(raw: Mapping[str, Any]) -> AnyAttestationRecord:
    """Classify a raw mapping as a legacy or current record.

    Raises:
        ValidationException: If the mapping matches neither schema.
    """
    if not isinstance(raw, Mapping):
        raise ValidationException("Attestation record must be a mapping", value=type(raw).__name__)
    if raw.get("schema") == AttestationRecord.schema or "trustorId" in raw:
        return AttestationRecord.from_raw(raw)
    if "trusterDid" in raw:
        return LegacyAttestationRecord.from_raw(raw)
    raise ValidationException("Unrecognised attestation record", value=sorted(raw))


def normalize_attestation(record: AnyAttestationRecord) -> TrustAttestation:
    """Turn a wire record into a :class:`TrustAttestation`.

    Raises:
        ValidationException: On self-trust, missing DIDs or unknown levels.
    """
    if isinstance(record, LegacyAttestationRecord):
        trustor, trustee = record.truster_did, record.trustee_did
        trustor_url, trustee_url = record.truster_user_doc_url, record.trustee_user_doc_url
    else:
        trustor, trustee = record.trustor_id, record.trustee_id
        trustor_url, trustee_url = record.trustor_doc_url, record.trustee_doc_url
    trustor_url = trustor_url if isinstance(trustor_url, str) else None
    trustee_url = trustee_url if isinstance(trustee_url, str) else None

    return TrustAttestation(
        id=record.id or new_id("trust"),
        trustor_id=trustor,
        trustee_id=trustee,
        level=TrustLevel.parse(record.level),
        created_at=record.created_at if record.created_at is not None else now_ms(),
        signature=record.signature,
        trustor_doc_url=trustor_url,
        trustee_doc_url=trustee_url,
        updated_at=record.updated_at,
    )


def attestation_from_raw(raw: Mapping[str, Any]) -> TrustAttestation:
    return normalize_attestation(parse_attestation_record(raw))


def parse_attestations(entries: Mapping[str, Any] | None, source: str = "document") -> list[TrustAttestation]:
    """Normalise a ``trustGiven`` / ``trustReceived`` map, skipping bad records."""
    if entries is None:
        return []
    if not isinstance(entries, Mapping):
        logger.warning(f"Ignoring {source}: expected a mapping, got {type(entries).__name__}")
        return []
    result: list[TrustAttestation] = []
    for key, raw in entries.items():
        try:
            result.append(attestation_from_raw(raw))
        except ValidationException as e:
            logger.warning(f"Skipping malformed attestation {key!r} in {source}: {e.message}")
    return result
