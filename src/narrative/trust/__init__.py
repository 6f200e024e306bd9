# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Trust attestations: models, wire-schema normalisation, and the local store."""

from .models import (
    AttestationRecord,
    LegacyAttestationRecord,
    TrustAttestation,
    TrustLevel,
    attestation_from_raw,
    normalize_attestation,
    parse_attestation_record,
    parse_attestations,
)
from .store import Relationship, TrustStore

__all__ = [
    "AttestationRecord",
    "LegacyAttestationRecord",
    "Relationship",
    "TrustAttestation",
    "TrustLevel",
    "TrustStore",
    "attestation_from_raw",
    "normalize_attestation",
    "parse_attestation_record",
    "parse_attestations",
]
