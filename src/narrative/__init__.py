# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Narrative - web-of-trust attestations and profile discovery.

Every participant holds a self-generated Ed25519 keypair whose ``did:key``
identifier is self-certifying. Participants issue signed trust attestations
to each other, stored in their own user documents, and the profile registry
reconstructs a verified picture of who is who from those scattered,
partially available documents.
"""

__version__ = "0.4.0"
