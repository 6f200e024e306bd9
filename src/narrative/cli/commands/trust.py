# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Trust attestation commands."""

from __future__ import annotations

import argparse
import asyncio
import logging

from ...core.exceptions import NarrativeException
from ...identity.signing import SignatureStatus
from ...trust.models import TrustAttestation, TrustLevel
from ...trust.store import TrustStore
from ..output import output_error, output_json, status_icon
from ..utils import find_user_doc, load_identity, open_repo, require_user_doc

logger = logging.getLogger(__name__)

LEVEL_CHOICES = [level.value for level in TrustLevel] + [level.wire for level in TrustLevel]


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the trust commands on the CLI parser."""
    trust_parser = subparsers.add_parser("trust", help="Issue, revoke and inspect trust attestations")
    trust_subparsers = trust_parser.add_subparsers(dest="trust_command", required=True)

    set_parser = trust_subparsers.add_parser("set", help="Attest trust in an identity")
    set_parser.add_argument("did", help="DID of the identity to trust")
    set_parser.add_argument("--level", "-l", choices=LEVEL_CHOICES, default=TrustLevel.FULL.value)
    set_parser.add_argument("--doc-url", help="User document URL of the trustee (enables propagation)")
    set_parser.add_argument("--json", action="store_true", help="Output as JSON")
    set_parser.set_defaults(func=cmd_trust_set)

    revoke_parser = trust_subparsers.add_parser("revoke", help="Remove your attestation for an identity")
    revoke_parser.add_argument("did", help="DID of the identity")
    revoke_parser.set_defaults(func=cmd_trust_revoke)

    list_parser = trust_subparsers.add_parser("list", help="List given and received attestations")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.set_defaults(func=cmd_trust_list)

    verify_parser = trust_subparsers.add_parser("verify", help="Verify attestation signatures")
    verify_parser.add_argument("--json", action="store_true", help="Output as JSON")
    verify_parser.set_defaults(func=cmd_trust_verify)


def _open_store(args: argparse.Namespace) -> TrustStore:
    identity = load_identity(args)
    repo = open_repo(args)
    handle = require_user_doc(repo, identity)
    return TrustStore(identity.id, handle, private_key=identity.private_key, repo=repo)


def cmd_trust_set(args: argparse.Namespace) -> int:
    """Attest trust, propagating to the trustee when their document is known."""
    try:
        identity = load_identity(args)
        repo = open_repo(args)
        store = TrustStore(identity.id, require_user_doc(repo, identity), private_key=identity.private_key, repo=repo)
        doc_url = args.doc_url
        if doc_url is None:
            peer = find_user_doc(repo, args.did)
            doc_url = peer.url if peer is not None else None
        try:
            attestation = asyncio.run(store.set_trust(args.did, args.level, trustee_doc_url=doc_url))
        finally:
            store.destroy()
    except NarrativeException as e:
        output_error(f"Failed to set trust: {e.message}")
        return 1

    if args.json:
        output_json(attestation.to_record())
    else:
        print(f"✅ Trust set: → {args.did} ({attestation.level})")
        print(f"   Signed: {'yes' if attestation.is_signed else 'no'}")
        if doc_url:
            print(f"   Trustee document: {doc_url}")
    return 0


def cmd_trust_revoke(args: argparse.Namespace) -> int:
    try:
        store = _open_store(args)
        removed = asyncio.run(store.revoke_trust(args.did))
        store.destroy()
    except NarrativeException as e:
        output_error(f"Failed to revoke trust: {e.message}")
        return 1

    if not removed:
        print(f"No trust attestation for {args.did}")
        return 1
    print(f"✅ Trust revoked: {args.did}")
    return 0


def _row(store: TrustStore, attestation: TrustAttestation, other: str) -> dict:
    return {
        "did": other,
        "level": attestation.level.value,
        "createdAt": attestation.created_at,
        "relationship": store.relationship(other).value,
        "signatureStatus": store.verify_attestation(attestation).value,
    }


def cmd_trust_list(args: argparse.Namespace) -> int:
    """List attestations in both directions with their reciprocity."""
    try:
        store = _open_store(args)
    except NarrativeException as e:
        output_error(e.message)
        return 1

    given = [_row(store, a, a.trustee_id) for a in store.get_trust_given()]
    received = [_row(store, a, a.trustor_id) for a in store.get_trust_received()]
    pending = [a.trustor_id for a in store.pending_reciprocity()]
    store.destroy()

    if args.json:
        output_json({"given": given, "received": received, "pendingReciprocity": pending})
        return 0

    print(f"🤝 Trust given ({len(given)})")
    for row in given:
        print(f"   → {row['did']}  {row['level']}  {row['relationship']}")
    print(f"🤝 Trust received ({len(received)})")
    for row in received:
        print(f"   ← {row['did']}  {row['level']}  {row['relationship']}")
    if pending:
        print(f"\n   {len(pending)} awaiting trust back: {', '.join(pending)}")
    return 0


def cmd_trust_verify(args: argparse.Namespace) -> int:
    """Check every attestation's signature against its trustor's DID.

    Exits non-zero if any signature is invalid. Missing signatures are
    reported but accepted.
    """
    try:
        store = _open_store(args)
    except NarrativeException as e:
        output_error(e.message)
        return 1

    results = []
    for attestation in store.get_trust_given() + store.get_trust_received():
        status = store.verify_attestation(attestation)
        results.append(
            {
                "id": attestation.id,
                "trustorId": attestation.trustor_id,
                "trusteeId": attestation.trustee_id,
                "signatureStatus": status.value,
            }
        )
    store.destroy()

    invalid = sum(1 for r in results if r["signatureStatus"] == SignatureStatus.INVALID)
    if args.json:
        output_json({"attestations": results, "invalid": invalid})
    else:
        for r in results:
            print(f"{status_icon(r['signatureStatus'])} {r['trustorId']} → {r['trusteeId']}  {r['signatureStatus']}")
        print(f"\n{len(results)} attestations, {invalid} invalid")
    return 1 if invalid else 0
