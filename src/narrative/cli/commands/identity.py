# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Identity commands: init, show, update, reset."""

from __future__ import annotations

import argparse
import logging

from ...core.exceptions import NarrativeException
from ...identity.signing import profile_signature_status
from ...schema import create_user_document, update_user_profile
from ..output import output_error, output_json, status_icon
from ..utils import find_user_doc, identity_store, load_identity, open_repo, require_user_doc

logger = logging.getLogger(__name__)


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the identity commands on the CLI parser."""
    identity_parser = subparsers.add_parser("identity", help="Manage the local identity")
    identity_subparsers = identity_parser.add_subparsers(dest="identity_command", required=True)

    init_parser = identity_subparsers.add_parser("init", help="Create the identity and user document")
    init_parser.add_argument("--name", "-n", default="", help="Display name")
    init_parser.add_argument("--avatar", help="Avatar URL")
    init_parser.add_argument("--json", action="store_true", help="Output as JSON")
    init_parser.set_defaults(func=cmd_identity_init)

    show_parser = identity_subparsers.add_parser("show", help="Show the local identity")
    show_parser.add_argument("--json", action="store_true", help="Output as JSON")
    show_parser.set_defaults(func=cmd_identity_show)

    update_parser = identity_subparsers.add_parser("update", help="Update and re-sign the profile")
    update_parser.add_argument("--name", "-n", help="New display name")
    update_parser.add_argument("--avatar", help="New avatar URL")
    update_parser.set_defaults(func=cmd_identity_update)

    reset_parser = identity_subparsers.add_parser("reset", help="Delete the local identity")
    reset_parser.add_argument("--yes", action="store_true", help="Confirm the reset")
    reset_parser.set_defaults(func=cmd_identity_reset)


def cmd_identity_init(args: argparse.Namespace) -> int:
    """Create the identity on first run and make sure it has a user document."""
    try:
        identity, created = identity_store(args).load_or_create()
        repo = open_repo(args)
        handle = find_user_doc(repo, identity.id)
        if handle is None:
            handle = repo.create(
                create_user_document(
                    identity.id,
                    args.name,
                    avatar_url=args.avatar,
                    private_key=identity.private_key,
                )
            )
    except NarrativeException as e:
        output_error(f"Failed to initialise identity: {e.message}")
        return 1

    if args.json:
        output_json({"did": identity.id, "docUrl": handle.url, "created": created})
    elif created:
        print(f"✅ Created identity {identity.id}")
        print(f"   User document: {handle.url}")
    else:
        print(f"Identity already exists: {identity.id}")
        print(f"   User document: {handle.url}")
    return 0


def cmd_identity_show(args: argparse.Namespace) -> int:
    """Show the DID, user document and profile signature state."""
    try:
        identity = load_identity(args)
        handle = require_user_doc(open_repo(args), identity)
    except NarrativeException as e:
        output_error(e.message)
        return 1

    doc = handle.doc() or {}
    profile = doc.get("profile") or {}
    status = profile_signature_status(profile, identity.id)

    if args.json:
        data = identity.public_identity().to_dict()
        data.update({"docUrl": handle.url, "profile": profile, "signatureStatus": status.value})
        output_json(data)
        return 0

    print(f"🔑 {identity.id}")
    print(f"   Name:     {profile.get('displayName') or '(unnamed)'}")
    if profile.get("avatarUrl"):
        print(f"   Avatar:   {profile['avatarUrl']}")
    print(f"   Document: {handle.url}")
    print(f"   Profile:  {status_icon(status)} {status}")
    print(f"   Trust:    {len(doc.get('trustGiven') or {})} given, {len(doc.get('trustReceived') or {})} received")
    return 0


def cmd_identity_update(args: argparse.Namespace) -> int:
    if args.name is None and args.avatar is None:
        output_error("Nothing to update. Use --name and/or --avatar.")
        return 1

    changes = {}
    if args.name is not None:
        changes["displayName"] = args.name
    if args.avatar is not None:
        changes["avatarUrl"] = args.avatar or None

    try:
        identity = load_identity(args)
        handle = require_user_doc(open_repo(args), identity)
        handle.change(lambda doc: update_user_profile(doc, changes, private_key=identity.private_key))
    except NarrativeException as e:
        output_error(e.message)
        return 1

    print("✅ Profile updated")
    return 0


def cmd_identity_reset(args: argparse.Namespace) -> int:
    """Delete the local keypair. Documents already written are left alone."""
    if not args.yes:
        output_error("Resetting destroys the identity for good. Re-run with --yes to confirm.")
        return 1

    if identity_store(args).reset():
        print("✅ Identity reset")
        return 0
    print("No identity to reset")
    return 1
