# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Shared helpers for Narrative CLI commands."""

from __future__ import annotations

import argparse
import logging

from ..core.config import get_config
from ..core.exceptions import NotFoundError
from ..docstore.file import JsonFileRepo
from ..docstore.memory import InMemoryDocHandle
from ..identity.did import Identity
from ..identity.keystore import IdentityStore

logger = logging.getLogger(__name__)


def identity_store(args: argparse.Namespace) -> IdentityStore:
    return IdentityStore(getattr(args, "identity_path", None) or get_config().identity_path)


def open_repo(args: argparse.Namespace) -> JsonFileRepo:
    return JsonFileRepo(getattr(args, "store_path", None) or get_config().store_path)


def load_identity(args: argparse.Namespace) -> Identity:
    """Load the local identity.

    Raises:
        NotFoundError: If ``narrative identity init`` has not been run.
    """
    identity = identity_store(args).load()
    if identity is None:
        raise NotFoundError("Identity", "local (run `narrative identity init`)")
    return identity


def find_user_doc(repo: JsonFileRepo, did: str) -> InMemoryDocHandle | None:
    """Find the user document owned by ``did`` in the local store."""
    for url in repo.urls:
        handle = repo.get(url)
        if handle is not None and (handle.doc() or {}).get("did") == did:
            return handle
    return None


def require_user_doc(repo: JsonFileRepo, identity: Identity) -> InMemoryDocHandle:
    """Like :func:`find_user_doc` but fails when the document is missing.

    Raises:
        NotFoundError: If the identity has no user document yet.
    """
    handle = find_user_doc(repo, identity.id)
    if handle is None:
        raise NotFoundError("User document", identity.id)
    return handle
