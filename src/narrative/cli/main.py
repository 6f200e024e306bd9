#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""
Narrative CLI - web-of-trust identities, attestations and profile discovery.

Commands:
  narrative identity init       Create the local identity and user document
  narrative identity show       Show the local identity
  narrative trust set <did>     Attest trust in an identity
  narrative trust list          List given and received attestations
  narrative profiles            Discover and list known profiles
  narrative graph               Build and lay out the trust graph
"""

from __future__ import annotations

import argparse
import logging
import sys

from ..core.logging import configure_logging, correlation_context
from .commands import COMMAND_MODULES

logger = logging.getLogger(__name__)


def app() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="narrative",
        description="Web-of-trust identities, attestations and profile discovery",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  narrative identity init --name Alice          Create identity and user document
  narrative trust set did:key:z6Mk... -l full   Vouch for someone
  narrative trust verify                        Check attestation signatures
  narrative profiles --external <url> <did> Bob Register a scanned code
  narrative graph --json                        Laid-out graph as JSON
        """,
    )
    parser.add_argument("--identity", dest="identity_path", help="Identity file (default: config identity_path)")
    parser.add_argument("--store", dest="store_path", help="Document store file (default: config store_path)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for module in COMMAND_MODULES:
        module.register(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = app()
    args = parser.parse_args(argv)

    configure_logging(level="DEBUG" if args.verbose else None)

    handler = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return 1

    with correlation_context() as cid:
        logger.debug(f"Running {args.command} ({cid})")
        return handler(args)


if __name__ == "__main__":
    sys.exit(main())
