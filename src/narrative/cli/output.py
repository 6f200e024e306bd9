# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Output formatting for CLI commands."""

from __future__ import annotations

import json
import sys
from typing import Any

from ..identity.signing import SignatureStatus

STATUS_ICONS = {
    SignatureStatus.VALID: "✅",
    SignatureStatus.INVALID: "❌",
    SignatureStatus.MISSING: "⚪",
    SignatureStatus.PENDING: "⏳",
}


def output_json(data: Any) -> None:
    """Pretty-print ``data`` as JSON on stdout."""
    print(json.dumps(data, indent=2, default=str))


def output_error(message: str) -> None:
    """Print error message to stderr."""
    print(f"❌ {message}", file=sys.stderr)


def status_icon(status: SignatureStatus | str) -> str:
    return STATUS_ICONS.get(SignatureStatus(status), "?")
