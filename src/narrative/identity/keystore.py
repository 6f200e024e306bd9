# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Local persistence of the device identity.

An identity is created once per device/profile on first run, kept in a JSON
file readable only by its owner, and destroyed only by an explicit reset.
"""

from __future__ import annotations

import json
import logging
import os
import stat
from pathlib import Path

from ..core.exceptions import InvalidIdentityError
from .did import Identity, generate_identity

logger = logging.getLogger(__name__)


class IdentityStore:
    """JSON-file keystore for the local :class:`Identity`."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Identity | None:
        """Load the stored identity, or None if none has been created.

        Raises:
            InvalidIdentityError: If the file exists but cannot be parsed.
        """
        if not self.path.exists():
            return None
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidIdentityError(f"Failed to read identity from {self.path}: {e}") from e
        return Identity.from_dict(data)

    def save(self, identity: Identity) -> None:
        if identity.private_key is None:
            raise InvalidIdentityError("Refusing to store an identity without its private key", value=identity.id)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Owner-only from creation; fchmod also covers a pre-existing file
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, stat.S_IRUSR | stat.S_IWUSR)
        with os.fdopen(fd, "w") as f:
            os.fchmod(f.fileno(), stat.S_IRUSR | stat.S_IWUSR)
            json.dump(identity.to_dict(), f, indent=2)
        logger.info(f"Saved identity {identity.id} to {self.path}")

    def load_or_create(self) -> tuple[Identity, bool]:
        """Return the stored identity, generating one on first run.

        Returns:
            Tuple of (identity, created).
        """
        identity = self.load()
        if identity is not None:
            return identity, False
        identity = generate_identity()
        self.save(identity)
        return identity, True

    def reset(self) -> bool:
        """Delete the stored identity. Returns True if one existed."""
        if not self.path.exists():
            return False
        self.path.unlink()
        logger.warning(f"Identity at {self.path} was reset")
        return True
