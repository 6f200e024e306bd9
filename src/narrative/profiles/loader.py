# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Fetching and parsing peer user documents."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..core.config import get_config
from ..core.exceptions import DocumentUnavailableError, ValidationException
from ..docstore.base import DocHandle, DocumentRepo
from ..trust.models import TrustAttestation, parse_attestations

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeerDocument:
    """The parts of a loaded user document the registry cares about."""

    url: str
    did: str
    profile: dict[str, Any] = field(default_factory=dict)
    trust_given: tuple[TrustAttestation, ...] = ()
    trust_received: tuple[TrustAttestation, ...] = ()

    @property
    def display_name(self) -> str | None:
        return self.profile.get("displayName")

    @property
    def avatar_url(self) -> str | None:
        return self.profile.get("avatarUrl")

    @property
    def updated_at(self) -> int | None:
        return self.profile.get("updatedAt")

    def trust_links(self) -> list[tuple[str, str | None]]:
        """(DID, document URL) of everyone this document's owner is linked to."""
        links = [(a.trustee_id, a.trustee_doc_url) for a in self.trust_given]
        links.extend((a.trustor_id, a.trustor_doc_url) for a in self.trust_received)
        return links

    @classmethod
    def from_snapshot(cls, url: str, snapshot: Mapping[str, Any] | None) -> PeerDocument:
        """Parse a document snapshot.

        Malformed trust maps are skipped with a warning rather than rejected.

        Raises:
            ValidationException: With ``field="did"`` if the document has not
                synced a DID yet, ``field="document"`` if it is malformed.
        """
        if snapshot is not None and not isinstance(snapshot, Mapping):
            raise ValidationException(f"Document {url} is not a mapping", field="document")
        if not snapshot or not snapshot.get("did"):
            raise ValidationException(f"Document {url} has no DID yet", field="did")
        did = snapshot["did"]
        if not isinstance(did, str):
            raise ValidationException(f"Document {url} carries a non-string DID", field="document")
        profile = snapshot.get("profile") or {}
        if not isinstance(profile, Mapping):
            logger.warning(f"Ignoring profile of {url}: expected a mapping, got {type(profile).__name__}")
            profile = {}
        return cls(
            url=url,
            did=did,
            profile=dict(profile),
            trust_given=tuple(parse_attestations(snapshot.get("trustGiven"), source=f"{url} trustGiven")),
            trust_received=tuple(parse_attestations(snapshot.get("trustReceived"), source=f"{url} trustReceived")),
        )


class DocumentLoader:
    """Resolves document URLs through a :class:`DocumentRepo` with a timeout."""

    def __init__(self, repo: DocumentRepo, timeout: float | None = None) -> None:
        self._repo = repo
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else get_config().doc_load_timeout

    async def fetch(self, url: str) -> DocHandle:
        """Find the document handle for ``url``.

        Raises:
            DocumentUnavailableError: If the repo fails or does not answer in time.
        """
        timeout = self.timeout
        try:
            return await asyncio.wait_for(self._repo.find(url), timeout)
        except DocumentUnavailableError:
            raise
        except TimeoutError as e:
            raise DocumentUnavailableError(url, f"timed out after {timeout}s") from e
        except Exception as e:
            raise DocumentUnavailableError(url, f"{type(e).__name__}: {e}") from e
