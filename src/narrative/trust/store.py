# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Trust attestation store backed by the local user's document.

Typical workflow::

    store = TrustStore(alice.id, alice_handle, private_key=alice.private_key, repo=repo)

    # Vouch for Bob; if Bob's document URL is known the attestation is
    # also written into Bob's ``trustReceived``.
    await store.set_trust(bob.id, TrustLevel.FULL, trustee_doc_url=bob_url)

    store.get_trust_level(bob.id)   # TrustLevel.FULL
    await store.revoke_trust(bob.id)

Revocation only removes the local ``trustGiven`` entry. A copy already
propagated into the trustee's document stays there: there is no negative
attestation protocol.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from typing import Any

from ..core.config import get_config
from ..core.exceptions import DocumentNotWritableError, DocumentUnavailableError
from ..docstore.base import CHANGE_EVENT, DocHandle, DocumentRepo
from ..identity.signing import SignatureStatus, entity_signature_status, sign_entity
from ..schema import new_id, now_ms
from .models import TrustAttestation, TrustLevel, parse_attestations

logger = logging.getLogger(__name__)

TrustListener = Callable[[list[TrustAttestation]], None]


class Relationship(enum.StrEnum):
    """Direction of trust between the local user and another identity."""

    NONE = "none"
    OUTGOING = "outgoing"  # I trust them
    INCOMING = "incoming"  # they trust me
    MUTUAL = "mutual"


class TrustStore:
    """Per-identity store over ``trustGiven`` / ``trustReceived``."""

    def __init__(
        self,
        current_did: str,
        handle: DocHandle | None = None,
        *,
        private_key: bytes | None = None,
        repo: DocumentRepo | None = None,
        clock: Callable[[], int] = now_ms,
        propagation_timeout: float | None = None,
    ) -> None:
        self.current_did = current_did
        self._private_key = private_key
        self._repo = repo
        self._clock = clock
        self._propagation_timeout = propagation_timeout
        self._handle: DocHandle | None = None
        self._listeners: list[TrustListener] = []
        if handle is not None:
            self.set_handle(handle)

    # -- document attachment -------------------------------------------------

    @property
    def handle(self) -> DocHandle | None:
        return self._handle

    def set_handle(self, handle: DocHandle) -> None:
        """Attach (or replace) the user document this store reads and writes."""
        if self._handle is not None:
            self._handle.off(CHANGE_EVENT, self._on_doc_change)
        self._handle = handle
        handle.on(CHANGE_EVENT, self._on_doc_change)

    def destroy(self) -> None:
        """Detach from the document and drop all subscribers."""
        if self._handle is not None:
            self._handle.off(CHANGE_EVENT, self._on_doc_change)
            self._handle = None
        self._listeners.clear()

    def _snapshot(self) -> dict[str, Any]:
        if self._handle is None:
            return {}
        return self._handle.doc() or {}

    def _require_handle(self) -> DocHandle:
        if self._handle is None:
            raise DocumentNotWritableError()
        return self._handle

    # -- reads -----------------------------------------------------------------

    def get_trust_given(self) -> list[TrustAttestation]:
        return parse_attestations(self._snapshot().get("trustGiven"), source="trustGiven")

    def get_trust_received(self) -> list[TrustAttestation]:
        return parse_attestations(self._snapshot().get("trustReceived"), source="trustReceived")

    def get_attestation(self, trustee_id: str) -> TrustAttestation | None:
        for attestation in self.get_trust_given():
            if attestation.trustee_id == trustee_id:
                return attestation
        return None

    def get_trust_level(self, identity_id: str) -> TrustLevel | None:
        attestation = self.get_attestation(identity_id)
        return attestation.level if attestation else None

    def relationship(self, identity_id: str) -> Relationship:
        outgoing = self.get_attestation(identity_id) is not None
        incoming = any(a.trustor_id == identity_id for a in self.get_trust_received())
        if outgoing and incoming:
            return Relationship.MUTUAL
        if outgoing:
            return Relationship.OUTGOING
        if incoming:
            return Relationship.INCOMING
        return Relationship.NONE

    def pending_reciprocity(self) -> list[TrustAttestation]:
        """Received attestations whose trustor I have not trusted back."""
        given = {a.trustee_id for a in self.get_trust_given()}
        return [a for a in self.get_trust_received() if a.trustor_id not in given]

    def verify_attestation(self, attestation: TrustAttestation) -> SignatureStatus:
        """Check an attestation's signature against its trustor's DID."""
        return entity_signature_status(attestation.signed_entity(), attestation.trustor_id)

    # -- mutations -------------------------------------------------------------

    def _known_doc_url(self, identity_id: str) -> str | None:
        existing = self.get_attestation(identity_id)
        if existing and existing.trustee_doc_url:
            return existing.trustee_doc_url
        for received in self.get_trust_received():
            if received.trustor_id == identity_id and received.trustor_doc_url:
                return received.trustor_doc_url
        return None

    async def set_trust(
        self,
        trustee_id: str,
        level: TrustLevel | str = TrustLevel.FULL,
        trustee_doc_url: str | None = None,
    ) -> TrustAttestation:
        """Attest trust in ``trustee_id``, replacing any earlier attestation.

        The local ``trustGiven`` write always happens. Propagation into the
        trustee's document is attempted when their document URL is known
        (passed in, or remembered from an earlier attestation in either
        direction) and only logs on failure.

        Raises:
            DocumentNotWritableError: If no user document is attached.
            ValidationException: If ``trustee_id`` is the local identity.
        """
        handle = self._require_handle()
        now = self._clock()
        trustee_doc_url = trustee_doc_url or self._known_doc_url(trustee_id)

        attestation = TrustAttestation(
            id=new_id("trust"),
            trustor_id=self.current_did,
            trustee_id=trustee_id,
            level=TrustLevel.parse(level),
            created_at=now,
            trustor_doc_url=handle.url,
            trustee_doc_url=trustee_doc_url,
            updated_at=now,
        )

        if self._private_key is not None:
            try:
                attestation = attestation.with_signature(sign_entity(attestation.signing_payload(), self._private_key))
            except ValueError as e:
                logger.warning(f"Failed to sign trust attestation for {trustee_id}: {e}")

        record = attestation.to_record()

        def write(doc: dict[str, Any]) -> None:
            doc.setdefault("trustGiven", {})[trustee_id] = record
            doc["lastModified"] = now

        handle.change(write)
        logger.info(f"Set {attestation.level} trust in {trustee_id}")

        if trustee_doc_url:
            await self.propagate_trust(trustee_doc_url, attestation)

        return attestation

    async def revoke_trust(self, trustee_id: str) -> bool:
        """Remove the local attestation for ``trustee_id``.

        Returns:
            True if an attestation was removed.

        Raises:
            DocumentNotWritableError: If no user document is attached.
        """
        handle = self._require_handle()
        if trustee_id not in (self._snapshot().get("trustGiven") or {}):
            return False

        def remove(doc: dict[str, Any]) -> None:
            doc.get("trustGiven", {}).pop(trustee_id, None)
            doc["lastModified"] = self._clock()

        handle.change(remove)
        logger.info(f"Revoked trust in {trustee_id}")
        return True

    async def propagate_trust(self, recipient_doc_url: str, attestation: TrustAttestation) -> bool:
        """Copy ``attestation`` into the recipient's ``trustReceived``.

        Best effort: a document that cannot be reached or written is logged
        and reported as False. The local attestation is never rolled back.
        """
        if self._repo is None:
            logger.warning(f"No document repo configured; not propagating trust to {recipient_doc_url}")
            return False

        timeout = self._propagation_timeout or get_config().doc_load_timeout
        now = self._clock()
        record = attestation.to_record()
        record["updatedAt"] = now

        def write(doc: dict[str, Any]) -> None:
            received = doc.get("trustReceived")
            if not isinstance(received, dict):
                received = doc["trustReceived"] = {}
            received[attestation.trustor_id] = record
            doc["lastModified"] = now

        try:
            recipient = await asyncio.wait_for(self._repo.find(recipient_doc_url), timeout)
            recipient.change(write)
        except DocumentUnavailableError as e:
            logger.warning(f"Failed to propagate trust to {recipient_doc_url}: {e.message}")
            return False
        except TimeoutError:
            logger.warning(f"Failed to propagate trust to {recipient_doc_url}: timed out after {timeout}s")
            return False
        except Exception as e:
            logger.warning(f"Failed to propagate trust to {recipient_doc_url}: {type(e).__name__}: {e}")
            return False
        logger.debug(f"Propagated trust {attestation.id} to {recipient_doc_url}")
        return True

    # -- subscriptions ---------------------------------------------------------

    def subscribe(self, callback: TrustListener) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._listeners.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: TrustListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _on_doc_change(self, _handle: DocHandle) -> None:
        self._notify_listeners()

    def _notify_listeners(self) -> None:
        if not self._listeners:
            return
        attestations = self.get_trust_given() + self.get_trust_received()
        for callback in list(self._listeners):
            try:
                callback(attestations)
            except Exception:
                logger.exception("Trust listener failed")
