# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Profile registry: discovery, loading and merging of user profiles.

The registry owns two maps:

- ``profiles``: one :class:`TrackedProfile` per known DID.
- ``doc_urls``: one :class:`DocUrlEntry` per user document to fetch.

Profiles arrive from five channels, strongest first: the local user's own
document, 1st-degree trust (both directions), 2nd-degree crawling of loaded
1st-degree documents, out-of-band registration (a scanned code) and shared
workspace documents. :func:`merge_profile` reconciles them.

Document loads run as asyncio tasks. Each URL is fetched at most once per
registration (``_attempted``), never twice at the same time (``_in_flight``),
and results from a load that finishes after :meth:`ProfileRegistry.close`
or after its entry was removed are dropped.

Example::

    registry = ProfileRegistry(alice.id, repo, user_handle=alice_handle)
    registry.register_external_doc(bob_url, bob.id, "Bob")
    await registry.wait_idle()
    registry.get_profile(bob.id).display_name
    await registry.close()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from types import MappingProxyType
from typing import Any

from ..core.config import get_config
from ..core.exceptions import DocumentUnavailableError, ValidationException
from ..docstore.base import CHANGE_EVENT, DocHandle, DocumentRepo
from ..identity.signing import SignatureStatus, profile_signature_status
from ..schema import now_ms
from ..trust.models import parse_attestations
from .loader import DocumentLoader, PeerDocument
from .merge import merge_profile
from .models import DocUrlEntry, KnownProfile, LoadState, ProfileSource, TrackedProfile

logger = logging.getLogger(__name__)

ProfileListener = Callable[["ProfileRegistry"], None]


class ProfileRegistry:
    """Reactive registry reconciling profile facts from every discovery source."""

    def __init__(
        self,
        current_did: str,
        repo: DocumentRepo,
        *,
        user_handle: DocHandle | None = None,
        workspace_handle: DocHandle | None = None,
        loader: DocumentLoader | None = None,
        max_second_degree: int | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.current_did = current_did
        self._loader = loader or DocumentLoader(repo)
        self._max_second_degree = (
            max_second_degree if max_second_degree is not None else get_config().max_second_degree_profiles
        )
        self._clock = clock

        self._profiles: dict[str, TrackedProfile] = {}
        self._doc_urls: dict[str, DocUrlEntry] = {}

        self._attempted: set[str] = set()
        self._in_flight: dict[str, asyncio.Task[None]] = {}
        self._peer_handles: dict[str, tuple[DocHandle, Callable[[DocHandle], None]]] = {}
        self._crawled: dict[str, set[tuple[str, str | None]]] = {}
        self._generation = 0
        self._closed = False

        self._user_handle: DocHandle | None = None
        self._workspace_handle: DocHandle | None = None
        self._listeners: list[ProfileListener] = []

        if user_handle is not None:
            self.attach_user_doc(user_handle)
        if workspace_handle is not None:
            self.attach_workspace_doc(workspace_handle)

    # -- read surface ----------------------------------------------------------

    @property
    def profiles(self) -> MappingProxyType[str, TrackedProfile]:
        return MappingProxyType(self._profiles)

    @property
    def doc_urls(self) -> MappingProxyType[str, DocUrlEntry]:
        return MappingProxyType(self._doc_urls)

    @property
    def is_loading(self) -> bool:
        """True while any 1st-degree document is still loading."""
        return any(e.is_first_degree and e.load_state == LoadState.LOADING for e in self._doc_urls.values())

    @property
    def closed(self) -> bool:
        return self._closed

    def get_profile(self, did: str) -> TrackedProfile | None:
        return self._profiles.get(did)

    def known_profile(self, did: str) -> KnownProfile | None:
        """Profile plus the trust flags the local document holds for it."""
        profile = self._profiles.get(did)
        if profile is None:
            return None
        doc = self._user_handle.doc() if self._user_handle is not None else None
        doc = doc or {}
        given = {a.trustee_id for a in parse_attestations(doc.get("trustGiven"), source="trustGiven")}
        received = {a.trustor_id for a in parse_attestations(doc.get("trustReceived"), source="trustReceived")}
        return KnownProfile(profile=profile, is_trust_given=did in given, is_trust_received=did in received)

    def peer_documents(self, first_degree_only: bool = True) -> list[PeerDocument]:
        """Snapshots of every loaded peer document, for graph building."""
        peers = []
        for url, (handle, _callback) in self._peer_handles.items():
            entry = self._doc_urls.get(url)
            if entry is None or (first_degree_only and not entry.is_first_degree):
                continue
            if entry.load_state != LoadState.LOADED:
                continue
            try:
                peers.append(PeerDocument.from_snapshot(url, handle.doc()))
            except ValidationException:
                continue
        return peers

    # -- document attachment ---------------------------------------------------

    def attach_user_doc(self, handle: DocHandle) -> None:
        """Follow the local user's document for self and 1st-degree discovery."""
        if self._user_handle is not None:
            self._user_handle.off(CHANGE_EVENT, self._on_user_doc_change)
        self._user_handle = handle
        handle.on(CHANGE_EVENT, self._on_user_doc_change)
        self._on_user_doc_change(handle)

    def attach_workspace_doc(self, handle: DocHandle) -> None:
        """Follow a shared workspace document as the fallback name source."""
        if self._workspace_handle is not None:
            self._workspace_handle.off(CHANGE_EVENT, self._on_workspace_change)
        self._workspace_handle = handle
        handle.on(CHANGE_EVENT, self._on_workspace_change)
        self._on_workspace_change(handle)

    def _on_user_doc_change(self, handle: DocHandle) -> None:
        if self._closed:
            return
        doc = handle.doc() or {}
        self.sync_self(doc, url=handle.url)
        self.sync_trust(doc)

    def _on_workspace_change(self, handle: DocHandle) -> None:
        if self._closed:
            return
        self.sync_workspace(handle.doc() or {})

    # -- merge -----------------------------------------------------------------

    def update_profile(self, did: str, incoming: TrackedProfile, force: bool = False) -> TrackedProfile:
        """Merge ``incoming`` into the profile of ``did`` and notify subscribers.

        Raises:
            ValidationException: If ``incoming`` describes a different DID.
        """
        if incoming.did != did:
            raise ValidationException(f"Profile update for {did} carries DID {incoming.did}", field="did")
        merged = self._merge(incoming, force=force)
        self._notify()
        return merged

    def _merge(self, incoming: TrackedProfile, force: bool = False) -> TrackedProfile:
        merged = merge_profile(self._profiles.get(incoming.did), incoming, force=force)
        self._profiles[incoming.did] = merged
        return merged

    def _promote_profile(self, did: str, source: ProfileSource, url: str | None) -> None:
        """Raise the source of ``did``'s profile to ``source``, keeping its data."""
        existing = self._profiles.get(did)
        if existing is None:
            if url is None:
                return
            self._profiles[did] = TrackedProfile(
                did=did,
                source=source,
                registered_at=self._clock(),
                user_doc_url=url,
            )
        elif existing.priority < source.priority:
            self._profiles[did] = replace(existing, source=source, user_doc_url=existing.user_doc_url or url)

    # -- discovery: self -------------------------------------------------------

    def sync_self(self, doc: dict[str, Any], url: str | None = None) -> None:
        """Force the local user's own profile from their document."""
        did = doc.get("did")
        if did and did != self.current_did:
            logger.warning(f"User document belongs to {did}, expected {self.current_did}")
            return
        profile = doc.get("profile") or {}
        existing = self._profiles.get(self.current_did)
        updated_at = profile.get("updatedAt")
        self._merge(
            TrackedProfile(
                did=self.current_did,
                source=ProfileSource.SELF,
                signature_status=profile_signature_status(profile, self.current_did),
                last_updated=updated_at if isinstance(updated_at, int) else self._clock(),
                load_state=LoadState.LOADED,
                registered_at=existing.registered_at if existing else self._clock(),
                display_name=profile.get("displayName"),
                avatar_url=profile.get("avatarUrl"),
                user_doc_url=url,
            ),
            force=True,
        )
        self._notify()

    # -- discovery: 1st degree -------------------------------------------------

    def sync_trust(self, doc: dict[str, Any]) -> None:
        """Reconcile 1st-degree entries with the local trust maps."""
        given = parse_attestations(doc.get("trustGiven"), source="trustGiven")
        received = parse_attestations(doc.get("trustReceived"), source="trustReceived")

        wanted: dict[str, tuple[ProfileSource, str]] = {}
        trusted: dict[str, ProfileSource] = {}
        for att in given:
            trusted.setdefault(att.trustee_id, ProfileSource.TRUST_GIVEN)
            if att.trustee_doc_url:
                wanted.setdefault(att.trustee_doc_url, (ProfileSource.TRUST_GIVEN, att.trustee_id))
        for att in received:
            trusted.setdefault(att.trustor_id, ProfileSource.TRUST_RECEIVED)
            if att.trustor_doc_url:
                wanted.setdefault(att.trustor_doc_url, (ProfileSource.TRUST_RECEIVED, att.trustor_id))
        trusted.pop(self.current_did, None)
        wanted_dids = {did for _source, did in wanted.values()}

        reload: list[str] = []
        for url, entry in list(self._doc_urls.items()):
            if entry.is_first_degree:
                if url not in wanted and entry.expected_did not in trusted:
                    logger.debug(f"Dropping 1st-degree document {url}: no longer trusted")
                    self._remove_entry(url)
                continue
            if url in wanted:
                source, did = wanted[url]
            elif entry.expected_did in trusted:
                if entry.expected_did in wanted_dids:
                    # Another 1st-degree URL covers this DID
                    self._remove_entry(url)
                    continue
                source, did = trusted[entry.expected_did], entry.expected_did
            else:
                continue
            logger.debug(f"Promoting {entry.source} document {url} to {source}")
            self._doc_urls[url] = replace(entry, source=source, expected_did=entry.expected_did or did)
            if entry.load_state == LoadState.LOADED:
                reload.append(url)

        for url, (source, did) in wanted.items():
            if did == self.current_did or url in self._doc_urls:
                continue
            self._doc_urls[url] = DocUrlEntry(url=url, source=source, registered_at=self._clock(), expected_did=did)
            logger.debug(f"Registered 1st-degree document {url} for {did}")

        for did, source in trusted.items():
            url = next((u for u, (_s, d) in wanted.items() if d == did), None)
            self._promote_profile(did, source, url)

        for url in reload:
            self._apply_peer(url)

        self._notify()
        self._dispatch_loads()

    # -- discovery: workspace --------------------------------------------------

    def sync_workspace(self, doc: dict[str, Any]) -> None:
        """Fill in names for workspace members that no other source knows."""
        changed = False
        for did, entry in (doc.get("identities") or {}).items():
            if not isinstance(entry, dict):
                continue
            existing = self._profiles.get(did)
            if existing is not None and existing.source != ProfileSource.WORKSPACE:
                continue
            profile = TrackedProfile(
                did=did,
                source=ProfileSource.WORKSPACE,
                signature_status=SignatureStatus.MISSING,
                load_state=LoadState.LOADED,
                registered_at=existing.registered_at if existing else self._clock(),
                display_name=entry.get("displayName"),
                avatar_url=entry.get("avatarUrl"),
            )
            if profile != existing:
                self._profiles[did] = profile
                changed = True
        if changed:
            self._notify()

    # -- discovery: external ---------------------------------------------------

    def register_external_doc(
        self,
        url: str,
        expected_did: str | None = None,
        display_name: str | None = None,
    ) -> None:
        """Register a document learned out of band, e.g. from a scanned code.

        Registering the same URL again is a no-op, except that an
        ``unavailable`` URL becomes eligible for one more fetch.
        """
        if expected_did is not None and expected_did == self.current_did:
            logger.debug(f"Ignoring external registration of own document {url}")
            return

        entry = self._doc_urls.get(url)
        if entry is None:
            self._doc_urls[url] = DocUrlEntry(
                url=url,
                source=ProfileSource.EXTERNAL,
                registered_at=self._clock(),
                expected_did=expected_did,
            )
            logger.debug(f"Registered external document {url}")
        elif entry.load_state == LoadState.UNAVAILABLE:
            logger.info(f"Retrying unavailable document {url}")
            self._doc_urls[url] = replace(entry, load_state=LoadState.LOADING)
            self._attempted.discard(url)
            did = entry.expected_did
            profile = self._profiles.get(did) if did else None
            waiting = profile is not None and profile.user_doc_url in (None, url)
            if waiting and profile.load_state == LoadState.UNAVAILABLE:
                self._profiles[did] = replace(profile, load_state=LoadState.LOADING)

        if expected_did is not None:
            existing = self._profiles.get(expected_did)
            if (
                existing is None
                or existing.priority < ProfileSource.EXTERNAL.priority
                or (existing.source == ProfileSource.EXTERNAL and existing.display_name is None)
            ):
                self._profiles[expected_did] = TrackedProfile(
                    did=expected_did,
                    source=ProfileSource.EXTERNAL,
                    registered_at=existing.registered_at if existing else self._clock(),
                    display_name=display_name or (existing.display_name if existing else None),
                    avatar_url=existing.avatar_url if existing else None,
                    user_doc_url=url,
                )

        self._notify()
        self._dispatch_loads()

    # -- loading ---------------------------------------------------------------

    def _dispatch_loads(self) -> None:
        if self._closed:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; wait_idle() dispatches later
            return
        for url, entry in self._doc_urls.items():
            if entry.load_state != LoadState.LOADING or url in self._attempted or url in self._in_flight:
                continue
            self._attempted.add(url)
            self._in_flight[url] = asyncio.create_task(self._load(url, self._generation), name=f"load {url}")

    def _is_current(self, generation: int, url: str) -> bool:
        return not self._closed and generation == self._generation and url in self._doc_urls

    async def _load(self, url: str, generation: int) -> None:
        try:
            handle = await self._loader.fetch(url)
        except DocumentUnavailableError as e:
            if self._is_current(generation, url):
                logger.warning(f"Document {url} unavailable: {e.reason}")
                self.on_unavailable(url)
            return
        except Exception:
            if self._is_current(generation, url):
                logger.exception(f"Loading document {url} failed")
                self.on_unavailable(url)
            return
        finally:
            if self._in_flight.get(url) is asyncio.current_task():
                del self._in_flight[url]

        if not self._is_current(generation, url):
            return
        self._watch_peer(url, handle)
        self._apply_peer(url)

    def _watch_peer(self, url: str, handle: DocHandle) -> None:
        if url in self._peer_handles:
            return

        def on_change(_handle: DocHandle) -> None:
            self._apply_peer(url)

        handle.on(CHANGE_EVENT, on_change)
        self._peer_handles[url] = (handle, on_change)

    def _detach_peer(self, url: str) -> None:
        watched = self._peer_handles.pop(url, None)
        if watched is not None:
            handle, callback = watched
            handle.off(CHANGE_EVENT, callback)

    def _apply_peer(self, url: str) -> None:
        if self._closed or url not in self._doc_urls or url not in self._peer_handles:
            return
        handle, _callback = self._peer_handles[url]
        try:
            peer = PeerDocument.from_snapshot(url, handle.doc())
        except ValidationException as e:
            if e.field == "did":
                # Not synced yet; the change subscription retries
                logger.debug(f"Document {url} has no DID yet")
                return
            logger.warning(f"Document {url} is malformed: {e.message}")
            self.on_unavailable(url)
            return
        except Exception:
            logger.exception(f"Failed to parse document {url}")
            self.on_unavailable(url)
            return
        self.on_loaded(url, peer)

    def on_loaded(self, url: str, peer: PeerDocument) -> None:
        """Merge a loaded peer document and crawl it when it is 1st degree."""
        entry = self._doc_urls.get(url)
        if entry is None:
            return
        if entry.expected_did and entry.expected_did != peer.did:
            logger.warning(f"Document {url} belongs to {peer.did}, expected {entry.expected_did}")
        entry = replace(entry, load_state=LoadState.LOADED, expected_did=peer.did)
        self._doc_urls[url] = entry

        if peer.did != self.current_did:
            existing = self._profiles.get(peer.did)
            updated_at = peer.updated_at
            self._merge(
                TrackedProfile(
                    did=peer.did,
                    source=entry.source,
                    signature_status=profile_signature_status(peer.profile, peer.did),
                    last_updated=updated_at if isinstance(updated_at, int) else self._clock(),
                    load_state=LoadState.LOADED,
                    registered_at=existing.registered_at if existing else self._clock(),
                    display_name=peer.display_name,
                    avatar_url=peer.avatar_url,
                    user_doc_url=url,
                )
            )
            if entry.is_first_degree:
                self._crawl_second_degree(url, peer)

        self._notify()
        self._dispatch_loads()

    def on_unavailable(self, url: str) -> None:
        """Mark ``url`` and the profile waiting on it as unavailable."""
        entry = self._doc_urls.get(url)
        if entry is None:
            return
        self._doc_urls[url] = replace(entry, load_state=LoadState.UNAVAILABLE)
        did = entry.expected_did
        profile = self._profiles.get(did) if did else None
        if profile is not None and profile.load_state == LoadState.LOADING and profile.user_doc_url in (None, url):
            self._profiles[did] = replace(profile, load_state=LoadState.UNAVAILABLE)
        self._notify()

    # -- discovery: 2nd degree -------------------------------------------------

    def _crawl_second_degree(self, peer_url: str, peer: PeerDocument) -> None:
        """Register the peer's trust links that earlier crawls of it have not seen.

        Links are remembered per peer document, so a change that leaves its
        trust maps alone registers nothing and cannot revive evicted DIDs.
        """
        seen = self._crawled.setdefault(peer_url, set())
        links = [link for link in peer.trust_links() if link not in seen]
        seen.update(links)
        if not links:
            return

        known_dids = {e.expected_did for e in self._doc_urls.values() if e.expected_did}
        added = False
        for did, url in links:
            if did == self.current_did or did in self._profiles or did in known_dids:
                continue
            if not url or url in self._doc_urls:
                continue
            now = self._clock()
            self._doc_urls[url] = DocUrlEntry(
                url=url,
                source=ProfileSource.NETWORK_2ND,
                registered_at=now,
                expected_did=did,
            )
            self._profiles[did] = TrackedProfile(
                did=did,
                source=ProfileSource.NETWORK_2ND,
                registered_at=now,
                user_doc_url=url,
            )
            known_dids.add(did)
            added = True
            logger.debug(f"Registered 2nd-degree document {url} for {did} via {peer.did}")
        if added:
            self._evict_second_degree()

    def _evict_second_degree(self) -> None:
        second = [p for p in self._profiles.values() if p.source == ProfileSource.NETWORK_2ND]
        excess = len(second) - self._max_second_degree
        if excess <= 0:
            return
        # Stable sort: equal timestamps keep registration order
        for profile in sorted(second, key=lambda p: p.registered_at)[:excess]:
            del self._profiles[profile.did]
            for url, entry in list(self._doc_urls.items()):
                if entry.source == ProfileSource.NETWORK_2ND and entry.expected_did == profile.did:
                    self._remove_entry(url)
            logger.debug(f"Evicted 2nd-degree profile {profile.did}")

    def _remove_entry(self, url: str) -> None:
        self._doc_urls.pop(url, None)
        self._crawled.pop(url, None)
        self._attempted.discard(url)
        task = self._in_flight.pop(url, None)
        if task is not None and not task.done():
            task.cancel()
        self._detach_peer(url)

    # -- subscriptions ---------------------------------------------------------

    def subscribe(self, callback: ProfileListener) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._listeners.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: ProfileListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception:
                logger.exception("Profile listener failed")

    # -- lifecycle -------------------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait until no document load is pending, including ones started meanwhile."""
        while not self._closed:
            self._dispatch_loads()
            pending = [t for t in self._in_flight.values() if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        """Stop all loads, drop subscriptions and forget in-flight tracking."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1

        tasks = list(self._in_flight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
        self._attempted.clear()
        self._crawled.clear()

        for url in list(self._peer_handles):
            self._detach_peer(url)
        if self._user_handle is not None:
            self._user_handle.off(CHANGE_EVENT, self._on_user_doc_change)
            self._user_handle = None
        if self._workspace_handle is not None:
            self._workspace_handle.off(CHANGE_EVENT, self._on_workspace_change)
            self._workspace_handle = None
        self._listeners.clear()
        logger.debug(f"Profile registry for {self.current_did} closed")
