"""Tests for narrative.profiles.registry - discovery, loading and merging of profiles."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from narrative.core.exceptions import ValidationException
from narrative.docstore.memory import InMemoryRepo
from narrative.identity.signing import SignatureStatus
from narrative.profiles.loader import DocumentLoader
from narrative.profiles.models import DiscoverySource, LoadState, ProfileSource, TrackedProfile
from narrative.profiles.registry import ProfileRegistry
from narrative.schema import create_workspace_document, update_user_profile
from narrative.trust.models import TrustAttestation, TrustLevel
from narrative.trust.store import TrustStore

# ---------------------------------------------------------------------------
# Helpers and fixtures
# ---------------------------------------------------------------------------


class CountingRepo(InMemoryRepo):
    """InMemoryRepo that records every find() call."""

    def __init__(self):
        super().__init__()
        self.finds: list[str] = []

    async def find(self, url):
        self.finds.append(url)
        return await super().find(url)


def give_trust(handle, trustor_id, trustee_id, trustee_url=None, trustor_url=None, level=TrustLevel.FULL):
    """Write an unsigned attestation straight into ``handle``'s trustGiven."""
    record = TrustAttestation(
        id=f"trust-{trustee_id[-6:]}",
        trustor_id=trustor_id,
        trustee_id=trustee_id,
        level=level,
        created_at=1,
        trustor_doc_url=trustor_url,
        trustee_doc_url=trustee_url,
    ).to_record()
    handle.change(lambda doc: doc.setdefault("trustGiven", {}).__setitem__(trustee_id, record))


def receive_trust(handle, trustor_id, trustee_id, trustor_url=None):
    """Write an unsigned attestation straight into ``handle``'s trustReceived."""
    record = TrustAttestation(
        id=f"trust-{trustor_id[-6:]}",
        trustor_id=trustor_id,
        trustee_id=trustee_id,
        level=TrustLevel.FULL,
        created_at=1,
        trustor_doc_url=trustor_url,
    ).to_record()
    handle.change(lambda doc: doc.setdefault("trustReceived", {}).__setitem__(trustor_id, record))


@pytest.fixture
def repo() -> CountingRepo:
    return CountingRepo()


@pytest.fixture
def alice_doc(make_user_doc, alice):
    return make_user_doc(alice, "Alice")


@pytest.fixture
def bob_doc(make_user_doc, bob):
    return make_user_doc(bob, "Robert", updated_at=1_700_000_000_500)


@pytest.fixture
def carol_doc(make_user_doc, carol):
    return make_user_doc(carol, "Carol")


@pytest.fixture
async def make_registry(repo, clock, alice, alice_doc):
    registries = []

    def _make(**kwargs):
        kwargs.setdefault("user_handle", alice_doc)
        kwargs.setdefault("loader", DocumentLoader(repo, timeout=0.05))
        kwargs.setdefault("clock", clock)
        registry = ProfileRegistry(alice.id, repo, **kwargs)
        registries.append(registry)
        return registry

    yield _make
    for registry in registries:
        await registry.close()


@pytest.fixture
async def registry(make_registry):
    return make_registry()


@pytest.fixture
def alice_store(alice, alice_doc, repo, clock):
    store = TrustStore(alice.id, alice_doc, private_key=alice.private_key, repo=repo, clock=clock)
    yield store
    store.destroy()


# ---------------------------------------------------------------------------
# Self
# ---------------------------------------------------------------------------


class TestSelfProfile:
    async def test_own_profile_is_forced_and_verified(self, alice, alice_doc, registry):
        profile = registry.get_profile(alice.id)
        assert profile.source == ProfileSource.SELF
        assert profile.discovery_source == DiscoverySource.SELF
        assert profile.display_name == "Alice"
        assert profile.signature_status == SignatureStatus.VALID
        assert profile.load_state == LoadState.LOADED
        assert profile.user_doc_url == alice_doc.url

    async def test_own_profile_follows_edits(self, alice, alice_doc, registry):
        alice_doc.change(lambda doc: update_user_profile(doc, {"displayName": "Alicia"}, private_key=alice.private_key))
        assert registry.get_profile(alice.id).display_name == "Alicia"

    async def test_unsigned_edit_reported_missing(self, alice, alice_doc, registry):
        alice_doc.change(lambda doc: update_user_profile(doc, {"displayName": "Alicia"}))
        assert registry.get_profile(alice.id).signature_status == SignatureStatus.MISSING


# ---------------------------------------------------------------------------
# External discovery
# ---------------------------------------------------------------------------


class TestExternalDiscovery:
    async def test_scan_then_load_then_trust(self, alice, bob, bob_doc, registry, alice_store):
        registry.register_external_doc(bob_doc.url, bob.id, "Bob")

        placeholder = registry.get_profile(bob.id)
        assert placeholder.display_name == "Bob"
        assert placeholder.load_state == LoadState.LOADING
        assert placeholder.discovery_source == DiscoverySource.EXTERNAL

        await registry.wait_idle()
        loaded = registry.get_profile(bob.id)
        assert loaded.display_name == "Robert"
        assert loaded.load_state == LoadState.LOADED
        assert loaded.signature_status == SignatureStatus.VALID
        assert loaded.discovery_source == DiscoverySource.EXTERNAL

        await alice_store.set_trust(bob.id, TrustLevel.FULL, trustee_doc_url=bob_doc.url)
        await registry.wait_idle()
        trusted = registry.get_profile(bob.id)
        assert trusted.discovery_source == DiscoverySource.TRUST
        assert trusted.display_name == "Robert"
        assert registry.doc_urls[bob_doc.url].source == ProfileSource.TRUST_GIVEN
        assert len(registry.doc_urls) == 1

    async def test_registration_is_idempotent(self, bob, bob_doc, registry, repo):
        registry.register_external_doc(bob_doc.url, bob.id, "Bob")
        registry.register_external_doc(bob_doc.url, bob.id, "Bob")
        await registry.wait_idle()
        registry.register_external_doc(bob_doc.url, bob.id, "Bob")
        await registry.wait_idle()

        assert list(registry.doc_urls) == [bob_doc.url]
        assert repo.finds.count(bob_doc.url) == 1

    async def test_own_document_ignored(self, alice, alice_doc, registry):
        registry.register_external_doc(alice_doc.url, alice.id, "Me")
        assert alice_doc.url not in registry.doc_urls
        assert registry.get_profile(alice.id).source == ProfileSource.SELF

    async def test_placeholder_does_not_replace_stronger_profile(self, bob, bob_doc, registry, alice_doc):
        give_trust(alice_doc, registry.current_did, bob.id, trustee_url=bob_doc.url)
        await registry.wait_idle()

        registry.register_external_doc("narrative:elsewhere", bob.id, "Impostor")
        assert registry.get_profile(bob.id).display_name == "Robert"
        assert registry.get_profile(bob.id).discovery_source == DiscoverySource.TRUST

    async def test_unsynced_document_loads_when_did_arrives(self, bob, registry, repo):
        handle = repo.create({})
        registry.register_external_doc(handle.url, bob.id, "Bob")
        await registry.wait_idle()
        assert registry.doc_urls[handle.url].load_state == LoadState.LOADING

        handle.change(lambda doc: doc.update(did=bob.id, profile={"displayName": "Bobby", "updatedAt": 5}))
        assert registry.get_profile(bob.id).display_name == "Bobby"
        assert registry.doc_urls[handle.url].load_state == LoadState.LOADED
        assert registry.get_profile(bob.id).signature_status == SignatureStatus.MISSING

    async def test_did_mismatch_logged_and_merged_under_real_did(self, bob, carol, bob_doc, registry, caplog):
        with caplog.at_level(logging.WARNING, logger="narrative.profiles.registry"):
            registry.register_external_doc(bob_doc.url, carol.id, "Carol?")
            await registry.wait_idle()

        assert "expected" in caplog.text
        assert registry.get_profile(bob.id).display_name == "Robert"
        assert registry.doc_urls[bob_doc.url].expected_did == bob.id


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


class TestAvailability:
    async def test_unavailable_is_terminal_but_keeps_placeholder(self, bob, registry, repo):
        repo.set_offline("narrative:bob-offline")
        registry.register_external_doc("narrative:bob-offline", bob.id, "Bob")
        await registry.wait_idle()

        assert registry.doc_urls["narrative:bob-offline"].load_state == LoadState.UNAVAILABLE
        profile = registry.get_profile(bob.id)
        assert profile.display_name == "Bob"
        assert profile.load_state == LoadState.UNAVAILABLE

        await registry.wait_idle()
        assert repo.finds.count("narrative:bob-offline") == 1

    async def test_explicit_reregistration_retries(self, bob, bob_doc, registry, repo):
        repo.set_offline(bob_doc.url)
        registry.register_external_doc(bob_doc.url, bob.id, "Bob")
        await registry.wait_idle()

        repo.set_offline(bob_doc.url, False)
        registry.register_external_doc(bob_doc.url, bob.id, "Bob")
        assert registry.get_profile(bob.id).load_state == LoadState.LOADING
        await registry.wait_idle()

        assert repo.finds.count(bob_doc.url) == 2
        assert registry.get_profile(bob.id).display_name == "Robert"
        assert registry.get_profile(bob.id).load_state == LoadState.LOADED

    async def test_timeout_marks_unavailable(self, bob, registry, repo):
        repo.set_hanging("narrative:slow")
        registry.register_external_doc("narrative:slow", bob.id, "Bob")
        await registry.wait_idle()
        assert registry.doc_urls["narrative:slow"].load_state == LoadState.UNAVAILABLE

    async def test_is_loading_tracks_first_degree_only(self, alice, bob, carol, alice_doc, registry, repo):
        repo.set_hanging("narrative:ext")
        repo.set_hanging("narrative:bob")
        registry.register_external_doc("narrative:ext", carol.id)
        await asyncio.sleep(0)
        assert not registry.is_loading

        give_trust(alice_doc, alice.id, bob.id, trustee_url="narrative:bob")
        assert registry.is_loading

        await registry.wait_idle()
        assert not registry.is_loading

    async def test_repo_error_marks_unavailable(self, alice, bob, alice_doc, registry, repo, monkeypatch):
        real_find = repo.find

        async def flaky_find(url):
            if url == "narrative:bob-flaky":
                raise ConnectionError("connection reset")
            return await real_find(url)

        monkeypatch.setattr(repo, "find", flaky_find)
        give_trust(alice_doc, alice.id, bob.id, trustee_url="narrative:bob-flaky")
        await registry.wait_idle()

        assert registry.doc_urls["narrative:bob-flaky"].load_state == LoadState.UNAVAILABLE
        assert registry.get_profile(bob.id).load_state == LoadState.UNAVAILABLE
        assert not registry.is_loading

    async def test_non_mapping_trust_maps_are_skipped(self, alice, bob, alice_doc, registry, repo, caplog):
        peer = repo.create({"did": bob.id, "trustGiven": ["garbage"], "trustReceived": "garbage"})
        give_trust(alice_doc, alice.id, bob.id, trustee_url=peer.url)
        await registry.wait_idle()

        assert registry.doc_urls[peer.url].load_state == LoadState.LOADED
        assert registry.get_profile(bob.id).load_state == LoadState.LOADED
        assert not registry.is_loading
        assert "expected a mapping" in caplog.text

    async def test_malformed_document_marks_unavailable(self, alice, bob, alice_doc, registry, repo):
        peer = repo.create({"did": ["not", "a", "did"]})
        give_trust(alice_doc, alice.id, bob.id, trustee_url=peer.url)
        await registry.wait_idle()

        assert registry.doc_urls[peer.url].load_state == LoadState.UNAVAILABLE
        assert registry.get_profile(bob.id).load_state == LoadState.UNAVAILABLE
        assert not registry.is_loading
        assert registry.peer_documents() == []

        # Still watched: a repaired document loads
        peer.change(lambda doc: doc.__setitem__("did", bob.id))
        assert registry.doc_urls[peer.url].load_state == LoadState.LOADED


# ---------------------------------------------------------------------------
# 1st degree
# ---------------------------------------------------------------------------


class TestFirstDegree:
    async def test_both_directions_loaded(self, alice, bob, carol, alice_doc, bob_doc, carol_doc, registry):
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        receive_trust(alice_doc, carol.id, alice.id, trustor_url=carol_doc.url)
        await registry.wait_idle()

        assert registry.get_profile(bob.id).source == ProfileSource.TRUST_GIVEN
        assert registry.get_profile(carol.id).source == ProfileSource.TRUST_RECEIVED
        assert registry.get_profile(carol.id).display_name == "Carol"
        assert registry.get_profile(carol.id).discovery_source == DiscoverySource.TRUST

    async def test_revocation_removes_entry_but_keeps_profile(self, alice, bob, alice_doc, bob_doc, registry):
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        await registry.wait_idle()

        alice_doc.change(lambda doc: doc["trustGiven"].pop(bob.id))
        assert bob_doc.url not in registry.doc_urls
        assert registry.get_profile(bob.id).display_name == "Robert"
        assert bob_doc.listener_count() == 0

    async def test_promotion_deletes_redundant_external_entry(self, alice, bob, alice_doc, bob_doc, registry):
        registry.register_external_doc("narrative:old-bob", bob.id, "Bob")
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)

        assert "narrative:old-bob" not in registry.doc_urls
        assert registry.doc_urls[bob_doc.url].is_first_degree
        await registry.wait_idle()
        assert registry.get_profile(bob.id).discovery_source == DiscoverySource.TRUST

    async def test_external_entry_reclassified_when_trust_has_no_url(self, alice, bob, alice_doc, bob_doc, registry):
        registry.register_external_doc(bob_doc.url, bob.id, "Bob")
        await registry.wait_idle()

        give_trust(alice_doc, alice.id, bob.id)
        entry = registry.doc_urls[bob_doc.url]
        assert entry.source == ProfileSource.TRUST_GIVEN
        assert entry.load_state == LoadState.LOADED
        assert registry.get_profile(bob.id).discovery_source == DiscoverySource.TRUST

    async def test_known_profile_flags(self, alice, bob, carol, alice_doc, bob_doc, registry):
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        receive_trust(alice_doc, bob.id, alice.id, trustor_url=bob_doc.url)
        receive_trust(alice_doc, carol.id, alice.id)
        await registry.wait_idle()

        known = registry.known_profile(bob.id)
        assert known.is_trust_given and known.is_trust_received and known.is_mutual_trust
        assert registry.known_profile("did:key:unknown") is None

    async def test_live_peer_updates(self, alice, bob, alice_doc, bob_doc, registry):
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        await registry.wait_idle()

        later = 1_800_000_000_000
        key = bob.private_key
        bob_doc.change(lambda doc: update_user_profile(doc, {"displayName": "Rob"}, private_key=key, now=later))
        profile = registry.get_profile(bob.id)
        assert profile.display_name == "Rob"
        assert profile.last_updated == 1_800_000_000_000


# ---------------------------------------------------------------------------
# 2nd degree
# ---------------------------------------------------------------------------


class TestSecondDegree:
    async def test_crawls_trusted_peers(self, alice, bob, carol, alice_doc, bob_doc, carol_doc, registry):
        give_trust(bob_doc, bob.id, carol.id, trustee_url=carol_doc.url)
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        await registry.wait_idle()

        carol_profile = registry.get_profile(carol.id)
        assert carol_profile.discovery_source == DiscoverySource.NETWORK_2ND
        assert carol_profile.display_name == "Carol"
        assert carol_profile.load_state == LoadState.LOADED
        assert not registry.doc_urls[carol_doc.url].is_first_degree

    async def test_does_not_crawl_external_or_second_degree(self, bob, carol, bob_doc, carol_doc, registry):
        give_trust(bob_doc, bob.id, carol.id, trustee_url=carol_doc.url)
        registry.register_external_doc(bob_doc.url, bob.id)
        await registry.wait_idle()
        assert registry.get_profile(carol.id) is None

    async def test_skips_links_without_url_and_self(self, alice, bob, carol, alice_doc, bob_doc, registry):
        give_trust(bob_doc, bob.id, carol.id)
        give_trust(bob_doc, bob.id, alice.id, trustee_url=alice_doc.url)
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        await registry.wait_idle()

        assert registry.get_profile(carol.id) is None
        assert registry.get_profile(alice.id).source == ProfileSource.SELF
        assert alice_doc.url not in registry.doc_urls

    async def test_eviction_keeps_most_recent(self, alice, bob, alice_doc, bob_doc, make_registry):
        registry = make_registry(max_second_degree=3)
        peers = [f"did:key:z6MkPeer{i}" for i in range(6)]

        def add_all(doc):
            for i, did in enumerate(peers):
                doc["trustGiven"][did] = TrustAttestation(
                    id=f"t{i}",
                    trustor_id=bob.id,
                    trustee_id=did,
                    level=TrustLevel.FULL,
                    created_at=1,
                    trustee_doc_url=f"narrative:peer{i}",
                ).to_record()

        bob_doc.change(add_all)
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        await registry.wait_idle()

        second = [p.did for p in registry.profiles.values() if p.source == ProfileSource.NETWORK_2ND]
        assert second == peers[3:]
        assert [u for u, e in registry.doc_urls.items() if e.source == ProfileSource.NETWORK_2ND] == [
            "narrative:peer3",
            "narrative:peer4",
            "narrative:peer5",
        ]
        await registry.close()

    async def test_peer_edits_do_not_refetch_evicted(self, alice, bob, alice_doc, bob_doc, make_registry, repo):
        registry = make_registry(max_second_degree=3)
        peers = [f"did:key:z6MkPeer{i}" for i in range(6)]
        for i, did in enumerate(peers):
            give_trust(bob_doc, bob.id, did, trustee_url=f"narrative:peer{i}")
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        await registry.wait_idle()

        def peer_finds():
            return [u for u in repo.finds if u.startswith("narrative:peer")]

        def second_degree():
            return [p.did for p in registry.profiles.values() if p.source == ProfileSource.NETWORK_2ND]

        assert peer_finds() == ["narrative:peer3", "narrative:peer4", "narrative:peer5"]

        for i in range(3):
            edit = {"displayName": f"Robert {i}"}
            bob_doc.change(lambda doc, edit=edit, i=i: update_user_profile(doc, edit, now=1_800_000_000_000 + i))
            await registry.wait_idle()

        assert registry.get_profile(bob.id).display_name == "Robert 2"
        assert len(peer_finds()) == 3
        assert second_degree() == peers[3:]

        # A genuinely new link is still crawled and evicts the oldest
        give_trust(bob_doc, bob.id, "did:key:z6MkPeer6", trustee_url="narrative:peer6")
        await registry.wait_idle()
        assert second_degree() == peers[4:] + ["did:key:z6MkPeer6"]
        assert peer_finds()[3:] == ["narrative:peer6"]

    async def test_eviction_spares_promoted(self, alice, bob, carol, alice_doc, bob_doc, carol_doc, make_registry):
        registry = make_registry(max_second_degree=1)
        give_trust(bob_doc, bob.id, carol.id, trustee_url=carol_doc.url)
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        await registry.wait_idle()
        assert registry.get_profile(carol.id).source == ProfileSource.NETWORK_2ND

        # Carol becomes 1st degree, then Bob names someone new
        give_trust(alice_doc, alice.id, carol.id, trustee_url=carol_doc.url)
        give_trust(bob_doc, bob.id, "did:key:z6MkDave", trustee_url="narrative:dave")
        await registry.wait_idle()

        assert registry.get_profile(carol.id).source == ProfileSource.TRUST_GIVEN
        assert registry.get_profile("did:key:z6MkDave").source == ProfileSource.NETWORK_2ND
        await registry.close()


# ---------------------------------------------------------------------------
# Workspace fallback
# ---------------------------------------------------------------------------


class TestWorkspaceFallback:
    async def test_fills_unknown_dids_only(self, alice, bob, carol, alice_doc, bob_doc, repo, make_registry):
        workspace = create_workspace_document("Team", alice, "Alice (ws)")
        workspace["identities"][bob.id] = {"displayName": "Bob (ws)"}
        workspace["identities"][carol.id] = {"displayName": "Carol (ws)"}
        ws_handle = repo.create(workspace)
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)

        registry = make_registry(workspace_handle=ws_handle)
        await registry.wait_idle()

        assert registry.get_profile(alice.id).display_name == "Alice"
        assert registry.get_profile(bob.id).display_name == "Robert"
        carol_profile = registry.get_profile(carol.id)
        assert carol_profile.display_name == "Carol (ws)"
        assert carol_profile.discovery_source == DiscoverySource.WORKSPACE
        assert carol_profile.signature_status == SignatureStatus.MISSING
        await registry.close()

    async def test_any_other_source_replaces_workspace(self, alice, carol, carol_doc, repo, make_registry):
        workspace = create_workspace_document("Team", alice)
        workspace["identities"][carol.id] = {"displayName": "Carol (ws)"}
        registry = make_registry(workspace_handle=repo.create(workspace))

        registry.register_external_doc(carol_doc.url, carol.id)
        assert registry.get_profile(carol.id).display_name == "Carol (ws)"
        assert registry.get_profile(carol.id).source == ProfileSource.EXTERNAL

        await registry.wait_idle()
        assert registry.get_profile(carol.id).display_name == "Carol"
        await registry.close()


# ---------------------------------------------------------------------------
# Observers, merge entry point and lifecycle
# ---------------------------------------------------------------------------


class TestSubscriptions:
    async def test_listeners_notified(self, bob, bob_doc, registry):
        callback = MagicMock()
        unsubscribe = registry.subscribe(callback)

        registry.register_external_doc(bob_doc.url, bob.id, "Bob")
        callback.assert_called_with(registry)

        unsubscribe()
        callback.reset_mock()
        await registry.wait_idle()
        callback.assert_not_called()

    async def test_failing_listener_logged(self, bob, registry, caplog):
        healthy = MagicMock()
        registry.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        registry.subscribe(healthy)
        with caplog.at_level(logging.ERROR, logger="narrative.profiles.registry"):
            registry.register_external_doc("narrative:x", bob.id)
        healthy.assert_called()
        assert "Profile listener failed" in caplog.text


class TestUpdateProfile:
    async def test_merges_and_notifies(self, bob, registry):
        callback = MagicMock()
        registry.subscribe(callback)
        incoming = TrackedProfile(did=bob.id, source=ProfileSource.EXTERNAL, display_name="B")
        merged = registry.update_profile(bob.id, incoming)
        assert registry.get_profile(bob.id) is merged
        callback.assert_called_once_with(registry)

    async def test_rejects_mismatched_did(self, bob, carol, registry):
        with pytest.raises(ValidationException):
            registry.update_profile(bob.id, TrackedProfile(did=carol.id, source=ProfileSource.EXTERNAL))


class TestLifecycle:
    async def test_close_cancels_loads_and_drops_results(self, alice, bob, alice_doc, repo, make_registry):
        registry = make_registry(loader=DocumentLoader(repo, timeout=10))
        repo.set_hanging("narrative:slow")
        registry.register_external_doc("narrative:slow", bob.id, "Bob")
        await asyncio.sleep(0)

        await registry.close()

        assert registry.closed
        assert registry.doc_urls["narrative:slow"].load_state == LoadState.LOADING
        assert alice_doc.listener_count() == 0
        await registry.wait_idle()

    async def test_closed_registry_ignores_document_changes(self, alice, bob, alice_doc, bob_doc, registry):
        await registry.close()
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        assert bob_doc.url not in registry.doc_urls

    async def test_instances_are_independent(self, alice, bob, bob_doc, make_registry):
        first = make_registry()
        second = make_registry()
        first.register_external_doc(bob_doc.url, bob.id, "Bob")
        assert second.get_profile(bob.id) is None
        await first.close()
        await second.close()

    async def test_peer_documents_for_graph(self, alice, bob, carol, alice_doc, bob_doc, carol_doc, registry):
        give_trust(bob_doc, bob.id, carol.id, trustee_url=carol_doc.url)
        give_trust(alice_doc, alice.id, bob.id, trustee_url=bob_doc.url)
        await registry.wait_idle()

        assert [p.did for p in registry.peer_documents()] == [bob.id]
        assert {p.did for p in registry.peer_documents(first_degree_only=False)} == {bob.id, carol.id}
