"""Tests for the narrative CLI.

Tests cover:
1. Argument parsing
2. Identity lifecycle against a temporary keystore and document store
3. Trust set / list / verify / revoke between two local identities
4. Profile discovery and graph output
"""

from __future__ import annotations

import json
import logging

import pytest

from narrative.cli.main import app, main
from narrative.cli.output import status_icon
from narrative.identity.signing import SignatureStatus

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def restore_logging():
    """main() reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "documents.json")


@pytest.fixture
def run(tmp_path, store_path, capsys, clean_env):
    """Run the CLI as a named local user and return (code, stdout, stderr)."""

    def _run(user, *argv):
        code = main(["--identity", str(tmp_path / f"{user}.json"), "--store", store_path, *argv])
        out, err = capsys.readouterr()
        return code, out, err

    return _run


@pytest.fixture
def run_json(run):
    def _run_json(user, *argv):
        code, out, err = run(user, *argv, "--json")
        assert code == 0, err
        return json.loads(out)

    return _run_json


@pytest.fixture
def two_users(run_json):
    """Initialise Alice and Bob in one document store; return their DIDs."""
    alice = run_json("alice", "identity", "init", "--name", "Alice")["did"]
    bob = run_json("bob", "identity", "init", "--name", "Bob")["did"]
    return alice, bob


# ============================================================================
# Parser
# ============================================================================


class TestParser:
    def test_global_options(self):
        args = app().parse_args(["--identity", "/tmp/id.json", "--store", "/tmp/s.json", "-v", "trust", "list"])
        assert args.identity_path == "/tmp/id.json"
        assert args.store_path == "/tmp/s.json"
        assert args.verbose
        assert args.command == "trust"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            app().parse_args([])

    def test_external_specs(self):
        argv = ["profiles", "--external", "narrative:a", "did:key:z", "Bob", "--external", "narrative:b"]
        args = app().parse_args(argv)
        assert args.external == [["narrative:a", "did:key:z", "Bob"], ["narrative:b"]]

    def test_legacy_level_names_accepted(self):
        args = app().parse_args(["trust", "set", "did:key:z", "--level", "endorsed"])
        assert args.level == "endorsed"

    def test_status_icons(self):
        assert status_icon(SignatureStatus.VALID) == "✅"
        assert status_icon("invalid") == "❌"


# ============================================================================
# Identity commands
# ============================================================================


class TestIdentityCommands:
    def test_init_is_idempotent(self, run, run_json):
        first = run_json("alice", "identity", "init", "--name", "Alice")
        second = run_json("alice", "identity", "init", "--name", "Ignored")
        assert first["created"] is True
        assert second["created"] is False
        assert first["did"] == second["did"]
        assert first["docUrl"] == second["docUrl"]

    def test_show(self, run, run_json):
        did = run_json("alice", "identity", "init", "--name", "Alice")["did"]
        shown = run_json("alice", "identity", "show")
        assert shown["id"] == did
        assert shown["profile"]["displayName"] == "Alice"
        assert shown["signatureStatus"] == "valid"
        assert "privateKey" not in json.dumps(shown)

        code, out, _ = run("alice", "identity", "show")
        assert code == 0
        assert "Alice" in out

    def test_show_without_identity(self, run):
        code, _, err = run("nobody", "identity", "show")
        assert code == 1
        assert "Identity not found" in err

    def test_update_resigns(self, run, run_json):
        run_json("alice", "identity", "init", "--name", "Alice")
        code, out, _ = run("alice", "identity", "update", "--name", "Alicia")
        assert code == 0
        shown = run_json("alice", "identity", "show")
        assert shown["profile"]["displayName"] == "Alicia"
        assert shown["signatureStatus"] == "valid"

    def test_update_requires_changes(self, run, run_json):
        run_json("alice", "identity", "init")
        code, _, err = run("alice", "identity", "update")
        assert code == 1
        assert "Nothing to update" in err

    def test_reset_requires_confirmation(self, run, run_json):
        run_json("alice", "identity", "init")
        assert run("alice", "identity", "reset")[0] == 1
        assert run("alice", "identity", "reset", "--yes")[0] == 0
        assert run("alice", "identity", "reset", "--yes")[0] == 1


# ============================================================================
# Trust commands
# ============================================================================


class TestTrustCommands:
    def test_set_propagates_to_local_peer(self, run_json, two_users):
        alice, bob = two_users
        record = run_json("alice", "trust", "set", bob, "--level", "limited")
        assert record["trusterDid"] == alice
        assert record["trusteeDid"] == bob
        assert record["level"] == "endorsed"
        assert record["signature"]

        listed = run_json("bob", "trust", "list")
        assert [r["did"] for r in listed["received"]] == [alice]
        assert listed["received"][0]["relationship"] == "incoming"
        assert listed["received"][0]["signatureStatus"] == "valid"
        assert listed["pendingReciprocity"] == [alice]

    def test_trust_back_is_mutual(self, run_json, two_users):
        alice, bob = two_users
        run_json("alice", "trust", "set", bob)
        run_json("bob", "trust", "set", alice)

        listed = run_json("alice", "trust", "list")
        assert listed["given"][0]["relationship"] == "mutual"
        assert listed["pendingReciprocity"] == []

    def test_verify(self, run, run_json, two_users):
        alice, bob = two_users
        run_json("alice", "trust", "set", bob)
        result = run_json("bob", "trust", "verify")
        assert result["invalid"] == 0
        assert [r["signatureStatus"] for r in result["attestations"]] == ["valid"]

    def test_verify_flags_tampering(self, run, run_json, two_users, store_path):
        alice, bob = two_users
        run_json("alice", "trust", "set", bob)

        with open(store_path) as f:
            data = json.load(f)
        for doc in data["documents"].values():
            if doc["did"] == bob:
                doc["trustReceived"][alice]["createdAt"] += 1
        with open(store_path, "w") as f:
            json.dump(data, f)

        code, out, _ = run("bob", "trust", "verify")
        assert code == 1
        assert "1 invalid" in out

    def test_self_trust_rejected(self, run, two_users):
        alice, _bob = two_users
        code, _, err = run("alice", "trust", "set", alice)
        assert code == 1
        assert "Failed to set trust" in err

    def test_revoke(self, run, run_json, two_users):
        alice, bob = two_users
        run_json("alice", "trust", "set", bob)
        assert run("alice", "trust", "revoke", bob)[0] == 0
        assert run("alice", "trust", "revoke", bob)[0] == 1
        assert run_json("alice", "trust", "list")["given"] == []
        # Revocation is local: Bob still holds the received copy
        assert len(run_json("bob", "trust", "list")["received"]) == 1


# ============================================================================
# Discovery commands
# ============================================================================


class TestDiscoveryCommands:
    def test_profiles_follow_trust(self, run_json, two_users):
        alice, bob = two_users
        run_json("alice", "trust", "set", bob)

        profiles = {p["did"]: p for p in run_json("alice", "profiles")}
        assert profiles[alice]["source"] == "self"
        assert profiles[bob]["displayName"] == "Bob"
        assert profiles[bob]["discoverySource"] == "trust"
        assert profiles[bob]["loadState"] == "loaded"
        assert profiles[bob]["signatureStatus"] == "valid"
        assert profiles[bob]["isTrustGiven"] is True
        assert profiles[bob]["isMutualTrust"] is False

    def test_external_registration(self, run, run_json, two_users, store_path):
        alice, bob = two_users
        with open(store_path) as f:
            bob_url = next(url for url, doc in json.load(f)["documents"].items() if doc["did"] == bob)

        profiles = {p["did"]: p for p in run_json("alice", "profiles", "--external", bob_url, bob, "Bobby")}
        assert profiles[bob]["discoverySource"] == "external"
        assert profiles[bob]["displayName"] == "Bob"

    def test_unknown_external_is_unavailable(self, run_json, two_users):
        profiles = run_json("alice", "profiles", "--external", "narrative:missing", "did:key:z6MkGone", "Gone")
        gone = next(p for p in profiles if p["did"] == "did:key:z6MkGone")
        assert gone["loadState"] == "unavailable"
        assert gone["displayName"] == "Gone"

    def test_graph(self, run, run_json, two_users):
        alice, bob = two_users
        run_json("alice", "trust", "set", bob)
        run_json("bob", "trust", "set", alice)

        graph = run_json("alice", "graph", "--width", "800", "--height", "600", "--iterations", "20")
        assert graph["selfDid"] == alice
        assert len(graph["nodes"]) == 2
        assert graph["edges"][0]["kind"] == "bidirectional"
        me = next(n for n in graph["nodes"] if n["id"] == alice)
        assert (me["x"], me["y"]) == (400, 300)

        code, out, _ = run("alice", "graph")
        assert code == 0
        assert "Trust graph: 2 nodes, 1 edges" in out

    def test_profiles_text_output(self, run, two_users):
        code, out, _ = run("alice", "profiles")
        assert code == 0
        assert "Known profiles (1)" in out
        assert "you" in out
