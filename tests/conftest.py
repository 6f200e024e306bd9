"""Global test fixtures for the Narrative test suite."""

from __future__ import annotations

import os
from collections.abc import Callable

import pytest

from narrative.core.config import clear_config_cache
from narrative.docstore.memory import InMemoryDocHandle, InMemoryRepo
from narrative.identity.did import Identity, generate_identity
from narrative.schema import create_user_document

# ============================================================================
# Environment / config
# ============================================================================


@pytest.fixture(autouse=True)
def reset_config():
    """Every test starts and ends with a fresh config singleton."""
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all NARRATIVE_* variables so defaults apply."""
    for key in list(os.environ):
        if key.startswith("NARRATIVE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(os.path.dirname(__file__))


# ============================================================================
# Clock
# ============================================================================


class FakeClock:
    """Millisecond clock that ticks once per read, so ordering is strict."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Identities and documents
# ============================================================================


@pytest.fixture(scope="session")
def alice() -> Identity:
    return generate_identity()


@pytest.fixture(scope="session")
def bob() -> Identity:
    return generate_identity()


@pytest.fixture(scope="session")
def carol() -> Identity:
    return generate_identity()


@pytest.fixture
def repo() -> InMemoryRepo:
    return InMemoryRepo()


@pytest.fixture
def make_user_doc(repo: InMemoryRepo) -> Callable[..., InMemoryDocHandle]:
    """Create a signed user document for an identity in the shared repo."""

    def _make(identity: Identity, name: str, *, updated_at: int = 1_700_000_000_000, signed: bool = True):
        doc = create_user_document(
            identity.id,
            name,
            private_key=identity.private_key if signed else None,
            now=updated_at,
        )
        return repo.create(doc)

    return _make
