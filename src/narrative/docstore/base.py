# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Document store protocols.

The replicated document layer is an external collaborator. The trust store
and the profile registry only rely on this small surface: find a document by
URL (asynchronously, possibly failing or never resolving), read a snapshot,
apply a mutation, and subscribe to change events.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

Document = dict[str, Any]
Mutator = Callable[[Document], None]

CHANGE_EVENT = "change"


@runtime_checkable
class DocHandle(Protocol):
    """Handle on one replicated document."""

    @property
    def url(self) -> str: ...

    def doc(self) -> Document | None:
        """Current snapshot (a copy; mutating it has no effect)."""
        ...

    def change(self, mutator: Mutator) -> None:
        """Apply ``mutator`` to a draft of the document and commit it."""
        ...

    def on(self, event: str, callback: Callable[[DocHandle], None]) -> None: ...

    def off(self, event: str, callback: Callable[[DocHandle], None]) -> None: ...


@runtime_checkable
class DocumentRepo(Protocol):
    """Repository that creates and locates documents."""

    def create(self, initial: Document | None = None) -> DocHandle: ...

    async def find(self, url: str) -> DocHandle:
        """Locate a document.

        Raises:
            DocumentUnavailableError: If the document cannot be obtained.
        """
        ...
