# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""In-process document store.

Reference implementation of :class:`~narrative.docstore.base.DocumentRepo`
used by tests and the CLI. Peers that are offline, or that never answer, can
be simulated per URL.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from collections.abc import Callable

from ..core.exceptions import DocumentUnavailableError
from .base import CHANGE_EVENT, Document, Mutator

logger = logging.getLogger(__name__)

URL_SCHEME = "narrative:"


def new_doc_url() -> str:
    return f"{URL_SCHEME}{uuid.uuid4().hex}"


class InMemoryDocHandle:
    """A document held in memory with change notifications."""

    def __init__(
        self,
        url: str,
        initial: Document | None = None,
        on_commit: Callable[[InMemoryDocHandle], None] | None = None,
    ) -> None:
        self._url = url
        self._doc: Document = copy.deepcopy(initial) if initial is not None else {}
        self._listeners: dict[str, list[Callable[[InMemoryDocHandle], None]]] = {}
        self._on_commit = on_commit

    @property
    def url(self) -> str:
        return self._url

    def doc(self) -> Document:
        return copy.deepcopy(self._doc)

    def change(self, mutator: Mutator) -> None:
        """Apply ``mutator`` atomically; a raising mutator leaves the doc untouched."""
        draft = copy.deepcopy(self._doc)
        mutator(draft)
        if draft == self._doc:
            return
        self._doc = draft
        if self._on_commit is not None:
            self._on_commit(self)
        self.emit(CHANGE_EVENT)

    def on(self, event: str, callback: Callable[[InMemoryDocHandle], None]) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def off(self, event: str, callback: Callable[[InMemoryDocHandle], None]) -> None:
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    def listener_count(self, event: str = CHANGE_EVENT) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str) -> None:
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(self)
            except Exception:
                logger.exception(f"Listener for {event!r} on {self._url} failed")


class InMemoryRepo:
    """Dictionary-backed repository of :class:`InMemoryDocHandle` objects."""

    def __init__(self) -> None:
        self._handles: dict[str, InMemoryDocHandle] = {}
        self._offline: set[str] = set()
        self._hanging: set[str] = set()

    def __contains__(self, url: object) -> bool:
        return url in self._handles

    @property
    def urls(self) -> list[str]:
        return list(self._handles)

    def create(self, initial: Document | None = None, url: str | None = None) -> InMemoryDocHandle:
        url = url or new_doc_url()
        handle = InMemoryDocHandle(url, initial, on_commit=self._committed)
        self._handles[url] = handle
        self._committed(handle)
        return handle

    def get(self, url: str) -> InMemoryDocHandle | None:
        """Synchronous local lookup, ignoring simulated availability."""
        return self._handles.get(url)

    async def find(self, url: str) -> InMemoryDocHandle:
        # Yield once, like a real fetch would
        await asyncio.sleep(0)
        if url in self._hanging:
            await asyncio.Event().wait()
        if url in self._offline:
            raise DocumentUnavailableError(url, "offline")
        handle = self._handles.get(url)
        if handle is None:
            raise DocumentUnavailableError(url, "not found")
        return handle

    def set_offline(self, url: str, offline: bool = True) -> None:
        if offline:
            self._offline.add(url)
        else:
            self._offline.discard(url)

    def set_hanging(self, url: str, hanging: bool = True) -> None:
        """Make ``find(url)`` block forever, like a peer that never answers."""
        if hanging:
            self._hanging.add(url)
        else:
            self._hanging.discard(url)

    def _committed(self, handle: InMemoryDocHandle) -> None:
        """Hook called after every commit; persistence subclasses override it."""
