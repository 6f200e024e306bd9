# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""JSON-file backed document store used by the CLI."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ..core.exceptions import ConfigException
from .memory import InMemoryDocHandle, InMemoryRepo

logger = logging.getLogger(__name__)


class JsonFileRepo(InMemoryRepo):
    """:class:`InMemoryRepo` that writes every document to one JSON file.

    File layout::

        {"documents": {"<url>": {...}, ...}}
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path).expanduser()
        self._loading = False
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigException(f"Failed to read document store {self.path}: {e}") from e

        self._loading = True
        try:
            for url, doc in data.get("documents", {}).items():
                self.create(doc, url=url)
        finally:
            self._loading = False
        logger.debug(f"Loaded {len(self.urls)} documents from {self.path}")

    def _committed(self, handle: InMemoryDocHandle) -> None:
        if self._loading:
            return
        self.save()

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {"documents": {url: self._handles[url].doc() for url in self._handles}}
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)
