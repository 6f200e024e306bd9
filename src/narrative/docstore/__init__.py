# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Document store interface and reference implementations."""

from .base import CHANGE_EVENT, DocHandle, Document, DocumentRepo, Mutator
from .file import JsonFileRepo
from .memory import InMemoryDocHandle, InMemoryRepo, new_doc_url

__all__ = [
    "CHANGE_EVENT",
    "DocHandle",
    "Document",
    "DocumentRepo",
    "InMemoryDocHandle",
    "InMemoryRepo",
    "JsonFileRepo",
    "Mutator",
    "new_doc_url",
]
