# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Custom exception hierarchy for Narrative.

Provides specific exception types for the failure categories of the
identity, trust and profile layers. Cryptographic failures are *not* part of
this hierarchy once they reach a verification boundary: those surface as
``SignatureStatus.INVALID`` instead of being raised.
"""

from __future__ import annotations

from typing import Any


class NarrativeException(Exception):  # noqa: N818
    """Base exception for all Narrative errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(NarrativeException):
    """Exception for validation errors.

    Raised when:
    - An attestation names the same DID as trustor and trustee
    - A trust level or record shape is not recognised
    - Required fields are missing
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigException(NarrativeException):
    """Exception for configuration errors."""

    def __init__(self, message: str, missing_vars: list[str] | None = None):
        details = {}
        if missing_vars:
            details["missing_vars"] = missing_vars
        super().__init__(message, details)
        self.missing_vars = missing_vars or []


class NotFoundError(NarrativeException):
    """Exception for resource not found errors."""

    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} not found: {resource_id}"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id,
        }
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class InvalidIdentityError(ValidationException):
    """A DID or key could not be parsed.

    Raised by :func:`narrative.identity.did.id_to_public_key` and identity
    deserialisation. Verification code catches it and reports ``invalid``.
    """

    def __init__(self, message: str, value: Any = None):
        super().__init__(message, field="did", value=value)


class DocumentUnavailableError(NarrativeException):
    """A document could not be fetched (peer offline, unknown URL, timeout)."""

    def __init__(self, url: str, reason: str = "unavailable"):
        super().__init__(f"Document {reason}: {url}", {"url": url, "reason": reason})
        self.url = url
        self.reason = reason


class DocumentNotWritableError(NarrativeException):
    """A local mutation was attempted before the user document was attached."""

    def __init__(self, message: str = "User document not available"):
        super().__init__(message)
