# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Narrative Core - configuration, logging and the exception hierarchy."""

from .config import CoreSettings, clear_config_cache, get_config
from .exceptions import (
    ConfigException,
    DocumentNotWritableError,
    DocumentUnavailableError,
    InvalidIdentityError,
    NarrativeException,
    NotFoundError,
    ValidationException,
)
from .logging import configure_logging, correlation_context, get_logger

__all__ = [
    "ConfigException",
    "CoreSettings",
    "DocumentNotWritableError",
    "DocumentUnavailableError",
    "InvalidIdentityError",
    "NarrativeException",
    "NotFoundError",
    "ValidationException",
    "clear_config_cache",
    "configure_logging",
    "correlation_context",
    "get_config",
    "get_logger",
]
