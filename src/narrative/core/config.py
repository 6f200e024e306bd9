# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Narrative Contributors

"""Core configuration - centralized config for the narrative package.

All environment-based configuration should flow through this module.
This provides a single source of truth and consistent defaults.

Usage:
    from narrative.core.config import get_config
    config = get_config()

    # Access settings
    cap = config.max_second_degree_profiles
    log_level = config.log_level
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HOME = Path.home() / ".narrative"


class CoreSettings(BaseSettings):
    """Core configuration settings for Narrative.

    Settings can be configured via environment variables with the
    NARRATIVE_ prefix, or through a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="NARRATIVE_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="NARRATIVE_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="NARRATIVE_LOG_FILE",
    )

    # ==========================================================================
    # PROFILE DISCOVERY SETTINGS
    # ==========================================================================

    max_second_degree_profiles: int = Field(
        default=50,
        ge=0,
        description="Maximum number of 2nd-degree profiles tracked at once (FIFO eviction)",
        validation_alias="NARRATIVE_MAX_2ND_DEGREE",
    )
    doc_load_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for a peer document before marking it unavailable",
        validation_alias="NARRATIVE_DOC_LOAD_TIMEOUT",
    )

    # ==========================================================================
    # GRAPH LAYOUT SETTINGS
    # ==========================================================================

    graph_width: float = Field(
        default=600.0,
        gt=0,
        description="Canvas width used by the trust graph layout",
        validation_alias="NARRATIVE_GRAPH_WIDTH",
    )
    graph_height: float = Field(
        default=400.0,
        gt=0,
        description="Canvas height used by the trust graph layout",
        validation_alias="NARRATIVE_GRAPH_HEIGHT",
    )
    layout_iterations: int = Field(
        default=200,
        ge=0,
        description="Number of force simulation steps",
        validation_alias="NARRATIVE_LAYOUT_ITERATIONS",
    )

    # ==========================================================================
    # LOCAL STORAGE SETTINGS (used by the CLI)
    # ==========================================================================

    identity_path: str = Field(
        default=str(DEFAULT_HOME / "identity.json"),
        description="Where the local identity keypair is persisted",
        validation_alias="NARRATIVE_IDENTITY_PATH",
    )
    store_path: str = Field(
        default=str(DEFAULT_HOME / "documents.json"),
        description="JSON file backing the local document store",
        validation_alias="NARRATIVE_STORE_PATH",
    )


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CoreSettings instance.
    """
    global _config
    if _config is None:
        _config = CoreSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
