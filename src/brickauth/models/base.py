"""
Base classes and configuration for Unity Catalog authorization models.

This module contains the shared Pydantic configuration and the environment
driven settings used across the authorization engine.
"""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, ConfigDict

from .enums import ExistencePolicy

# Configure logging
logger = logging.getLogger(__name__)

# Singleton metastore id used when BRICKAUTH_METASTORE_ID is not set
DEFAULT_METASTORE_ID = "00000000-0000-0000-0000-000000000001"

DEFAULT_GRANT_DB = os.path.join(".brickauth", "grants.db")

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================

def get_metastore_id() -> str:
    """Get the metastore id from BRICKAUTH_METASTORE_ID."""
    value = os.getenv("BRICKAUTH_METASTORE_ID", "").strip()
    return value or DEFAULT_METASTORE_ID


def get_grant_db_path() -> str:
    """
    Get the grant store location from BRICKAUTH_GRANT_DB.

    The special value ':memory:' selects the in-memory store.
    """
    value = os.getenv("BRICKAUTH_GRANT_DB", "").strip()
    return value or DEFAULT_GRANT_DB


def get_existence_policy() -> ExistencePolicy:
    """
    Get the existence policy from BRICKAUTH_EXISTENCE_POLICY.

    Returns ExistencePolicy.DENY if not set or invalid.
    """
    policy_str = os.getenv("BRICKAUTH_EXISTENCE_POLICY", "DENY").strip()
    try:
        return ExistencePolicy(policy_str.upper())
    except ValueError:
        logger.warning(f"Invalid BRICKAUTH_EXISTENCE_POLICY='{policy_str}', defaulting to DENY")
        return ExistencePolicy.DENY

# =============================================================================
# BASE CONFIGURATION
# =============================================================================

class BaseGovernanceModel(BaseModel):
    """
    Base model for all authorization objects with common configuration.

    This provides standard Pydantic v2 configuration shared by principals,
    securable references, grants and expression nodes.
    """

    model_config = ConfigDict(
        validate_default=True,  # Validate defaults once
        populate_by_name=True,  # Allow field population by name
        use_enum_values=False,  # Keep enums as enum objects
        str_strip_whitespace=True,  # Strip whitespace from strings
    )
