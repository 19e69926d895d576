"""
Grant store implementations.
"""

import logging
from typing import Optional

from brickauth.models.base import get_grant_db_path

from .base import GrantStore
from .memory import InMemoryGrantStore
from .sqlite import SqliteGrantStore

logger = logging.getLogger(__name__)


def open_grant_store(location: Optional[str] = None) -> GrantStore:
    """
    Open the configured grant store.

    Args:
        location: Database path, or ':memory:' for the in-memory store.
                  Defaults to BRICKAUTH_GRANT_DB.

    Returns:
        A grant store instance
    """
    location = location or get_grant_db_path()
    if location == ":memory:":
        logger.info("Using in-memory grant store")
        return InMemoryGrantStore()
    logger.info(f"Using SQLite grant store at {location}")
    return SqliteGrantStore(location)


__all__ = [
    "GrantStore",
    "InMemoryGrantStore",
    "SqliteGrantStore",
    "open_grant_store",
]
