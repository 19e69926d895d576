"""
SQLite-backed grant store.

Layout:
1. ``securable_owners``: one row per securable reference holding its owner
2. ``privilege_grants``: one row per (securable reference, privilege, principal)

Both tables are keyed by (securable_type, securable_id). The connection runs
in WAL mode and every statement is serialized through one lock, so
``revoke_all`` (a single transaction over both tables) is atomic with respect
to concurrent readers.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from brickauth.errors import GrantStoreUnavailable
from brickauth.models.enums import PrivilegeType
from brickauth.models.grants import Grant, SecurableRef

from .base import GrantStore

logger = logging.getLogger(__name__)


class SqliteGrantStore(GrantStore):
    """Durable grant store on a local SQLite database."""

    def __init__(self, db_path: Union[str, Path] = ":memory:", timeout: float = 30.0):
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self.conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=timeout,
                isolation_level="DEFERRED",
            )
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")
        except sqlite3.Error as e:
            raise GrantStoreUnavailable(str(e)) from e

        self._lock = threading.RLock()
        self._setup_database()

    def _setup_database(self) -> None:
        with self._transaction() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS securable_owners (
                    securable_type TEXT NOT NULL,
                    securable_id TEXT NOT NULL,
                    principal_id TEXT NOT NULL,
                    PRIMARY KEY (securable_type, securable_id)
                )
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS privilege_grants (
                    securable_type TEXT NOT NULL,
                    securable_id TEXT NOT NULL,
                    privilege TEXT NOT NULL,
                    principal_id TEXT NOT NULL,
                    PRIMARY KEY (securable_type, securable_id, privilege, principal_id)
                )
            """)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run statements in one transaction; backend failures become GrantStoreUnavailable."""
        with self._lock:
            try:
                with self.conn:
                    yield self.conn.cursor()
            except sqlite3.Error as e:
                logger.error(f"Grant store operation failed: {e}")
                raise GrantStoreUnavailable(str(e)) from e

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def get_owner(self, ref: SecurableRef) -> Optional[str]:
        with self._transaction() as cur:
            row = cur.execute(
                "SELECT principal_id FROM securable_owners WHERE securable_type = ? AND securable_id = ?",
                (ref.securable_type.value, ref.id),
            ).fetchone()
        return row[0] if row else None

    def set_owner(self, ref: SecurableRef, principal_id: str) -> None:
        with self._transaction() as cur:
            cur.execute(
                "INSERT OR REPLACE INTO securable_owners (securable_type, securable_id, principal_id) "
                "VALUES (?, ?, ?)",
                (ref.securable_type.value, ref.id, principal_id),
            )
        logger.info(f"Set owner of {ref} to {principal_id}")

    def has_privilege(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        with self._lock:
            return super().has_privilege(principal_id, ref, privilege)

    def list_grants(self, ref: SecurableRef) -> List[Grant]:
        with self._transaction() as cur:
            rows = cur.execute(
                "SELECT principal_id, privilege FROM privilege_grants "
                "WHERE securable_type = ? AND securable_id = ? ORDER BY principal_id, privilege",
                (ref.securable_type.value, ref.id),
            ).fetchall()
        return [
            Grant(principal=principal_id, securable=ref, privilege=PrivilegeType(privilege))
            for principal_id, privilege in rows
        ]

    def revoke_all(self, ref: SecurableRef) -> None:
        params = (ref.securable_type.value, ref.id)
        with self._transaction() as cur:
            cur.execute(
                "DELETE FROM privilege_grants WHERE securable_type = ? AND securable_id = ?", params
            )
            removed = cur.rowcount
            cur.execute(
                "DELETE FROM securable_owners WHERE securable_type = ? AND securable_id = ?", params
            )
        logger.info(f"Revoked all grants on {ref} ({removed} grants)")

    def _has_grant(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        with self._transaction() as cur:
            row = cur.execute(
                "SELECT 1 FROM privilege_grants WHERE securable_type = ? AND securable_id = ? "
                "AND privilege = ? AND principal_id = ?",
                (ref.securable_type.value, ref.id, privilege.value, principal_id),
            ).fetchone()
        return row is not None

    def _add_grant(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        with self._transaction() as cur:
            cur.execute(
                "INSERT OR IGNORE INTO privilege_grants "
                "(securable_type, securable_id, privilege, principal_id) VALUES (?, ?, ?, ?)",
                (ref.securable_type.value, ref.id, privilege.value, principal_id),
            )
            return cur.rowcount > 0

    def _remove_grant(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        with self._transaction() as cur:
            cur.execute(
                "DELETE FROM privilege_grants WHERE securable_type = ? AND securable_id = ? "
                "AND privilege = ? AND principal_id = ?",
                (ref.securable_type.value, ref.id, privilege.value, principal_id),
            )
            return cur.rowcount > 0
