"""
In-memory grant store.

Each securable reference maps to an immutable snapshot of its owner and
grants. Writers build a new snapshot under the lock stripe of its reference
and swap it in with a single dict assignment, so readers never lock and never
observe a partially applied write.
"""

import logging
import threading
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Tuple

from brickauth.models.enums import PrivilegeType
from brickauth.models.grants import Grant, SecurableRef

from .base import GrantStore

logger = logging.getLogger(__name__)


class _Snapshot(NamedTuple):
    owner: Optional[str]
    grants: FrozenSet[Tuple[str, PrivilegeType]]


_EMPTY = _Snapshot(owner=None, grants=frozenset())

# Writes to one ref always take the same stripe; the pool size is fixed.
LOCK_STRIPES = 64


class InMemoryGrantStore(GrantStore):
    """Process-local grant store for tests and single-process deployments."""

    def __init__(self, lock_stripes: int = LOCK_STRIPES) -> None:
        self._snapshots: Dict[SecurableRef, _Snapshot] = {}
        self._locks: Tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(lock_stripes))

    def _lock_for(self, ref: SecurableRef) -> threading.Lock:
        return self._locks[hash(ref) % len(self._locks)]

    def _snapshot(self, ref: SecurableRef) -> _Snapshot:
        return self._snapshots.get(ref, _EMPTY)

    def get_owner(self, ref: SecurableRef) -> Optional[str]:
        return self._snapshot(ref).owner

    def set_owner(self, ref: SecurableRef, principal_id: str) -> None:
        with self._lock_for(ref):
            current = self._snapshot(ref)
            self._snapshots[ref] = current._replace(owner=principal_id)
        if current.owner and current.owner != principal_id:
            logger.info(f"Ownership of {ref} transferred from {current.owner} to {principal_id}")
        else:
            logger.info(f"Set owner of {ref} to {principal_id}")

    def list_grants(self, ref: SecurableRef) -> List[Grant]:
        return [
            Grant(principal=principal_id, securable=ref, privilege=privilege)
            for principal_id, privilege in sorted(self._snapshot(ref).grants, key=lambda g: (g[0], g[1].value))
        ]

    def revoke_all(self, ref: SecurableRef) -> None:
        with self._lock_for(ref):
            removed = self._snapshots.pop(ref, None)
        if removed is not None:
            logger.info(f"Revoked all grants on {ref} ({len(removed.grants)} grants, owner={removed.owner})")

    def has_privilege(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        # Single snapshot read: owner and grants come from the same version.
        snapshot = self._snapshot(ref)
        if snapshot.owner == principal_id:
            return True
        if privilege == PrivilegeType.OWNER:
            return False
        return (principal_id, privilege) in snapshot.grants

    def _has_grant(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        return (principal_id, privilege) in self._snapshot(ref).grants

    def _add_grant(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        key = (principal_id, privilege)
        with self._lock_for(ref):
            current = self._snapshot(ref)
            if key in current.grants:
                return False
            self._snapshots[ref] = current._replace(grants=current.grants | {key})
        return True

    def _remove_grant(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        key = (principal_id, privilege)
        with self._lock_for(ref):
            current = self._snapshot(ref)
            if key not in current.grants:
                return False
            remaining = current._replace(grants=current.grants - {key})
            if remaining == _EMPTY:
                del self._snapshots[ref]
            else:
                self._snapshots[ref] = remaining
        return True
