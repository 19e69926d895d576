"""
Base grant store class.

A grant store holds two kinds of facts per securable reference:

- at most one OWNER (an owner, not an ACL entry)
- any number of ``(principal, privilege)`` grants with set semantics

Every lookup is keyed by securable reference.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from brickauth.models.enums import PrivilegeType, validate_privilege
from brickauth.models.grants import Grant, SecurableRef

logger = logging.getLogger(__name__)


class GrantStore(ABC):
    """
    Base class for grant stores.

    Subclasses implement the storage primitives; the ownership rules shared by
    every backend live here:

    - ``has_privilege(p, ref, OWNER)`` is ``is_owner(p, ref)``
    - the owner implicitly holds every privilege on the securable
    - granting OWNER goes through ``set_owner`` and replaces the prior owner
    """

    @abstractmethod
    def get_owner(self, ref: SecurableRef) -> Optional[str]:
        """
        Get the owner of a securable.

        Args:
            ref: The securable

        Returns:
            Owner principal id, or None if the securable has no owner
        """
        pass

    @abstractmethod
    def set_owner(self, ref: SecurableRef, principal_id: str) -> None:
        """Make ``principal_id`` the sole owner of ``ref``."""
        pass

    @abstractmethod
    def list_grants(self, ref: SecurableRef) -> List[Grant]:
        """
        List non-owner grants on a securable.

        Returns:
            Grants sorted by principal then privilege
        """
        pass

    @abstractmethod
    def revoke_all(self, ref: SecurableRef) -> None:
        """
        Remove the owner and every grant on ``ref`` atomically.

        Concurrent readers see either all of the grants or none of them.
        """
        pass

    @abstractmethod
    def _has_grant(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        pass

    @abstractmethod
    def _add_grant(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        """Insert a grant; return False if it already existed."""
        pass

    @abstractmethod
    def _remove_grant(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        """Delete a grant; return False if it did not exist."""
        pass

    def is_owner(self, principal_id: str, ref: SecurableRef) -> bool:
        return self.get_owner(ref) == principal_id

    def has_privilege(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        """
        Check whether a principal holds a privilege on a securable.

        Args:
            principal_id: Principal (or group) id
            ref: The securable
            privilege: The privilege to check

        Returns:
            True if the principal owns the securable or holds the grant
        """
        if self.is_owner(principal_id, ref):
            return True
        if privilege == PrivilegeType.OWNER:
            return False
        return self._has_grant(principal_id, ref, privilege)

    def grant(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> None:
        """
        Grant a privilege. Granting an existing grant is a no-op.

        Raises:
            ValueError: If the privilege is not valid on the securable type
        """
        validate_privilege(ref.securable_type, privilege)
        if privilege == PrivilegeType.OWNER:
            self.set_owner(ref, principal_id)
            return
        if self._add_grant(principal_id, ref, privilege):
            logger.info(f"Granted {privilege.value} on {ref} to {principal_id}")
        else:
            logger.debug(f"{privilege.value} on {ref} already granted to {principal_id}")

    def revoke(self, principal_id: str, ref: SecurableRef, privilege: PrivilegeType) -> None:
        """
        Revoke a privilege. Revoking a grant that does not exist is a no-op.

        Raises:
            ValueError: If ``privilege`` is OWNER
        """
        if privilege == PrivilegeType.OWNER:
            raise ValueError("Ownership is transferred with set_owner, not revoked")
        if self._remove_grant(principal_id, ref, privilege):
            logger.info(f"Revoked {privilege.value} on {ref} from {principal_id}")
