"""
Lifecycle coordinator.

Keeps grants consistent with the securables they refer to:

- on creation, the creating principal becomes OWNER in the same logical
  transaction as the resource; if that fails the resource is rolled back
- on deletion, every grant on the securable is purged once the resource is gone

Updates never change ownership.
"""

import logging
from typing import Callable, TypeVar

from brickauth.models.grants import Principal, SecurableRef
from brickauth.stores.base import GrantStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LifecycleCoordinator:
    """Applies ownership and grant cleanup around resource create/delete."""

    def __init__(self, store: GrantStore):
        self.store = store

    def on_resource_created(self, ref: SecurableRef, principal: Principal) -> None:
        self.store.set_owner(ref, principal.id)

    def on_resource_deleted(self, ref: SecurableRef) -> None:
        self.store.revoke_all(ref)

    def create(
        self,
        principal: Principal,
        create: Callable[[], T],
        to_ref: Callable[[T], SecurableRef],
        rollback: Callable[[T], None],
    ) -> T:
        """
        Create a resource and make ``principal`` its owner.

        Args:
            principal: The creating principal
            create: Creates the resource in its repository
            to_ref: Maps the created resource to its securable reference
            rollback: Removes the created resource again

        Returns:
            The created resource

        Raises:
            Exception: Whatever mapping or ownership assignment raised, after the resource
                       has been rolled back
        """
        resource = create()
        try:
            ref = to_ref(resource)
            self.on_resource_created(ref, principal)
        except Exception as e:
            logger.warning(f"Could not assign owner of new resource {resource!r}, rolling back creation: {e}")
            try:
                rollback(resource)
            except Exception as rollback_error:
                logger.error(f"Rollback of {resource!r} failed: {rollback_error}")
            raise
        logger.info(f"Created {ref} owned by {principal.id}")
        return resource

    def delete(self, ref: SecurableRef, delete: Callable[[], None]) -> None:
        """
        Delete a resource, then purge its grants.

        Grants are only purged once ``delete`` returns; if it raises, nothing
        changes in the grant store.
        """
        delete()
        self.on_resource_deleted(ref)
        logger.info(f"Deleted {ref} and purged its grants")
