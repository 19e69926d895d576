"""
Grant models for Unity Catalog authorization.

This module contains models for principals, securable references and grants.
A grant is a fact ``(principal, securable, privilege)``; ownership is kept
apart from ordinary grants because a securable has at most one owner.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple
from typing_extensions import Self

from pydantic import ConfigDict, Field, field_validator, model_validator

from .base import BaseGovernanceModel
from .enums import PrivilegeType, SecurableType, validate_privilege

logger = logging.getLogger(__name__)


# =============================================================================
# PRINCIPAL MODEL
# =============================================================================

class Principal(BaseGovernanceModel):
    """
    An authenticated identity that can hold grants.

    Group memberships are identities in their own right: a privilege granted to
    any group the principal belongs to counts as held by the principal.
    """
    id: str = Field(..., min_length=1, description="Unique principal id")
    name: Optional[str] = Field(None, description="Display name (user name, group name)")
    groups: List[str] = Field(default_factory=list, description="Ids of groups the principal belongs to")

    @model_validator(mode="after")
    def drop_self_membership(self) -> Self:
        """A principal is never listed as a member of itself."""
        if self.id in self.groups:
            self.groups = [g for g in self.groups if g != self.id]
            logger.debug(f"Removed self-membership for principal {self.id}")
        return self

    @property
    def identities(self) -> Tuple[str, ...]:
        """The principal id followed by its group ids, without duplicates."""
        seen = [self.id]
        for group in self.groups:
            if group not in seen:
                seen.append(group)
        return tuple(seen)


# =============================================================================
# SECURABLE REFERENCE
# =============================================================================

class SecurableRef(BaseGovernanceModel):
    """
    A (type, id) pair addressing one securable instance.

    Hashable so it can key the grant store's indexes.
    """
    model_config = ConfigDict(frozen=True)

    securable_type: SecurableType = Field(..., alias="type")
    id: str = Field(..., min_length=1)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        """Accept UUIDs and other id objects."""
        if v is not None and not isinstance(v, str):
            return str(v)
        return v

    @classmethod
    def metastore(cls, metastore_id: str) -> "SecurableRef":
        return cls(securable_type=SecurableType.METASTORE, id=metastore_id)

    @classmethod
    def catalog(cls, catalog_id: str) -> "SecurableRef":
        return cls(securable_type=SecurableType.CATALOG, id=catalog_id)

    def __str__(self) -> str:
        return f"{self.securable_type.value}:{self.id}"


# =============================================================================
# GRANT MODEL
# =============================================================================

class Grant(BaseGovernanceModel):
    """
    A durable authorization fact.

    IMPORTANT: Grants have set semantics. Two grants with the same principal,
    securable and privilege are the same grant.
    """
    model_config = ConfigDict(frozen=True)

    principal: str = Field(..., description="Principal (or group) id")
    securable: SecurableRef = Field(..., description="Securable the grant applies to")
    privilege: PrivilegeType = Field(..., description="Privilege granted")

    @field_validator("principal", mode="before")
    @classmethod
    def resolve_principal(cls, v):
        """Accept Principal object or string."""
        if isinstance(v, Principal):
            return v.id
        return v

    @model_validator(mode="after")
    def check_privilege_level(self) -> Self:
        """Reject privileges that are meaningless on the securable type."""
        validate_privilege(self.securable.securable_type, self.privilege)
        return self
