"""
Catalog record models.

Mirrors the catalog metadata a repository returns; authorization only needs
the id (to bind CATALOG) and the name (to resolve it from request paths).
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import Field

from .base import BaseGovernanceModel
from .enums import SecurableType
from .grants import SecurableRef


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogRecord(BaseGovernanceModel):
    """A catalog as stored by the catalog repository."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Generated catalog id")
    name: str = Field(..., min_length=1, description="Catalog name (unique)")
    comment: Optional[str] = Field(None, description="Free-form description")
    properties: Dict[str, str] = Field(default_factory=dict, description="Catalog properties")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: Optional[datetime] = None

    @property
    def securable_type(self) -> SecurableType:
        return SecurableType.CATALOG

    @property
    def ref(self) -> SecurableRef:
        return SecurableRef.catalog(self.id)


class CatalogPage(BaseGovernanceModel):
    """One page of a catalog listing."""
    catalogs: List[CatalogRecord] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(
        None,
        description="Opaque cursor for the next page; None when the listing is exhausted",
    )
