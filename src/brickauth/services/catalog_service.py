"""
Catalog service.

Reference wiring of the authorization engine around catalog CRUD. Each
handler gates on its registered rule, forwards to the repository and keeps
ownership in step with the catalog's lifecycle.

| Operation        | Rule                                                        |
|------------------|-------------------------------------------------------------|
| catalogs.create  | metastore OWNER or CREATE_CATALOG                           |
| catalogs.list    | deferred; each entry needs metastore OWNER or catalog       |
|                  | OWNER/USE_CATALOG                                           |
| catalogs.get     | metastore OWNER or catalog OWNER/USE_CATALOG                |
| catalogs.update  | catalog OWNER                                               |
| catalogs.delete  | same as catalogs.get                                        |
"""

import logging
from typing import Callable, Dict, Optional

from brickauth.authorizer import Authorizer
from brickauth.binder import Binder
from brickauth.models.base import get_metastore_id
from brickauth.models.catalogs import CatalogPage, CatalogRecord
from brickauth.models.enums import ExistencePolicy, OperationKind, SecurableType
from brickauth.models.grants import Principal
from brickauth.registry import OperationRegistry
from brickauth.repositories import CatalogRepository
from brickauth.stores.base import GrantStore

logger = logging.getLogger(__name__)

CREATE_CATALOG = "catalogs.create"
LIST_CATALOGS = "catalogs.list"
GET_CATALOG = "catalogs.get"
UPDATE_CATALOG = "catalogs.update"
DELETE_CATALOG = "catalogs.delete"

CATALOG_READ_EXPRESSION = """
#authorize(#principal, #metastore, OWNER) ||
#authorizeAny(#principal, #catalog, OWNER, USE_CATALOG)
"""


def register_catalog_operations(registry: OperationRegistry) -> OperationRegistry:
    """Add the catalog operation rules to ``registry``."""
    registry.add(
        CREATE_CATALOG,
        OperationKind.CREATE,
        "#authorizeAny(#principal, #metastore, OWNER, CREATE_CATALOG)",
    )
    registry.add(
        LIST_CATALOGS,
        OperationKind.LIST,
        "#defer",
        filter_expression=CATALOG_READ_EXPRESSION,
    )
    registry.add(
        GET_CATALOG,
        OperationKind.READ,
        CATALOG_READ_EXPRESSION,
        keys={SecurableType.CATALOG: "name"},
    )
    registry.add(
        UPDATE_CATALOG,
        OperationKind.UPDATE,
        "#authorize(#principal, #catalog, OWNER)",
        keys={SecurableType.CATALOG: "name"},
    )
    registry.add(
        DELETE_CATALOG,
        OperationKind.DELETE,
        CATALOG_READ_EXPRESSION,
        keys={SecurableType.CATALOG: "name"},
    )
    return registry


class CatalogService:
    """Authorized catalog operations."""

    def __init__(
        self,
        authorizer: Authorizer,
        repository: CatalogRepository,
        current_principal: Callable[[], Principal],
    ):
        """
        Initialize the service.

        Args:
            authorizer: Authorizer whose registry holds the catalog rules
            repository: Catalog storage
            current_principal: Returns the authenticated principal of the current request
        """
        self.authorizer = authorizer
        self.repository = repository
        self.current_principal = current_principal

    @classmethod
    def build(
        cls,
        store: GrantStore,
        repository: CatalogRepository,
        current_principal: Callable[[], Principal],
        metastore_id: Optional[str] = None,
        existence_policy: Optional[ExistencePolicy] = None,
    ) -> "CatalogService":
        """Wire registry, binder and authorizer for a catalog repository."""
        registry = register_catalog_operations(OperationRegistry())
        binder = Binder(
            metastore_id or get_metastore_id(),
            {SecurableType.CATALOG: repository.get_catalog_id},
        )
        authorizer = Authorizer(store, registry, binder, existence_policy=existence_policy)
        return cls(authorizer, repository, current_principal)

    def create_catalog(self, name: str, comment: Optional[str] = None,
                       properties: Optional[Dict[str, str]] = None) -> CatalogRecord:
        """
        Create a catalog owned by the calling principal.

        If ownership cannot be recorded the catalog is deleted again.
        """
        principal = self.current_principal()
        self.authorizer.enforce(CREATE_CATALOG, principal, {})
        return self.authorizer.lifecycle.create(
            principal,
            create=lambda: self.repository.add_catalog(name, comment=comment, properties=properties),
            to_ref=lambda record: record.ref,
            rollback=lambda record: self.repository.delete_catalog(record.name),
        )

    def list_catalogs(self, max_results: Optional[int] = None,
                      page_token: Optional[str] = None) -> CatalogPage:
        """
        List the catalogs the caller may see.

        Filtering happens after the repository returns a page, so a page can
        hold fewer than ``max_results`` catalogs even when more visible
        catalogs exist past ``next_page_token``.
        """
        principal = self.current_principal()
        self.authorizer.enforce(LIST_CATALOGS, principal, {})
        page = self.repository.list_catalogs(max_results=max_results, page_token=page_token)
        metastore_id = self.authorizer.metastore_id
        visible = self.authorizer.filter_for_operation(
            LIST_CATALOGS,
            principal,
            page.catalogs,
            lambda record: {SecurableType.METASTORE: metastore_id, SecurableType.CATALOG: record.id},
        )
        return CatalogPage(catalogs=visible, next_page_token=page.next_page_token)

    def get_catalog(self, name: str) -> CatalogRecord:
        principal = self.current_principal()
        self.authorizer.enforce(GET_CATALOG, principal, {"name": name})
        return self.repository.get_catalog(name)

    def update_catalog(self, name: str, new_name: Optional[str] = None, comment: Optional[str] = None,
                       properties: Optional[Dict[str, str]] = None) -> CatalogRecord:
        """Update a catalog. Ownership and grants are unaffected, including on rename."""
        principal = self.current_principal()
        self.authorizer.enforce(UPDATE_CATALOG, principal, {"name": name})
        return self.repository.update_catalog(name, new_name=new_name, comment=comment, properties=properties)

    def delete_catalog(self, name: str) -> None:
        """Delete a catalog and purge every grant on it."""
        principal = self.current_principal()
        self.authorizer.enforce(DELETE_CATALOG, principal, {"name": name})
        record = self.repository.get_catalog(name)
        self.authorizer.lifecycle.delete(record.ref, lambda: self.repository.delete_catalog(name))
