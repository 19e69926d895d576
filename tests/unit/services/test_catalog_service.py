"""
Unit tests for the CatalogService.

Exercises the full path: rule lookup, binding against the catalog
repository, evaluation and lifecycle.
"""

import pytest
from databricks.sdk.errors import ResourceAlreadyExists, ResourceDoesNotExist

from brickauth.errors import AuthorizationDenied, GrantStoreUnavailable, SecurableNotFound
from brickauth.models import ExistencePolicy, Principal, PrivilegeType
from brickauth.repositories import InMemoryCatalogRepository
from brickauth.services import CatalogService
from brickauth.stores import GrantStore, InMemoryGrantStore
from tests.fixtures import RequestPrincipal, build_catalog_service, make_metastore_ref


class TestCreateCatalog:
    """Tests for create_catalog."""

    def test_metastore_owner_creates_and_owns(self, catalog_service: CatalogService, admin: Principal) -> None:
        record = catalog_service.create_catalog("main", comment="Main catalog")

        store = catalog_service.authorizer.store
        assert record.name == "main"
        assert store.is_owner(admin.id, record.ref)

    def test_create_catalog_privilege(
        self,
        catalog_service: CatalogService,
        request_principal: RequestPrincipal,
        alice: Principal,
    ) -> None:
        catalog_service.authorizer.store.grant(alice.id, make_metastore_ref(), PrivilegeType.CREATE_CATALOG)
        request_principal.set(alice)

        record = catalog_service.create_catalog("sandbox")

        assert catalog_service.authorizer.store.get_owner(record.ref) == alice.id

    def test_denied_without_privilege(
        self,
        catalog_service: CatalogService,
        catalog_repository: InMemoryCatalogRepository,
        request_principal: RequestPrincipal,
        bob: Principal,
    ) -> None:
        request_principal.set(bob)
        with pytest.raises(AuthorizationDenied):
            catalog_service.create_catalog("main")
        assert catalog_repository.list_catalogs().catalogs == []

    def test_duplicate_name(self, catalog_service: CatalogService) -> None:
        catalog_service.create_catalog("main")
        with pytest.raises(ResourceAlreadyExists):
            catalog_service.create_catalog("main")

    def test_owner_failure_rolls_back_catalog(
        self,
        catalog_repository: InMemoryCatalogRepository,
        request_principal: RequestPrincipal,
        admin: Principal,
    ) -> None:
        """A catalog whose owner cannot be recorded is removed again."""

        class FlakyStore(InMemoryGrantStore):
            fail = False

            def set_owner(self, ref, principal_id):
                if self.fail:
                    raise GrantStoreUnavailable("write failed")
                super().set_owner(ref, principal_id)

        store = FlakyStore()
        service = build_catalog_service(store, catalog_repository, request_principal, admin)
        store.fail = True

        with pytest.raises(GrantStoreUnavailable):
            service.create_catalog("main")

        assert catalog_repository.get_catalog_id("main") is None


class TestGetCatalog:
    """Tests for get_catalog."""

    def test_use_catalog_grants_read(
        self,
        catalog_service: CatalogService,
        request_principal: RequestPrincipal,
        alice: Principal,
    ) -> None:
        record = catalog_service.create_catalog("main")
        catalog_service.authorizer.store.grant(alice.id, record.ref, PrivilegeType.USE_CATALOG)
        request_principal.set(alice)

        assert catalog_service.get_catalog("main").id == record.id

    def test_denied_without_grant(
        self,
        catalog_service: CatalogService,
        request_principal: RequestPrincipal,
        bob: Principal,
    ) -> None:
        catalog_service.create_catalog("main")
        request_principal.set(bob)
        with pytest.raises(AuthorizationDenied):
            catalog_service.get_catalog("main")

    def test_missing_catalog_denied_under_deny_policy(
        self,
        catalog_service: CatalogService,
        request_principal: RequestPrincipal,
        bob: Principal,
    ) -> None:
        request_principal.set(bob)
        with pytest.raises(AuthorizationDenied):
            catalog_service.get_catalog("missing")

    def test_metastore_owner_sees_missing_catalog(self, catalog_service: CatalogService) -> None:
        """The metastore owner passes the gate; the repository then reports the absence."""
        with pytest.raises(ResourceDoesNotExist):
            catalog_service.get_catalog("missing")

    def test_missing_catalog_not_found_policy(
        self,
        memory_store: InMemoryGrantStore,
        catalog_repository: InMemoryCatalogRepository,
        request_principal: RequestPrincipal,
        admin: Principal,
        bob: Principal,
    ) -> None:
        service = build_catalog_service(
            memory_store, catalog_repository, request_principal, admin, ExistencePolicy.NOT_FOUND
        )
        request_principal.set(bob)
        with pytest.raises(SecurableNotFound):
            service.get_catalog("missing")


class TestListCatalogs:
    """Tests for list_catalogs."""

    @pytest.fixture
    def five_catalogs(self, catalog_service: CatalogService, alice: Principal) -> CatalogService:
        store = catalog_service.authorizer.store
        for name in ("c1", "c2", "c3", "c4", "c5"):
            record = catalog_service.create_catalog(name)
            if name in ("c2", "c4"):
                store.grant(alice.id, record.ref, PrivilegeType.USE_CATALOG)
        return catalog_service

    def test_filtered_to_visible(
        self,
        five_catalogs: CatalogService,
        request_principal: RequestPrincipal,
        alice: Principal,
    ) -> None:
        request_principal.set(alice)
        page = five_catalogs.list_catalogs()
        assert [c.name for c in page.catalogs] == ["c2", "c4"]
        assert page.next_page_token is None

    def test_metastore_owner_sees_all(self, five_catalogs: CatalogService) -> None:
        page = five_catalogs.list_catalogs()
        assert [c.name for c in page.catalogs] == ["c1", "c2", "c3", "c4", "c5"]

    def test_short_pages_keep_token(
        self,
        five_catalogs: CatalogService,
        request_principal: RequestPrincipal,
        alice: Principal,
    ) -> None:
        """Filtering after paging yields short pages; the token still advances."""
        request_principal.set(alice)

        first = five_catalogs.list_catalogs(max_results=3)
        assert [c.name for c in first.catalogs] == ["c2"]
        assert first.next_page_token is not None

        second = five_catalogs.list_catalogs(max_results=3, page_token=first.next_page_token)
        assert [c.name for c in second.catalogs] == ["c4"]
        assert second.next_page_token is None

    def test_group_grant_visible(
        self,
        catalog_service: CatalogService,
        request_principal: RequestPrincipal,
    ) -> None:
        record = catalog_service.create_catalog("shared")
        catalog_service.create_catalog("private")
        catalog_service.authorizer.store.grant("analysts", record.ref, PrivilegeType.USE_CATALOG)

        request_principal.set(Principal(id="carol", groups=["analysts"]))
        assert [c.name for c in catalog_service.list_catalogs().catalogs] == ["shared"]


class TestUpdateCatalog:
    """Tests for update_catalog."""

    def test_owner_updates_and_keeps_ownership(
        self,
        catalog_service: CatalogService,
        request_principal: RequestPrincipal,
        alice: Principal,
    ) -> None:
        store = catalog_service.authorizer.store
        store.grant(alice.id, make_metastore_ref(), PrivilegeType.CREATE_CATALOG)
        request_principal.set(alice)
        record = catalog_service.create_catalog("main")

        updated = catalog_service.update_catalog("main", new_name="primary", comment="renamed")

        assert updated.id == record.id
        assert updated.comment == "renamed"
        assert store.get_owner(updated.ref) == alice.id

    def test_use_catalog_cannot_update(
        self,
        catalog_service: CatalogService,
        request_principal: RequestPrincipal,
        bob: Principal,
    ) -> None:
        record = catalog_service.create_catalog("main")
        catalog_service.authorizer.store.grant(bob.id, record.ref, PrivilegeType.USE_CATALOG)
        request_principal.set(bob)
        with pytest.raises(AuthorizationDenied):
            catalog_service.update_catalog("main", comment="nope")

    def test_metastore_owner_cannot_update_others_catalog(
        self,
        catalog_service: CatalogService,
        request_principal: RequestPrincipal,
        alice: Principal,
    ) -> None:
        """Update requires ownership of the catalog itself."""
        store = catalog_service.authorizer.store
        store.grant(alice.id, make_metastore_ref(), PrivilegeType.CREATE_CATALOG)
        request_principal.set(alice)
        catalog_service.create_catalog("main")

        request_principal.set(Principal(id="admin"))
        with pytest.raises(AuthorizationDenied):
            catalog_service.update_catalog("main", comment="admin edit")


class TestDeleteCatalog:
    """Tests for delete_catalog."""

    def test_delete_purges_grants(self, catalog_service: CatalogService, bob: Principal) -> None:
        store = catalog_service.authorizer.store
        record = catalog_service.create_catalog("main")
        store.grant(bob.id, record.ref, PrivilegeType.USE_CATALOG)

        catalog_service.delete_catalog("main")

        assert store.get_owner(record.ref) is None
        assert store.list_grants(record.ref) == []

    def test_recreated_catalog_has_fresh_grants(
        self,
        catalog_service: CatalogService,
        request_principal: RequestPrincipal,
        bob: Principal,
    ) -> None:
        """Grants on a deleted catalog never leak to a new catalog with the same name."""
        old = catalog_service.create_catalog("main")
        catalog_service.authorizer.store.grant(bob.id, old.ref, PrivilegeType.USE_CATALOG)
        catalog_service.delete_catalog("main")
        new = catalog_service.create_catalog("main")

        assert new.id != old.id
        request_principal.set(bob)
        with pytest.raises(AuthorizationDenied):
            catalog_service.get_catalog("main")

    def test_use_catalog_can_delete(
        self,
        catalog_service: CatalogService,
        catalog_repository: InMemoryCatalogRepository,
        request_principal: RequestPrincipal,
        bob: Principal,
    ) -> None:
        """USE_CATALOG on the catalog is enough to delete it."""
        record = catalog_service.create_catalog("main")
        catalog_service.authorizer.store.grant(bob.id, record.ref, PrivilegeType.USE_CATALOG)
        request_principal.set(bob)

        catalog_service.delete_catalog("main")

        assert catalog_repository.get_catalog_id("main") is None
        assert catalog_service.authorizer.store.list_grants(record.ref) == []

    def test_no_grant_cannot_delete(
        self,
        catalog_service: CatalogService,
        catalog_repository: InMemoryCatalogRepository,
        request_principal: RequestPrincipal,
        bob: Principal,
    ) -> None:
        catalog_service.create_catalog("main")
        request_principal.set(bob)
        with pytest.raises(AuthorizationDenied):
            catalog_service.delete_catalog("main")
        assert catalog_repository.get_catalog_id("main") is not None


class TestCheckThenAct:
    """A grant revoked after the check does not affect the request already admitted."""

    def test_revocation_applies_to_next_request(
        self,
        memory_store: InMemoryGrantStore,
        catalog_repository: InMemoryCatalogRepository,
        request_principal: RequestPrincipal,
        admin: Principal,
        alice: Principal,
    ) -> None:
        service = build_catalog_service(memory_store, catalog_repository, request_principal, admin)
        record = service.create_catalog("main")
        memory_store.set_owner(record.ref, alice.id)
        request_principal.set(alice)

        original_update = catalog_repository.update_catalog

        def update_after_revocation(*args, **kwargs):
            memory_store.set_owner(record.ref, admin.id)
            return original_update(*args, **kwargs)

        catalog_repository.update_catalog = update_after_revocation

        updated = service.update_catalog("main", comment="admitted before revocation")
        assert updated.comment == "admitted before revocation"

        with pytest.raises(AuthorizationDenied):
            service.update_catalog("main", comment="second attempt")


class TestSqliteBackedService:
    """The service behaves the same on the durable store."""

    def test_create_and_list(
        self,
        sqlite_store: GrantStore,
        catalog_repository: InMemoryCatalogRepository,
        request_principal: RequestPrincipal,
        admin: Principal,
        alice: Principal,
    ) -> None:
        service = build_catalog_service(sqlite_store, catalog_repository, request_principal, admin)
        record = service.create_catalog("main")
        service.create_catalog("hidden")
        sqlite_store.grant(alice.id, record.ref, PrivilegeType.USE_CATALOG)

        request_principal.set(alice)
        assert [c.name for c in service.list_catalogs().catalogs] == ["main"]
