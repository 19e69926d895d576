"""
Shared pytest fixtures for Brickauth tests.

Provides environment management, grant stores and a wired catalog service.
"""

import os
from pathlib import Path
from typing import Generator

import pytest

from brickauth.models import Principal
from brickauth.repositories import InMemoryCatalogRepository
from brickauth.services import CatalogService
from brickauth.stores import GrantStore, InMemoryGrantStore, SqliteGrantStore
from tests.fixtures import RequestPrincipal, build_catalog_service, make_principal

BRICKAUTH_ENV_VARS = ("BRICKAUTH_METASTORE_ID", "BRICKAUTH_GRANT_DB", "BRICKAUTH_EXISTENCE_POLICY")


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """
    Autouse fixture that clears BRICKAUTH_* variables for each test.

    This prevents configuration bleed between tests.
    """
    original = {name: os.environ.get(name) for name in BRICKAUTH_ENV_VARS}
    for name in BRICKAUTH_ENV_VARS:
        os.environ.pop(name, None)
    yield
    for name, value in original.items():
        if value is not None:
            os.environ[name] = value
        else:
            os.environ.pop(name, None)


@pytest.fixture
def memory_store() -> InMemoryGrantStore:
    return InMemoryGrantStore()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> Generator[SqliteGrantStore, None, None]:
    store = SqliteGrantStore(tmp_path / "grants.db")
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def grant_store(request: pytest.FixtureRequest, tmp_path: Path) -> Generator[GrantStore, None, None]:
    """
    Parametrized fixture that runs tests against every grant store backend.
    """
    if request.param == "memory":
        yield InMemoryGrantStore()
        return
    store = SqliteGrantStore(tmp_path / "grants.db")
    yield store
    store.close()


@pytest.fixture
def alice() -> Principal:
    return make_principal(id="alice")


@pytest.fixture
def bob() -> Principal:
    return make_principal(id="bob")


@pytest.fixture
def admin() -> Principal:
    """Metastore owner in catalog service tests."""
    return make_principal(id="admin")


@pytest.fixture
def request_principal(admin: Principal) -> RequestPrincipal:
    return RequestPrincipal(admin)


@pytest.fixture
def catalog_repository() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository()


@pytest.fixture
def catalog_service(
    memory_store: InMemoryGrantStore,
    catalog_repository: InMemoryCatalogRepository,
    request_principal: RequestPrincipal,
    admin: Principal,
) -> CatalogService:
    return build_catalog_service(memory_store, catalog_repository, request_principal, admin)
