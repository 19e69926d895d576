"""Test fixtures for Brickauth."""

from .model_factories import (
    TEST_METASTORE_ID,
    make_binder,
    make_catalog_record,
    make_grant,
    make_metastore_ref,
    make_principal,
    make_ref,
)
from .service_factories import RequestPrincipal, build_catalog_service

__all__ = [
    "TEST_METASTORE_ID",
    "make_principal",
    "make_ref",
    "make_metastore_ref",
    "make_grant",
    "make_catalog_record",
    "make_binder",
    "RequestPrincipal",
    "build_catalog_service",
]
