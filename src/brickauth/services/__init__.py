"""
Services wiring the authorization engine around metadata repositories.
"""

from .catalog_service import CatalogService, register_catalog_operations

__all__ = [
    "CatalogService",
    "register_catalog_operations",
]
