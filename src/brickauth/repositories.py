"""
Catalog repository.

The authorization engine treats metadata storage as an external collaborator.
``CatalogRepository`` is the interface it relies on and
``InMemoryCatalogRepository`` a process-local implementation used by the
reference catalog service and the tests.
"""

import base64
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional

from databricks.sdk.errors import InvalidParameterValue, ResourceAlreadyExists, ResourceDoesNotExist

from brickauth.models.catalogs import CatalogPage, CatalogRecord

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000


def encode_page_token(last_name: str) -> str:
    return base64.urlsafe_b64encode(last_name.encode("utf-8")).decode("ascii")


def decode_page_token(token: str) -> str:
    """
    Decode a page token into the last catalog name of the previous page.

    Raises:
        InvalidParameterValue: If the token is malformed
    """
    try:
        last_name = base64.b64decode(token.encode("ascii"), altchars=b"-_", validate=True).decode("utf-8")
    except (ValueError, UnicodeError):
        raise InvalidParameterValue(f"Invalid page token '{token}'") from None
    if not last_name:
        raise InvalidParameterValue(f"Invalid page token '{token}'")
    return last_name


class CatalogRepository(ABC):
    """Storage interface for catalogs."""

    @abstractmethod
    def add_catalog(self, name: str, comment: Optional[str] = None,
                    properties: Optional[Dict[str, str]] = None) -> CatalogRecord:
        """
        Create a catalog.

        Raises:
            ResourceAlreadyExists: If a catalog with that name exists
        """
        pass

    @abstractmethod
    def get_catalog(self, name: str) -> CatalogRecord:
        """
        Get a catalog by name.

        Raises:
            ResourceDoesNotExist: If the catalog does not exist
        """
        pass

    @abstractmethod
    def list_catalogs(self, max_results: Optional[int] = None,
                      page_token: Optional[str] = None) -> CatalogPage:
        """List catalogs ordered by name, one page at a time."""
        pass

    @abstractmethod
    def update_catalog(self, name: str, new_name: Optional[str] = None, comment: Optional[str] = None,
                       properties: Optional[Dict[str, str]] = None) -> CatalogRecord:
        pass

    @abstractmethod
    def delete_catalog(self, name: str) -> None:
        pass

    def get_catalog_id(self, name: str) -> Optional[str]:
        """Resolve a catalog name to its id (None if it does not exist)."""
        try:
            return self.get_catalog(name).id
        except ResourceDoesNotExist:
            return None


class InMemoryCatalogRepository(CatalogRepository):
    """Thread-safe in-memory catalog repository."""

    def __init__(self) -> None:
        self._catalogs: Dict[str, CatalogRecord] = {}
        self._lock = threading.Lock()

    def add_catalog(self, name: str, comment: Optional[str] = None,
                    properties: Optional[Dict[str, str]] = None) -> CatalogRecord:
        record = CatalogRecord(name=name, comment=comment, properties=properties or {})
        with self._lock:
            if record.name in self._catalogs:
                raise ResourceAlreadyExists(f"Catalog '{record.name}' already exists")
            self._catalogs[record.name] = record
        logger.debug(f"Added catalog {record.name} ({record.id})")
        return record

    def get_catalog(self, name: str) -> CatalogRecord:
        record = self._catalogs.get(name)
        if record is None:
            raise ResourceDoesNotExist(f"Catalog '{name}' does not exist")
        return record

    def list_catalogs(self, max_results: Optional[int] = None,
                      page_token: Optional[str] = None) -> CatalogPage:
        if max_results is not None and max_results < 0:
            raise InvalidParameterValue("max_results must be greater than or equal to 0")
        page_size = min(max_results or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)

        with self._lock:
            names = sorted(self._catalogs)
            if page_token:
                after = decode_page_token(page_token)
                names = [n for n in names if n > after]
            page_names = names[:page_size]
            catalogs = [self._catalogs[n] for n in page_names]

        next_token = encode_page_token(page_names[-1]) if len(names) > page_size else None
        return CatalogPage(catalogs=catalogs, next_page_token=next_token)

    def update_catalog(self, name: str, new_name: Optional[str] = None, comment: Optional[str] = None,
                       properties: Optional[Dict[str, str]] = None) -> CatalogRecord:
        with self._lock:
            record = self._catalogs.get(name)
            if record is None:
                raise ResourceDoesNotExist(f"Catalog '{name}' does not exist")
            if new_name and new_name != name and new_name in self._catalogs:
                raise ResourceAlreadyExists(f"Catalog '{new_name}' already exists")

            changes = {"updated_at": datetime.now(timezone.utc)}
            if new_name:
                changes["name"] = new_name
            if comment is not None:
                changes["comment"] = comment
            if properties is not None:
                changes["properties"] = dict(properties)
            updated = record.model_copy(update=changes)

            del self._catalogs[name]
            self._catalogs[updated.name] = updated
        return updated

    def delete_catalog(self, name: str) -> None:
        with self._lock:
            if self._catalogs.pop(name, None) is None:
                raise ResourceDoesNotExist(f"Catalog '{name}' does not exist")
        logger.debug(f"Deleted catalog {name}")
