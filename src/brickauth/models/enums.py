"""
Enum definitions for Unity Catalog authorization models.

This module contains the securable hierarchy, the privilege vocabulary and the
tables that say which privileges are meaningful at which level.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional


class SecurableType(str, Enum):
    """Identifies the type of Unity Catalog object for privilege management."""
    METASTORE = "METASTORE"
    CATALOG = "CATALOG"
    SCHEMA = "SCHEMA"
    TABLE = "TABLE"
    VOLUME = "VOLUME"
    FUNCTION = "FUNCTION"
    MODEL = "MODEL"  # Registered models in Unity Catalog
    STORAGE_CREDENTIAL = "STORAGE_CREDENTIAL"
    EXTERNAL_LOCATION = "EXTERNAL_LOCATION"

    @property
    def parent(self) -> Optional["SecurableType"]:
        """Direct container of this securable type (None for METASTORE)."""
        return SECURABLE_PARENTS.get(self)

    @property
    def depth(self) -> int:
        """Distance from the metastore root (METASTORE is 0)."""
        depth = 0
        current = self.parent
        while current is not None:
            depth += 1
            current = current.parent
        return depth

    @property
    def expression_name(self) -> str:
        """Name used for this type in textual expressions, e.g. ``#catalog``."""
        return f"#{self.value.lower()}"


class PrivilegeType(str, Enum):
    """
    Privileges understood by the authorization engine.

    IMPORTANT:
    - OWNER is universal: it is valid on every securable type and is held by
      at most one principal per securable.
    - Every other privilege is scoped to specific securable types and may be
      granted to any number of principals.
    """
    OWNER = "OWNER"

    # Metastore privileges
    CREATE_CATALOG = "CREATE_CATALOG"
    CREATE_STORAGE_CREDENTIAL = "CREATE_STORAGE_CREDENTIAL"
    CREATE_EXTERNAL_LOCATION = "CREATE_EXTERNAL_LOCATION"

    # Catalog privileges
    USE_CATALOG = "USE_CATALOG"
    CREATE_SCHEMA = "CREATE_SCHEMA"
    BROWSE = "BROWSE"  # Metadata discovery privilege

    # Schema privileges
    USE_SCHEMA = "USE_SCHEMA"
    CREATE_TABLE = "CREATE_TABLE"
    CREATE_VOLUME = "CREATE_VOLUME"
    CREATE_FUNCTION = "CREATE_FUNCTION"
    CREATE_MODEL = "CREATE_MODEL"

    # Table privileges
    SELECT = "SELECT"
    MODIFY = "MODIFY"

    # Volume privileges
    READ_VOLUME = "READ_VOLUME"
    WRITE_VOLUME = "WRITE_VOLUME"

    # Function / model privileges
    EXECUTE = "EXECUTE"

    # Storage/External Location privileges
    CREATE_EXTERNAL_TABLE = "CREATE_EXTERNAL_TABLE"
    CREATE_EXTERNAL_VOLUME = "CREATE_EXTERNAL_VOLUME"
    READ_FILES = "READ_FILES"
    WRITE_FILES = "WRITE_FILES"


class OperationKind(str, Enum):
    """Kinds of gated operations."""
    CREATE = "CREATE"
    READ = "READ"
    LIST = "LIST"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    @property
    def is_mutating(self) -> bool:
        """True for operations that change catalog state."""
        return self in (OperationKind.CREATE, OperationKind.UPDATE, OperationKind.DELETE)


class ExistencePolicy(str, Enum):
    """
    How an unresolvable securable surfaces to the caller.

    DENY collapses a missing securable into a plain denial so that existence is
    never revealed. NOT_FOUND checks existence before privileges and reports
    the missing securable explicitly.
    """
    DENY = "DENY"
    NOT_FOUND = "NOT_FOUND"


class Decision(str, Enum):
    """Outcome of a gate check."""
    ALLOW = "ALLOW"
    DENY = "DENY"


# =============================================================================
# SECURABLE HIERARCHY
# =============================================================================

# Used to validate privileges only, never to derive inherited access.
SECURABLE_PARENTS: Dict[SecurableType, SecurableType] = {
    SecurableType.CATALOG: SecurableType.METASTORE,
    SecurableType.SCHEMA: SecurableType.CATALOG,
    SecurableType.TABLE: SecurableType.SCHEMA,
    SecurableType.VOLUME: SecurableType.SCHEMA,
    SecurableType.FUNCTION: SecurableType.SCHEMA,
    SecurableType.MODEL: SecurableType.SCHEMA,
    SecurableType.STORAGE_CREDENTIAL: SecurableType.METASTORE,
    SecurableType.EXTERNAL_LOCATION: SecurableType.METASTORE,
}


# Privileges grantable per securable type (OWNER is added implicitly).
# Containers accept the privileges of their descendants, as Unity Catalog does.
SECURABLE_PRIVILEGES: Dict[SecurableType, FrozenSet[PrivilegeType]] = {
    SecurableType.METASTORE: frozenset({
        PrivilegeType.CREATE_CATALOG,
        PrivilegeType.CREATE_STORAGE_CREDENTIAL,
        PrivilegeType.CREATE_EXTERNAL_LOCATION,
    }),
    SecurableType.CATALOG: frozenset({
        PrivilegeType.USE_CATALOG,
        PrivilegeType.CREATE_SCHEMA,
        PrivilegeType.BROWSE,
        PrivilegeType.USE_SCHEMA,
        PrivilegeType.CREATE_TABLE,
        PrivilegeType.CREATE_VOLUME,
        PrivilegeType.CREATE_FUNCTION,
        PrivilegeType.CREATE_MODEL,
        PrivilegeType.SELECT,
        PrivilegeType.MODIFY,
        PrivilegeType.READ_VOLUME,
        PrivilegeType.WRITE_VOLUME,
        PrivilegeType.EXECUTE,
    }),
    SecurableType.SCHEMA: frozenset({
        PrivilegeType.USE_SCHEMA,
        PrivilegeType.CREATE_TABLE,
        PrivilegeType.CREATE_VOLUME,
        PrivilegeType.CREATE_FUNCTION,
        PrivilegeType.CREATE_MODEL,
        PrivilegeType.SELECT,
        PrivilegeType.MODIFY,
        PrivilegeType.READ_VOLUME,
        PrivilegeType.WRITE_VOLUME,
        PrivilegeType.EXECUTE,
    }),
    SecurableType.TABLE: frozenset({
        PrivilegeType.SELECT,
        PrivilegeType.MODIFY,
    }),
    SecurableType.VOLUME: frozenset({
        PrivilegeType.READ_VOLUME,
        PrivilegeType.WRITE_VOLUME,
    }),
    SecurableType.FUNCTION: frozenset({
        PrivilegeType.EXECUTE,
    }),
    SecurableType.MODEL: frozenset({
        PrivilegeType.EXECUTE,
    }),
    SecurableType.STORAGE_CREDENTIAL: frozenset({
        PrivilegeType.CREATE_EXTERNAL_LOCATION,
        PrivilegeType.CREATE_EXTERNAL_TABLE,
        PrivilegeType.READ_FILES,
        PrivilegeType.WRITE_FILES,
    }),
    SecurableType.EXTERNAL_LOCATION: frozenset({
        PrivilegeType.CREATE_EXTERNAL_TABLE,
        PrivilegeType.CREATE_EXTERNAL_VOLUME,
        PrivilegeType.READ_FILES,
        PrivilegeType.WRITE_FILES,
    }),
}


def is_privilege_valid(securable_type: SecurableType, privilege: PrivilegeType) -> bool:
    """Whether ``privilege`` is meaningful on ``securable_type``."""
    if privilege == PrivilegeType.OWNER:
        return True
    return privilege in SECURABLE_PRIVILEGES.get(securable_type, frozenset())


def validate_privilege(securable_type: SecurableType, privilege: PrivilegeType) -> None:
    """
    Validate that a privilege can be granted on a securable type.

    Raises:
        ValueError: If the privilege is not valid at this level
    """
    if not is_privilege_valid(securable_type, privilege):
        raise ValueError(
            f"Privilege {privilege.value} is not valid on {securable_type.value}"
        )


def securable_type_from_expression_name(name: str) -> SecurableType:
    """
    Resolve ``#catalog`` / ``catalog`` to SecurableType.CATALOG.

    Raises:
        ValueError: If the name is not a known securable type
    """
    key = name.lstrip("#").upper()
    try:
        return SecurableType(key)
    except ValueError:
        raise ValueError(f"Unknown securable type '{name}'") from None
