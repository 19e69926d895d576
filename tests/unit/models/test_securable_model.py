"""
Unit tests for the securable model.

Tests the securable hierarchy and privilege validity tables.
"""

import pytest

from brickauth.models.enums import (
    OperationKind,
    PrivilegeType,
    SecurableType,
    is_privilege_valid,
    securable_type_from_expression_name,
    validate_privilege,
)


class TestSecurableHierarchy:
    """Tests for SecurableType ordering."""

    def test_metastore_is_root(self) -> None:
        """METASTORE has no parent and depth 0."""
        assert SecurableType.METASTORE.parent is None
        assert SecurableType.METASTORE.depth == 0

    def test_depths(self) -> None:
        """Depth increases down the catalog hierarchy."""
        assert SecurableType.CATALOG.depth == 1
        assert SecurableType.SCHEMA.depth == 2
        assert SecurableType.TABLE.depth == 3
        assert SecurableType.FUNCTION.depth == 3

    def test_parents(self) -> None:
        """Leaf securables sit under SCHEMA."""
        assert SecurableType.TABLE.parent == SecurableType.SCHEMA
        assert SecurableType.SCHEMA.parent == SecurableType.CATALOG
        assert SecurableType.EXTERNAL_LOCATION.parent == SecurableType.METASTORE

    def test_expression_name(self) -> None:
        """Expression names are lower-case with a leading '#'."""
        assert SecurableType.CATALOG.expression_name == "#catalog"
        assert securable_type_from_expression_name("#metastore") == SecurableType.METASTORE
        assert securable_type_from_expression_name("schema") == SecurableType.SCHEMA

    def test_unknown_expression_name(self) -> None:
        """Unknown names raise ValueError."""
        with pytest.raises(ValueError, match="Unknown securable type"):
            securable_type_from_expression_name("#warehouse")


class TestPrivilegeValidity:
    """Tests for privilege-per-securable validation."""

    @pytest.mark.parametrize("securable_type", list(SecurableType))
    def test_owner_is_universal(self, securable_type: SecurableType) -> None:
        """OWNER is valid on every securable type."""
        assert is_privilege_valid(securable_type, PrivilegeType.OWNER)

    def test_scoped_privileges(self) -> None:
        """Privileges are only valid at their levels."""
        assert is_privilege_valid(SecurableType.METASTORE, PrivilegeType.CREATE_CATALOG)
        assert is_privilege_valid(SecurableType.CATALOG, PrivilegeType.USE_CATALOG)
        assert not is_privilege_valid(SecurableType.CATALOG, PrivilegeType.CREATE_CATALOG)
        assert not is_privilege_valid(SecurableType.TABLE, PrivilegeType.USE_CATALOG)
        assert not is_privilege_valid(SecurableType.METASTORE, PrivilegeType.SELECT)

    def test_containers_accept_descendant_privileges(self) -> None:
        """SELECT may be granted on a catalog or schema as well as a table."""
        assert is_privilege_valid(SecurableType.CATALOG, PrivilegeType.SELECT)
        assert is_privilege_valid(SecurableType.SCHEMA, PrivilegeType.SELECT)

    def test_validate_privilege_raises(self) -> None:
        """validate_privilege names the offending privilege and level."""
        with pytest.raises(ValueError) as exc_info:
            validate_privilege(SecurableType.TABLE, PrivilegeType.CREATE_SCHEMA)
        assert "CREATE_SCHEMA" in str(exc_info.value)
        assert "TABLE" in str(exc_info.value)


class TestOperationKind:
    """Tests for OperationKind."""

    def test_mutating_kinds(self) -> None:
        """CREATE, UPDATE and DELETE mutate; READ and LIST do not."""
        assert OperationKind.CREATE.is_mutating
        assert OperationKind.UPDATE.is_mutating
        assert OperationKind.DELETE.is_mutating
        assert not OperationKind.READ.is_mutating
        assert not OperationKind.LIST.is_mutating
