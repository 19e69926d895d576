"""
Unity Catalog authorization models.

Module organization:
- enums: SecurableType, PrivilegeType, OperationKind and the privilege tables
- base: BaseGovernanceModel and environment configuration
- grants: Principal, SecurableRef, Grant
- expressions: Authorization expression nodes
- catalogs: Catalog records returned by the catalog repository
"""

from .base import (
    DEFAULT_METASTORE_ID,
    BaseGovernanceModel,
    get_existence_policy,
    get_grant_db_path,
    get_metastore_id,
)
from .catalogs import CatalogPage, CatalogRecord
from .enums import (
    SECURABLE_PARENTS,
    SECURABLE_PRIVILEGES,
    Decision,
    ExistencePolicy,
    OperationKind,
    PrivilegeType,
    SecurableType,
    is_privilege_valid,
    securable_type_from_expression_name,
    validate_privilege,
)
from .expressions import (
    DEFER,
    And,
    Authorize,
    AuthorizeAny,
    Defer,
    Expression,
    ExpressionNode,
    Or,
    authorize,
    authorize_any,
)
from .grants import Grant, Principal, SecurableRef

__all__ = [
    # Base
    "BaseGovernanceModel",
    "DEFAULT_METASTORE_ID",
    "get_metastore_id",
    "get_grant_db_path",
    "get_existence_policy",
    # Enums
    "SecurableType",
    "PrivilegeType",
    "OperationKind",
    "ExistencePolicy",
    "Decision",
    "SECURABLE_PARENTS",
    "SECURABLE_PRIVILEGES",
    "is_privilege_valid",
    "validate_privilege",
    "securable_type_from_expression_name",
    # Grants
    "Principal",
    "SecurableRef",
    "Grant",
    # Expressions
    "ExpressionNode",
    "Expression",
    "Authorize",
    "AuthorizeAny",
    "And",
    "Or",
    "Defer",
    "DEFER",
    "authorize",
    "authorize_any",
    # Catalogs
    "CatalogRecord",
    "CatalogPage",
]
