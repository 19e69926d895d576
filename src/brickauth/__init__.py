"""
Brickauth - Building blocks for Unity Catalog authorization.

This library gates access to a metastore -> catalog -> schema -> table
hierarchy with declarative authorization expressions evaluated against a
grant store.

Key Features:
- Securable / privilege / grant model with single-owner semantics
- Textual expression language (#authorize, #authorizeAny, &&, ||, #defer)
- Static operation registry validated before any request is served
- Fail-closed binding of request context to securable ids
- Post-fetch collection filtering for list operations
- Ownership and grant cleanup tied to resource creation and deletion

Quick Start:
    from brickauth import (
        Authorizer, Binder, InMemoryGrantStore, OperationKind,
        OperationRegistry, Principal, SecurableType,
    )

    registry = OperationRegistry()
    registry.add(
        "catalogs.get",
        OperationKind.READ,
        "#authorize(#principal, #metastore, OWNER) || "
        "#authorizeAny(#principal, #catalog, OWNER, USE_CATALOG)",
        keys={SecurableType.CATALOG: "name"},
    )

    binder = Binder("metastore-1", {SecurableType.CATALOG: catalog_ids.get})
    authorizer = Authorizer(InMemoryGrantStore(), registry, binder)

    authorizer.enforce("catalogs.get", Principal(id="alice"), {"name": "sales"})
"""

__version__ = "0.1.0"

# =============================================================================
# Models
# =============================================================================

from brickauth.models import (
    DEFER,
    And,
    Authorize,
    AuthorizeAny,
    BaseGovernanceModel,
    CatalogPage,
    CatalogRecord,
    Decision,
    Defer,
    ExistencePolicy,
    ExpressionNode,
    Grant,
    OperationKind,
    Or,
    Principal,
    PrivilegeType,
    SecurableRef,
    SecurableType,
    authorize,
    authorize_any,
)

# =============================================================================
# Errors
# =============================================================================

from brickauth.errors import (
    AuthorizationDenied,
    ConfigurationError,
    GrantStoreUnavailable,
    InvalidExpressionError,
    SecurableNotFound,
)

# =============================================================================
# Engine
# =============================================================================

from brickauth.parser import parse_expression
from brickauth.stores import GrantStore, InMemoryGrantStore, SqliteGrantStore, open_grant_store
from brickauth.binder import Binder, BindingResult
from brickauth.evaluator import Evaluator
from brickauth.lifecycle import LifecycleCoordinator
from brickauth.registry import OperationRegistry, OperationRule, load_operation_rules
from brickauth.authorizer import Authorizer

# =============================================================================
# Services
# =============================================================================

from brickauth.repositories import CatalogRepository, InMemoryCatalogRepository
from brickauth.services import CatalogService, register_catalog_operations

__all__ = [
    # Version
    "__version__",
    # Models
    "BaseGovernanceModel",
    "SecurableType",
    "PrivilegeType",
    "OperationKind",
    "ExistencePolicy",
    "Decision",
    "Principal",
    "SecurableRef",
    "Grant",
    "ExpressionNode",
    "Authorize",
    "AuthorizeAny",
    "And",
    "Or",
    "Defer",
    "DEFER",
    "authorize",
    "authorize_any",
    "CatalogRecord",
    "CatalogPage",
    # Errors
    "AuthorizationDenied",
    "SecurableNotFound",
    "GrantStoreUnavailable",
    "ConfigurationError",
    "InvalidExpressionError",
    # Engine
    "parse_expression",
    "GrantStore",
    "InMemoryGrantStore",
    "SqliteGrantStore",
    "open_grant_store",
    "Binder",
    "BindingResult",
    "Evaluator",
    "LifecycleCoordinator",
    "OperationRegistry",
    "OperationRule",
    "load_operation_rules",
    "Authorizer",
    # Services
    "CatalogRepository",
    "InMemoryCatalogRepository",
    "CatalogService",
    "register_catalog_operations",
]
