"""
Error types raised by the authorization engine.

Per-request failures derive from the Databricks SDK error taxonomy so callers
that already translate ``PermissionDenied`` / ``NotFound`` /
``TemporarilyUnavailable`` into HTTP responses handle them unchanged.
Configuration errors are raised at registration time, never per request.
"""

from typing import Optional

from databricks.sdk.errors import PermissionDenied, ResourceDoesNotExist, TemporarilyUnavailable

from brickauth.models.enums import SecurableType


class AuthorizationDenied(PermissionDenied):
    """
    Raised when an authorization expression evaluates to false.

    The message is deliberately generic: it never names the missing privilege.
    """

    def __init__(self, operation_id: str, principal_id: str):
        self.operation_id = operation_id
        self.principal_id = principal_id
        super().__init__(f"Principal '{principal_id}' is not authorized to perform '{operation_id}'")


class SecurableNotFound(ResourceDoesNotExist):
    """Raised when a bound securable cannot be resolved and existence may be revealed."""

    def __init__(self, securable_type: SecurableType, key: Optional[str]):
        self.securable_type = securable_type
        self.key = key
        super().__init__(f"{securable_type.value} '{key}' does not exist")


class GrantStoreUnavailable(TemporarilyUnavailable):
    """Raised when the grant store backend cannot be reached."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Grant store unavailable: {reason}")


class ConfigurationError(ValueError):
    """Raised when operation rules or binders are misconfigured."""


class InvalidExpressionError(ValueError):
    """Raised when expression text contains a syntax error."""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.line = line
        self.column = column
        super().__init__(f"Expression syntax error at line {line}, column {column}: {message}")
