"""
Operation registry.

Maps each operation id to its authorization rule. The table is built once at
startup, validated, then sealed before any request is served:

- ``#defer`` is only allowed on READ and LIST operations, which must then
  declare the per-entry filter expression
- every privilege must be valid on the securable type it is checked against
- every non-METASTORE securable type must name the request-context key it is
  bound from, and must have a resolver in the Binder

Rules can be declared in code or loaded from YAML::

    operations:
      catalogs.get:
        kind: READ
        expression: >
          #authorize(#principal, #metastore, OWNER) ||
          #authorizeAny(#principal, #catalog, OWNER, USE_CATALOG)
        keys:
          CATALOG: name
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from brickauth.binder import Binder
from brickauth.errors import ConfigurationError, InvalidExpressionError
from brickauth.models.base import BaseGovernanceModel
from brickauth.models.enums import OperationKind, SecurableType, is_privilege_valid
from brickauth.models.expressions import Authorize, AuthorizeAny, Expression, ExpressionNode
from brickauth.parser import parse_expression

logger = logging.getLogger(__name__)


class OperationRule(BaseGovernanceModel):
    """
    Authorization rule attached to one operation.

    Rules are frozen and their keys read-only: a sealed registry stays sealed.
    """

    model_config = ConfigDict(frozen=True)

    operation_id: str = Field(..., min_length=1)
    kind: OperationKind
    expression: Expression
    keys: Mapping[SecurableType, str] = Field(
        default_factory=dict,
        description="Request-context key naming each bound securable type",
    )
    filter_expression: Optional[Expression] = Field(
        None,
        description="Per-entry expression applied after fetching (LIST operations)",
    )

    @field_validator("expression", "filter_expression", mode="before")
    @classmethod
    def parse_text(cls, v):
        """Accept expression text as well as expression nodes."""
        if isinstance(v, str):
            return parse_expression(v)
        return v

    @field_validator("keys", mode="after")
    @classmethod
    def freeze_keys(cls, v: Mapping[SecurableType, str]) -> Mapping[SecurableType, str]:
        return MappingProxyType(dict(v))

    @property
    def defers(self) -> bool:
        return self.expression.contains_defer()


def validate_rule(rule: OperationRule) -> None:
    """
    Validate a rule on its own.

    Raises:
        ConfigurationError: If the rule can never be enforced correctly
    """
    if rule.kind.is_mutating and rule.expression.contains_defer():
        raise ConfigurationError(
            f"Operation '{rule.operation_id}' is {rule.kind.value} and cannot defer authorization"
        )
    if rule.expression.contains_defer() and rule.filter_expression is None:
        raise ConfigurationError(
            f"Operation '{rule.operation_id}' defers authorization but declares no filter expression"
        )
    if rule.filter_expression is not None and rule.filter_expression.contains_defer():
        raise ConfigurationError(
            f"Filter expression of '{rule.operation_id}' cannot itself defer"
        )

    for expr in (rule.expression, rule.filter_expression):
        if expr is None:
            continue
        for node in expr.walk():
            if not isinstance(node, (Authorize, AuthorizeAny)):
                continue
            for privilege in node.privileges:
                if not is_privilege_valid(node.securable_type, privilege):
                    raise ConfigurationError(
                        f"Operation '{rule.operation_id}' checks {privilege.value}, "
                        f"which is not valid on {node.securable_type.value}"
                    )

    missing_keys = [
        t.value for t in rule.expression.referenced_types()
        if t != SecurableType.METASTORE and t not in rule.keys
    ]
    if missing_keys:
        raise ConfigurationError(
            f"Operation '{rule.operation_id}' does not declare keys for: {', '.join(sorted(missing_keys))}"
        )


class OperationRegistry:
    """Static table of operation id -> rule."""

    def __init__(self, rules: Optional[List[OperationRule]] = None):
        self._rules: Dict[str, OperationRule] = {}
        self._sealed = False
        for rule in rules or []:
            self.register(rule)

    def register(self, rule: OperationRule) -> OperationRule:
        """
        Add a rule.

        Raises:
            ConfigurationError: If the rule is invalid, the id is taken or the registry is sealed
        """
        if self._sealed:
            raise ConfigurationError(f"Registry is sealed; cannot register '{rule.operation_id}'")
        if rule.operation_id in self._rules:
            raise ConfigurationError(f"Operation '{rule.operation_id}' is already registered")
        validate_rule(rule)
        self._rules[rule.operation_id] = rule
        logger.debug(f"Registered {rule.kind.value} operation '{rule.operation_id}': {rule.expression}")
        return rule

    def add(
        self,
        operation_id: str,
        kind: OperationKind,
        expression: Union[str, ExpressionNode],
        keys: Optional[Dict[SecurableType, str]] = None,
        filter_expression: Union[str, ExpressionNode, None] = None,
    ) -> OperationRule:
        """
        Build and register a rule in one call.

        Raises:
            InvalidExpressionError: If expression text is malformed
            ConfigurationError: If the rule is invalid
        """
        if isinstance(expression, str):
            expression = parse_expression(expression)
        if isinstance(filter_expression, str):
            filter_expression = parse_expression(filter_expression)
        return self.register(OperationRule(
            operation_id=operation_id,
            kind=kind,
            expression=expression,
            keys=keys or {},
            filter_expression=filter_expression,
        ))

    def validate(self, binder: Binder) -> None:
        """
        Check every rule can be bound by ``binder``.

        Raises:
            ConfigurationError: If a referenced securable type has no resolver
        """
        for rule in self._rules.values():
            unsupported = [t.value for t in rule.expression.referenced_types() if not binder.supports(t)]
            if unsupported:
                raise ConfigurationError(
                    f"Operation '{rule.operation_id}' references securable types without a resolver: "
                    f"{', '.join(sorted(unsupported))}"
                )

    def seal(self) -> None:
        self._sealed = True
        logger.info(f"Operation registry sealed with {len(self._rules)} rules")

    @property
    def sealed(self) -> bool:
        return self._sealed

    def get(self, operation_id: str) -> OperationRule:
        """
        Look up a rule.

        Raises:
            ConfigurationError: If the operation is not registered
        """
        try:
            return self._rules[operation_id]
        except KeyError:
            raise ConfigurationError(f"Operation '{operation_id}' has no authorization rule") from None

    def __contains__(self, operation_id: object) -> bool:
        return operation_id in self._rules

    def __iter__(self) -> Iterator[OperationRule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)


# =============================================================================
# YAML LOADING
# =============================================================================

class OperationRuleSpec(BaseModel):
    """One operation entry in a rules file."""
    kind: OperationKind
    expression: str
    keys: Dict[SecurableType, str] = Field(default_factory=dict)
    filter: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def upper_kind(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("keys", mode="before")
    @classmethod
    def upper_keys(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {k.upper() if isinstance(k, str) else k: val for k, val in v.items()}
        return v


class OperationRulesFile(BaseModel):
    """Top-level structure of a rules file."""
    version: str = "1.0"
    operations: Dict[str, OperationRuleSpec] = Field(default_factory=dict)


def load_operation_rules(path: Union[str, Path], registry: Optional[OperationRegistry] = None) -> OperationRegistry:
    """
    Load operation rules from a YAML file.

    Args:
        path: Path to the rules file
        registry: Registry to add to (a new one is created if omitted)

    Returns:
        The registry holding the loaded rules

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the file is malformed or a rule is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Operation rules file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    try:
        spec = OperationRulesFile.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid operation rules in {path}: {e}") from e

    registry = registry if registry is not None else OperationRegistry()
    for operation_id, entry in spec.operations.items():
        try:
            registry.add(
                operation_id,
                entry.kind,
                entry.expression,
                keys=entry.keys,
                filter_expression=entry.filter,
            )
        except (InvalidExpressionError, ValidationError) as e:
            raise ConfigurationError(f"Invalid rule '{operation_id}' in {path}: {e}") from e

    logger.info(f"Loaded {len(spec.operations)} operation rules from {path}")
    return registry
