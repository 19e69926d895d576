"""
Authorization expression nodes.

An expression is an immutable tree built once per operation definition:

- ``Authorize``: every listed privilege must be held on the bound securable
- ``AuthorizeAny``: at least one listed privilege must be held
- ``And`` / ``Or``: short-circuiting combinators
- ``Defer``: the real decision is made after data is fetched

Nodes compose with ``&`` and ``|``::

    rule = authorize(SecurableType.METASTORE, PrivilegeType.OWNER) | authorize_any(
        SecurableType.CATALOG, PrivilegeType.OWNER, PrivilegeType.USE_CATALOG
    )
"""

from __future__ import annotations

from abc import abstractmethod
from typing import FrozenSet, Iterator, Literal, Tuple, Union

from pydantic import ConfigDict, Field
from typing_extensions import Annotated

from .base import BaseGovernanceModel
from .enums import PrivilegeType, SecurableType


class ExpressionNode(BaseGovernanceModel):
    """Base class for expression nodes."""

    model_config = ConfigDict(frozen=True)

    def __and__(self, other: "ExpressionNode") -> "And":
        return And(left=self, right=other)

    def __or__(self, other: "ExpressionNode") -> "Or":
        return Or(left=self, right=other)

    def children(self) -> Tuple["ExpressionNode", ...]:
        return ()

    def walk(self) -> Iterator["ExpressionNode"]:
        """Yield this node and all descendants, depth first."""
        yield self
        for child in self.children():
            yield from child.walk()

    def referenced_types(self) -> FrozenSet[SecurableType]:
        """Securable types that must be bound to evaluate this expression."""
        return frozenset(
            node.securable_type
            for node in self.walk()
            if isinstance(node, (Authorize, AuthorizeAny))
        )

    def contains_defer(self) -> bool:
        return any(isinstance(node, Defer) for node in self.walk())

    @abstractmethod
    def to_text(self) -> str:
        """Render the node in the textual rule language."""
        pass

    def __str__(self) -> str:
        return self.to_text()


class Authorize(ExpressionNode):
    """All of ``privileges`` must be held on the securable bound to ``securable_type``."""
    kind: Literal["authorize"] = "authorize"
    securable_type: SecurableType
    privileges: Tuple[PrivilegeType, ...] = Field(..., min_length=1)

    def to_text(self) -> str:
        privs = ", ".join(p.value for p in self.privileges)
        return f"#authorize(#principal, {self.securable_type.expression_name}, {privs})"


class AuthorizeAny(ExpressionNode):
    """At least one of ``privileges`` must be held on the bound securable."""
    kind: Literal["authorize_any"] = "authorize_any"
    securable_type: SecurableType
    privileges: Tuple[PrivilegeType, ...] = Field(..., min_length=1)

    def to_text(self) -> str:
        privs = ", ".join(p.value for p in self.privileges)
        return f"#authorizeAny(#principal, {self.securable_type.expression_name}, {privs})"


class And(ExpressionNode):
    kind: Literal["and"] = "and"
    left: Expression
    right: Expression

    def children(self) -> Tuple[ExpressionNode, ...]:
        return (self.left, self.right)

    def to_text(self) -> str:
        return f"{_wrap(self.left, Or)} && {_wrap(self.right, (And, Or))}"


class Or(ExpressionNode):
    kind: Literal["or"] = "or"
    left: Expression
    right: Expression

    def children(self) -> Tuple[ExpressionNode, ...]:
        return (self.left, self.right)

    def to_text(self) -> str:
        return f"{self.left.to_text()} || {_wrap(self.right, Or)}"


class Defer(ExpressionNode):
    """Marker: authorization happens per entry after the data is fetched."""
    kind: Literal["defer"] = "defer"

    def to_text(self) -> str:
        return "#defer"


Expression = Annotated[
    Union[Authorize, AuthorizeAny, And, Or, Defer],
    Field(discriminator="kind"),
]

And.model_rebuild()
Or.model_rebuild()


def _wrap(node: ExpressionNode, needs_parens) -> str:
    text = node.to_text()
    return f"({text})" if isinstance(node, needs_parens) else text


# =============================================================================
# CONSTRUCTORS
# =============================================================================

def authorize(securable_type: SecurableType, *privileges: PrivilegeType) -> Authorize:
    return Authorize(securable_type=securable_type, privileges=privileges)


def authorize_any(securable_type: SecurableType, *privileges: PrivilegeType) -> AuthorizeAny:
    return AuthorizeAny(securable_type=securable_type, privileges=privileges)


DEFER = Defer()
