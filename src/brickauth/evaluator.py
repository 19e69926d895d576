"""
Expression evaluator and collection filter.

The evaluator walks an expression tree for one principal against a binding
map (SecurableType -> securable id) and queries the grant store. Evaluation
is fail-closed: an Authorize/AuthorizeAny node whose securable type is not
bound evaluates to False regardless of grants held.

Grant store failures propagate; they never turn into allow or deny.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Mapping, Optional, TypeVar

from brickauth.models.enums import PrivilegeType, SecurableType
from brickauth.models.expressions import And, Authorize, AuthorizeAny, Defer, ExpressionNode, Or
from brickauth.models.grants import Principal, SecurableRef
from brickauth.stores.base import GrantStore

logger = logging.getLogger(__name__)

E = TypeVar("E")

BindingMap = Mapping[SecurableType, str]


class Evaluator:
    """Evaluates expression trees against a grant store."""

    def __init__(self, store: GrantStore):
        self.store = store

    def evaluate(self, node: ExpressionNode, principal: Principal, bindings: BindingMap) -> bool:
        """
        Evaluate an expression.

        Args:
            node: Root of the expression tree
            principal: The principal making the request
            bindings: Resolved securable ids per type

        Returns:
            True if the expression holds
        """
        if isinstance(node, Defer):
            return True
        if isinstance(node, And):
            return self.evaluate(node.left, principal, bindings) and self.evaluate(node.right, principal, bindings)
        if isinstance(node, Or):
            return self.evaluate(node.left, principal, bindings) or self.evaluate(node.right, principal, bindings)
        if isinstance(node, (Authorize, AuthorizeAny)):
            securable_id = bindings.get(node.securable_type)
            if securable_id is None:
                logger.debug(f"No binding for {node.securable_type.value}; denying")
                return False
            ref = SecurableRef(securable_type=node.securable_type, id=securable_id)
            check = all if isinstance(node, Authorize) else any
            return check(self._holds(principal, ref, privilege) for privilege in node.privileges)
        raise TypeError(f"Unsupported expression node: {type(node).__name__}")

    def _holds(self, principal: Principal, ref: SecurableRef, privilege: PrivilegeType) -> bool:
        return any(self.store.has_privilege(identity, ref, privilege) for identity in principal.identities)

    def filter(
        self,
        principal: Principal,
        expression: ExpressionNode,
        entries: Iterable[E],
        key_fn: Callable[[E], BindingMap],
        max_workers: Optional[int] = None,
    ) -> List[E]:
        """
        Keep the entries for which ``expression`` holds, preserving input order.

        Args:
            principal: The principal making the request
            expression: Expression evaluated once per entry
            entries: Candidate entries, already fetched
            key_fn: Builds the binding map for an entry (ambient + entry-specific ids)
            max_workers: Evaluate entries on a thread pool when greater than 1

        Returns:
            The authorized entries, in their original relative order
        """
        entries = list(entries)

        def allowed(entry: E) -> bool:
            return self.evaluate(expression, principal, key_fn(entry))

        if max_workers and max_workers > 1 and len(entries) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                verdicts = list(pool.map(allowed, entries))
        else:
            verdicts = [allowed(entry) for entry in entries]

        result = [entry for entry, ok in zip(entries, verdicts) if ok]
        logger.debug(f"Filtered {len(entries)} entries to {len(result)} for principal {principal.id}")
        return result
