"""
Authorizer: the entry point operation handlers call.

Flow for a gated operation:
1. look up the operation's rule in the sealed registry
2. bind the securables its expression references from the request context
3. evaluate the expression for the principal
4. on allow the handler proceeds; list operations that defer filter the
   fetched entries with ``filter_authorized``

There is no transaction spanning the check and the gated operation: a grant
revoked after ``enforce`` returns does not affect that request.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

from brickauth.binder import Binder
from brickauth.errors import AuthorizationDenied, SecurableNotFound
from brickauth.evaluator import BindingMap, Evaluator
from brickauth.lifecycle import LifecycleCoordinator
from brickauth.models.base import get_existence_policy
from brickauth.models.enums import Decision, ExistencePolicy, SecurableType
from brickauth.models.expressions import ExpressionNode
from brickauth.models.grants import Principal, SecurableRef
from brickauth.registry import OperationRegistry
from brickauth.stores.base import GrantStore

logger = logging.getLogger(__name__)

E = TypeVar("E")


class Authorizer:
    """Gate checks, collection filtering and lifecycle hooks over one grant store."""

    def __init__(
        self,
        store: GrantStore,
        registry: OperationRegistry,
        binder: Binder,
        existence_policy: Optional[ExistencePolicy] = None,
        filter_workers: Optional[int] = None,
    ):
        """
        Initialize the authorizer.

        Validates and seals the registry, so misconfigured rules fail here
        rather than on the first request.

        Args:
            store: Grant store handle
            registry: Operation rules
            binder: Securable resolvers
            existence_policy: How unresolvable securables surface (defaults to
                              BRICKAUTH_EXISTENCE_POLICY)
            filter_workers: Thread pool size for collection filtering

        Raises:
            ConfigurationError: If a rule cannot be bound
        """
        self.store = store
        self.registry = registry
        self.binder = binder
        self.existence_policy = existence_policy or get_existence_policy()
        self.filter_workers = filter_workers
        self.evaluator = Evaluator(store)
        self.lifecycle = LifecycleCoordinator(store)

        registry.validate(binder)
        if not registry.sealed:
            registry.seal()

    @property
    def metastore_id(self) -> str:
        return self.binder.metastore_id

    def authorize(self, operation_id: str, principal: Principal, context: Mapping[str, Any]) -> Decision:
        """
        Decide whether ``principal`` may perform an operation.

        Unresolvable securables always yield DENY here, whatever the
        existence policy.
        """
        rule = self.registry.get(operation_id)
        binding = self.binder.bind(rule.expression.referenced_types(), rule.keys, context)
        allowed = self.evaluator.evaluate(rule.expression, principal, binding.bindings)
        return Decision.ALLOW if allowed else Decision.DENY

    def enforce(self, operation_id: str, principal: Principal, context: Mapping[str, Any]) -> Dict[SecurableType, str]:
        """
        Authorize an operation or raise.

        Args:
            operation_id: Registered operation id
            principal: The principal making the request
            context: Request context (path parameters, loaded entities)

        Returns:
            The resolved binding map

        Raises:
            SecurableNotFound: Under ExistencePolicy.NOT_FOUND, when a securable
                               does not exist (checked before privileges)
            AuthorizationDenied: When the expression does not hold
            GrantStoreUnavailable: When the grant store cannot be reached
        """
        rule = self.registry.get(operation_id)
        binding = self.binder.bind(rule.expression.referenced_types(), rule.keys, context)

        if self.existence_policy == ExistencePolicy.NOT_FOUND and not binding.complete:
            securable_type, key = next(iter(binding.unresolved.items()))
            raise SecurableNotFound(securable_type, key)

        if not self.evaluator.evaluate(rule.expression, principal, binding.bindings):
            logger.info(f"Denied '{operation_id}' for principal {principal.id}")
            raise AuthorizationDenied(operation_id, principal.id)

        logger.debug(f"Allowed '{operation_id}' for principal {principal.id}")
        return binding.bindings

    def filter_authorized(
        self,
        expression: ExpressionNode,
        principal: Principal,
        entries: Iterable[E],
        key_fn: Callable[[E], BindingMap],
    ) -> List[E]:
        """Keep the entries ``principal`` is authorized to see, in input order."""
        return self.evaluator.filter(principal, expression, entries, key_fn, max_workers=self.filter_workers)

    def filter_for_operation(
        self,
        operation_id: str,
        principal: Principal,
        entries: Iterable[E],
        key_fn: Callable[[E], BindingMap],
    ) -> List[E]:
        """
        Apply a deferred operation's filter expression.

        Operations without a filter expression return the entries unchanged.
        """
        rule = self.registry.get(operation_id)
        if rule.filter_expression is None:
            return list(entries)
        return self.filter_authorized(rule.filter_expression, principal, entries, key_fn)

    def on_resource_created(self, ref: SecurableRef, principal: Principal) -> None:
        self.lifecycle.on_resource_created(ref, principal)

    def on_resource_deleted(self, ref: SecurableRef) -> None:
        self.lifecycle.on_resource_deleted(ref)
