"""
Binder: resolves the securables an operation refers to.

Each SecurableType other than METASTORE is resolved by one registered
resolver that maps a request-context value (for example a catalog name taken
from the path) to the securable id. METASTORE always resolves to the
deployment's singleton id.

A resolver returns None, or raises ``NotFound`` / ``ResourceDoesNotExist``,
when the named securable does not exist. Either way the type is left unbound
and recorded as unresolved; the evaluator then denies.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional, Set

from databricks.sdk.errors import NotFound, ResourceDoesNotExist

from brickauth.errors import ConfigurationError
from brickauth.models.enums import SecurableType

logger = logging.getLogger(__name__)

# Maps a request-context value to a securable id (None if it does not exist)
SecurableResolver = Callable[[Any], Optional[str]]


@dataclass
class BindingResult:
    """Resolved ids for one request."""

    bindings: Dict[SecurableType, str] = field(default_factory=dict)
    unresolved: Dict[SecurableType, Optional[str]] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.unresolved


class Binder:
    """Registry of per-type securable resolvers."""

    def __init__(self, metastore_id: str, resolvers: Optional[Mapping[SecurableType, SecurableResolver]] = None):
        self.metastore_id = metastore_id
        self._resolvers: Dict[SecurableType, SecurableResolver] = {}
        for securable_type, resolver in (resolvers or {}).items():
            self.register(securable_type, resolver)

    def register(self, securable_type: SecurableType, resolver: SecurableResolver) -> None:
        """
        Register the resolver for a securable type.

        Raises:
            ConfigurationError: For METASTORE or a type that already has a resolver
        """
        if securable_type == SecurableType.METASTORE:
            raise ConfigurationError("METASTORE is bound to the singleton metastore id")
        if securable_type in self._resolvers:
            raise ConfigurationError(f"A resolver for {securable_type.value} is already registered")
        self._resolvers[securable_type] = resolver

    def supports(self, securable_type: SecurableType) -> bool:
        return securable_type == SecurableType.METASTORE or securable_type in self._resolvers

    @property
    def supported_types(self) -> FrozenSet[SecurableType]:
        return frozenset(self._resolvers) | {SecurableType.METASTORE}

    def resolve(self, securable_type: SecurableType, value: Any) -> Optional[str]:
        """
        Resolve one securable.

        Returns:
            The securable id, or None if it cannot be resolved
        """
        if securable_type == SecurableType.METASTORE:
            return self.metastore_id
        resolver = self._resolvers.get(securable_type)
        if resolver is None:
            raise ConfigurationError(f"No resolver registered for {securable_type.value}")
        if value is None:
            return None
        try:
            securable_id = resolver(value)
        except (NotFound, ResourceDoesNotExist):
            securable_id = None
        return str(securable_id) if securable_id is not None else None

    def bind(
        self,
        securable_types: Iterable[SecurableType],
        keys: Mapping[SecurableType, str],
        context: Mapping[str, Any],
    ) -> BindingResult:
        """
        Build the binding map for a request.

        Args:
            securable_types: Types referenced by the operation's expression
            keys: Context key that names each non-METASTORE type
            context: Request context (path parameters, loaded entities)

        Returns:
            BindingResult with resolved ids and the types that did not resolve
        """
        result = BindingResult()
        seen: Set[SecurableType] = set()
        for securable_type in securable_types:
            if securable_type in seen:
                continue
            seen.add(securable_type)

            value = None
            if securable_type != SecurableType.METASTORE:
                value = context.get(keys.get(securable_type, ""))
            securable_id = self.resolve(securable_type, value)
            if securable_id is None:
                logger.debug(f"Could not resolve {securable_type.value} '{value}'")
                result.unresolved[securable_type] = value
            else:
                result.bindings[securable_type] = securable_id
        return result
