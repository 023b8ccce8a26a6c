"""
DefinitionStore

Holds the definitions of a factory keyed by name, plus aliases.

The store is read-heavy: lookups read plain dictionaries without locking,
while registration and removal are serialized by a store-level lock that is
independent of the singleton registry. Listeners are told about every
changed name so the factory can evict what it derived from the old
definition.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from .definition import Definition
from .exceptions import DefinitionStoreError, DuplicateDefinitionError, NoSuchDefinitionError

logger = logging.getLogger(__name__)

# (name, definition, required_type, include_non_singletons, allow_eager_init) -> matched name
TypeMatcher = Callable[[str, Definition, Any, bool, bool], Optional[str]]


class DefinitionStore(ABC):
    """Contract the factory consumes for definition lookup."""

    @abstractmethod
    def get(self, name: str) -> Definition:
        """Return the definition for ``name``.

        Raises:
            NoSuchDefinitionError: When no definition is registered under ``name``
        """

    @abstractmethod
    def has(self, name: str) -> bool:
        pass

    @abstractmethod
    def names(self) -> List[str]:
        """All definition names in registration order."""

    @abstractmethod
    def names_of_type(self, required_type: Any, include_non_singletons: bool = True,
                      allow_eager_init: bool = True,
                      matcher: Optional[TypeMatcher] = None) -> List[str]:
        """Names of definitions whose beans match ``required_type``."""

    def canonical_name(self, name: str) -> str:
        return name

    def aliases(self, name: str) -> List[str]:
        return []

    def add_listener(self, listener: Callable[[str], None]) -> None:
        pass


class DefaultDefinitionStore(DefinitionStore):
    """In-memory definition store with aliases and an overriding policy.

    Attributes:
        allow_overriding: Whether registering an existing name replaces it

    Example::

        store = DefaultDefinitionStore()
        store.register("dataSource", Definition(bean_type=DataSource))
        store.register_alias("dataSource", "db")

        store.canonical_name("db")  # 'dataSource'
    """

    def __init__(self, allow_overriding: bool = True):
        self.allow_overriding = allow_overriding
        self._definitions: Dict[str, Definition] = {}
        self._aliases: Dict[str, str] = {}
        self._frozen = False
        self._listeners: List[Callable[[str], None]] = []
        self._lock = threading.RLock()

    def register(self, name: str, definition: Definition) -> None:
        """Register ``definition`` under ``name``.

        Raises:
            DefinitionStoreError: When the store is frozen or the name is empty
            DuplicateDefinitionError: When ``name`` exists and overriding is disabled
        """
        if not name:
            raise DefinitionStoreError("Bean name must not be empty")
        if not isinstance(definition, Definition):
            raise DefinitionStoreError(
                f"Invalid definition for bean '{name}': expected Definition, "
                f"got {type(definition).__name__}"
            )
        if definition.bean_type is None and definition.factory_method_name is None \
                and definition.parent_name is None and not definition.is_abstract:
            raise DefinitionStoreError(
                f"Invalid definition for bean '{name}': "
                f"neither bean_type, factory_method_name nor parent_name is set"
            )
        with self._lock:
            self._check_not_frozen(name)
            existing = self._definitions.get(name)
            if existing is not None:
                if not self.allow_overriding:
                    raise DuplicateDefinitionError(
                        f"Cannot register bean definition for bean '{name}': "
                        f"there is already {existing!r} bound"
                    )
                logger.debug(f"Overriding bean definition for bean '{name}'")
            self._aliases.pop(name, None)
            self._definitions[name] = definition
        self._notify(name)

    def remove(self, name: str) -> Definition:
        """Remove and return the definition registered under ``name``.

        Raises:
            NoSuchDefinitionError: When ``name`` is not registered
        """
        with self._lock:
            self._check_not_frozen(name)
            definition = self._definitions.pop(name, None)
            if definition is None:
                raise NoSuchDefinitionError(f"No bean named '{name}' available", bean_name=name)
        logger.debug(f"Removed bean definition for bean '{name}'")
        self._notify(name)
        return definition

    def get(self, name: str) -> Definition:
        definition = self._definitions.get(name)
        if definition is None:
            registered = ", ".join(self._definitions) or "None"
            raise NoSuchDefinitionError(
                f"No bean named '{name}' available\n"
                f"Registered names: {registered}",
                bean_name=name,
            )
        return definition

    def has(self, name: str) -> bool:
        return name in self._definitions

    def names(self) -> List[str]:
        return list(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def names_of_type(self, required_type: Any, include_non_singletons: bool = True,
                      allow_eager_init: bool = True,
                      matcher: Optional[TypeMatcher] = None) -> List[str]:
        """Names of non-abstract definitions that match ``required_type``.

        Without a ``matcher`` only the declared ``bean_type`` is compared;
        the factory supplies a matcher that also understands merged parent
        definitions, factory methods and FactoryBeans.
        """
        matcher = matcher or _declared_type_match
        result = []
        for name, definition in list(self._definitions.items()):
            if definition.is_abstract:
                continue
            matched = matcher(name, definition, required_type, include_non_singletons,
                              allow_eager_init)
            if matched is not None:
                result.append(matched)
        return result

    def register_alias(self, name: str, alias: str) -> None:
        """Register ``alias`` for ``name``.

        Raises:
            DefinitionStoreError: When the alias would create a cycle or
                clashes with an alias for another name while overriding is disabled
        """
        with self._lock:
            self._check_not_frozen(alias)
            if alias == name:
                self._aliases.pop(alias, None)
                return
            existing = self._aliases.get(alias)
            if existing == name:
                return
            if existing is not None and not self.allow_overriding:
                raise DefinitionStoreError(
                    f"Cannot define alias '{alias}' for name '{name}': "
                    f"it is already registered for name '{existing}'"
                )
            if self._resolves_to(name, alias):
                raise DefinitionStoreError(
                    f"Cannot register alias '{alias}' for name '{name}': "
                    f"circular reference - '{name}' is a direct or indirect alias "
                    f"for '{alias}' already"
                )
            self._aliases[alias] = name
        logger.debug(f"Alias definition '{alias}' registered for name '{name}'")

    def remove_alias(self, alias: str) -> None:
        with self._lock:
            self._check_not_frozen(alias)
            if self._aliases.pop(alias, None) is None:
                raise DefinitionStoreError(f"No alias '{alias}' registered")

    def is_alias(self, name: str) -> bool:
        return name in self._aliases

    def aliases(self, name: str) -> List[str]:
        """All aliases that resolve (directly or transitively) to ``name``."""
        result = []
        for alias in list(self._aliases):
            if alias != name and self.canonical_name(alias) == name:
                result.append(alias)
        return result

    def canonical_name(self, name: str) -> str:
        """Follow alias chains to the registered name."""
        current = name
        while True:
            target = self._aliases.get(current)
            if target is None:
                return current
            current = target

    def freeze(self) -> None:
        """Make the configuration read-only."""
        with self._lock:
            self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def add_listener(self, listener: Callable[[str], None]) -> None:
        """Call ``listener(name)`` after a definition is registered or removed."""
        self._listeners.append(listener)

    def _resolves_to(self, name: str, alias: str) -> bool:
        current = name
        seen = set()
        while current in self._aliases and current not in seen:
            seen.add(current)
            current = self._aliases[current]
            if current == alias:
                return True
        return False

    def _check_not_frozen(self, name: str) -> None:
        if self._frozen:
            raise DefinitionStoreError(
                f"Cannot modify definition '{name}': the definition store is frozen"
            )

    def _notify(self, name: str) -> None:
        for listener in list(self._listeners):
            listener(name)


def _declared_type_match(name: str, definition: Definition, required_type: Any,
                         include_non_singletons: bool, allow_eager_init: bool) -> Optional[str]:
    if not include_non_singletons and not definition.is_singleton:
        return None
    bean_type = definition.bean_type
    if not isinstance(bean_type, type) or not isinstance(required_type, type):
        return None
    return name if issubclass(bean_type, required_type) else None
