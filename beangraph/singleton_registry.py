"""
SingletonRegistry

Owns every singleton instance of a factory, together with the bookkeeping
needed to build them safely and tear them down in the right order.

Caching happens in three tiers:

- finished singletons
- early-reference suppliers for singletons whose instance exists but is
  not populated yet
- early references already obtained from such a supplier

Finished singletons are read without taking the registry lock. Creating a
singleton holds the (re-entrant) registry lock for the whole build, so a
second thread asking for a name that is being built waits for the build to
finish and then sees the finished object. Early references are therefore
only ever handed to the thread that is building the object, which is how
field-level cycles (A -> B -> A) are resolved.
"""

import enum
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Set

from . import resolution_context
from .exceptions import (
    BeanCreationError,
    CreationNotAllowedError,
    CurrentlyInCreationError,
    DuplicateDefinitionError,
)

logger = logging.getLogger(__name__)

SUPPRESSED_EXCEPTIONS_LIMIT = 100


class SingletonState(enum.Enum):
    """Lifecycle state of one singleton name."""
    UNREGISTERED = "unregistered"
    SLOT_OPEN = "slot_open"
    EARLY_EXPOSED = "early_exposed"
    FINISHED = "finished"


class SingletonRegistry:
    """Registry of shared bean instances.

    Besides the instance caches it records:

    - which names are currently being created, and by which thread
    - dependency edges (``X depends on Y``) used to order destruction
    - containment of inner beans in their owners
    - destroy callbacks, in registration order

    Example::

        registry = SingletonRegistry()
        service = registry.get_or_create("service", lambda: Service())
        registry.register_disposable("service", service.close)
        registry.destroy_all()  # calls service.close()
    """

    def __init__(self):
        self._singletons: Dict[str, Any] = {}
        self._early_suppliers: Dict[str, Callable[[], Any]] = {}
        self._early_singletons: Dict[str, Any] = {}
        self._registered: Dict[str, None] = {}
        self._in_creation: Dict[str, int] = {}
        self._factory_bean_objects: Dict[str, Any] = {}

        self._disposables: Dict[str, Callable[[], None]] = {}
        self._contained: Dict[str, Dict[str, None]] = {}
        self._dependents: Dict[str, Dict[str, None]] = {}
        self._dependencies: Dict[str, Dict[str, None]] = {}

        self._suppressed: Optional[List[BaseException]] = None
        self._in_destruction = False
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # Instance caches

    def register_singleton(self, name: str, instance: Any) -> None:
        """Register an already built object under ``name``.

        Raises:
            DuplicateDefinitionError: When an object is already bound to ``name``
        """
        with self._lock:
            existing = self._singletons.get(name)
            if existing is not None:
                raise DuplicateDefinitionError(
                    f"Could not register object {instance!r} under bean name '{name}': "
                    f"there is already object {existing!r} bound"
                )
            self._add_singleton(name, instance)

    def _add_singleton(self, name: str, instance: Any) -> None:
        with self._lock:
            self._singletons[name] = instance
            self._early_suppliers.pop(name, None)
            self._early_singletons.pop(name, None)
            self._registered[name] = None

    def add_early_supplier(self, name: str, supplier: Callable[[], Any]) -> None:
        """Expose an allocated but not yet populated singleton through ``supplier``.

        Beans built later in the same creation graph receive the supplier's
        result when they refer back to ``name``.
        """
        with self._lock:
            if name not in self._singletons:
                self._early_suppliers[name] = supplier
                self._early_singletons.pop(name, None)
                self._registered[name] = None

    def get_singleton(self, name: str, allow_early: bool = True) -> Optional[Any]:
        """Return the finished or early singleton for ``name``, or ``None``.

        An early reference is only returned to the thread building ``name``;
        other threads wait for the build to complete.
        """
        instance = self._singletons.get(name)
        if instance is not None or name not in self._in_creation:
            return instance
        with self._lock:
            instance = self._singletons.get(name)
            if instance is not None or name not in self._in_creation:
                return instance
            instance = self._early_singletons.get(name)
            if instance is None and allow_early:
                supplier = self._early_suppliers.pop(name, None)
                if supplier is not None:
                    instance = supplier()
                    self._early_singletons[name] = instance
                    logger.debug(f"Returning eagerly cached instance of singleton bean '{name}' "
                                 f"that is not fully initialized yet - a consequence of a "
                                 f"circular reference")
            return instance

    def get_or_create(self, name: str, factory: Callable[[], Any]) -> Any:
        """Return the singleton for ``name``, building it through ``factory`` if needed.

        Raises:
            CurrentlyInCreationError: When ``name`` is already being built by this thread
            CreationNotAllowedError: When singletons are being destroyed
        """
        with self._lock:
            instance = self._singletons.get(name)
            if instance is not None:
                return instance
            if self._in_destruction:
                raise CreationNotAllowedError(
                    "Singleton bean creation not allowed while singletons of this factory "
                    "are in destruction (Do not request a bean from a BeanFactory in a "
                    "destroy method implementation!)",
                    bean_name=name,
                )
            logger.debug(f"Creating shared instance of singleton bean '{name}'")
            self._before_creation(name)
            record_suppressed = self._suppressed is None
            if record_suppressed:
                self._suppressed = []
            try:
                instance = factory()
            except BeanCreationError as e:
                self._discard(name)
                if record_suppressed:
                    for suppressed in self._suppressed:
                        e.add_related_cause(suppressed)
                raise
            except BaseException:
                self._discard(name)
                raise
            finally:
                if record_suppressed:
                    self._suppressed = None
                self._after_creation(name)
            self._add_singleton(name, instance)
            return instance

    def on_suppressed_exception(self, error: BaseException) -> None:
        """Record an error that did not abort the current singleton build."""
        with self._lock:
            if self._suppressed is not None and len(self._suppressed) < SUPPRESSED_EXCEPTIONS_LIMIT:
                self._suppressed.append(error)

    def _before_creation(self, name: str) -> None:
        if name in self._in_creation:
            chain = resolution_context.current().chain(name)
            raise CurrentlyInCreationError(
                f"Requested bean is currently in creation: Is there an unresolvable "
                f"circular reference? ({chain})",
                bean_name=name,
            )
        self._in_creation[name] = threading.get_ident()

    def _after_creation(self, name: str) -> None:
        self._in_creation.pop(name, None)

    def _discard(self, name: str) -> None:
        self._singletons.pop(name, None)
        self._early_suppliers.pop(name, None)
        self._early_singletons.pop(name, None)
        self._registered.pop(name, None)

    def contains_singleton(self, name: str) -> bool:
        return name in self._singletons

    def singleton_names(self) -> List[str]:
        with self._lock:
            return list(self._registered)

    @property
    def singleton_count(self) -> int:
        return len(self._registered)

    def is_in_creation(self, name: str) -> bool:
        return name in self._in_creation

    def state(self, name: str) -> SingletonState:
        """Derive the lifecycle state of ``name`` from the cache tiers."""
        with self._lock:
            if name in self._singletons:
                return SingletonState.FINISHED
            if name in self._early_singletons or name in self._early_suppliers:
                return SingletonState.EARLY_EXPOSED
            if name in self._in_creation:
                return SingletonState.SLOT_OPEN
            return SingletonState.UNREGISTERED

    # FactoryBean products

    def get_cached_factory_object(self, name: str) -> Optional[Any]:
        return self._factory_bean_objects.get(name)

    def cache_factory_object(self, name: str, product: Any) -> Any:
        """Cache ``product`` unless another thread cached one first; return the cached one."""
        with self._lock:
            existing = self._factory_bean_objects.get(name)
            if existing is not None:
                return existing
            self._factory_bean_objects[name] = product
            return product

    # Dependency edges

    def register_contained_bean(self, contained: str, containing: str) -> None:
        """Record that inner bean ``contained`` lives inside ``containing``."""
        with self._lock:
            names = self._contained.setdefault(containing, {})
            if contained in names:
                return
            names[contained] = None
        self.register_dependent_bean(contained, containing)

    def register_dependent_bean(self, name: str, dependent: str) -> None:
        """Record that ``dependent`` depends on ``name``."""
        with self._lock:
            self._dependents.setdefault(name, {})[dependent] = None
            self._dependencies.setdefault(dependent, {})[name] = None

    def is_dependent(self, name: str, dependent: str) -> bool:
        """Whether ``dependent`` depends on ``name``, directly or transitively."""
        with self._lock:
            return self._is_dependent(name, dependent, set())

    def _is_dependent(self, name: str, dependent: str, visited: Set[str]) -> bool:
        if name in visited:
            return False
        dependents = self._dependents.get(name)
        if not dependents:
            return False
        if dependent in dependents:
            return True
        visited.add(name)
        return any(self._is_dependent(transitive, dependent, visited) for transitive in dependents)

    def has_dependent_bean(self, name: str) -> bool:
        return bool(self._dependents.get(name))

    def get_dependent_beans(self, name: str) -> List[str]:
        with self._lock:
            return list(self._dependents.get(name, ()))

    def get_dependencies_for_bean(self, name: str) -> List[str]:
        with self._lock:
            return list(self._dependencies.get(name, ()))

    # Destruction

    def register_disposable(self, name: str, callback: Callable[[], None]) -> None:
        with self._lock:
            self._disposables[name] = callback

    def destroy_all(self) -> None:
        """Destroy every singleton, last registered first.

        Dependents of a bean are destroyed before the bean itself, and inner
        beans after their owner.
        """
        logger.debug(f"Destroying singletons in {self!r}")
        with self._lock:
            self._in_destruction = True
            names = list(self._disposables)
        try:
            for name in reversed(names):
                self.destroy_singleton(name)
        finally:
            with self._lock:
                self._contained.clear()
                self._dependents.clear()
                self._dependencies.clear()
                self._singletons.clear()
                self._early_suppliers.clear()
                self._early_singletons.clear()
                self._registered.clear()
                self._factory_bean_objects.clear()
                self._in_destruction = False

    def destroy_singleton(self, name: str) -> None:
        """Remove ``name`` from the caches and run its destroy callback."""
        with self._lock:
            self._discard(name)
            self._factory_bean_objects.pop(name, None)
            callback = self._disposables.pop(name, None)
        self._destroy_bean(name, callback, set())

    def _destroy_bean(self, name: str, callback: Optional[Callable[[], None]],
                      visited: Set[str]) -> None:
        visited.add(name)
        with self._lock:
            dependents = self._dependents.pop(name, None)
        if dependents:
            logger.debug(f"Retrieved dependent beans for bean '{name}': {list(dependents)}")
            for dependent in dependents:
                if dependent not in visited:
                    with self._lock:
                        self._discard(dependent)
                        self._factory_bean_objects.pop(dependent, None)
                        dependent_callback = self._disposables.pop(dependent, None)
                    self._destroy_bean(dependent, dependent_callback, visited)

        if callback is not None:
            logger.debug(f"Destroying bean '{name}'")
            try:
                callback()
            except Exception as e:
                logger.warning(f"Destruction of bean with name '{name}' threw an exception: "
                               f"{type(e).__name__}: {e}")

        with self._lock:
            contained = self._contained.pop(name, None)
        if contained:
            for inner in contained:
                if inner not in visited:
                    with self._lock:
                        self._discard(inner)
                        inner_callback = self._disposables.pop(inner, None)
                    self._destroy_bean(inner, inner_callback, visited)

        with self._lock:
            for dependents_of_other in self._dependents.values():
                dependents_of_other.pop(name, None)
            self._dependencies.pop(name, None)
