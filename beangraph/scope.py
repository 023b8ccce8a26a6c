"""
Scope

Scope names and the contract for custom scopes.

``singleton`` and ``prototype`` are handled by the factory itself. Any other
scope name must be backed by a ``Scope`` implementation registered with
``BeanFactory.register_scope()``. Two implementations ship with the package:

- CachingScope: an explicitly opened/closed cache (e.g. one unit of work)
- ThreadScope: one instance per thread
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from .exceptions import ScopeNotActiveError

logger = logging.getLogger(__name__)

SINGLETON = "singleton"
PROTOTYPE = "prototype"

BUILTIN_SCOPES = frozenset({SINGLETON, PROTOTYPE})


class Scope(ABC):
    """Contract for a custom bean scope.

    A scope decides whether ``get`` returns a cached object or asks
    ``object_factory`` to build a new one, and owns the destruction of the
    objects it caches.
    """

    @abstractmethod
    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        """Return the object for ``name``, creating it through ``object_factory`` if needed."""

    @abstractmethod
    def remove(self, name: str) -> Optional[Any]:
        """Remove ``name`` from the scope, returning the removed object if any."""

    @abstractmethod
    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        """Register a callback to run when ``name`` is destroyed by this scope."""

    @property
    def conversation_id(self) -> Optional[str]:
        return None


class CachingScope(Scope):
    """Scope backed by an explicitly opened cache.

    Objects are cached between ``open()`` and ``close()``. Closing runs the
    destruction callbacks in reverse registration order and clears the cache.
    Requesting a bean while the scope is closed raises ``ScopeNotActiveError``.

    Attributes:
        scope_name: The name the scope is registered under
        scope_id: Identifier of the current cache generation

    Example::

        scope = CachingScope("unitOfWork")
        factory.register_scope("unitOfWork", scope)

        with scope.open("uow-1"):
            ctx = factory.get("requestContext")   # Created and cached
            ctx2 = factory.get("requestContext")  # Same instance
        # Scope closed, destruction callbacks run
    """

    def __init__(self, scope_name: str):
        self.scope_name = scope_name
        self.scope_id: Optional[str] = None
        self._instances: Dict[str, Any] = {}
        self._callbacks: Dict[str, Callable[[], None]] = {}
        self._lock = threading.RLock()

    def open(self, scope_id: str) -> 'CachingScope':
        """Activate the scope under ``scope_id`` and return it (usable as a context manager)."""
        with self._lock:
            if self.scope_id is not None:
                self.close()
            self.scope_id = scope_id
        return self

    def close(self) -> None:
        """Close the scope: run destruction callbacks and release cached instances.

        This method is idempotent.
        """
        with self._lock:
            callbacks = list(self._callbacks.items())
            self._callbacks.clear()
            self._instances.clear()
            self.scope_id = None
        for name, callback in reversed(callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Destroy callback for scoped bean '{name}' failed: {e}")

    @property
    def is_active(self) -> bool:
        return self.scope_id is not None

    @property
    def conversation_id(self) -> Optional[str]:
        return self.scope_id

    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        with self._lock:
            if self.scope_id is None:
                raise ScopeNotActiveError(
                    f"Scope '{self.scope_name}' is not active. "
                    f"Call open() before resolving scoped beans.",
                    bean_name=name,
                    scope_name=self.scope_name,
                )
            if name in self._instances:
                return self._instances[name]
            instance = object_factory()
            self._instances[name] = instance
            return instance

    def remove(self, name: str) -> Optional[Any]:
        with self._lock:
            self._callbacks.pop(name, None)
            return self._instances.pop(name, None)

    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        with self._lock:
            self._callbacks[name] = callback

    def __enter__(self) -> 'CachingScope':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


class ThreadScope(Scope):
    """One instance per thread.

    Destruction callbacks are not supported, mirroring the usual semantics
    of thread-bound objects which simply go away with their thread.
    """

    def __init__(self):
        self._local = threading.local()

    def _instances(self) -> Dict[str, Any]:
        instances = getattr(self._local, "instances", None)
        if instances is None:
            instances = {}
            self._local.instances = instances
        return instances

    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        instances = self._instances()
        if name not in instances:
            instances[name] = object_factory()
        return instances[name]

    def remove(self, name: str) -> Optional[Any]:
        return self._instances().pop(name, None)

    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        logger.warning(
            f"ThreadScope does not support destruction callbacks; "
            f"consider a CachingScope for '{name}'"
        )

    @property
    def conversation_id(self) -> Optional[str]:
        return threading.current_thread().name


def registered_names(scopes: Dict[str, Scope]) -> List[str]:
    return sorted(BUILTIN_SCOPES | set(scopes))
