"""
BeanGraphCore

This module provides the container facade of BeanGraph. Each BeanGraphCore
owns its own definition store and BeanFactory, completely separate from
any other container.

Use Cases:
    - Applications (load definitions, refresh, use, close)
    - Library development (a private container per library)
    - Test isolation (fresh container per test)

Example::

    definitions = {
        "repository": Definition(bean_type=UserRepository),
        "service": Definition(bean_type=UserService),
    }

    # Use as context manager for automatic cleanup
    with BeanGraphCore(definitions) as app:
        app.refresh()
        service = app.factory.get("service")
    # close() destroys every singleton
"""

import logging
from typing import Any, Mapping, Optional, Union

from .definition import Definition
from .definition_store import DefaultDefinitionStore
from .exceptions import BeanGraphError, ContainerClosedError
from .factory import BeanFactory

logger = logging.getLogger(__name__)


class BeanGraphCore:
    """Isolated BeanGraph container instance.

    Wraps a DefaultDefinitionStore and a BeanFactory and manages their
    lifecycle: definitions are loaded, the container is refreshed (the store
    is frozen and non-lazy singletons are created), and finally closed (all
    singletons are destroyed).

    Attributes:
        store: The definition store of this container
        _factory: Internal BeanFactory instance
        _closed: Flag indicating if the container has been closed

    Example::

        app = BeanGraphCore(definitions, allow_circular_references=False)
        app.refresh()
        service = app.factory.get("service")
        app.close()
    """

    def __init__(self, definitions: Optional[Mapping[str, Definition]] = None,
                 parent: Optional[Union['BeanGraphCore', BeanFactory]] = None,
                 **settings: Any):
        """Initialize an isolated container instance.

        Args:
            definitions: Mapping of bean name to definition to load initially (optional)
            parent: Container or factory consulted for names not defined here (optional)
            **settings: Keyword settings passed on to BeanFactory, e.g.
                ``allow_circular_references`` or ``string_evaluator``
        """
        if isinstance(parent, BeanGraphCore):
            parent = parent.factory
        self.store = DefaultDefinitionStore(settings.pop("allow_definition_overriding", True))
        self._factory: BeanFactory = BeanFactory(self.store, parent, **settings)
        self._closed: bool = False
        self._refreshed: bool = False

        if definitions:
            self.load_definitions(definitions)

    def _ensure_not_closed(self) -> None:
        """Ensure the container is not closed.

        Raises:
            ContainerClosedError: When the container has been closed
        """
        if self._closed:
            raise ContainerClosedError("This container is already closed")

    @property
    def get(self) -> BeanFactory:
        """Factory property for getting beans.

        Returns:
            BeanFactory: The factory for bean lookup (``get``, ``get_by_type``, ...)

        Raises:
            ContainerClosedError: When the container has been closed

        Example::

            app = BeanGraphCore(definitions)
            factory = app.get  # fails once the container is closed
            service = factory.get("service")
            repository = factory.get_by_type(UserRepository)
        """
        self._ensure_not_closed()
        return self._factory

    @property
    def factory(self) -> BeanFactory:
        """The underlying factory, without the closed check."""
        return self._factory

    def load_definitions(self, definitions: Mapping[str, Definition]) -> None:
        """Register additional definitions.

        Args:
            definitions: Mapping of bean name to definition

        Raises:
            ContainerClosedError: When the container has been closed
            DuplicateDefinitionError: When a name is already registered and
                overriding is disabled
            DefinitionStoreError: When the container has already been refreshed

        Example::

            app.load_definitions({"cache": Definition(bean_type=CacheService)})
        """
        self._ensure_not_closed()
        for name, definition in definitions.items():
            self.store.register(name, definition)

    def refresh(self) -> None:
        """Freeze the configuration and create all non-lazy singletons.

        If a singleton fails to build, the singletons created so far are
        destroyed and the error is re-raised.

        Raises:
            ContainerClosedError: When the container has been closed
            BeanGraphError: When a singleton cannot be created
        """
        self._ensure_not_closed()
        self.store.freeze()
        try:
            self._factory.pre_instantiate_singletons()
        except BeanGraphError as e:
            logger.warning(f"Exception encountered during container refresh - "
                           f"destroying created singletons: {e}")
            self._factory.destroy_all()
            raise
        self._refreshed = True
        logger.debug(f"Refreshed {self!r}")

    @property
    def is_refreshed(self) -> bool:
        return self._refreshed

    def close(self) -> None:
        """Close the container and destroy its singletons.

        Destroy callbacks run dependents first. After closing, the container
        cannot be used for retrieving beans or loading definitions.

        This method is idempotent - calling it multiple times has no effect.
        """
        if not self._closed:
            self._closed = True
            logger.debug(f"Closing {self!r}")
            self._factory.destroy_all()

    @property
    def is_closed(self) -> bool:
        """Check whether the container has been closed.

        Returns:
            True if close() has been called, False otherwise
        """
        return self._closed

    def __enter__(self) -> 'BeanGraphCore':
        """Enter context manager.

        Returns:
            The BeanGraphCore instance itself
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Exit context manager and close the container.

        Returns:
            False (exceptions are not suppressed)
        """
        self.close()
        return False

    def __repr__(self) -> str:
        state = "closed" if self._closed else ("refreshed" if self._refreshed else "open")
        return f"<BeanGraphCore {state}, {len(self.store)} definitions>"
