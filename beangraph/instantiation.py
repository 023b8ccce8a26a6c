"""
InstantiationStrategy

The last step of building a bean: invoking the chosen constructor or factory
method with its resolved arguments. Subclass ``InstantiationStrategy`` to
hook in proxying or code generation; ``SimpleInstantiationStrategy`` calls
the executable directly.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, TYPE_CHECKING

from .exceptions import BeanCreationError

if TYPE_CHECKING:
    from .definition import Definition
    from .type_inspector import Executable

logger = logging.getLogger(__name__)


class InstantiationStrategy(ABC):
    """Contract for creating the raw bean object."""

    @abstractmethod
    def instantiate(self, definition: 'Definition', bean_name: str, executable: 'Executable',
                    args: List[Any], factory_bean: Optional[Any] = None) -> Any:
        """Invoke ``executable`` with ``args`` and return the raw object.

        ``factory_bean`` is the instance to call a non-static factory method on.
        """


class SimpleInstantiationStrategy(InstantiationStrategy):
    """Calls constructors and factory methods as they are.

    Any exception raised by the executable is wrapped in a
    ``BeanCreationError`` naming the bean and the executable.
    """

    def instantiate(self, definition: 'Definition', bean_name: str, executable: 'Executable',
                    args: List[Any], factory_bean: Optional[Any] = None) -> Any:
        if executable.is_static:
            target = executable.target
        else:
            if factory_bean is None:
                raise BeanCreationError(
                    f"Factory method '{executable.name}' requires a factory bean instance",
                    bean_name=bean_name,
                    resource_description=definition.resource_description,
                )
            target = executable.bind_to(factory_bean)

        kind = "constructor" if executable.is_constructor else "factory method"
        logger.debug(f"Instantiating bean '{bean_name}' via {kind} {executable.describe()}")
        try:
            return target(*args)
        except Exception as e:
            raise BeanCreationError(
                f"Instantiation via {kind} {executable.describe()} failed; "
                f"it threw {type(e).__name__}: {e}",
                bean_name=bean_name,
                resource_description=definition.resource_description,
            ) from e
