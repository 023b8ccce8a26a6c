"""
Lifecycle Contracts

Interfaces a bean (or a post-processor) can implement to take part in the
bean lifecycle. The factory calls them in this order for every new bean:

1. ``InstantiationAwarePostProcessor.post_process_before_instantiation``
2. instantiation, then early exposure through
   ``SmartInstantiationAwarePostProcessor.get_early_bean_reference``
3. ``InstantiationAwarePostProcessor.post_process_after_instantiation``
   and ``post_process_properties``
4. ``BeanNameAware.set_bean_name`` / ``BeanFactoryAware.set_bean_factory``
5. ``BeanPostProcessor.post_process_before_initialization``
6. ``InitializingBean.after_properties_set`` then the custom init method
7. ``BeanPostProcessor.post_process_after_initialization``

On destruction: ``DestructionAwarePostProcessor.post_process_before_destruction``,
``DisposableBean.destroy`` and the custom destroy method.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Type, TYPE_CHECKING

from .definition import INFER_METHOD

if TYPE_CHECKING:
    from .definition import Definition
    from .factory import BeanFactory
    from .type_inspector import Executable

logger = logging.getLogger(__name__)

_INFERRED_DESTROY_METHODS = ("close", "shutdown")


class BeanNameAware(ABC):
    """Beans that want to know the name they are registered under."""

    @abstractmethod
    def set_bean_name(self, name: str) -> None:
        pass


class BeanFactoryAware(ABC):
    """Beans that want a reference to the factory that created them."""

    @abstractmethod
    def set_bean_factory(self, factory: 'BeanFactory') -> None:
        pass


class InitializingBean(ABC):
    """Beans that react once all their properties have been set."""

    @abstractmethod
    def after_properties_set(self) -> None:
        pass


class DisposableBean(ABC):
    """Beans that release resources when the container destroys them."""

    @abstractmethod
    def destroy(self) -> None:
        pass


class FactoryBean(ABC):
    """A bean that is itself a factory for the object exposed under its name.

    ``factory.get("name")`` returns the product of ``get_object()``;
    ``factory.get("&name")`` returns the FactoryBean itself.

    Example::

        class ConnectionFactoryBean(FactoryBean):
            def __init__(self, url: str):
                self.url = url

            def get_object(self) -> Connection:
                return Connection(self.url)

            @property
            def object_type(self) -> type:
                return Connection
    """

    @abstractmethod
    def get_object(self) -> Any:
        """Return the product."""

    @property
    def object_type(self) -> Optional[Type]:
        """Type of the product, or ``None`` if not known in advance."""
        return None

    @property
    def is_singleton(self) -> bool:
        """Whether the product is shared (cached per factory bean)."""
        return True

    @property
    def is_eager_init(self) -> bool:
        """Whether the product should be created during pre-instantiation."""
        return False


class BeanPostProcessor:
    """Hook into bean initialization.

    Both callbacks may return a different object (for example a wrapper);
    returning ``None`` keeps the current object.
    """

    def post_process_before_initialization(self, bean: Any, name: str) -> Any:
        return bean

    def post_process_after_initialization(self, bean: Any, name: str) -> Any:
        return bean


class InstantiationAwarePostProcessor(BeanPostProcessor):
    """Hook into instantiation and property population."""

    def post_process_before_instantiation(self, bean_type: Optional[Type], name: str) -> Any:
        """Return an object to short-circuit the regular creation, or ``None``."""
        return None

    def post_process_after_instantiation(self, bean: Any, name: str) -> bool:
        """Return ``False`` to skip property population."""
        return True

    def post_process_properties(self, values: Dict[str, Any], bean: Any,
                                name: str) -> Optional[Dict[str, Any]]:
        """Adjust property values before they are applied; ``None`` skips them."""
        return values


class SmartInstantiationAwarePostProcessor(InstantiationAwarePostProcessor):
    """Adds type prediction, constructor selection and early references."""

    def predict_bean_type(self, bean_type: Optional[Type], name: str) -> Optional[Type]:
        return None

    def determine_candidate_constructors(self, bean_type: Type,
                                         name: str) -> Optional[List['Executable']]:
        return None

    def get_early_bean_reference(self, bean: Any, name: str) -> Any:
        """Return the object to expose to beans that resolve a circular reference."""
        return bean


class DestructionAwarePostProcessor(BeanPostProcessor):
    """Hook into bean destruction."""

    def post_process_before_destruction(self, bean: Any, name: str) -> None:
        pass

    def requires_destruction(self, bean: Any) -> bool:
        return True


class DisposableBeanAdapter:
    """Destroy callback for one bean instance.

    Runs destruction-aware post-processors, ``DisposableBean.destroy()`` and
    the definition's destroy method. Failures are logged and do not stop
    the remaining steps.
    """

    def __init__(self, bean: Any, name: str, definition: 'Definition',
                 post_processors: Sequence[BeanPostProcessor] = ()):
        self.bean = bean
        self.name = name
        self.invoke_disposable = isinstance(bean, DisposableBean)
        self.destroy_method_name = _destroy_method_name(bean, definition)
        if self.invoke_disposable and self.destroy_method_name == "destroy":
            self.destroy_method_name = None
        self.post_processors = [pp for pp in post_processors
                                if isinstance(pp, DestructionAwarePostProcessor)
                                and pp.requires_destruction(bean)]

    @staticmethod
    def has_destroy_method(bean: Any, definition: 'Definition') -> bool:
        return isinstance(bean, DisposableBean) or _destroy_method_name(bean, definition) is not None

    @staticmethod
    def has_applicable_processors(bean: Any, post_processors: Sequence[BeanPostProcessor]) -> bool:
        return any(isinstance(pp, DestructionAwarePostProcessor) and pp.requires_destruction(bean)
                   for pp in post_processors)

    def destroy(self) -> None:
        for processor in self.post_processors:
            processor.post_process_before_destruction(self.bean, self.name)

        if self.invoke_disposable:
            logger.debug(f"Invoking destroy() on bean with name '{self.name}'")
            try:
                self.bean.destroy()
            except Exception as e:
                logger.warning(f"Invocation of destroy method failed on bean with name "
                               f"'{self.name}': {type(e).__name__}: {e}")

        if self.destroy_method_name is not None:
            method = getattr(self.bean, self.destroy_method_name, None)
            if method is None:
                logger.warning(f"Could not find a destroy method named '{self.destroy_method_name}' "
                               f"on bean with name '{self.name}'")
                return
            logger.debug(f"Invoking destroy method '{self.destroy_method_name}' "
                         f"on bean with name '{self.name}'")
            try:
                method()
            except Exception as e:
                logger.warning(f"Custom destroy method '{self.destroy_method_name}' on bean "
                               f"with name '{self.name}' failed: {type(e).__name__}: {e}")

    __call__ = destroy


def _destroy_method_name(bean: Any, definition: 'Definition') -> Optional[str]:
    name = definition.destroy_method_name
    if name != INFER_METHOD:
        return name
    for candidate in _INFERRED_DESTROY_METHODS:
        if callable(getattr(bean, candidate, None)):
            return candidate
    return None
