"""
ValueResolver

Turns the unresolved values of a definition (constructor arguments and
property values) into live objects for one bean being built.

Nested containers are walked recursively in a single pass; references are
resolved through the factory, which records a dependency edge from the
owning bean to every bean it references.
"""

import logging
from typing import Any, Dict, List, Optional, Set, TYPE_CHECKING

from .definition import Definition
from .descriptor import DependencyDescriptor
from .exceptions import (
    AmbiguousValueError,
    BeanCreationError,
    BeanGraphError,
    CurrentlyInCreationError,
    NoSuchParentContainerError,
    TypeMismatchError,
    UnresolvableReferenceError,
    find_cause,
)
from .type_inspector import type_name
from .values import (
    BeanNameRef,
    BeanRef,
    InnerBean,
    ManagedList,
    ManagedMap,
    ManagedSet,
    NullValue,
    TypedString,
)

if TYPE_CHECKING:
    from .factory import BeanFactory

logger = logging.getLogger(__name__)

INNER_BEAN_PREFIX = "(inner bean)"
GENERATED_NAME_SEPARATOR = "#"

_STRUCTURED_VALUES = (BeanRef, BeanNameRef, InnerBean, ManagedList, ManagedSet, ManagedMap,
                      DependencyDescriptor)


def keyed_arg_name(arg_name: str, key: Any) -> str:
    """Error-message path for one element of a container value.

    >>> keyed_arg_name("constructor argument 2", "region")
    "constructor argument 2 with key ['region']"
    """
    return f"{arg_name} with key [{key!r}]"


class ValueResolver:
    """Resolves the values of one bean definition.

    Args:
        factory: The factory building the bean
        bean_name: Name of the bean that owns the values
        definition: Merged definition of the owning bean

    Example::

        resolver = ValueResolver(factory, "orderService", definition)
        repository = resolver.resolve("bean property 'repository'", BeanRef("orderRepository"))
    """

    def __init__(self, factory: 'BeanFactory', bean_name: str, definition: Definition):
        self.factory = factory
        self.bean_name = bean_name
        self.definition = definition
        self._dynamic_literals: Set[str] = set()

    def resolve(self, arg_name: str, value: Any) -> Any:
        """Return the resolved form of ``value``; ``arg_name`` locates it in error messages."""
        if isinstance(value, BeanRef):
            return self._resolve_reference(arg_name, value)
        if isinstance(value, BeanNameRef):
            if not self.factory.contains(value.name):
                raise UnresolvableReferenceError(
                    f"Invalid bean name '{value.name}' in bean reference for {arg_name}",
                    bean_name=self.bean_name,
                    resource_description=self.definition.resource_description,
                )
            return value.name
        if isinstance(value, InnerBean):
            return self.resolve_inner_bean(arg_name, value.name, value.definition)
        if isinstance(value, DependencyDescriptor):
            autowired_names: List[str] = []
            result = self.factory.resolve_dependency(value, self.bean_name, autowired_names)
            for autowired_name in autowired_names:
                if self.factory.contains(autowired_name):
                    self.factory.register_dependency(self.bean_name, autowired_name)
            return result
        if isinstance(value, ManagedList):
            return [self.resolve(keyed_arg_name(arg_name, i), element)
                    for i, element in enumerate(value)]
        if isinstance(value, ManagedSet):
            return self._resolve_set(arg_name, value)
        if isinstance(value, ManagedMap):
            return self._resolve_map(arg_name, value)
        if isinstance(value, TypedString):
            return self._resolve_typed_string(arg_name, value)
        if isinstance(value, NullValue):
            return None
        if isinstance(value, str):
            return self.evaluate(value)
        return value

    def is_cacheable(self, value: Any) -> bool:
        """Whether the resolved form of ``value`` may be cached on the definition.

        References, inner beans and containers must be resolved again for
        every build; so must literals that the string evaluator altered.
        """
        if isinstance(value, TypedString):
            return not value.dynamic
        if isinstance(value, str):
            return value not in self._dynamic_literals
        return not isinstance(value, _STRUCTURED_VALUES)

    def evaluate(self, value: str) -> Any:
        evaluator = self.factory.string_evaluator
        if evaluator is None:
            return value
        result = evaluator.evaluate(value, self.definition)
        if result is not value and result != value:
            self._dynamic_literals.add(value)
        return result

    def _resolve_typed_string(self, arg_name: str, value: TypedString) -> Any:
        if value.value is None:
            return None
        evaluated = self.evaluate(value.value)
        if value.value in self._dynamic_literals:
            value.mark_dynamic()
        if value.target_type is None:
            return evaluated
        try:
            return self.factory.type_converter.convert_if_necessary(evaluated, value.target_type)
        except TypeMismatchError as e:
            raise BeanCreationError(
                f"Error converting typed String value for {arg_name}: {e}",
                bean_name=self.bean_name,
                resource_description=self.definition.resource_description,
            ) from e

    def _resolve_reference(self, arg_name: str, ref: BeanRef) -> Any:
        try:
            if ref.to_parent:
                parent = self.factory.parent
                if parent is None:
                    raise NoSuchParentContainerError(
                        f"Cannot resolve reference to bean {ref} in parent factory: "
                        f"no parent factory available",
                        bean_name=self.bean_name,
                        resource_description=self.definition.resource_description,
                    )
                if ref.bean_type is not None:
                    return parent.get_by_type(ref.bean_type)
                return parent.get(ref.name)

            if ref.bean_type is not None:
                if ref.optional and not self.factory.names_for_type(ref.bean_type):
                    return None
                name, bean = self.factory.resolve_named_bean(ref.bean_type)
            else:
                name = self.factory.canonical_name(ref.name)
                if ref.optional and not self.factory.contains(name):
                    return None
                bean = self.factory.get(name)
            self.factory.register_dependency(self.bean_name, name)
            return bean
        except NoSuchParentContainerError:
            raise
        except BeanGraphError as e:
            error_type = (CurrentlyInCreationError
                          if find_cause(e, CurrentlyInCreationError) is not None
                          else UnresolvableReferenceError)
            raise error_type(
                f"Cannot resolve reference to bean {ref} while setting {arg_name}: {e}",
                bean_name=self.bean_name,
                resource_description=self.definition.resource_description,
            ) from e

    def resolve_inner_bean(self, arg_name: str, inner_name: Optional[str],
                           inner_definition: Definition) -> Any:
        """Build an inner bean as a fresh prototype owned by the current bean."""
        base_name = inner_name or f"{INNER_BEAN_PREFIX}{GENERATED_NAME_SEPARATOR}{id(inner_definition):x}"
        actual_name = self._unique_inner_name(base_name)
        try:
            merged = self.factory.get_merged_inner_definition(actual_name, inner_definition)
            for depends_on in merged.depends_on:
                self.factory.register_dependency(actual_name, depends_on)
                self.factory.get(depends_on)
            inner = self.factory.create_bean(actual_name, merged, None)
            if self.definition.is_singleton:
                # non-singleton owners are untracked, so their inner beans keep the base name
                self.factory.registry.register_contained_bean(actual_name, self.bean_name)
                self.factory.register_disposable_if_necessary(actual_name, inner, merged,
                                                              owned_by_singleton=True)
            logger.debug(f"Created inner bean '{actual_name}' for bean '{self.bean_name}'")
            return self.factory.object_for_bean_instance(inner, actual_name, actual_name, merged)
        except BeanGraphError as e:
            described = ""
            if inner_definition.bean_type is not None:
                described = f" of type [{type_name(inner_definition.bean_type)}]"
            error_type = (CurrentlyInCreationError
                          if find_cause(e, CurrentlyInCreationError) is not None
                          else BeanCreationError)
            raise error_type(
                f"Cannot create inner bean '{actual_name}'{described} while setting {arg_name}: {e}",
                bean_name=self.bean_name,
                resource_description=self.definition.resource_description,
            ) from e

    def _unique_inner_name(self, base_name: str) -> str:
        actual = base_name
        counter = 0
        while self.factory.is_name_in_use(actual):
            counter += 1
            actual = f"{base_name}{GENERATED_NAME_SEPARATOR}{counter}"
        return actual

    def _resolve_set(self, arg_name: str, value: ManagedSet) -> Set[Any]:
        result = set()
        for i, element in enumerate(value):
            resolved = self.resolve(keyed_arg_name(arg_name, i), element)
            if resolved is None:
                raise AmbiguousValueError(
                    f"Error creating bean with name '{self.bean_name}': "
                    f"set element {keyed_arg_name(arg_name, i)} resolved to None; "
                    f"a set cannot hold None elements safely"
                )
            result.add(resolved)
        return result

    def _resolve_map(self, arg_name: str, value: ManagedMap) -> Dict[Any, Any]:
        result = {}
        for key, element in value.all_entries():
            resolved_key = self.resolve(arg_name, key)
            if resolved_key is None:
                raise AmbiguousValueError(
                    f"Error creating bean with name '{self.bean_name}': "
                    f"map key {key!r} for {arg_name} resolved to None"
                )
            result[resolved_key] = self.resolve(keyed_arg_name(arg_name, resolved_key), element)
        return result
