"""
Definition

Data classes describing how a bean is built: target type or factory method,
scope, constructor arguments, property values and lifecycle hints.
"""

import copy
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Type

from .scope import PROTOTYPE, SINGLETON

AUTOWIRE_NO = "no"
AUTOWIRE_BY_NAME = "by_name"
AUTOWIRE_BY_TYPE = "by_type"
AUTOWIRE_CONSTRUCTOR = "constructor"

INFER_METHOD = "(inferred)"


@dataclass(eq=False)
class ValueHolder:
    """A single constructor argument value with optional type and name hints.

    ``source`` links a resolved holder back to the declared one.
    """
    value: Any
    type: Optional[Type] = None
    name: Optional[str] = None
    source: Any = None

    def copy(self) -> 'ValueHolder':
        return ValueHolder(self.value, self.type, self.name, self.source)


class ConstructorArguments:
    """Constructor argument values: indexed ones plus a generic (unindexed) list.

    Example::

        args = ConstructorArguments()
        args.add_indexed(0, BeanRef("dataSource"))
        args.add_generic("eu-west-1", name="region")
    """

    def __init__(self):
        self.indexed: Dict[int, ValueHolder] = {}
        self.generic: List[ValueHolder] = []

    def add_indexed(self, index: int, value: Any, type: Optional[Type] = None,
                    name: Optional[str] = None) -> 'ConstructorArguments':
        if index < 0:
            raise ValueError("Argument index must not be negative")
        holder = value if isinstance(value, ValueHolder) else ValueHolder(value, type, name)
        self.indexed[index] = holder
        return self

    def add_generic(self, value: Any, type: Optional[Type] = None,
                    name: Optional[str] = None) -> 'ConstructorArguments':
        holder = value if isinstance(value, ValueHolder) else ValueHolder(value, type, name)
        if holder not in self.generic:
            self.generic.append(holder)
        return self

    def get_indexed(self, index: int, required_type: Optional[Type] = None,
                    required_name: Optional[str] = None) -> Optional[ValueHolder]:
        holder = self.indexed.get(index)
        if holder is None:
            return None
        if holder.type is not None and required_type is not None and holder.type is not required_type:
            return None
        if holder.name is not None and required_name is not None and holder.name != required_name:
            return None
        return holder

    def get_generic(self, required_type: Optional[Type] = None,
                    required_name: Optional[str] = None,
                    used: Optional[Set[int]] = None) -> Optional[ValueHolder]:
        """Find a generic value matching the given type/name that is not yet used.

        ``used`` holds ``id()`` of holders already bound to other parameters.
        """
        for holder in self.generic:
            if used is not None and id(holder) in used:
                continue
            if holder.name is not None and (required_name is None or holder.name != required_name):
                continue
            if holder.type is not None and (required_type is None or holder.type is not required_type):
                continue
            if (required_type is not None and holder.type is None and holder.name is None
                    and not _could_hold(holder.value, required_type)):
                continue
            return holder
        return None

    def get_argument(self, index: int, required_type: Optional[Type] = None,
                     required_name: Optional[str] = None,
                     used: Optional[Set[int]] = None) -> Optional[ValueHolder]:
        holder = self.get_indexed(index, required_type, required_name)
        if holder is None:
            holder = self.get_generic(required_type, required_name, used)
        return holder

    def get_arg_count(self) -> int:
        return len(self.indexed) + len(self.generic)

    def is_empty(self) -> bool:
        return not self.indexed and not self.generic

    def add_all(self, other: 'ConstructorArguments') -> None:
        for index, holder in other.indexed.items():
            self.indexed[index] = holder.copy()
        for holder in other.generic:
            self.add_generic(holder.copy())

    def copy(self) -> 'ConstructorArguments':
        result = ConstructorArguments()
        result.add_all(self)
        return result

    def __len__(self) -> int:
        return self.get_arg_count()


def _could_hold(value: Any, required_type: Type) -> bool:
    from .values import BeanRef, InnerBean, ManagedList, ManagedMap, ManagedSet, TypedString
    if isinstance(value, (BeanRef, InnerBean, ManagedList, ManagedMap, ManagedSet, TypedString)):
        return True
    if not isinstance(required_type, type):
        return True
    return isinstance(value, required_type)


@dataclass(eq=False)
class Definition:
    """Bean definition (template for building one kind of object).

    Either ``bean_type`` is instantiated through one of its constructors, or
    ``factory_method_name`` is invoked: as a static/class method on
    ``bean_type`` when ``factory_bean_name`` is unset, otherwise on the bean
    named ``factory_bean_name``.

    Parameters without a declared argument value are autowired by type
    unless ``autowire_mode`` is ``"no"``; ``"by_name"`` and ``"by_type"``
    additionally fill annotated attributes after construction.

    Unset attributes (``None``) are inherited from ``parent_name`` when the
    definition is merged.
    """
    bean_type: Optional[Type] = None
    scope: Optional[str] = None
    factory_bean_name: Optional[str] = None
    factory_method_name: Optional[str] = None
    constructor_args: ConstructorArguments = field(default_factory=ConstructorArguments)
    property_values: Dict[str, Any] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)
    primary: bool = False
    priority: Optional[int] = None
    lazy_init: Optional[bool] = None
    autowire_candidate: bool = True
    autowire_mode: Optional[str] = None
    init_method_name: Optional[str] = None
    destroy_method_name: Optional[str] = None
    lenient_constructor_resolution: bool = True
    non_public_access_allowed: bool = True
    parent_name: Optional[str] = None
    is_abstract: bool = False
    synthetic: bool = False
    description: Optional[str] = None
    resource_description: Optional[str] = None

    # Resolution cache, populated on merged definitions only
    resolved_executable: Any = field(default=None, repr=False, compare=False)
    resolved_arguments: Optional[List[Any]] = field(default=None, repr=False, compare=False)
    prepared_arguments: Optional[List[Any]] = field(default=None, repr=False, compare=False)
    arguments_resolved: bool = field(default=False, repr=False, compare=False)
    stale: bool = field(default=False, repr=False, compare=False)
    _lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def effective_scope(self) -> str:
        return self.scope or SINGLETON

    @property
    def is_singleton(self) -> bool:
        return self.effective_scope == SINGLETON

    @property
    def is_prototype(self) -> bool:
        return self.effective_scope == PROTOTYPE

    @property
    def is_lazy(self) -> bool:
        return bool(self.lazy_init)

    @property
    def effective_autowire_mode(self) -> str:
        return self.autowire_mode or AUTOWIRE_CONSTRUCTOR

    @property
    def is_factory_method(self) -> bool:
        return self.factory_method_name is not None

    @property
    def resolution_lock(self):
        return self._lock

    def has_constructor_args(self) -> bool:
        return not self.constructor_args.is_empty()

    def clear_resolution_cache(self) -> None:
        with self._lock:
            self.resolved_executable = None
            self.resolved_arguments = None
            self.prepared_arguments = None
            self.arguments_resolved = False

    def copy(self) -> 'Definition':
        """Return an independent copy without any resolution cache."""
        result = copy.copy(self)
        result.constructor_args = self.constructor_args.copy()
        result.property_values = dict(self.property_values)
        result.depends_on = list(self.depends_on)
        result._lock = threading.RLock()
        result.resolved_executable = None
        result.resolved_arguments = None
        result.prepared_arguments = None
        result.arguments_resolved = False
        result.stale = False
        return result


_INHERITED_FIELDS = (
    "bean_type", "scope", "factory_bean_name", "factory_method_name", "lazy_init",
    "autowire_mode", "init_method_name", "destroy_method_name", "priority",
    "description", "resource_description",
)


def merge(parent: Definition, child: Definition) -> Definition:
    """Overlay ``child`` on an already merged ``parent``.

    Unset child attributes are taken from the parent; constructor arguments
    and property values are combined with the child winning. ``depends_on``,
    ``primary`` and ``is_abstract`` always come from the child.
    """
    result = parent.copy()
    for name in _INHERITED_FIELDS:
        value = getattr(child, name)
        if value is not None:
            setattr(result, name, value)
    result.constructor_args.add_all(child.constructor_args)
    result.property_values.update(child.property_values)
    result.depends_on = list(child.depends_on)
    result.primary = child.primary
    result.is_abstract = child.is_abstract
    result.autowire_candidate = child.autowire_candidate
    result.lenient_constructor_resolution = child.lenient_constructor_resolution
    result.non_public_access_allowed = child.non_public_access_allowed
    result.synthetic = child.synthetic
    result.parent_name = None
    return result
