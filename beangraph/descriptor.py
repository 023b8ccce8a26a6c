"""
DependencyDescriptor

Describes a single injection point: the type it requires, its name (used as
a last tie-break between candidates), whether it is required, and how
multi-valued injection points should be filled.
"""

import collections.abc
import copy
import typing
from typing import Any, List, Optional, Tuple, TYPE_CHECKING

from .exceptions import NoUniqueCandidateError
from .type_inspector import raw_class, type_name, unwrap_optional

if TYPE_CHECKING:
    from .factory import BeanFactory

_COLLECTION_TYPES = (
    list, tuple, set, frozenset,
    collections.abc.Collection, collections.abc.Sequence, collections.abc.MutableSequence,
    collections.abc.Iterable, collections.abc.Set, collections.abc.MutableSet,
)
_MAPPING_TYPES = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


class DependencyDescriptor:
    """An injection point: constructor parameter, factory method parameter or attribute.

    ``Optional[X]`` is unwrapped to ``X`` and makes the point non-required.

    Attributes:
        dependency_type: The declared type (``Optional`` removed)
        name: Parameter or attribute name, matched against candidate names and aliases
        required: Whether a missing dependency is an error
        eager: Whether FactoryBeans may be initialized to determine their product type
        ordered: Sort multi-valued results by definition priority
        owner: Human-readable location used in error messages

    Example::

        descriptor = DependencyDescriptor(list[Plugin], name="plugins")
        plugins = factory.resolve_dependency(descriptor)
    """

    def __init__(self, dependency_type: Any, name: Optional[str] = None, required: bool = True,
                 eager: bool = True, ordered: bool = True, owner: Optional[str] = None):
        unwrapped, optional = unwrap_optional(dependency_type)
        self.dependency_type = unwrapped
        self.name = name
        self.required = required and not optional
        self.eager = eager
        self.ordered = ordered
        self.owner = owner
        self.fallback = False
        self.multi_element = False

    @property
    def dependency_class(self) -> Optional[type]:
        return raw_class(self.dependency_type)

    def is_collection(self) -> bool:
        cls = self.dependency_class
        return cls is not None and cls in _COLLECTION_TYPES

    def is_mapping(self) -> bool:
        cls = self.dependency_class
        return cls is not None and cls in _MAPPING_TYPES

    def is_multiple(self) -> bool:
        """Whether the point is a collection or a ``str``-keyed mapping of beans."""
        if self.is_collection():
            return self.element_type() is not None
        if self.is_mapping():
            key_type, value_type = self.mapping_types()
            return key_type is str and value_type is not None
        return False

    def element_type(self) -> Optional[Any]:
        """Element type of a collection injection point, e.g. ``Plugin`` for ``list[Plugin]``."""
        args = typing.get_args(self.dependency_type)
        if not args:
            return None
        if self.dependency_class is tuple and len(args) != 2:
            return None
        if self.dependency_class is tuple and args[1] is not Ellipsis:
            return None
        return args[0]

    def mapping_types(self) -> Tuple[Optional[Any], Optional[Any]]:
        args = typing.get_args(self.dependency_type)
        if len(args) != 2:
            return None, None
        return args[0], args[1]

    def for_fallback_match(self) -> 'DependencyDescriptor':
        """Copy of this descriptor that allows relaxed generic matching."""
        result = copy.copy(self)
        result.fallback = True
        return result

    def for_elements(self, element_type: Any) -> 'DependencyDescriptor':
        """Descriptor for the elements of a multi-valued injection point."""
        result = copy.copy(self)
        result.dependency_type = element_type
        result.multi_element = True
        return result

    def resolve_candidate(self, bean_name: str, required_type: Any, factory: 'BeanFactory') -> Any:
        """Obtain the candidate bean; overridable to customize the lookup."""
        return factory.get(bean_name)

    def resolve_not_unique(self, candidates: List[str]) -> Any:
        """Outcome when several candidates remain after tie-breaking.

        Optional points resolve to ``None``; required ones fail. Overridable.

        Raises:
            NoUniqueCandidateError: When the point is required
        """
        if not self.required:
            return None
        raise self.not_unique_error(candidates)

    def not_unique_error(self, candidates: List[str]) -> NoUniqueCandidateError:
        return NoUniqueCandidateError(
            f"No qualifying bean of type '{type_name(self.dependency_type)}' available: "
            f"expected single matching bean but found {len(candidates)}: "
            f"{', '.join(candidates)}. Dependency: {self.describe()}",
            required_type=self.dependency_type,
            candidates=candidates,
        )

    def describe(self) -> str:
        target = f"'{self.name}'" if self.name else "dependency"
        location = f" of {self.owner}" if self.owner else ""
        return f"{target} of type '{type_name(self.dependency_type)}'{location}"

    def __repr__(self) -> str:
        return f"<DependencyDescriptor {self.describe()} required={self.required}>"
