"""
Unresolved Values

Placeholder types that a Definition carries for constructor arguments and
property values. The ValueResolver walks them and produces live objects.

Anything that is not one of these types is a plain literal: it is passed
through unchanged (strings are first offered to the string evaluator).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type, TYPE_CHECKING

if TYPE_CHECKING:
    from .definition import Definition


@dataclass
class TypedString:
    """A string literal that must be converted to ``target_type`` before use.

    ``dynamic`` is set by the resolver when the string evaluator altered the
    value; dynamic values are re-evaluated on every use instead of being
    cached in resolved-argument form.
    """
    value: Optional[str]
    target_type: Optional[Type] = None
    dynamic: bool = False

    def mark_dynamic(self) -> None:
        self.dynamic = True


@dataclass(frozen=True)
class BeanRef:
    """Reference to another bean by name (or by type when ``bean_type`` is set).

    Attributes:
        name: Target bean name; ignored when ``bean_type`` is given
        bean_type: Resolve the unique bean of this type instead of by name
        to_parent: Resolve in the parent container only
        optional: Resolve to ``None`` instead of failing when absent
    """
    name: Optional[str] = None
    bean_type: Optional[Type] = None
    to_parent: bool = False
    optional: bool = False

    def __post_init__(self):
        if self.name is None and self.bean_type is None:
            raise ValueError("BeanRef requires a name or a bean_type")

    def __str__(self) -> str:
        target = self.name if self.bean_type is None else self.bean_type.__name__
        return f"<{target}>"


@dataclass(frozen=True)
class BeanNameRef:
    """Injects the *name* of another bean, verifying that the bean exists."""
    name: str


@dataclass(eq=False)
class InnerBean:
    """A nested, anonymous definition realized as a prototype for its owner.

    ``name`` is the declared base name; when omitted a synthetic name derived
    from the identity of the definition is used.
    """
    definition: 'Definition'
    name: Optional[str] = None


class ManagedList(list):
    """Ordered list whose elements may be unresolved values."""

    def __init__(self, iterable=(), element_type: Optional[Type] = None):
        super().__init__(iterable)
        self.element_type = element_type


class ManagedSet(list):
    """Insertion-ordered set whose elements may be unresolved values.

    Kept as a list until resolution: unresolved elements (for example
    ``InnerBean``) are not necessarily hashable.
    """

    def __init__(self, iterable=(), element_type: Optional[Type] = None):
        super().__init__(iterable)
        self.element_type = element_type


class ManagedMap(dict):
    """Insertion-ordered map whose keys and values may be unresolved values.

    Unhashable key placeholders can be supplied through ``entries``.
    """

    def __init__(self, mapping=None, entries: Optional[List[tuple]] = None,
                 key_type: Optional[Type] = None, value_type: Optional[Type] = None):
        super().__init__(mapping or {})
        self.extra_entries: List[tuple] = list(entries or [])
        self.key_type = key_type
        self.value_type = value_type

    def all_entries(self) -> List[tuple]:
        return list(self.items()) + self.extra_entries


@dataclass
class NullValue:
    """Explicit ``None`` that must not be treated as "no value declared"."""
    pass


NULL = NullValue()


@dataclass
class _AutowiredMarker:
    """Stands in for a parameter that was satisfied by autowiring.

    Stored in a definition's prepared arguments so that a later build
    re-resolves the dependency instead of reusing the first result.
    """
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return "<autowired>"


AUTOWIRED = _AutowiredMarker()
