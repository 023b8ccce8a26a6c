"""
StringEvaluator

Evaluation of string literals found in definitions. The factory treats the
evaluator as opaque: a result that differs from its input marks the literal
as dynamic, and dynamic literals are evaluated again on every use.

PlaceholderEvaluator substitutes ``${key}`` and ``${key:default}``
placeholders from any mapping::

    evaluator = PlaceholderEvaluator(os.environ)
    factory = BeanFactory(string_evaluator=evaluator)
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional, Set, TYPE_CHECKING

from .exceptions import PlaceholderResolutionError

if TYPE_CHECKING:
    from .definition import Definition

_PLACEHOLDER = re.compile(r"\$\{([^${}:]+)(?::([^${}]*))?\}")


class StringEvaluator(ABC):
    """Contract for evaluating string literals."""

    @abstractmethod
    def evaluate(self, value: str, definition: Optional['Definition'] = None) -> Any:
        """Return the evaluated form of ``value``; return it unchanged when static."""


class CallableEvaluator(StringEvaluator):
    """Adapts a plain ``callable(value, definition)`` to the evaluator contract."""

    def __init__(self, func: Callable[[str, Optional['Definition']], Any]):
        self._func = func

    def evaluate(self, value: str, definition: Optional['Definition'] = None) -> Any:
        return self._func(value, definition)


class PlaceholderEvaluator(StringEvaluator):
    """Replaces ``${key}`` / ``${key:default}`` placeholders from a mapping.

    Replacement values may contain placeholders themselves; they are resolved
    recursively. A placeholder that refers back to itself is an error.

    Args:
        properties: Source of placeholder values (e.g. ``os.environ``)
        ignore_unresolvable: Leave unknown placeholders in place instead of failing

    Example::

        evaluator = PlaceholderEvaluator({"db.host": "localhost"})
        evaluator.evaluate("jdbc://${db.host}:${db.port:5432}/app")
        # 'jdbc://localhost:5432/app'
    """

    def __init__(self, properties: Mapping[str, Any], ignore_unresolvable: bool = False):
        self.properties = properties
        self.ignore_unresolvable = ignore_unresolvable

    def evaluate(self, value: str, definition: Optional['Definition'] = None) -> Any:
        if "${" not in value:
            return value
        return self._replace(value, set())

    def _replace(self, value: str, visiting: Set[str]) -> str:
        def substitute(match: 're.Match') -> str:
            key, default = match.group(1).strip(), match.group(2)
            if key in visiting:
                raise PlaceholderResolutionError(
                    f"Circular placeholder reference '{key}' in property definitions",
                    placeholder=key,
                )
            if key in self.properties:
                resolved = str(self.properties[key])
            elif default is not None:
                resolved = default
            elif self.ignore_unresolvable:
                return match.group(0)
            else:
                raise PlaceholderResolutionError(
                    f"Could not resolve placeholder '{key}' in value \"{value}\"",
                    placeholder=key,
                )
            return self._replace(resolved, visiting | {key})

        return _PLACEHOLDER.sub(substitute, value)


def as_evaluator(evaluator: Any) -> Optional[StringEvaluator]:
    """Accept either a ``StringEvaluator`` or a plain callable."""
    if evaluator is None or isinstance(evaluator, StringEvaluator):
        return evaluator
    if callable(evaluator):
        return CallableEvaluator(evaluator)
    raise TypeError(f"Expected a StringEvaluator or callable, got {type(evaluator).__name__}")
