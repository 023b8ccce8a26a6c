"""
TypeConverter

Converts resolved values to the type an injection point declares.

Conversion is deliberately small: strings become scalars, enums, paths and
decimals; iterables are coerced into the declared container type; anything
already assignable passes through untouched.
"""

import enum
import typing
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .exceptions import TypeMismatchError
from .type_inspector import ReflectiveTypeInspector, TypeInspector, raw_class, type_name, unwrap_optional

_TRUE_STRINGS = frozenset({"true", "on", "yes", "1"})
_FALSE_STRINGS = frozenset({"false", "off", "no", "0"})


def _to_bool(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise ValueError(f"Invalid boolean value '{text}'")


class TypeConverter:
    """Converts values to declared target types.

    Custom converters can be registered per target class::

        converter = TypeConverter()
        converter.register(Duration, Duration.parse)
    """

    def __init__(self, type_inspector: Optional[TypeInspector] = None):
        self._inspector = type_inspector or ReflectiveTypeInspector()
        self._converters: Dict[type, Callable[[Any], Any]] = {
            bool: _to_bool,
            int: lambda s: int(s.strip()) if isinstance(s, str) else int(s),
            float: float,
            complex: complex,
            Decimal: Decimal,
            Path: Path,
            bytes: lambda s: s.encode("utf-8"),
            str: str,
        }

    def register(self, target: type, converter: Callable[[Any], Any]) -> None:
        self._converters[target] = converter

    def convert_if_necessary(self, value: Any, required_type: Any,
                             description: Optional[str] = None) -> Any:
        """Return ``value`` converted to ``required_type``.

        Raises:
            TypeMismatchError: When the value cannot be converted
        """
        if required_type is None or value is None:
            return value
        if self._inspector.is_assignable(required_type, value) and not self._needs_element_conversion(
                required_type, value):
            return value

        target, _ = unwrap_optional(required_type)
        cls = raw_class(target)
        if cls is None:
            return value
        try:
            if isinstance(value, str):
                return self._convert_string(value, cls)
            if cls in (list, tuple, set, frozenset) and _is_iterable(value):
                return self._convert_collection(value, cls, target)
            if cls is dict and isinstance(value, Mapping):
                return self._convert_mapping(value, target)
            converter = self._converters.get(cls)
            if converter is not None and cls not in (str, bytes):
                return converter(value)
        except TypeMismatchError:
            raise
        except (ValueError, TypeError, KeyError, InvalidOperation) as e:
            raise TypeMismatchError(
                f"Failed to convert value {value!r} to required type '{type_name(required_type)}'"
                f"{' for ' + description if description else ''}: {e}",
                value=value,
                required_type=required_type,
            ) from e
        raise TypeMismatchError(
            f"Cannot convert value of type '{type(value).__name__}' to required type "
            f"'{type_name(required_type)}'{' for ' + description if description else ''}: "
            f"no matching conversion found",
            value=value,
            required_type=required_type,
        )

    def _convert_string(self, text: str, cls: type) -> Any:
        if issubclass(cls, enum.Enum):
            stripped = text.strip()
            try:
                return cls[stripped]
            except KeyError:
                return cls(stripped)
        converter = self._converters.get(cls)
        if converter is not None:
            return converter(text)
        if cls in (list, tuple, set, frozenset):
            return cls(part.strip() for part in text.split(",") if part.strip())
        raise TypeError(f"no converter registered for '{cls.__name__}'")

    def _needs_element_conversion(self, required_type: Any, value: Any) -> bool:
        target, _ = unwrap_optional(required_type)
        args = typing.get_args(target)
        if not args or isinstance(value, str):
            return False
        cls = raw_class(target)
        if cls in (list, set, frozenset) and _is_iterable(value):
            return any(not self._inspector.is_assignable(args[0], v) for v in value)
        if cls is dict and isinstance(value, Mapping) and len(args) == 2:
            return any(not self._inspector.is_assignable(args[1], v) for v in value.values())
        return False

    def _convert_collection(self, value: Any, cls: type, target: Any) -> Any:
        args = typing.get_args(target)
        if cls is tuple and args and args[-1] is not Ellipsis:
            return tuple(self.convert_if_necessary(v, t) for v, t in zip(value, args))
        element_type = args[0] if args else None
        return cls(self.convert_if_necessary(v, element_type) for v in value)

    def _convert_mapping(self, value: Mapping, target: Any) -> Dict[Any, Any]:
        args = typing.get_args(target)
        key_type, value_type = (args[0], args[1]) if len(args) == 2 else (None, None)
        return {
            self.convert_if_necessary(k, key_type): self.convert_if_necessary(v, value_type)
            for k, v in value.items()
        }


def _is_iterable(value: Any) -> bool:
    if isinstance(value, (str, bytes, Mapping)):
        return False
    try:
        iter(value)
    except TypeError:
        return False
    return True

