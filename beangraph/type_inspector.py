"""
TypeInspector

Runtime type introspection used by the resolvers:

- Discovering candidate executables (constructors and factory methods)
- Extracting parameter types from signatures, including forward references
- Assignability checks that understand typing constructs
- The type-difference weight used to rank overload candidates

Python has a single ``__init__`` per class, so alternative constructors and
factory-method overloads are declared explicitly with the ``constructor`` and
``overload_of`` markers::

    class Connection:
        def __init__(self, url: str): ...

        @classmethod
        @constructor
        def from_parts(cls, host: str, port: int) -> 'Connection': ...

    class ConnectionFactory:
        @staticmethod
        def create(url: str) -> Connection: ...

        @staticmethod
        @overload_of("create")
        def create_pooled(url: str, size: int) -> Connection: ...
"""

import ast
import inspect
import sys
import types
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

from .exceptions import TypeMismatchError

MAX_WEIGHT = sys.maxsize

_CONSTRUCTOR_MARK = "__beangraph_constructor__"
_OVERLOAD_MARK = "__beangraph_overload_of__"

_SCALAR_TYPES = (int, float, bool, complex)


def constructor(func: Callable) -> Callable:
    """Mark a classmethod as an alternative constructor candidate."""
    setattr(func, _CONSTRUCTOR_MARK, True)
    return func


def overload_of(name: str) -> Callable[[Callable], Callable]:
    """Mark a method as an overload of the factory method called ``name``."""
    def mark(func: Callable) -> Callable:
        setattr(func, _OVERLOAD_MARK, name)
        return func
    return mark


@dataclass(frozen=True)
class Parameter:
    """A single executable parameter."""
    name: str
    type: Any = None
    has_default: bool = False
    default: Any = None


@dataclass(eq=False)
class Executable:
    """A constructor or factory method that can build a bean.

    Attributes:
        name: Attribute name (``__init__`` for the primary constructor)
        target: The callable to invoke; a class for the primary constructor
        parameters: Parameters excluding ``self``/``cls`` and var-args
        declaring_type: Class that declares the executable
        is_constructor: True for ``__init__`` and ``@constructor`` classmethods
        is_static: True when no factory bean instance is required
        return_type: Declared return type, if any
        returns_nothing: True when the return annotation is explicitly ``None``
    """
    name: str
    target: Callable
    parameters: Tuple[Parameter, ...]
    declaring_type: Optional[Type] = None
    is_constructor: bool = False
    is_static: bool = True
    return_type: Any = None
    returns_nothing: bool = False
    accepts_var_args: bool = False
    _function: Any = field(default=None, repr=False)

    @property
    def parameter_count(self) -> int:
        return len(self.parameters)

    @property
    def parameter_types(self) -> List[Any]:
        return [p.type for p in self.parameters]

    @property
    def parameter_names(self) -> List[str]:
        return [p.name for p in self.parameters]

    @property
    def is_public(self) -> bool:
        return self.name == "__init__" or not self.name.startswith("_")

    def bind_to(self, instance: Any) -> Callable:
        """Return the callable bound to a factory bean instance."""
        return getattr(instance, self.name)

    def describe(self) -> str:
        owner = self.declaring_type.__name__ if self.declaring_type is not None else "?"
        params = ", ".join(type_name(p.type) for p in self.parameters)
        return f"{owner}.{self.name}({params})"

    def __repr__(self) -> str:
        return f"<Executable {self.describe()}>"


def type_name(tp: Any) -> str:
    if tp is None:
        return "Any"
    if isinstance(tp, type):
        return tp.__name__
    return str(tp).replace("typing.", "")


def unwrap_annotated(tp: Any) -> Any:
    if typing.get_origin(tp) is typing.Annotated:
        return typing.get_args(tp)[0]
    return tp


def unwrap_optional(tp: Any) -> Tuple[Any, bool]:
    """Strip ``Optional[...]``; returns ``(inner_type, was_optional)``."""
    tp = unwrap_annotated(tp)
    if typing.get_origin(tp) is Union or _is_pep604_union(tp):
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) < len(typing.get_args(tp)):
            if len(args) == 1:
                return args[0], True
            return Union[tuple(args)], True
    return tp, False


def _is_pep604_union(tp: Any) -> bool:
    union_type = getattr(types, "UnionType", None)
    return union_type is not None and isinstance(tp, union_type)


def raw_class(tp: Any) -> Optional[type]:
    """The runtime class behind a (possibly parameterised) annotation."""
    tp = unwrap_annotated(tp)
    origin = typing.get_origin(tp)
    if isinstance(origin, type):
        return origin
    if isinstance(tp, type):
        return tp
    supertype = getattr(tp, "__supertype__", None)  # NewType
    if supertype is not None:
        return raw_class(supertype)
    return None


def is_interface(tp: Any) -> bool:
    """Whether ``tp`` plays the role of an interface: ABC, protocol or abstract class."""
    cls = raw_class(tp)
    if cls is None:
        return False
    if getattr(cls, "_is_protocol", False):
        return True
    if inspect.isabstract(cls):
        return True
    return cls.__module__ in ("collections.abc", "_collections_abc")


class TypeInspector(ABC):
    """Capability interface over runtime type information."""

    @abstractmethod
    def constructors(self, cls: Type) -> List[Executable]:
        """All constructor candidates of ``cls``."""

    @abstractmethod
    def factory_methods(self, cls: Type, name: str, static: bool) -> List[Executable]:
        """All factory-method candidates named ``name`` (including marked overloads)."""

    @abstractmethod
    def parameter_types(self, executable: Executable) -> List[Any]:
        """Declared parameter types of ``executable``."""

    @abstractmethod
    def is_assignable(self, declared: Any, value: Any) -> bool:
        """Whether ``value`` may be passed where ``declared`` is expected."""

    @abstractmethod
    def is_type_assignable(self, declared: Any, actual: Any) -> bool:
        """Whether objects of type ``actual`` may be passed where ``declared`` is expected."""

    def type_difference_weight(self, param_types: List[Any], args: List[Any]) -> int:
        """Weight how far ``args`` are from ``param_types``; lower is a closer match.

        Each parameter declared as a superclass of the argument's runtime type
        adds 2 per inheritance level, an interface adds 1 and an exact match
        adds 0. A non-assignable argument yields ``MAX_WEIGHT``.
        """
        result = 0
        for declared, arg in zip(param_types, args):
            if not self.is_assignable(declared, arg):
                return MAX_WEIGHT
            if arg is not None:
                result += self._single_weight(declared, arg)
        return result

    def _single_weight(self, declared: Any, arg: Any) -> int:
        declared, _ = unwrap_optional(declared)
        if typing.get_origin(declared) is Union or _is_pep604_union(declared):
            weights = [self._single_weight(member, arg) for member in typing.get_args(declared)
                       if self.is_assignable(member, arg)]
            return min(weights) if weights else 0
        cls = raw_class(declared)
        if cls is None:
            return 0
        weight = 0
        for superclass in type(arg).__mro__[1:]:
            if superclass is cls:
                weight += 2
                break
            elif issubclass(superclass, cls):
                weight += 2
            else:
                break
        if is_interface(cls):
            weight += 1
        return weight


class ReflectiveTypeInspector(TypeInspector):
    """TypeInspector backed by ``inspect`` and ``typing``.

    Signatures are analysed once per callable and cached.
    """

    def __init__(self):
        self._cache: Dict[Any, Tuple[Tuple[Parameter, ...], Any, bool, bool]] = {}

    def constructors(self, cls: Type) -> List[Executable]:
        result = [self._primary_constructor(cls)]
        for name, attr in _static_members(cls):
            if isinstance(attr, classmethod) and getattr(attr.__func__, _CONSTRUCTOR_MARK, False):
                result.append(self._build(cls, name, attr.__func__, is_constructor=True,
                                          is_static=True, skip_first=True))
        return result

    def factory_methods(self, cls: Type, name: str, static: bool) -> List[Executable]:
        result = []
        for attr_name, attr in _static_members(cls):
            if isinstance(attr, staticmethod):
                func, skip_first, is_static = attr.__func__, False, True
            elif isinstance(attr, classmethod):
                func, skip_first, is_static = attr.__func__, True, True
            elif inspect.isfunction(attr):
                func, skip_first, is_static = attr, True, False
            else:
                continue
            if attr_name != name and getattr(func, _OVERLOAD_MARK, None) != name:
                continue
            if static and not is_static:
                continue
            result.append(self._build(cls, attr_name, func, is_constructor=False,
                                      is_static=is_static, skip_first=skip_first))
        return result

    def parameter_types(self, executable: Executable) -> List[Any]:
        return executable.parameter_types

    def is_assignable(self, declared: Any, value: Any) -> bool:
        if value is None:
            declared, optional = unwrap_optional(declared)
            return optional or raw_class(declared) not in _SCALAR_TYPES
        return self._check(declared, lambda cls: isinstance(value, cls),
                           lambda proto: _protocol_instance_check(proto, value))

    def is_type_assignable(self, declared: Any, actual: Any) -> bool:
        actual_cls = raw_class(actual)
        if actual_cls is None:
            return declared is None or declared is Any or declared is object
        return self._check(declared, lambda cls: issubclass(actual_cls, cls),
                           lambda proto: _protocol_subclass_check(proto, actual_cls))

    def _check(self, declared: Any, class_check: Callable[[type], bool],
               protocol_check: Callable[[type], bool]) -> bool:
        declared = unwrap_annotated(declared)
        if declared is None or declared is Any or declared is object:
            return True
        if isinstance(declared, (str, typing.ForwardRef, typing.TypeVar)):
            return True
        if typing.get_origin(declared) is Union or _is_pep604_union(declared):
            return any(self._check(member, class_check, protocol_check)
                       for member in typing.get_args(declared))
        cls = raw_class(declared)
        if cls is None:
            return True
        if getattr(cls, "_is_protocol", False):
            return protocol_check(cls)
        return class_check(cls)

    def _primary_constructor(self, cls: Type) -> Executable:
        init = cls.__init__
        if init is object.__init__:
            return Executable(name="__init__", target=cls, parameters=(), declaring_type=cls,
                              is_constructor=True, is_static=True, return_type=cls)
        parameters, _, _, var_args = self._analyse(init, owner=cls, skip_first=True)
        return Executable(name="__init__", target=cls, parameters=parameters, declaring_type=cls,
                          is_constructor=True, is_static=True, return_type=cls,
                          accepts_var_args=var_args, _function=init)

    def _build(self, cls: Type, name: str, func: Callable, is_constructor: bool,
               is_static: bool, skip_first: bool) -> Executable:
        parameters, return_type, returns_nothing, var_args = self._analyse(
            func, owner=cls, skip_first=skip_first)
        if is_constructor and return_type is None:
            return_type = cls
        target = getattr(cls, name) if is_static else func
        return Executable(name=name, target=target, parameters=parameters, declaring_type=cls,
                          is_constructor=is_constructor, is_static=is_static,
                          return_type=return_type, returns_nothing=returns_nothing,
                          accepts_var_args=var_args, _function=func)

    def _analyse(self, func: Callable, owner: Type, skip_first: bool):
        key = (func, owner)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        try:
            sig = inspect.signature(func)
        except (ValueError, TypeError) as e:
            raise TypeMismatchError(
                f"Cannot inspect {getattr(func, '__qualname__', func)}: {e}. "
                f"This may occur with built-in types or C extension classes."
            ) from e

        hints = _resolve_type_hints(func)
        parameters = []
        var_args = False
        items = list(sig.parameters.items())
        if skip_first and items:
            items = items[1:]
        for param_name, param in items:
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                var_args = True
                continue
            param_type = hints.get(param_name, param.annotation)
            if param_type is inspect.Parameter.empty:
                param_type = None
            elif isinstance(param_type, str):
                param_type = _resolve_string_annotation(owner, func, param_type)
            has_default = param.default is not inspect.Parameter.empty
            parameters.append(Parameter(
                name=param_name,
                type=param_type,
                has_default=has_default,
                default=param.default if has_default else None,
            ))

        return_type = hints.get("return", sig.return_annotation)
        returns_nothing = return_type is None or return_type is type(None) or return_type == "None"
        if return_type is inspect.Signature.empty or returns_nothing:
            return_type = None
        elif isinstance(return_type, str):
            return_type = _resolve_string_annotation(owner, func, return_type)

        result = (tuple(parameters), return_type, returns_nothing, var_args)
        self._cache[key] = result
        return result


def _static_members(cls: Type):
    """Yield ``(name, raw attribute)`` pairs across the MRO, most derived first."""
    seen = set()
    for klass in cls.__mro__:
        if klass is object:
            continue
        for name, attr in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            yield name, attr


def _protocol_instance_check(proto: type, value: Any) -> bool:
    try:
        return isinstance(value, proto)
    except TypeError:
        # Protocol without @runtime_checkable: compare member names
        members = [m for m in dir(proto) if not m.startswith("_")]
        return all(hasattr(value, m) for m in members)


def _protocol_subclass_check(proto: type, actual: type) -> bool:
    try:
        return issubclass(actual, proto)
    except TypeError:
        members = [m for m in dir(proto) if not m.startswith("_")]
        return all(hasattr(actual, m) for m in members)


def _resolve_type_hints(func: Callable) -> Dict[str, Any]:
    """Resolve type hints with ``typing.get_type_hints()``.

    Returns an empty dict when resolution fails, so that callers fall back
    to raw annotations and manual forward-reference resolution.
    """
    try:
        return typing.get_type_hints(func, include_extras=True)
    except (NameError, RecursionError, TypeError, AttributeError):
        return {}


def _resolve_string_annotation(owner: Type, func: Callable, annotation: str) -> Any:
    """Resolve a forward reference against the owning module and class namespaces.

    Unresolvable names are left as strings; they are treated as "any type"
    by the assignability checks.
    """
    namespace: Dict[str, Any] = {}
    module = sys.modules.get(getattr(func, "__module__", None) or owner.__module__)
    if module is not None:
        namespace.update(vars(module))
    namespace.update(vars(owner))
    namespace.setdefault(owner.__name__, owner)
    namespace.setdefault("Union", Union)
    namespace.setdefault("Optional", Optional)
    try:
        return eval(_convert_union_syntax(annotation), namespace)
    except Exception:
        return annotation


def _convert_union_syntax(annotation: str) -> str:
    """Convert PEP 604 union syntax (X | Y) to typing.Union[X, Y].

    Some types (like ``multiprocessing.Queue``, a function) do not support the
    ``|`` operator, so the union is rewritten before evaluation.

    Example::

        >>> _convert_union_syntax('int | str')
        'Union[int, str]'
    """
    if '|' not in annotation:
        return annotation

    try:
        tree = ast.parse(annotation, mode='eval')
    except SyntaxError:
        return annotation

    class UnionTransformer(ast.NodeTransformer):
        """Transform BinOp(|) nodes to Subscript(Union[...]) nodes."""

        def visit_BinOp(self, node: ast.BinOp) -> ast.AST:
            if isinstance(node.op, ast.BitOr):
                # Flatten X | Y | Z into Union[X, Y, Z] before visiting children
                types = _collect_union_types(node)
                return ast.Subscript(
                    value=ast.Name(id='Union', ctx=ast.Load()),
                    slice=ast.Tuple(elts=[self.visit(t) for t in types], ctx=ast.Load()),
                    ctx=ast.Load()
                )
            self.generic_visit(node)
            return node

    new_tree = UnionTransformer().visit(tree)
    ast.fix_missing_locations(new_tree)
    return ast.unparse(new_tree.body)


def _collect_union_types(node: ast.BinOp) -> List[ast.AST]:
    types: List[ast.AST] = []

    def collect(n: ast.AST) -> None:
        if isinstance(n, ast.BinOp) and isinstance(n.op, ast.BitOr):
            collect(n.left)
            collect(n.right)
        else:
            types.append(n)

    collect(node)
    return types
