"""
ConstructorResolver

Chooses the constructor or factory method for a definition, together with
the arguments to call it with.

Candidates are tried greediest first. Each attempt binds every parameter to
a declared argument (by index, then by name and type, then to an untyped
generic value) or, when autowiring is allowed, to a bean resolved by type.
Bound candidates are scored by type-difference weight and the lowest weight
wins. The decision is cached on the merged definition.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, TYPE_CHECKING

from .definition import AUTOWIRE_NO, ConstructorArguments, Definition, ValueHolder
from .descriptor import DependencyDescriptor
from .exceptions import (
    AmbiguousExecutableError,
    BeanCreationError,
    BeanGraphError,
    CurrentlyInCreationError,
    InvalidFactoryMethodError,
    NoMatchingExecutableError,
    TypeMismatchError,
    find_cause,
)
from .type_inspector import MAX_WEIGHT, Executable, TypeInspector, type_name
from .value_resolver import ValueResolver
from .values import AUTOWIRED

if TYPE_CHECKING:
    from .factory import BeanFactory

logger = logging.getLogger(__name__)

RAW_ARGUMENT_BONUS = 1024
RAW_MISMATCH_PENALTY = 512


class ArgumentsHolder:
    """Arguments bound to one candidate executable.

    Attributes:
        arguments: Converted values passed to the executable
        raw_arguments: Values before conversion
        prepared_arguments: What to cache: raw sources or ``AUTOWIRED`` markers
        resolve_necessary: Whether the cached form must be resolved again per build
    """

    def __init__(self, size: int = 0, arguments: Optional[Sequence[Any]] = None):
        if arguments is not None:
            self.arguments = list(arguments)
            self.raw_arguments = list(arguments)
            self.prepared_arguments = list(arguments)
        else:
            self.arguments = [None] * size
            self.raw_arguments = [None] * size
            self.prepared_arguments = [None] * size
        self.resolve_necessary = False

    def type_difference_weight(self, param_types: List[Any], inspector: TypeInspector) -> int:
        """Lenient weight: the closer of the converted and raw arguments, raw preferred."""
        weight = inspector.type_difference_weight(param_types, self.arguments)
        if weight == MAX_WEIGHT:
            return MAX_WEIGHT
        raw_weight = inspector.type_difference_weight(param_types, self.raw_arguments) - RAW_ARGUMENT_BONUS
        return min(weight, raw_weight)

    def assignability_weight(self, param_types: List[Any], inspector: TypeInspector) -> int:
        """Strict weight: only distinguishes assignable from not assignable."""
        for declared, arg in zip(param_types, self.arguments):
            if not inspector.is_assignable(declared, arg):
                return MAX_WEIGHT
        for declared, arg in zip(param_types, self.raw_arguments):
            if not inspector.is_assignable(declared, arg):
                return MAX_WEIGHT - RAW_MISMATCH_PENALTY
        return MAX_WEIGHT - RAW_ARGUMENT_BONUS

    def store_cache(self, definition: Definition, executable: Executable) -> None:
        with definition.resolution_lock:
            definition.resolved_executable = executable
            definition.arguments_resolved = True
            if self.resolve_necessary:
                definition.prepared_arguments = list(self.prepared_arguments)
            else:
                definition.resolved_arguments = list(self.arguments)


@dataclass
class Attempt:
    """Outcome of binding arguments to one candidate executable."""
    executable: Executable
    holder: Optional[ArgumentsHolder] = None
    error: Optional[BeanGraphError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ConstructorResolver:
    """Resolves and invokes constructors and factory methods for one factory."""

    def __init__(self, factory: 'BeanFactory'):
        self.factory = factory

    def autowire_constructor(self, bean_name: str, definition: Definition,
                             chosen: Optional[List[Executable]] = None,
                             explicit_args: Optional[Sequence[Any]] = None) -> Any:
        """Instantiate ``definition`` through the best matching constructor."""
        executable, args, _ = self._resolve(bean_name, definition, explicit_args, chosen)
        return self._instantiate(bean_name, definition, executable, args, None)

    def instantiate_using_factory_method(self, bean_name: str, definition: Definition,
                                         explicit_args: Optional[Sequence[Any]] = None) -> Any:
        """Instantiate ``definition`` through the best matching factory method."""
        executable, args, factory_bean = self._resolve(bean_name, definition, explicit_args, None)
        return self._instantiate(bean_name, definition, executable, args, factory_bean)

    def resolve(self, definition: Definition, explicit_args: Optional[Sequence[Any]] = None,
                bean_name: str = "(anonymous)") -> Tuple[Executable, List[Any]]:
        """Return the executable and bound arguments for ``definition`` without invoking it."""
        executable, args, _ = self._resolve(bean_name, definition, explicit_args, None)
        return executable, args

    def _instantiate(self, bean_name: str, definition: Definition, executable: Executable,
                     args: List[Any], factory_bean: Any) -> Any:
        return self.factory.instantiation_strategy.instantiate(
            definition, bean_name, executable, args, factory_bean)

    def _resolve(self, bean_name: str, definition: Definition,
                 explicit_args: Optional[Sequence[Any]],
                 chosen: Optional[List[Executable]]) -> Tuple[Executable, List[Any], Any]:
        factory_bean, factory_class, static = self._factory_target(bean_name, definition)

        if explicit_args is None:
            cached = self._cached_resolution(bean_name, definition)
            if cached is not None:
                return cached[0], cached[1], factory_bean

        candidates = self._candidates(definition, factory_class, static, chosen)
        if not candidates:
            raise self._no_candidates_error(bean_name, definition, factory_class)

        if len(candidates) == 1 and explicit_args is None and not definition.has_constructor_args():
            only = candidates[0]
            if only.parameter_count == 0:
                with definition.resolution_lock:
                    definition.resolved_executable = only
                    definition.arguments_resolved = True
                    definition.resolved_arguments = []
                return only, [], factory_bean

        autowiring = chosen is not None or definition.effective_autowire_mode != AUTOWIRE_NO
        resolver = ValueResolver(self.factory, bean_name, definition)
        resolved_values = None
        if explicit_args is not None:
            min_args = len(explicit_args)
        else:
            resolved_values = ConstructorArguments()
            min_args = self._resolve_constructor_arguments(resolver, definition, resolved_values)

        candidates = sorted(candidates, key=lambda c: (not c.is_public, -c.parameter_count))
        inspector = self.factory.type_inspector
        attempts: List[Attempt] = []
        best: Optional[Attempt] = None
        min_weight = MAX_WEIGHT
        ambiguous: List[Executable] = []

        for candidate in candidates:
            count = candidate.parameter_count
            if best is not None and len(best.holder.arguments) > count:
                # Already found a greedy executable that can be satisfied
                break
            if count < min_args:
                continue
            if explicit_args is not None:
                if count != len(explicit_args):
                    continue
                attempt = Attempt(candidate, ArgumentsHolder(arguments=explicit_args))
            else:
                attempt = self._create_argument_array(
                    bean_name, definition, resolver, resolved_values, candidate, autowiring)
                if not attempt.succeeded:
                    logger.debug(f"Ignoring {candidate.describe()} for bean '{bean_name}': "
                                 f"{attempt.error}")
                    attempts.append(attempt)
                    continue

            param_types = inspector.parameter_types(candidate)
            if definition.lenient_constructor_resolution:
                weight = attempt.holder.type_difference_weight(param_types, inspector)
            else:
                weight = attempt.holder.assignability_weight(param_types, inspector)
            attempts.append(attempt)
            if weight < min_weight:
                best, min_weight = attempt, weight
                ambiguous = []
            elif best is not None and weight == min_weight and \
                    count == best.executable.parameter_count and \
                    param_types != inspector.parameter_types(best.executable):
                if not ambiguous:
                    ambiguous.append(best.executable)
                ambiguous.append(candidate)

        if best is None:
            raise self._no_match_error(bean_name, definition, factory_class, attempts,
                                       explicit_args, resolved_values)
        if ambiguous and not definition.lenient_constructor_resolution:
            kind = "factory method" if definition.is_factory_method else "constructor"
            raise AmbiguousExecutableError(
                f"Ambiguous {kind} matches found on class [{type_name(factory_class)}] "
                f"(hint: specify index/type/name arguments for simple parameters to avoid "
                f"type ambiguities): {[executable.describe() for executable in ambiguous]}",
                bean_name=bean_name,
                resource_description=definition.resource_description,
                candidates=ambiguous,
            )
        if definition.is_factory_method and best.executable.returns_nothing:
            raise InvalidFactoryMethodError(
                f"Invalid factory method '{best.executable.name}' on class "
                f"[{type_name(factory_class)}]: needs to have a non-None return type",
                bean_name=bean_name,
                resource_description=definition.resource_description,
            )
        if explicit_args is None:
            best.holder.store_cache(definition, best.executable)
        logger.debug(f"Resolved {best.executable.describe()} for bean '{bean_name}'")
        return best.executable, best.holder.arguments, factory_bean

    def _factory_target(self, bean_name: str, definition: Definition) -> Tuple[Any, Any, bool]:
        """Return ``(factory_bean, class to search, static_only)``."""
        if not definition.is_factory_method:
            return None, definition.bean_type, True
        factory_bean_name = definition.factory_bean_name
        if factory_bean_name is not None:
            if factory_bean_name == bean_name:
                raise BeanCreationError(
                    "factory_bean_name reference points back to the same bean definition",
                    bean_name=bean_name,
                    resource_description=definition.resource_description,
                )
            factory_bean = self.factory.get(factory_bean_name)
            self.factory.register_dependency(bean_name, factory_bean_name)
            return factory_bean, type(factory_bean), False
        if definition.bean_type is None:
            raise BeanCreationError(
                "Definition declares neither a bean type nor a factory bean name",
                bean_name=bean_name,
                resource_description=definition.resource_description,
            )
        return None, definition.bean_type, True

    def _candidates(self, definition: Definition, factory_class: Any, static: bool,
                    chosen: Optional[List[Executable]]) -> List[Executable]:
        inspector = self.factory.type_inspector
        if definition.is_factory_method:
            candidates = inspector.factory_methods(factory_class, definition.factory_method_name,
                                                   static)
        else:
            candidates = list(chosen) if chosen else inspector.constructors(factory_class)
        if not definition.non_public_access_allowed:
            candidates = [c for c in candidates if c.is_public]
        return candidates

    def _cached_resolution(self, bean_name: str,
                           definition: Definition) -> Optional[Tuple[Executable, List[Any]]]:
        with definition.resolution_lock:
            executable = definition.resolved_executable
            if executable is None or not definition.arguments_resolved:
                return None
            resolved = definition.resolved_arguments
            prepared = definition.prepared_arguments
        if resolved is not None:
            return executable, list(resolved)
        return executable, self._resolve_prepared_arguments(bean_name, definition, executable,
                                                            prepared)

    def _resolve_constructor_arguments(self, resolver: ValueResolver, definition: Definition,
                                       resolved_values: ConstructorArguments) -> int:
        """Resolve the declared argument values; return the minimum number of parameters."""
        declared = definition.constructor_args
        min_args = declared.get_arg_count()
        for index, holder in declared.indexed.items():
            if index + 1 > min_args:
                min_args = index + 1
            resolved_values.add_indexed(index, self._resolve_holder(
                resolver, f"constructor argument {index}", holder))
        for holder in declared.generic:
            resolved_values.add_generic(self._resolve_holder(resolver, "constructor argument", holder))
        return min_args

    def _resolve_holder(self, resolver: ValueResolver, arg_name: str,
                        holder: ValueHolder) -> ValueHolder:
        resolved = resolver.resolve(arg_name, holder.value)
        return ValueHolder(resolved, holder.type, holder.name, source=holder)

    def _create_argument_array(self, bean_name: str, definition: Definition,
                               resolver: ValueResolver, resolved_values: ConstructorArguments,
                               executable: Executable, autowiring: bool) -> Attempt:
        converter = self.factory.type_converter
        count = executable.parameter_count
        holder = ArgumentsHolder(count)
        used = set()
        autowired_names: List[str] = []

        for index, param in enumerate(executable.parameters):
            value_holder = None
            if not resolved_values.is_empty():
                value_holder = resolved_values.get_argument(index, param.type, param.name, used)
                if value_holder is None and (not autowiring or count == resolved_values.get_arg_count()):
                    value_holder = resolved_values.get_generic(None, None, used)

            if value_holder is not None:
                used.add(id(value_holder))
                try:
                    converted = converter.convert_if_necessary(
                        value_holder.value, param.type,
                        f"parameter '{param.name}' of {executable.describe()}")
                except TypeMismatchError as e:
                    return Attempt(executable, error=self._unsatisfied(
                        bean_name, definition, executable, index,
                        f"Could not convert argument value of type "
                        f"[{type(value_holder.value).__name__}] to required type "
                        f"[{type_name(param.type)}]: {e}", e))
                source = value_holder.source
                holder.prepared_arguments[index] = source.value if source is not None else converted
                if source is not None and not resolver.is_cacheable(source.value):
                    holder.resolve_necessary = True
                holder.arguments[index] = converted
                holder.raw_arguments[index] = value_holder.value
                continue

            if not autowiring:
                if param.has_default:
                    holder.arguments[index] = holder.raw_arguments[index] = param.default
                    holder.prepared_arguments[index] = param.default
                    continue
                return Attempt(executable, error=self._unsatisfied(
                    bean_name, definition, executable, index,
                    f"Ambiguous argument values for parameter of type [{type_name(param.type)}] - "
                    f"did you specify the correct bean references as arguments?"))
            try:
                arg = self.resolve_autowired_argument(bean_name, executable, index, autowired_names)
            except BeanGraphError as e:
                return Attempt(executable, error=self._unsatisfied(
                    bean_name, definition, executable, index, str(e), e))
            holder.arguments[index] = holder.raw_arguments[index] = arg
            holder.prepared_arguments[index] = AUTOWIRED
            holder.resolve_necessary = True

        for autowired_name in autowired_names:
            if self.factory.contains(autowired_name):
                self.factory.register_dependency(bean_name, autowired_name)
                logger.debug(f"Autowiring by type from bean name '{bean_name}' via "
                             f"{executable.describe()} to bean named '{autowired_name}'")
        return Attempt(executable, holder)

    def resolve_autowired_argument(self, bean_name: str, executable: Executable, index: int,
                                   autowired_names: List[str]) -> Any:
        """Resolve parameter ``index`` of ``executable`` by type.

        Parameters with a default fall back to it when nothing qualifies.
        """
        param = executable.parameters[index]
        if param.type is None:
            if param.has_default:
                return param.default
            raise NoMatchingExecutableError(
                f"Parameter '{param.name}' of {executable.describe()} has no type hint; "
                f"add an annotation or declare the argument explicitly",
                bean_name=bean_name,
            )
        descriptor = DependencyDescriptor(
            param.type,
            name=param.name,
            required=not param.has_default,
            owner=f"parameter {index} of {executable.describe()}",
        )
        value = self.factory.resolve_dependency(descriptor, bean_name, autowired_names)
        if value is None and param.has_default:
            return param.default
        return value

    def _resolve_prepared_arguments(self, bean_name: str, definition: Definition,
                                    executable: Executable, prepared: List[Any]) -> List[Any]:
        resolver = ValueResolver(self.factory, bean_name, definition)
        converter = self.factory.type_converter
        result = []
        autowired_names: List[str] = []
        for index, (param, value) in enumerate(zip(executable.parameters, prepared)):
            try:
                if value is AUTOWIRED:
                    resolved = self.resolve_autowired_argument(bean_name, executable, index,
                                                               autowired_names)
                else:
                    resolved = resolver.resolve(f"constructor argument {index}", value)
                    resolved = converter.convert_if_necessary(resolved, param.type)
            except BeanGraphError as e:
                raise self._unsatisfied(bean_name, definition, executable, index, str(e), e) from e
            result.append(resolved)
        for autowired_name in autowired_names:
            if self.factory.contains(autowired_name):
                self.factory.register_dependency(bean_name, autowired_name)
        return result

    def _unsatisfied(self, bean_name: str, definition: Definition, executable: Executable,
                     index: int, reason: str, cause: Optional[BaseException] = None) -> BeanCreationError:
        error_type = NoMatchingExecutableError
        if cause is not None and find_cause(cause, CurrentlyInCreationError) is not None:
            error_type = CurrentlyInCreationError
        error = error_type(
            f"Unsatisfied dependency expressed through parameter {index} "
            f"('{executable.parameters[index].name}') of {executable.describe()}: {reason}",
            bean_name=bean_name,
            resource_description=definition.resource_description,
        )
        error.__cause__ = cause
        return error

    def _no_candidates_error(self, bean_name: str, definition: Definition,
                             factory_class: Any) -> BeanCreationError:
        if definition.is_factory_method:
            return NoMatchingExecutableError(
                f"No factory method '{definition.factory_method_name}' found on class "
                f"[{type_name(factory_class)}]. Check that a method with the specified name exists "
                f"and that it is {'static' if definition.factory_bean_name is None else 'an instance method'}.",
                bean_name=bean_name,
                resource_description=definition.resource_description,
            )
        return NoMatchingExecutableError(
            f"No accessible constructor found on class [{type_name(factory_class)}]",
            bean_name=bean_name,
            resource_description=definition.resource_description,
        )

    def _no_match_error(self, bean_name: str, definition: Definition, factory_class: Any,
                        attempts: List[Attempt], explicit_args: Optional[Sequence[Any]],
                        resolved_values: Optional[ConstructorArguments]) -> BeanCreationError:
        failures = [attempt for attempt in attempts if not attempt.succeeded]
        if failures:
            last = failures[-1].error
            for earlier in failures[:-1]:
                last.add_related_cause(earlier.error)
                self.factory.registry.on_suppressed_exception(earlier.error)
            return last

        if explicit_args is not None:
            arg_types = [type(arg).__name__ for arg in explicit_args]
        else:
            holders = list(resolved_values.indexed.values()) + list(resolved_values.generic)
            arg_types = [type_name(h.type) if h.type is not None else type(h.value).__name__
                         for h in holders]
        if definition.is_factory_method:
            return NoMatchingExecutableError(
                f"No matching factory method found on class [{type_name(factory_class)}]: "
                f"factory method '{definition.factory_method_name}({', '.join(arg_types)})'. "
                f"Check that a method with the specified name and arguments exists.",
                bean_name=bean_name,
                resource_description=definition.resource_description,
            )
        return NoMatchingExecutableError(
            f"Could not resolve matching constructor on bean class [{type_name(factory_class)}] "
            f"(hint: specify index/type/name arguments for simple parameters to avoid type "
            f"ambiguities). Attempted argument types: ({', '.join(arg_types)})",
            bean_name=bean_name,
            resource_description=definition.resource_description,
        )
