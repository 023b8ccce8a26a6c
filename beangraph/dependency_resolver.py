"""
DependencyResolver

Finds the beans that can satisfy an injection point and picks one.

Candidates come from three sources, in order:

1. Values registered with ``register_resolvable_dependency()`` for the type
2. Definitions and manually registered singletons assignable to the type,
   excluding references of a bean to itself
3. When nothing matched: a fallback pass with relaxed generic matching that
   also admits self references

Single-valued injection points are tie-broken by ``primary``, then by the
lowest ``priority``, then by matching the injection point's name against
candidate names and aliases.
"""

import collections.abc
import logging
import typing
from typing import Any, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar, TYPE_CHECKING

from .descriptor import DependencyDescriptor
from .exceptions import NoSuchDefinitionError, NoUniqueCandidateError, TypeMismatchError
from .resolution_context import injecting
from .type_inspector import raw_class, type_name

if TYPE_CHECKING:
    from .factory import BeanFactory

logger = logging.getLogger(__name__)

T = TypeVar('T')


class _NotCreated:
    """Candidate entry for a bean that has not been created yet."""

    def __repr__(self) -> str:
        return "<not created>"


NOT_CREATED = _NotCreated()


class DependencyResolver:
    """Candidate lookup and tie-breaking for one factory.

    Attributes:
        factory: The factory whose definitions and singletons are searched
    """

    def __init__(self, factory: 'BeanFactory'):
        self.factory = factory

    def resolve_dependency(self, descriptor: DependencyDescriptor,
                           requesting_name: Optional[str] = None,
                           autowired_names: Optional[List[str]] = None) -> Any:
        """Resolve ``descriptor`` to a bean (or a container of beans).

        Every chosen candidate name is appended to ``autowired_names`` so the
        caller can record the dependency edges.

        Raises:
            NoSuchDefinitionError: When a required dependency has no candidate
            NoUniqueCandidateError: When a required point has several candidates left after tie-breaking
        """
        with injecting(descriptor):
            if descriptor.dependency_class is ObjectProvider:
                args = typing.get_args(descriptor.dependency_type)
                target = args[0] if args else None
                return ObjectProvider(self.factory, target, requesting_name)

            multiple = self._resolve_multiple(descriptor, requesting_name, autowired_names)
            if multiple is not None:
                return multiple

            required_type = descriptor.dependency_type
            candidates = self.find_candidates(requesting_name, required_type, descriptor)
            if not candidates:
                if descriptor.required:
                    self._raise_no_match(descriptor)
                return None

            if len(candidates) > 1:
                chosen = self.choose(candidates, descriptor)
                if chosen is None:
                    return descriptor.resolve_not_unique(list(candidates))
                instance = candidates[chosen]
            else:
                chosen, instance = next(iter(candidates.items()))

            logger.debug(f"Resolved {descriptor.describe()} to bean '{chosen}'")
            if autowired_names is not None:
                autowired_names.append(chosen)
            if instance is NOT_CREATED:
                instance = descriptor.resolve_candidate(chosen, required_type, self.factory)
            if instance is None:
                if descriptor.required:
                    self._raise_no_match(descriptor)
                return None
            if not self.factory.type_inspector.is_assignable(required_type, instance):
                raise TypeMismatchError(
                    f"Bean named '{chosen}' is expected to be of type '{type_name(required_type)}' "
                    f"but was actually of type '{type(instance).__name__}'",
                    value=instance,
                    required_type=required_type,
                )
            return instance

    def _resolve_multiple(self, descriptor: DependencyDescriptor, requesting_name: Optional[str],
                          autowired_names: Optional[List[str]]) -> Optional[Any]:
        if not descriptor.is_multiple():
            return None
        if descriptor.is_mapping():
            _, element_type = descriptor.mapping_types()
        else:
            element_type = descriptor.element_type()
        matching = self.find_candidates(requesting_name, element_type,
                                        descriptor.for_elements(element_type))
        if not matching:
            return None
        if autowired_names is not None:
            autowired_names.extend(matching)
        names = list(matching)
        if descriptor.ordered:
            names = self.factory.sort_by_priority(names)

        if descriptor.is_mapping():
            return {name: matching[name] for name in names}
        values = [matching[name] for name in names]
        container = descriptor.dependency_class
        if container in (tuple, set, frozenset):
            return container(values)
        if container in (collections.abc.Set, collections.abc.MutableSet):
            return set(values)
        return values

    def find_candidates(self, requesting_name: Optional[str], required_type: Any,
                        descriptor: DependencyDescriptor) -> Dict[str, Any]:
        """Map candidate name to instance (or ``NOT_CREATED``) for ``required_type``."""
        candidate_names = self.factory.names_for_type(
            raw_class(required_type) or required_type, allow_eager_init=descriptor.eager)
        result: Dict[str, Any] = {}

        for autowiring_type, value in self.factory.resolvable_dependencies.items():
            cls = raw_class(required_type)
            if cls is not None and issubclass(cls, autowiring_type) and isinstance(value, cls):
                result[f"{type(value).__name__}@{id(value):x}"] = value

        for candidate in candidate_names:
            if not self._is_self_reference(requesting_name, candidate) and \
                    self.is_autowire_candidate(candidate, required_type, descriptor):
                self._add_candidate(result, candidate, descriptor)

        if not result:
            fallback = descriptor.for_fallback_match()
            for candidate in candidate_names:
                if not self._is_self_reference(requesting_name, candidate) and \
                        self.is_autowire_candidate(candidate, required_type, fallback):
                    self._add_candidate(result, candidate, fallback)
            if not result and not descriptor.is_multiple():
                # Self references as a last resort, but never the requesting bean for collections
                for candidate in candidate_names:
                    if self._is_self_reference(requesting_name, candidate) and \
                            (not descriptor.multi_element or requesting_name != candidate) and \
                            self.is_autowire_candidate(candidate, required_type, fallback):
                        self._add_candidate(result, candidate, fallback)
        return result

    def _add_candidate(self, result: Dict[str, Any], name: str,
                       descriptor: DependencyDescriptor) -> None:
        if descriptor.multi_element or self.factory.contains_singleton(name):
            instance = descriptor.resolve_candidate(name, descriptor.dependency_type, self.factory)
            if instance is not None or not descriptor.multi_element:
                result[name] = instance
        else:
            result[name] = NOT_CREATED

    def _is_self_reference(self, requesting_name: Optional[str], candidate: str) -> bool:
        if requesting_name is None or candidate is None:
            return False
        if requesting_name == candidate:
            return True
        return self.factory.factory_bean_name_of(candidate) == requesting_name

    def is_autowire_candidate(self, name: str, required_type: Any,
                              descriptor: DependencyDescriptor) -> bool:
        """Whether bean ``name`` may be injected into ``descriptor``.

        Definitions with ``autowire_candidate=False`` never qualify. A
        parameterized required type (``Repository[User]``) must match the
        candidate's parameterized base class; an unparameterized candidate
        only qualifies on the fallback pass.
        """
        if not self.factory.is_autowire_candidate(name):
            return False
        if not typing.get_args(required_type):
            return True
        candidate_type = self.factory.get_type(name)
        if candidate_type is None:
            return True
        match = _generic_match(candidate_type, required_type)
        if match is None:
            return descriptor.fallback
        return match

    def choose(self, candidates: Dict[str, Any], descriptor: DependencyDescriptor) -> Optional[str]:
        """Pick a single candidate name, or ``None`` if the tie cannot be broken.

        Raises:
            NoUniqueCandidateError: When more than one local candidate is primary,
                or when two candidates share the lowest priority
        """
        required_type = descriptor.dependency_type
        primary = self._determine_primary(candidates, required_type)
        if primary is not None:
            return primary
        prioritized = self._determine_highest_priority(candidates, required_type)
        if prioritized is not None:
            return prioritized
        resolvable = self.factory.resolvable_dependencies.values()
        for name, instance in candidates.items():
            if (instance is not NOT_CREATED and any(instance is value for value in resolvable)) \
                    or self._matches_name(name, descriptor.name):
                return name
        return None

    def _determine_primary(self, candidates: Dict[str, Any], required_type: Any) -> Optional[str]:
        primary = None
        for name in candidates:
            if not self.factory.is_primary(name):
                continue
            if primary is None:
                primary = name
                continue
            candidate_local = self.factory.contains_definition(name)
            primary_local = self.factory.contains_definition(primary)
            if candidate_local and primary_local:
                raise NoUniqueCandidateError(
                    f"No qualifying bean of type '{type_name(required_type)}' available: "
                    f"more than one 'primary' bean found among candidates: {list(candidates)}",
                    required_type=required_type,
                    candidates=candidates,
                )
            if candidate_local:
                primary = name
        return primary

    def _determine_highest_priority(self, candidates: Dict[str, Any],
                                    required_type: Any) -> Optional[str]:
        priorities = {}
        for name in candidates:
            priority = self.factory.priority_of(name)
            if priority is not None:
                priorities[name] = priority
        if not priorities:
            return None
        lowest = min(priorities.values())
        winners = [name for name, priority in priorities.items() if priority == lowest]
        if len(winners) > 1:
            raise NoUniqueCandidateError(
                f"No qualifying bean of type '{type_name(required_type)}' available: "
                f"multiple beans found with the same priority ('{lowest}') among candidates: "
                f"{winners}",
                required_type=required_type,
                candidates=candidates,
            )
        return winners[0]

    def _matches_name(self, candidate: str, name: Optional[str]) -> bool:
        if name is None:
            return False
        return candidate == name or name in self.factory.aliases(candidate)

    def resolve_named_bean(self, required_type: Any) -> Tuple[str, Any]:
        """Resolve the unique bean of ``required_type`` together with its name.

        Raises:
            NoSuchDefinitionError: When no bean of the type exists here or in a parent
            NoUniqueCandidateError: When the candidates cannot be tie-broken
        """
        names = self.factory.names_for_type(raw_class(required_type) or required_type)
        if len(names) > 1:
            preferred = [name for name in names if self.factory.is_autowire_candidate(name)]
            if preferred:
                names = preferred
        if len(names) == 1:
            return names[0], self.factory.get(names[0])
        if names:
            candidates = {
                name: self.factory.get(name) if self.factory.contains_singleton(name) else NOT_CREATED
                for name in names
            }
            descriptor = DependencyDescriptor(required_type)
            chosen = self.choose(candidates, descriptor)
            if chosen is None:
                raise NoUniqueCandidateError(
                    f"No qualifying bean of type '{type_name(required_type)}' available: "
                    f"expected single matching bean but found {len(names)}: {', '.join(names)}",
                    required_type=required_type,
                    candidates=names,
                )
            instance = candidates[chosen]
            return chosen, self.factory.get(chosen) if instance is NOT_CREATED else instance
        raise NoSuchDefinitionError(
            f"No qualifying bean of type '{type_name(required_type)}' available",
            required_type=required_type,
        )

    def _raise_no_match(self, descriptor: DependencyDescriptor) -> None:
        raise NoSuchDefinitionError(
            f"No qualifying bean of type '{type_name(descriptor.dependency_type)}' available: "
            f"expected at least 1 bean which qualifies as autowire candidate. "
            f"Dependency: {descriptor.describe()}",
            required_type=descriptor.dependency_type,
        )


class _AvailableDescriptor(DependencyDescriptor):
    """Optional when nothing matches, but still ambiguous when several beans do."""

    def resolve_not_unique(self, candidates: List[str]) -> Any:
        raise self.not_unique_error(candidates)


class ObjectProvider(Generic[T]):
    """Lazy access to the beans of one type.

    Inject ``ObjectProvider[Service]`` to defer the lookup, make it optional,
    or iterate over all matching beans::

        class Client:
            def __init__(self, cache: ObjectProvider[Cache]):
                self.cache = cache.get_if_available()
    """

    def __init__(self, factory: 'BeanFactory', required_type: Any,
                 requesting_name: Optional[str] = None):
        self._factory = factory
        self.required_type = required_type
        self._requesting_name = requesting_name

    def get(self) -> T:
        """Return the unique bean; fails if none or several qualify."""
        descriptor = DependencyDescriptor(self.required_type)
        return self._factory.resolve_dependency(descriptor, self._requesting_name)

    def get_if_available(self) -> Optional[T]:
        """Return the bean, or ``None`` when there is no candidate.

        Raises:
            NoUniqueCandidateError: When several candidates remain after tie-breaking
        """
        descriptor = _AvailableDescriptor(self.required_type, required=False)
        return self._factory.resolve_dependency(descriptor, self._requesting_name)

    def get_if_unique(self) -> Optional[T]:
        """Return the bean, or ``None`` when there is no unique candidate."""
        descriptor = DependencyDescriptor(self.required_type, required=False)
        return self._factory.resolve_dependency(descriptor, self._requesting_name)

    def __iter__(self) -> Iterator[T]:
        return iter(self._factory.get_of_type(self.required_type))


def _generic_match(candidate_type: type, required_type: Any) -> Optional[bool]:
    """Compare type arguments of ``required_type`` with the candidate's parameterized base.

    Returns ``None`` when the candidate's type arguments cannot be determined.
    """
    origin = raw_class(required_type)
    required_args = typing.get_args(required_type)
    for klass in getattr(candidate_type, "__mro__", ()):
        for base in getattr(klass, "__orig_bases__", ()):
            if raw_class(base) is not origin:
                continue
            base_args = typing.get_args(base)
            if not base_args or any(isinstance(arg, TypeVar) for arg in base_args):
                return None
            return tuple(base_args) == tuple(required_args)
    return None
