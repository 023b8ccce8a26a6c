"""
BeanFactory

This module provides the orchestrator of the BeanGraph runtime. It ties the
definition store, the singleton registry and the resolvers together:

- Looking up and merging definitions (including parent definitions)
- Building beans per scope: singleton, prototype or a registered custom scope
- Running the bean lifecycle (instantiation, early exposure, property
  population, initialization, destroy callback registration)
- Dereferencing FactoryBeans
- Answering type queries and finding beans by type

Most applications use it through BeanGraphCore, which adds loading,
refresh and close on top.
"""

import inspect
import logging
import threading
import typing
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Type, TypeVar

from . import resolution_context
from .constructor_resolver import ConstructorResolver
from .conversion import TypeConverter
from .definition import AUTOWIRE_BY_NAME, AUTOWIRE_BY_TYPE, Definition, merge
from .definition_store import DefaultDefinitionStore, DefinitionStore
from .dependency_resolver import DependencyResolver, ObjectProvider
from .descriptor import DependencyDescriptor
from .evaluator import as_evaluator
from .exceptions import (
    BeanCreationError,
    BeanGraphError,
    CurrentlyInCreationError,
    DefinitionStoreError,
    NoSuchDefinitionError,
    TypeMismatchError,
    find_cause,
)
from .instantiation import InstantiationStrategy, SimpleInstantiationStrategy
from .lifecycle import (
    BeanFactoryAware,
    BeanNameAware,
    BeanPostProcessor,
    DisposableBeanAdapter,
    FactoryBean,
    InitializingBean,
    InstantiationAwarePostProcessor,
    SmartInstantiationAwarePostProcessor,
)
from .scope import BUILTIN_SCOPES, PROTOTYPE, SINGLETON, Scope, registered_names
from .singleton_registry import SingletonRegistry
from .type_inspector import ReflectiveTypeInspector, TypeInspector, raw_class, type_name
from .value_resolver import ValueResolver
from .values import NULL, BeanRef

logger = logging.getLogger(__name__)

T = TypeVar('T')

FACTORY_BEAN_PREFIX = "&"

_SIMPLE_ATTRIBUTE_TYPES = (str, bytes, int, float, bool, complex)


class BeanFactory:
    """Builds, wires and destroys the beans described by a definition store.

    Args:
        store: Where definitions are looked up; a DefaultDefinitionStore by default
        parent: Factory consulted for names that are not defined here
        allow_circular_references: Expose early references to break field-level cycles
        allow_raw_injection_despite_wrapping: Tolerate an early reference that a
            post-processor later replaced with a different object
        allow_definition_overriding: Overriding policy of the default store
        type_inspector: Signature and assignability introspection
        instantiation_strategy: How executables are finally invoked
        string_evaluator: Evaluates literal strings (a StringEvaluator or a callable)
        type_converter: Converts declared values to parameter and attribute types

    Attributes:
        registry: The SingletonRegistry owning every singleton of this factory
        resolvable_dependencies: Fixed values injected for a type without a definition

    Example::

        factory = BeanFactory()
        factory.register_definition("repository", Definition(bean_type=UserRepository))
        factory.register_definition("service", Definition(bean_type=UserService))

        service = factory.get("service")  # UserRepository injected by type
        factory.destroy_all()
    """

    def __init__(self, store: Optional[DefinitionStore] = None,
                 parent: Optional['BeanFactory'] = None, *,
                 allow_circular_references: bool = True,
                 allow_raw_injection_despite_wrapping: bool = False,
                 allow_definition_overriding: bool = True,
                 type_inspector: Optional[TypeInspector] = None,
                 instantiation_strategy: Optional[InstantiationStrategy] = None,
                 string_evaluator: Any = None,
                 type_converter: Optional[TypeConverter] = None):
        self.store = store if store is not None else DefaultDefinitionStore(allow_definition_overriding)
        self.parent = parent
        self.allow_circular_references = allow_circular_references
        self.allow_raw_injection_despite_wrapping = allow_raw_injection_despite_wrapping
        self.type_inspector = type_inspector or ReflectiveTypeInspector()
        self.type_converter = type_converter or TypeConverter(self.type_inspector)
        self.instantiation_strategy = instantiation_strategy or SimpleInstantiationStrategy()
        self.string_evaluator = as_evaluator(string_evaluator)

        self.registry = SingletonRegistry()
        self.resolvable_dependencies: Dict[type, Any] = {}
        self._merged: Dict[str, Definition] = {}
        self._merged_lock = threading.RLock()
        self._scopes: Dict[str, Scope] = {}
        self._post_processors: List[BeanPostProcessor] = []

        self._constructor_resolver = ConstructorResolver(self)
        self._dependency_resolver = DependencyResolver(self)
        self.store.add_listener(self.reset_definition)

    # Names

    def transformed_name(self, name: str) -> str:
        """Strip the FactoryBean dereference prefix and follow aliases."""
        bean_name = name
        while bean_name.startswith(FACTORY_BEAN_PREFIX):
            bean_name = bean_name[len(FACTORY_BEAN_PREFIX):]
        return self.canonical_name(bean_name)

    def canonical_name(self, name: str) -> str:
        return self.store.canonical_name(name)

    def aliases(self, name: str) -> List[str]:
        return self.store.aliases(self.transformed_name(name))

    def register_alias(self, name: str, alias: str) -> None:
        self.store.register_alias(name, alias)

    # Lookup

    def get(self, name: str, *args: Any) -> Any:
        """Return the bean registered under ``name`` (or an alias of it).

        Positional ``args`` are passed to the constructor or factory method
        instead of the declared arguments.

        Raises:
            NoSuchDefinitionError: When ``name`` is unknown here and in every parent
            BeanCreationError: When building the bean fails
        """
        bean_name = self.transformed_name(name)
        explicit_args = list(args) if args else None

        shared = self.registry.get_singleton(bean_name)
        if shared is not None and explicit_args is None:
            return self.object_for_bean_instance(shared, name, bean_name, None)

        if resolution_context.is_prototype_in_creation(bean_name, self):
            raise CurrentlyInCreationError(
                f"Requested bean is currently in creation: Is there an unresolvable "
                f"circular reference? ({resolution_context.current().chain(bean_name)})",
                bean_name=bean_name,
            )

        if self.parent is not None and not self.store.has(bean_name):
            return self.parent.get(name, *args)

        definition = self.get_merged_definition(bean_name)
        if definition.is_abstract:
            raise BeanCreationError(
                "Bean definition is abstract",
                bean_name=bean_name,
                resource_description=definition.resource_description,
            )
        self._ensure_depends_on(bean_name, definition)

        if definition.is_singleton:
            instance = self.registry.get_or_create(
                bean_name, lambda: self.create_bean(bean_name, definition, explicit_args))
        elif definition.is_prototype:
            with resolution_context.creating_prototype(bean_name, self):
                instance = self.create_bean(bean_name, definition, explicit_args)
        else:
            scope = self._scope_for(bean_name, definition)

            def build() -> Any:
                with resolution_context.creating_prototype(bean_name, self):
                    return self.create_bean(bean_name, definition, explicit_args)

            instance = scope.get(bean_name, build)
        return self.object_for_bean_instance(instance, name, bean_name, definition)

    def _ensure_depends_on(self, bean_name: str, definition: Definition) -> None:
        for depends_on in definition.depends_on:
            dependee = self.canonical_name(depends_on)
            if self.registry.is_dependent(bean_name, dependee):
                raise BeanCreationError(
                    f"Circular depends-on relationship between '{bean_name}' and '{dependee}'",
                    bean_name=bean_name,
                    resource_description=definition.resource_description,
                )
            self.register_dependency(bean_name, dependee)
            try:
                self.get(dependee)
            except NoSuchDefinitionError as e:
                raise BeanCreationError(
                    f"'{bean_name}' depends on missing bean '{dependee}'",
                    bean_name=bean_name,
                    resource_description=definition.resource_description,
                ) from e

    def _scope_for(self, bean_name: str, definition: Definition) -> Scope:
        scope_name = definition.effective_scope
        scope = self._scopes.get(scope_name)
        if scope is None:
            raise DefinitionStoreError(
                f"No scope registered for scope name '{scope_name}' of bean '{bean_name}'. "
                f"Registered scopes: {', '.join(registered_names(self._scopes))}"
            )
        return scope

    def get_by_type(self, required_type: Type[T]) -> T:
        """Return the unique bean assignable to ``required_type``.

        Several candidates are tie-broken by primary flag, then priority.

        Raises:
            NoSuchDefinitionError: When no bean matches
            NoUniqueCandidateError: When several beans match and none is preferred
        """
        return self.resolve_named_bean(required_type)[1]

    def get_beans_of_type(self, required_type: Any, include_non_singletons: bool = True,
                          allow_eager_init: bool = True) -> Dict[str, Any]:
        """Map name to bean for every bean assignable to ``required_type``.

        Ordered by priority (lowest first), then registration order. Beans
        that are currently being created are skipped.
        """
        names = self.sort_by_priority(
            self.names_for_type(required_type, include_non_singletons, allow_eager_init))
        result = {}
        for name in names:
            try:
                bean = self.get(name)
            except BeanCreationError as e:
                in_creation = find_cause(e, CurrentlyInCreationError)
                if in_creation is not None and self.is_in_creation(in_creation.bean_name or ""):
                    logger.debug(f"Ignoring match to currently created bean '{name}': {e}")
                    self.registry.on_suppressed_exception(e)
                    continue
                raise
            if bean is not None:
                result[name] = bean
        return result

    def get_of_type(self, required_type: Type[T]) -> List[T]:
        """All beans assignable to ``required_type``, ordered like ``get_beans_of_type``."""
        return list(self.get_beans_of_type(required_type).values())

    def get_provider(self, required_type: Type[T]) -> ObjectProvider[T]:
        return ObjectProvider(self, required_type)

    def resolve_dependency(self, descriptor: DependencyDescriptor,
                           requesting_name: Optional[str] = None,
                           autowired_names: Optional[List[str]] = None) -> Any:
        return self._dependency_resolver.resolve_dependency(descriptor, requesting_name,
                                                            autowired_names)

    def resolve_named_bean(self, required_type: Any) -> Tuple[str, Any]:
        return self._dependency_resolver.resolve_named_bean(required_type)

    # Definitions

    def register_definition(self, name: str, definition: Definition) -> None:
        self.store.register(name, definition)

    def remove_definition(self, name: str) -> Definition:
        return self.store.remove(name)

    def contains_definition(self, name: str) -> bool:
        return self.store.has(self.transformed_name(name))

    def get_merged_definition(self, name: str) -> Definition:
        """Return the definition of ``name`` merged with its parent definitions.

        The result is cached until the definition is re-registered or removed.

        Raises:
            NoSuchDefinitionError: When ``name`` is not defined here or in a parent
        """
        bean_name = self.transformed_name(name)
        merged = self._merged.get(bean_name)
        if merged is not None and not merged.stale:
            return merged
        if self.parent is not None and not self.store.has(bean_name):
            return self.parent.get_merged_definition(bean_name)
        with self._merged_lock:
            merged = self._merged.get(bean_name)
            if merged is None or merged.stale:
                merged = self._merge(bean_name, self.store.get(bean_name), set())
                self._merged[bean_name] = merged
            return merged

    def get_merged_inner_definition(self, name: str, definition: Definition) -> Definition:
        """Merge an inner definition; inner beans are always built as prototypes."""
        merged = self._merge(name, definition, set())
        merged.scope = PROTOTYPE
        return merged

    def _merge(self, name: str, definition: Definition, visiting: Set[str]) -> Definition:
        if definition.parent_name is None:
            result = definition.copy()
        else:
            parent_name = self.canonical_name(definition.parent_name)
            if parent_name in visiting:
                raise DefinitionStoreError(
                    f"Circular parent definition chain for bean '{name}' through '{parent_name}'"
                )
            visiting.add(name)
            if parent_name != name and self.store.has(parent_name):
                parent_definition = self._merge(parent_name, self.store.get(parent_name), visiting)
            elif self.parent is not None:
                parent_definition = self.parent.get_merged_definition(parent_name)
            else:
                raise NoSuchDefinitionError(
                    f"Could not resolve parent definition '{parent_name}' of bean '{name}'",
                    bean_name=parent_name,
                )
            result = merge(parent_definition, definition)
        if result.scope is None:
            result.scope = SINGLETON
        return result

    def reset_definition(self, name: str) -> None:
        """Forget everything derived from the definition of ``name``.

        Evicts the merged definition (and its cached constructor decision),
        destroys the singleton built from it and resets child definitions.
        """
        with self._merged_lock:
            merged = self._merged.pop(name, None)
            if merged is not None:
                merged.stale = True
        with self.registry.lock:
            # an in-flight build of ``name`` finishes before it is evicted
            if self.registry.contains_singleton(name):
                self.registry.destroy_singleton(name)
        if not self._merged:
            return
        for child in self.store.names():
            if child == name or not self.store.has(child):
                continue
            parent_name = self.store.get(child).parent_name
            if parent_name is not None and self.canonical_name(parent_name) == name:
                self.reset_definition(child)

    # Creation

    def create_bean(self, bean_name: str, definition: Definition,
                    explicit_args: Optional[Sequence[Any]] = None) -> Any:
        """Run the full lifecycle for one new instance of ``definition``."""
        logger.debug(f"Creating instance of bean '{bean_name}'")
        with resolution_context.creating(bean_name):
            try:
                bean = self._resolve_before_instantiation(bean_name, definition)
                if bean is not None:
                    return bean
                return self._do_create_bean(bean_name, definition, explicit_args)
            except BeanGraphError:
                raise
            except Exception as e:
                raise BeanCreationError(
                    f"Unexpected exception during bean creation: {type(e).__name__}: {e}",
                    bean_name=bean_name,
                    resource_description=definition.resource_description,
                ) from e

    def _resolve_before_instantiation(self, bean_name: str, definition: Definition) -> Any:
        if definition.synthetic:
            return None
        for processor in self._post_processors:
            if isinstance(processor, InstantiationAwarePostProcessor):
                bean = processor.post_process_before_instantiation(definition.bean_type, bean_name)
                if bean is not None:
                    return self._apply_after_initialization(bean, bean_name)
        return None

    def _do_create_bean(self, bean_name: str, definition: Definition,
                        explicit_args: Optional[Sequence[Any]]) -> Any:
        instance = self._create_instance(bean_name, definition, explicit_args)
        if instance is None:
            return NULL

        early_exposure = (definition.is_singleton and self.allow_circular_references
                          and self.registry.is_in_creation(bean_name))
        if early_exposure:
            logger.debug(f"Eagerly caching bean '{bean_name}' to allow for resolving "
                         f"potential circular references")
            self.registry.add_early_supplier(
                bean_name, lambda: self._early_reference(bean_name, definition, instance))

        self._populate(bean_name, definition, instance)
        exposed = self._initialize(bean_name, instance, definition)

        if early_exposure:
            early = self.registry.get_singleton(bean_name, allow_early=False)
            if early is not None:
                if exposed is instance:
                    exposed = early
                elif not self.allow_raw_injection_despite_wrapping:
                    dependents = self.registry.get_dependent_beans(bean_name)
                    if dependents:
                        raise CurrentlyInCreationError(
                            f"Bean with name '{bean_name}' has been injected into other beans "
                            f"[{', '.join(dependents)}] in its raw version as part of a circular "
                            f"reference, but has eventually been wrapped. This means that said "
                            f"other beans do not use the final version of the bean.",
                            bean_name=bean_name,
                            resource_description=definition.resource_description,
                        )

        self.register_disposable_if_necessary(bean_name, exposed, definition)
        return exposed

    def _create_instance(self, bean_name: str, definition: Definition,
                         explicit_args: Optional[Sequence[Any]]) -> Any:
        if definition.is_factory_method:
            return self._constructor_resolver.instantiate_using_factory_method(
                bean_name, definition, explicit_args)
        bean_type = definition.bean_type
        if bean_type is None:
            raise BeanCreationError(
                "Definition declares neither a bean type nor a factory method",
                bean_name=bean_name,
                resource_description=definition.resource_description,
            )
        if inspect.isabstract(bean_type):
            raise BeanCreationError(
                f"Cannot instantiate abstract class [{type_name(bean_type)}]",
                bean_name=bean_name,
                resource_description=definition.resource_description,
            )
        chosen = None
        for processor in self._smart_processors(definition):
            chosen = processor.determine_candidate_constructors(bean_type, bean_name)
            if chosen:
                break
        return self._constructor_resolver.autowire_constructor(bean_name, definition, chosen or None,
                                                               explicit_args)

    def _early_reference(self, bean_name: str, definition: Definition, bean: Any) -> Any:
        exposed = bean
        for processor in self._smart_processors(definition):
            exposed = processor.get_early_bean_reference(exposed, bean_name)
        return exposed

    def _populate(self, bean_name: str, definition: Definition, bean: Any) -> None:
        aware = [] if definition.synthetic else [
            processor for processor in self._post_processors
            if isinstance(processor, InstantiationAwarePostProcessor)
        ]
        for processor in aware:
            if not processor.post_process_after_instantiation(bean, bean_name):
                return

        values: Optional[Dict[str, Any]] = dict(definition.property_values)
        mode = definition.effective_autowire_mode
        if mode in (AUTOWIRE_BY_NAME, AUTOWIRE_BY_TYPE):
            for attr, hint in self._unsatisfied_attributes(bean, values).items():
                if mode == AUTOWIRE_BY_NAME:
                    if self.contains(attr):
                        values[attr] = BeanRef(attr)
                    else:
                        logger.debug(f"Not autowiring attribute '{attr}' of bean '{bean_name}' "
                                     f"by name: no matching bean found")
                else:
                    values[attr] = DependencyDescriptor(
                        hint, name=attr, required=False,
                        owner=f"attribute '{attr}' of [{type_name(type(bean))}]")

        for processor in aware:
            values = processor.post_process_properties(values, bean, bean_name)
            if values is None:
                return
        if values:
            self._apply_property_values(bean_name, definition, bean, values)

    def _unsatisfied_attributes(self, bean: Any, declared: Dict[str, Any]) -> Dict[str, Any]:
        """Annotated public attributes of a non-simple type that are still unset."""
        result = {}
        for attr, hint in _attribute_hints(type(bean)).items():
            if attr.startswith("_") or attr in declared or typing.get_origin(hint) is typing.ClassVar:
                continue
            if isinstance(hint, str) or raw_class(hint) in _SIMPLE_ATTRIBUTE_TYPES:
                continue
            if getattr(bean, attr, None) is None:
                result[attr] = hint
        return result

    def _apply_property_values(self, bean_name: str, definition: Definition, bean: Any,
                               values: Dict[str, Any]) -> None:
        resolver = ValueResolver(self, bean_name, definition)
        hints = _attribute_hints(type(bean))
        for attr, raw in values.items():
            if attr not in hints and not hasattr(bean, attr):
                raise BeanCreationError(
                    f"Invalid property '{attr}' of bean class [{type_name(type(bean))}]: "
                    f"the class declares no such attribute",
                    bean_name=bean_name,
                    resource_description=definition.resource_description,
                )
            resolved = resolver.resolve(f"bean property '{attr}'", raw)
            if resolved is None and isinstance(raw, DependencyDescriptor) and not raw.required:
                continue
            declared = hints.get(attr)
            if declared is not None and not isinstance(declared, str):
                try:
                    resolved = self.type_converter.convert_if_necessary(
                        resolved, declared, f"bean property '{attr}'")
                except TypeMismatchError as e:
                    raise BeanCreationError(
                        f"Failed to convert property value for bean property '{attr}': {e}",
                        bean_name=bean_name,
                        resource_description=definition.resource_description,
                    ) from e
            try:
                setattr(bean, attr, resolved)
            except AttributeError as e:
                raise BeanCreationError(
                    f"Bean property '{attr}' is not writable: {e}",
                    bean_name=bean_name,
                    resource_description=definition.resource_description,
                ) from e

    def _initialize(self, bean_name: str, bean: Any, definition: Definition) -> Any:
        if isinstance(bean, BeanNameAware):
            bean.set_bean_name(bean_name)
        if isinstance(bean, BeanFactoryAware):
            bean.set_bean_factory(self)

        wrapped = bean
        if not definition.synthetic:
            wrapped = self._apply_before_initialization(wrapped, bean_name)
        try:
            self._invoke_init_methods(bean_name, wrapped, definition)
        except BeanGraphError:
            raise
        except Exception as e:
            raise BeanCreationError(
                f"Invocation of init method failed: {type(e).__name__}: {e}",
                bean_name=bean_name,
                resource_description=definition.resource_description,
            ) from e
        if not definition.synthetic:
            wrapped = self._apply_after_initialization(wrapped, bean_name)
        return wrapped

    def _invoke_init_methods(self, bean_name: str, bean: Any, definition: Definition) -> None:
        initializing = isinstance(bean, InitializingBean)
        if initializing:
            logger.debug(f"Invoking after_properties_set() on bean with name '{bean_name}'")
            bean.after_properties_set()
        init_method_name = definition.init_method_name
        if init_method_name is None or (initializing and init_method_name == "after_properties_set"):
            return
        method = getattr(bean, init_method_name, None)
        if not callable(method):
            raise BeanCreationError(
                f"Could not find an init method named '{init_method_name}' on bean "
                f"with name '{bean_name}'",
                bean_name=bean_name,
                resource_description=definition.resource_description,
            )
        logger.debug(f"Invoking init method '{init_method_name}' on bean with name '{bean_name}'")
        method()

    def _apply_before_initialization(self, bean: Any, bean_name: str) -> Any:
        current = bean
        for processor in self._post_processors:
            result = processor.post_process_before_initialization(current, bean_name)
            if result is None:
                return current
            current = result
        return current

    def _apply_after_initialization(self, bean: Any, bean_name: str) -> Any:
        current = bean
        for processor in self._post_processors:
            result = processor.post_process_after_initialization(current, bean_name)
            if result is None:
                return current
            current = result
        return current

    def _smart_processors(self, definition: Definition) -> List[SmartInstantiationAwarePostProcessor]:
        if definition.synthetic:
            return []
        return [processor for processor in self._post_processors
                if isinstance(processor, SmartInstantiationAwarePostProcessor)]

    def register_disposable_if_necessary(self, bean_name: str, bean: Any, definition: Definition,
                                         owned_by_singleton: bool = False) -> None:
        """Register a destroy callback for ``bean`` if it needs one.

        Singletons (and inner beans of singletons) register with the registry,
        custom-scoped beans with their scope. Prototypes are not tracked.
        """
        if bean is NULL or (definition.is_prototype and not owned_by_singleton):
            return
        if not (DisposableBeanAdapter.has_destroy_method(bean, definition)
                or DisposableBeanAdapter.has_applicable_processors(bean, self._post_processors)):
            return
        adapter = DisposableBeanAdapter(bean, bean_name, definition, self._post_processors)
        if definition.is_singleton or owned_by_singleton:
            self.registry.register_disposable(bean_name, adapter)
        else:
            self._scope_for(bean_name, definition).register_destruction_callback(bean_name, adapter)

    # FactoryBean dereference

    def object_for_bean_instance(self, instance: Any, name: str, bean_name: str,
                                 definition: Optional[Definition]) -> Any:
        """Return ``instance`` itself or, for a FactoryBean, its product.

        ``&name`` asks for the FactoryBean itself.
        """
        if instance is NULL:
            return None
        if name.startswith(FACTORY_BEAN_PREFIX):
            if not isinstance(instance, FactoryBean):
                raise TypeMismatchError(
                    f"Bean named '{bean_name}' is expected to be of type 'FactoryBean' "
                    f"but was actually of type '{type(instance).__name__}'",
                    value=instance,
                    required_type=FactoryBean,
                )
            return instance
        if not isinstance(instance, FactoryBean):
            return instance

        synthetic = definition is not None and definition.synthetic
        if instance.is_singleton and self.registry.contains_singleton(bean_name):
            product = self.registry.get_cached_factory_object(bean_name)
            if product is None:
                product = self._object_from_factory_bean(instance, bean_name, synthetic)
                product = self.registry.cache_factory_object(bean_name, product)
        else:
            product = self._object_from_factory_bean(instance, bean_name, synthetic)
        return None if product is NULL else product

    def _object_from_factory_bean(self, factory: FactoryBean, bean_name: str,
                                  synthetic: bool) -> Any:
        try:
            product = factory.get_object()
        except BeanGraphError:
            raise
        except Exception as e:
            raise BeanCreationError(
                f"FactoryBean threw exception on object creation: {type(e).__name__}: {e}",
                bean_name=bean_name,
            ) from e
        if product is None:
            if self.registry.is_in_creation(bean_name):
                raise CurrentlyInCreationError(
                    "FactoryBean which is currently in creation returned None from get_object()",
                    bean_name=bean_name,
                )
            return NULL
        if not synthetic:
            product = self._apply_after_initialization(product, bean_name)
        return product

    def is_factory_bean(self, name: str) -> bool:
        bean_name = self.transformed_name(name)
        instance = self.registry.get_singleton(bean_name, allow_early=False)
        if instance is not None:
            return isinstance(instance, FactoryBean)
        if self.parent is not None and not self.store.has(bean_name):
            return self.parent.is_factory_bean(name)
        predicted = self._predict_type(bean_name, self.get_merged_definition(bean_name))
        return _is_factory_bean_type(predicted)

    def factory_bean_name_of(self, name: str) -> Optional[str]:
        """Name of the factory bean whose method produces ``name``, if any."""
        bean_name = self.transformed_name(name)
        if not self.store.has(bean_name):
            return None
        return self.get_merged_definition(bean_name).factory_bean_name

    # Type queries

    def names_for_type(self, required_type: Any, include_non_singletons: bool = True,
                       allow_eager_init: bool = True) -> List[str]:
        """Names of the beans assignable to ``required_type``, definitions first.

        A FactoryBean matches through its product type under its plain name,
        and through its own class under ``&name``. Names defined in a parent
        factory are included unless shadowed locally.
        """
        if required_type is None:
            return []

        def matcher(name: str, definition: Definition, required: Any,
                    non_singletons: bool, eager: bool) -> Optional[str]:
            return self._match_definition(name, required, non_singletons, eager)

        result = self.store.names_of_type(required_type, include_non_singletons, allow_eager_init,
                                          matcher)
        for name in self.registry.singleton_names():
            if name in result or self.store.has(name):
                continue
            instance = self.registry.get_singleton(name, allow_early=False)
            if instance is None:
                continue
            if isinstance(instance, FactoryBean):
                if self._type_matches(required_type, instance.object_type):
                    result.append(name)
                elif self.type_inspector.is_assignable(required_type, instance):
                    result.append(FACTORY_BEAN_PREFIX + name)
            elif self.type_inspector.is_assignable(required_type, instance):
                result.append(name)

        if self.parent is not None:
            for name in self.parent.names_for_type(required_type, include_non_singletons,
                                                   allow_eager_init):
                local = self.transformed_name(name)
                if name not in result and not self.contains_local(local):
                    result.append(name)
        return result

    def _match_definition(self, name: str, required_type: Any, include_non_singletons: bool,
                          allow_eager_init: bool) -> Optional[str]:
        merged = self.get_merged_definition(name)
        if merged.is_abstract:
            return None
        instance = self.registry.get_singleton(name, allow_early=False)
        if instance is not None and instance is not NULL:
            if isinstance(instance, FactoryBean):
                if self._type_matches(required_type, instance.object_type):
                    return name
                return FACTORY_BEAN_PREFIX + name if self._type_matches(required_type, type(instance)) else None
            return name if self.type_inspector.is_assignable(required_type, instance) else None
        if not include_non_singletons and not merged.is_singleton:
            return None

        bean_type = self._predict_type(name, merged)
        if bean_type is None:
            return None
        if _is_factory_bean_type(bean_type):
            if self._type_matches(required_type, self._factory_bean_object_type(name, merged,
                                                                                allow_eager_init)):
                return name
            return FACTORY_BEAN_PREFIX + name if self._type_matches(required_type, bean_type) else None
        return name if self._type_matches(required_type, bean_type) else None

    def _type_matches(self, required_type: Any, actual: Any) -> bool:
        if actual is None:
            return False
        return self.type_inspector.is_type_assignable(required_type, actual)

    def _predict_type(self, bean_name: str, definition: Definition) -> Optional[type]:
        for processor in self._smart_processors(definition):
            predicted = processor.predict_bean_type(definition.bean_type, bean_name)
            if predicted is not None:
                return predicted
        if definition.is_factory_method:
            return self._factory_method_return_type(bean_name, definition)
        return definition.bean_type

    def _factory_method_return_type(self, bean_name: str, definition: Definition) -> Optional[type]:
        executable = definition.resolved_executable
        if executable is not None:
            return raw_class(executable.return_type)
        if definition.factory_bean_name == bean_name:
            return None
        if definition.factory_bean_name is not None:
            factory_class = self.get_type(definition.factory_bean_name)
            static = False
        else:
            factory_class = definition.bean_type
            static = True
        if factory_class is None:
            return None
        return_types = {
            raw_class(candidate.return_type)
            for candidate in self.type_inspector.factory_methods(
                factory_class, definition.factory_method_name, static)
        }
        if len(return_types) == 1:
            return return_types.pop()
        return None

    def _factory_bean_object_type(self, bean_name: str, definition: Definition,
                                  allow_eager_init: bool) -> Optional[type]:
        instance = self.registry.get_singleton(bean_name, allow_early=False)
        if isinstance(instance, FactoryBean):
            return instance.object_type
        if not allow_eager_init or not definition.is_singleton or self.is_in_creation(bean_name):
            return None
        factory = self.get(FACTORY_BEAN_PREFIX + bean_name)
        return factory.object_type

    def get_type(self, name: str) -> Optional[type]:
        """Type of the bean ``name`` would return, without creating it if possible.

        Raises:
            NoSuchDefinitionError: When ``name`` is unknown
        """
        bean_name = self.transformed_name(name)
        dereference = name.startswith(FACTORY_BEAN_PREFIX)
        instance = self.registry.get_singleton(bean_name, allow_early=False)
        if instance is not None and instance is not NULL:
            if isinstance(instance, FactoryBean) and not dereference:
                return instance.object_type
            return type(instance)
        if not self.store.has(bean_name):
            if self.parent is not None:
                return self.parent.get_type(name)
            raise NoSuchDefinitionError(f"No bean named '{name}' available", bean_name=name)
        merged = self.get_merged_definition(bean_name)
        predicted = self._predict_type(bean_name, merged)
        if _is_factory_bean_type(predicted) and not dereference:
            return self._factory_bean_object_type(bean_name, merged, allow_eager_init=False)
        return predicted

    def is_type_match(self, name: str, required_type: Any) -> bool:
        return self._type_matches(required_type, self.get_type(name))

    # Candidate metadata, consulted by DependencyResolver

    def is_autowire_candidate(self, name: str) -> bool:
        bean_name = self.transformed_name(name)
        if self.store.has(bean_name):
            return self.get_merged_definition(bean_name).autowire_candidate
        if self.parent is not None and not self.registry.contains_singleton(bean_name):
            return self.parent.is_autowire_candidate(name)
        return True

    def is_primary(self, name: str) -> bool:
        bean_name = self.transformed_name(name)
        if self.store.has(bean_name):
            return self.get_merged_definition(bean_name).primary
        if self.parent is not None and not self.registry.contains_singleton(bean_name):
            return self.parent.is_primary(name)
        return False

    def priority_of(self, name: str) -> Optional[int]:
        bean_name = self.transformed_name(name)
        if self.store.has(bean_name):
            return self.get_merged_definition(bean_name).priority
        if self.parent is not None and not self.registry.contains_singleton(bean_name):
            return self.parent.priority_of(name)
        return None

    def sort_by_priority(self, names: List[str]) -> List[str]:
        """Stable sort: lowest priority first, names without a priority last."""
        def key(name: str) -> Tuple[bool, int]:
            priority = self.priority_of(name)
            return priority is None, priority or 0
        return sorted(names, key=key)

    # Queries

    def contains(self, name: str) -> bool:
        """Whether ``name`` resolves to a definition or singleton here or in a parent."""
        if self.contains_local(self.transformed_name(name)):
            return True
        return self.parent is not None and self.parent.contains(name)

    def contains_local(self, bean_name: str) -> bool:
        return self.registry.contains_singleton(bean_name) or self.store.has(bean_name)

    def contains_singleton(self, name: str) -> bool:
        return self.registry.contains_singleton(name)

    def is_name_in_use(self, name: str) -> bool:
        """Whether ``name`` is taken by a definition, alias, singleton or dependency edge."""
        return (self.contains_local(name) or self.canonical_name(name) != name
                or self.registry.has_dependent_bean(name))

    def is_singleton(self, name: str) -> bool:
        bean_name = self.transformed_name(name)
        instance = self.registry.get_singleton(bean_name, allow_early=False)
        if instance is not None:
            if isinstance(instance, FactoryBean) and not name.startswith(FACTORY_BEAN_PREFIX):
                return instance.is_singleton
            return True
        if not self.store.has(bean_name):
            if self.parent is not None:
                return self.parent.is_singleton(name)
            raise NoSuchDefinitionError(f"No bean named '{name}' available", bean_name=name)
        return self.get_merged_definition(bean_name).is_singleton

    def is_prototype(self, name: str) -> bool:
        bean_name = self.transformed_name(name)
        if self.store.has(bean_name):
            return self.get_merged_definition(bean_name).is_prototype
        if self.registry.contains_singleton(bean_name):
            return False
        if self.parent is not None:
            return self.parent.is_prototype(name)
        raise NoSuchDefinitionError(f"No bean named '{name}' available", bean_name=name)

    def is_in_creation(self, name: str) -> bool:
        bean_name = self.transformed_name(name)
        return (self.registry.is_in_creation(bean_name)
                or resolution_context.is_prototype_in_creation(bean_name, self))

    # Registration

    def register_singleton(self, name: str, instance: Any) -> None:
        self.registry.register_singleton(name, instance)

    def register_resolvable_dependency(self, dependency_type: type, value: Any) -> None:
        """Inject ``value`` wherever ``dependency_type`` is required, without a definition."""
        if not isinstance(value, dependency_type):
            raise ValueError(
                f"Value [{value!r}] does not implement specified dependency type "
                f"[{type_name(dependency_type)}]"
            )
        self.resolvable_dependencies[dependency_type] = value

    def add_post_processor(self, processor: BeanPostProcessor) -> None:
        """Add ``processor``; re-adding moves it to the end of the chain."""
        if processor in self._post_processors:
            self._post_processors.remove(processor)
        self._post_processors.append(processor)

    @property
    def post_processors(self) -> List[BeanPostProcessor]:
        return list(self._post_processors)

    def register_dependency(self, dependent: str, dependee: str) -> None:
        """Record that ``dependent`` depends on ``dependee``; orders destruction."""
        self.registry.register_dependent_bean(self.transformed_name(dependee), dependent)

    def register_scope(self, scope_name: str, scope: Scope) -> None:
        """Back ``scope_name`` with ``scope``.

        Raises:
            ValueError: When ``scope_name`` is ``singleton`` or ``prototype``
        """
        if scope_name in BUILTIN_SCOPES:
            raise ValueError("Cannot replace existing scopes 'singleton' and 'prototype'")
        previous = self._scopes.get(scope_name)
        if previous is not None and previous is not scope:
            logger.debug(f"Replacing scope '{scope_name}' from [{previous!r}] to [{scope!r}]")
        self._scopes[scope_name] = scope

    def get_scope(self, scope_name: str) -> Optional[Scope]:
        return self._scopes.get(scope_name)

    # Eager creation and destruction

    def pre_instantiate_singletons(self) -> None:
        """Create every non-abstract, non-lazy singleton in registration order.

        FactoryBeans are created themselves; their product only when
        ``is_eager_init`` says so.
        """
        logger.debug(f"Pre-instantiating singletons in {self!r}")
        for name in self.store.names():
            merged = self.get_merged_definition(name)
            if merged.is_abstract or not merged.is_singleton or merged.is_lazy:
                continue
            if self.is_factory_bean(name):
                factory = self.get(FACTORY_BEAN_PREFIX + name)
                if isinstance(factory, FactoryBean) and factory.is_eager_init:
                    self.get(name)
            else:
                self.get(name)

    def destroy_all(self) -> None:
        """Destroy every singleton; dependents go before the beans they depend on."""
        self.registry.destroy_all()

    def destroy_bean(self, name: str, bean: Any = None) -> None:
        """Destroy the singleton ``name``, or the given (prototype) ``bean`` built for ``name``."""
        bean_name = self.transformed_name(name)
        if bean is None:
            self.registry.destroy_singleton(bean_name)
            return
        DisposableBeanAdapter(bean, bean_name, self.get_merged_definition(bean_name),
                              self._post_processors).destroy()

    def destroy_scoped_bean(self, name: str) -> None:
        """Remove ``name`` from its custom scope and destroy the removed object.

        Raises:
            ValueError: When ``name`` is a singleton or prototype
        """
        bean_name = self.transformed_name(name)
        definition = self.get_merged_definition(bean_name)
        if definition.effective_scope in BUILTIN_SCOPES:
            raise ValueError(f"Bean name '{name}' does not correspond to an object in a mutable scope")
        instance = self._scope_for(bean_name, definition).remove(bean_name)
        if instance is not None and instance is not NULL:
            DisposableBeanAdapter(instance, bean_name, definition, self._post_processors).destroy()

    def __repr__(self) -> str:
        parent = f"; parent: {self.parent!r}" if self.parent is not None else ""
        return f"<BeanFactory defining beans [{', '.join(self.store.names())}]{parent}>"


def _is_factory_bean_type(bean_type: Any) -> bool:
    return isinstance(bean_type, type) and issubclass(bean_type, FactoryBean)


def _attribute_hints(cls: type) -> Dict[str, Any]:
    """Attribute annotations of ``cls`` and its bases; unresolvable ones stay strings."""
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        hints: Dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            hints.update(getattr(klass, "__annotations__", {}))
        return hints
