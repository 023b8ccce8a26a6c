# Public API
from .core import BeanGraphCore
from .factory import BeanFactory
from .definition import (
    AUTOWIRE_BY_NAME,
    AUTOWIRE_BY_TYPE,
    AUTOWIRE_CONSTRUCTOR,
    AUTOWIRE_NO,
    INFER_METHOD,
    ConstructorArguments,
    Definition,
    ValueHolder,
)
from .definition_store import DefaultDefinitionStore, DefinitionStore
from .dependency_resolver import ObjectProvider
from .descriptor import DependencyDescriptor
from .evaluator import CallableEvaluator, PlaceholderEvaluator, StringEvaluator
from .conversion import TypeConverter
from .instantiation import InstantiationStrategy, SimpleInstantiationStrategy
from .lifecycle import (
    BeanFactoryAware,
    BeanNameAware,
    BeanPostProcessor,
    DestructionAwarePostProcessor,
    DisposableBean,
    FactoryBean,
    InitializingBean,
    InstantiationAwarePostProcessor,
    SmartInstantiationAwarePostProcessor,
)
from .resolution_context import current_injection_point
from .scope import PROTOTYPE, SINGLETON, CachingScope, Scope, ThreadScope
from .singleton_registry import SingletonRegistry, SingletonState
from .type_inspector import ReflectiveTypeInspector, TypeInspector, constructor, overload_of
from .values import (
    NULL,
    BeanNameRef,
    BeanRef,
    InnerBean,
    ManagedList,
    ManagedMap,
    ManagedSet,
    TypedString,
)
from .exceptions import (
    AmbiguousExecutableError,
    AmbiguousValueError,
    BeanCreationError,
    BeanGraphError,
    ContainerClosedError,
    CreationNotAllowedError,
    CurrentlyInCreationError,
    DefinitionStoreError,
    DuplicateDefinitionError,
    InvalidFactoryMethodError,
    NoMatchingExecutableError,
    NoSuchDefinitionError,
    NoSuchParentContainerError,
    NoUniqueCandidateError,
    PlaceholderResolutionError,
    ScopeNotActiveError,
    TypeMismatchError,
    UnresolvableReferenceError,
)

__all__ = [
    "BeanGraphCore",
    "BeanFactory",
    "SingletonRegistry",
    "SingletonState",
    # Definitions
    "Definition",
    "ConstructorArguments",
    "ValueHolder",
    "DefinitionStore",
    "DefaultDefinitionStore",
    "AUTOWIRE_NO",
    "AUTOWIRE_BY_NAME",
    "AUTOWIRE_BY_TYPE",
    "AUTOWIRE_CONSTRUCTOR",
    "INFER_METHOD",
    # Values
    "BeanRef",
    "BeanNameRef",
    "InnerBean",
    "ManagedList",
    "ManagedSet",
    "ManagedMap",
    "TypedString",
    "NULL",
    # Injection
    "DependencyDescriptor",
    "ObjectProvider",
    "current_injection_point",
    "constructor",
    "overload_of",
    # Collaborators
    "TypeInspector",
    "ReflectiveTypeInspector",
    "TypeConverter",
    "InstantiationStrategy",
    "SimpleInstantiationStrategy",
    "StringEvaluator",
    "CallableEvaluator",
    "PlaceholderEvaluator",
    # Scopes
    "Scope",
    "CachingScope",
    "ThreadScope",
    "SINGLETON",
    "PROTOTYPE",
    # Lifecycle
    "BeanNameAware",
    "BeanFactoryAware",
    "InitializingBean",
    "DisposableBean",
    "FactoryBean",
    "BeanPostProcessor",
    "InstantiationAwarePostProcessor",
    "SmartInstantiationAwarePostProcessor",
    "DestructionAwarePostProcessor",
    # Exceptions
    "BeanGraphError",
    "ContainerClosedError",
    "DefinitionStoreError",
    "DuplicateDefinitionError",
    "NoSuchDefinitionError",
    "NoUniqueCandidateError",
    "AmbiguousValueError",
    "TypeMismatchError",
    "BeanCreationError",
    "CurrentlyInCreationError",
    "CreationNotAllowedError",
    "UnresolvableReferenceError",
    "NoSuchParentContainerError",
    "NoMatchingExecutableError",
    "AmbiguousExecutableError",
    "InvalidFactoryMethodError",
    "ScopeNotActiveError",
    "PlaceholderResolutionError",
]

# Version will be dynamically set by poetry-dynamic-versioning
try:
    from ._version import __version__
except ImportError:
    # Fallback for development
    __version__ = '0.0.0'
