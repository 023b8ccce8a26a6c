"""
BeanGraph Exceptions

Custom exception hierarchy for the BeanGraph object-graph runtime
"""

from typing import Iterable, List, Optional


class BeanGraphError(Exception):
    """
    Base exception for all BeanGraph errors.

    All BeanGraph-specific exceptions inherit from this class.
    You can catch this to handle any BeanGraph error generically.

    Example:
        >>> try:
        ...     service = factory.get("userService")
        ... except BeanGraphError as e:
        ...     print(f"DI error: {e}")
    """

    pass


class ContainerClosedError(BeanGraphError):
    """
    Raised when attempting to use a closed container.

    This error occurs when calling ``get`` or ``load_definitions()``
    on a ``BeanGraphCore`` that has been closed.

    Common causes:
        - Using a container after calling ``core.close()``
        - Using a container after exiting a ``with`` block

    Solution:
        Create a new ``BeanGraphCore`` instead of reusing a closed one::

            with BeanGraphCore(definitions=defs) as core:
                service = core.get("service")  # OK
            # Container is now closed

            core2 = BeanGraphCore(definitions=defs)
    """

    pass


class DefinitionStoreError(BeanGraphError):
    """
    Raised when the definition store rejects a registration or lookup.

    Common causes:
        - Registering or removing definitions after the store was frozen
        - Registering an alias that would create an alias cycle
        - Referring to a scope name that was never registered

    Solution:
        Register all definitions before calling ``refresh()`` (which freezes
        the store), and register custom scopes with ``register_scope()``.
    """

    pass


class DuplicateDefinitionError(DefinitionStoreError):
    """
    Raised when the same name is registered twice and overriding is disabled.

    Solution:
        Use unique bean names, remove the existing definition first, or
        create the store with ``allow_overriding=True``::

            store.remove("dataSource")
            store.register("dataSource", Definition(bean_type=PooledDataSource))
    """

    pass


class NoSuchDefinitionError(BeanGraphError):
    """
    Raised when a requested bean name (or type) is not known to the container.

    Common causes:
        - Forgetting to register the definition
        - Typo in the bean name
        - Asking for a type that no definition produces

    Solution:
        Register the definition before requesting it::

            store.register("database", Definition(bean_type=Database))
            db = factory.get("database")

    Note:
        The error message includes a list of registered names
        to help identify available beans.
    """

    def __init__(self, message: str, bean_name: Optional[str] = None,
                 required_type: Optional[type] = None):
        super().__init__(message)
        self.bean_name = bean_name
        self.required_type = required_type


class NoUniqueCandidateError(NoSuchDefinitionError):
    """
    Raised when a single bean was expected but several candidates qualify.

    Common causes:
        - Two definitions produce the same type and neither is ``primary``
        - Two candidates declare the same lowest ``priority``
        - More than one local candidate is marked ``primary``

    Solution:
        Mark exactly one candidate as primary, give candidates distinct
        priorities, or name the injection point after the intended bean::

            store.register("mainDb", Definition(bean_type=Database, primary=True))
    """

    def __init__(self, message: str, required_type: Optional[type] = None,
                 candidates: Iterable[str] = ()):
        super().__init__(message, required_type=required_type)
        self.candidates = list(candidates)


class AmbiguousValueError(BeanGraphError):
    """
    Raised when a resolved value cannot be placed into its destination.

    The typical case is a map or set key that resolves to ``None``: the
    destination container cannot be safely indexed by it.

    Solution:
        Make sure every key placeholder resolves to a concrete value.
    """

    pass


class TypeMismatchError(BeanGraphError):
    """
    Raised when a value cannot be converted to the declared target type.

    Common causes:
        - A string literal such as ``"abc"`` declared for an ``int`` parameter
        - A reference to a bean whose type does not fit the injection point

    Solution:
        Fix the literal, declare the right type on the argument, or point the
        reference at a compatible bean.
    """

    def __init__(self, message: str, value: object = None,
                 required_type: Optional[type] = None):
        super().__init__(message)
        self.value = value
        self.required_type = required_type


class BeanCreationError(BeanGraphError):
    """
    Raised when building a bean fails.

    This is the build-phase wrapper: it names the bean, the resource the
    definition came from (if known), and carries any errors collected from
    sibling beans that failed while the same singleton was being created.

    Attributes:
        bean_name: Name of the bean that failed
        resource_description: Where the definition came from, if known
        related_causes: Suppressed errors from concurrent sibling failures
    """

    def __init__(self, message: str, bean_name: Optional[str] = None,
                 resource_description: Optional[str] = None):
        self.bean_name = bean_name
        self.resource_description = resource_description
        self.related_causes: List[BaseException] = []
        self._detail = message
        super().__init__(self._format())

    def _format(self) -> str:
        parts = []
        if self.bean_name is not None:
            parts.append(f"Error creating bean with name '{self.bean_name}'")
            if self.resource_description:
                parts.append(f" defined in {self.resource_description}")
            parts.append(": ")
        parts.append(self._detail)
        return "".join(parts)

    def add_related_cause(self, cause: BaseException) -> None:
        """Attach a suppressed sibling failure to this error."""
        self.related_causes.append(cause)

    def __str__(self) -> str:
        message = self._format()
        if self.related_causes:
            related = "\n".join(f"  - {cause}" for cause in self.related_causes)
            message = f"{message}\nRelated causes:\n{related}"
        return message


class CurrentlyInCreationError(BeanCreationError):
    """
    Raised when a singleton is requested again while it is being built.

    This happens when a cycle runs entirely through constructor (or factory
    method) arguments: no object exists yet that could be exposed early.

    Example of an unresolvable cycle::

        class ServiceA:
            def __init__(self, b: ServiceB): ...

        class ServiceB:
            def __init__(self, a: ServiceA): ...  # Circular!

    Solution:
        1. Move one side of the cycle to a property value (post-construction
           injection), which lets the container expose an early reference
        2. Extract the shared functionality into a third bean
    """

    pass


class CreationNotAllowedError(BeanCreationError):
    """
    Raised when a singleton is requested while the container destroys singletons.

    Solution:
        Do not request beans from destroy callbacks.
    """

    pass


class UnresolvableReferenceError(BeanCreationError):
    """
    Raised when a named or typed reference cannot be satisfied.

    Solution:
        Register the referenced bean or mark the reference as optional.
    """

    pass


class NoSuchParentContainerError(UnresolvableReferenceError):
    """
    Raised when a reference explicitly targets a parent container that does not exist.

    Solution:
        Create the factory with ``BeanFactory(parent=...)`` or drop
        ``to_parent=True`` from the reference.
    """

    pass


class NoMatchingExecutableError(BeanCreationError):
    """
    Raised when no constructor or factory method accepts the supplied arguments.

    The message lists the argument types that were attempted.

    Common causes:
        - Wrong number of explicit arguments
        - A parameter that is neither declared in the definition nor
          resolvable by type
        - Autowiring disabled for the definition while parameters are left open
    """

    pass


class AmbiguousExecutableError(BeanCreationError):
    """
    Raised when several constructors or factory methods match equally well.

    Solution:
        Declare argument types or names on the constructor arguments, or
        enable ``lenient_constructor_resolution`` on the definition.
    """

    def __init__(self, message: str, bean_name: Optional[str] = None,
                 resource_description: Optional[str] = None,
                 candidates: Iterable[object] = ()):
        super().__init__(message, bean_name, resource_description)
        self.candidates = list(candidates)


class InvalidFactoryMethodError(BeanCreationError):
    """
    Raised when the only matching factory method is declared to return nothing.

    Solution:
        Annotate the factory method with the type it produces, and return it.
    """

    pass


class ScopeNotActiveError(BeanCreationError):
    """
    Raised when a scoped bean is requested while its scope is not active.

    Solution:
        Open the scope (for example ``CachingScope.open()``) before resolving
        beans that live in it.
    """

    def __init__(self, message: str, bean_name: Optional[str] = None,
                 scope_name: Optional[str] = None):
        super().__init__(message, bean_name)
        self.scope_name = scope_name


class PlaceholderResolutionError(BeanGraphError):
    """
    Raised when a ``${key}`` placeholder has no value and no default.

    Solution:
        Provide the key in the properties mapping, add a default
        (``${key:fallback}``), or create the evaluator with
        ``ignore_unresolvable=True``.
    """

    def __init__(self, message: str, placeholder: Optional[str] = None):
        super().__init__(message)
        self.placeholder = placeholder


def find_cause(error: BaseException, error_type: type) -> Optional[BaseException]:
    """Return the first error of ``error_type`` in the ``__cause__`` chain, if any."""
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        if isinstance(current, error_type):
            return current
        seen.add(id(current))
        current = current.__cause__
    return None
