"""
ResolutionContext

This module provides the per-thread context for bean resolution.
The ResolutionContext tracks:

- The chain of bean names currently being created (for error messages)
- Prototype names currently in creation (for prototype cycle detection)
- The injection point currently being resolved

The context is stored in a ContextVar for thread-safety and is
automatically managed by the factory during creation.
"""

from contextlib import contextmanager
import threading
from contextvars import ContextVar
from typing import Iterator, List, Optional, Set, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .descriptor import DependencyDescriptor


class ResolutionContext:
    """Context for bean creation on the current thread.

    Attributes:
        creating: Names being created, outermost first
        prototypes: (owner id, name) pairs of prototypes currently being created
        injection_point: The injection point being resolved, if any

    Note:
        This class is used internally by BeanFactory.
        Beans may read the current injection point through
        ``current_injection_point()`` from inside a factory method.
    """

    def __init__(self):
        self.thread_id = threading.get_ident()
        self.creating: List[str] = []
        self.prototypes: Set[Tuple[int, str]] = set()
        self.injection_point: Optional['DependencyDescriptor'] = None

    def chain(self, requested: Optional[str] = None) -> str:
        """Format the creation chain, e.g. ``a -> b -> a``."""
        names = list(self.creating)
        if requested is not None:
            names.append(requested)
        return " -> ".join(names)


_resolution_context: ContextVar[Optional[ResolutionContext]] = ContextVar(
    '_BEANGRAPH_RESOLUTION_CONTEXT',
    default=None
)


def current() -> ResolutionContext:
    """Return the context of the calling thread, creating it on first use."""
    ctx = _resolution_context.get()
    if ctx is None or ctx.thread_id != threading.get_ident():
        ctx = ResolutionContext()
        _resolution_context.set(ctx)
    return ctx


@contextmanager
def creating(name: str) -> Iterator[ResolutionContext]:
    """Record ``name`` on the creation chain for the duration of the block."""
    ctx = current()
    ctx.creating.append(name)
    try:
        yield ctx
    finally:
        ctx.creating.pop()


@contextmanager
def creating_prototype(name: str, owner: object = None) -> Iterator[ResolutionContext]:
    """Mark prototype ``name`` of ``owner`` (usually a factory) as being created."""
    ctx = current()
    key = (id(owner), name)
    ctx.prototypes.add(key)
    try:
        yield ctx
    finally:
        ctx.prototypes.discard(key)


def is_prototype_in_creation(name: str, owner: object = None) -> bool:
    ctx = _resolution_context.get()
    return ctx is not None and (id(owner), name) in ctx.prototypes


@contextmanager
def injecting(descriptor: 'DependencyDescriptor') -> Iterator['DependencyDescriptor']:
    """Expose ``descriptor`` as the current injection point for the duration of the block."""
    ctx = current()
    previous = ctx.injection_point
    ctx.injection_point = descriptor
    try:
        yield descriptor
    finally:
        ctx.injection_point = previous


def current_injection_point() -> Optional['DependencyDescriptor']:
    """The injection point being resolved on this thread, if any.

    Useful in prototype factory methods that tailor the product to the
    requester::

        @staticmethod
        def create_logger() -> logging.Logger:
            point = current_injection_point()
            return logging.getLogger(point.owner if point else "app")
    """
    ctx = _resolution_context.get()
    return ctx.injection_point if ctx is not None else None
