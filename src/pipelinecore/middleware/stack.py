"""
=============================================================================
ORDERED MIDDLEWARE STACK
=============================================================================

The stack records WHICH middleware to run and in WHAT order, without
instantiating anything. Instantiation happens in build(), around whatever
application you hand it.

=============================================================================
ENTRIES, NOT INSTANCES
=============================================================================

Each entry (MiddlewareEntry) remembers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  ref        class, factory function, or string name                 │
    │  args       positional constructor arguments                        │
    │  options    keyword constructor arguments                           │
    │  condition  optional zero-argument predicate                        │
    └─────────────────────────────────────────────────────────────────────┘

String references are looked up in a MiddlewareRegistry when the stack is
READ (active() / build()), not when the entry is added. That lets
configuration name a middleware before the code that provides it has
registered it.

Conditions are evaluated on every active() call. Nothing is cached, so an
entry can switch on or off as its environment changes.

=============================================================================
MUTATION
=============================================================================

    stack = MiddlewareStack()
    stack.use(Foo)                      # [Foo]
    stack.use(Bar)                      # [Foo, Bar]
    stack.insert_after(Bar, Baz)        # [Foo, Bar, Baz]
    stack.insert_before(Foo, Qux)       # [Qux, Foo, Bar, Baz]
    stack.swap(Bar, Quux)               # [Qux, Foo, Quux, Baz]
    stack.delete(Qux)                   # [Foo, Quux, Baz]

Targets match the FIRST entry whose reference is the same object, or
whose name equals the target's name when either side is a string.
Operations on a target that is not present raise NotFoundError; nothing is
silently appended.

The stack is a boot-time structure. It does no locking: mutate it while
configuring, then read it from as many request threads as you like.

=============================================================================
"""

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from ..errors import ConfigurationError, IndexOutOfRangeError, NotFoundError
from ..http.response import Handler


logger = logging.getLogger(__name__)


Predicate = Callable[[], bool]


def ref_name(ref: Any) -> str:
    """
    Name used to match a middleware reference.

    Strings match by their last dotted component, so
    "pipelinecore.middleware.failsafe.Failsafe" and Failsafe are the
    same middleware as far as insert_before/swap are concerned.
    """
    if isinstance(ref, str):
        return ref.rsplit(".", 1)[-1]
    return getattr(ref, "__name__", type(ref).__name__)


class MiddlewareRegistry:
    """
    Namespace mapping names to middleware factories.

    Registries can be chained: a lookup that misses falls through to the
    parent. Dotted names that are not registered are imported as
    "package.module.Attribute" as a last resort.

        registry = MiddlewareRegistry()

        @registry.register
        class Timing(Middleware):
            ...

        registry.register(make_cors, name="Cors")
    """

    def __init__(self, parent: Optional["MiddlewareRegistry"] = None):
        self._factories: Dict[str, Callable[..., Handler]] = {}
        self._parent = parent

    def register(self, factory: Optional[Callable[..., Handler]] = None, *, name: Optional[str] = None):
        """Register a factory under ``name`` (default: its __name__). Usable as a decorator."""
        def decorator(target: Callable[..., Handler]) -> Callable[..., Handler]:
            key = name or ref_name(target)
            self._factories[key] = target
            logger.debug(f"Registered middleware: {key}")
            return target

        if factory is None:
            return decorator
        return decorator(factory)

    def lookup(self, name: str) -> Optional[Callable[..., Handler]]:
        """Return the factory for ``name`` or None."""
        if name in self._factories:
            return self._factories[name]
        if self._parent is not None:
            return self._parent.lookup(name)
        return None

    def resolve(self, name: str) -> Callable[..., Handler]:
        """
        Return the factory for ``name``.

        Raises:
            ConfigurationError: if the name is neither registered nor an
                importable dotted path.
        """
        factory = self.lookup(name)
        if factory is not None:
            return factory

        if "." in name:
            module_name, _, attribute = name.rpartition(".")
            try:
                return getattr(importlib.import_module(module_name), attribute)
            except (ImportError, AttributeError) as exc:
                raise ConfigurationError(f"Unresolvable middleware reference: {name!r}") from exc

        raise ConfigurationError(f"Unresolvable middleware reference: {name!r}")

    def names(self) -> List[str]:
        """All registered names, parents first."""
        inherited = self._parent.names() if self._parent is not None else []
        return inherited + [n for n in self._factories if n not in inherited]

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None


@dataclass
class MiddlewareEntry:
    """One stack entry: a middleware reference plus how to construct it."""

    ref: Any
    args: Tuple[Any, ...] = ()
    options: Dict[str, Any] = field(default_factory=dict)
    condition: Optional[Predicate] = None

    @property
    def name(self) -> str:
        return ref_name(self.ref)

    def matches(self, target: Any) -> bool:
        if self.ref is target:
            return True
        if isinstance(self.ref, str) or isinstance(target, str):
            return self.name == ref_name(target)
        return False

    def is_active(self) -> bool:
        return self.condition is None or bool(self.condition())

    def resolve(self, registry: MiddlewareRegistry) -> Callable[..., Handler]:
        if isinstance(self.ref, str):
            return registry.resolve(self.ref)
        return self.ref

    def build(self, app: Handler, registry: MiddlewareRegistry) -> Handler:
        factory = self.resolve(registry)
        return factory(app, *self.args, **self.options)

    def inspect(self) -> str:
        """Human readable form used by the CLI listing."""
        parts = [repr(a) for a in self.args]
        parts += [f"{k}={v!r}" for k, v in self.options.items()]
        suffix = f"({', '.join(parts)})" if parts else ""
        conditional = " [conditional]" if self.condition is not None else ""
        return f"{self.name}{suffix}{conditional}"


class MiddlewareStack:
    """
    Mutable ordered sequence of middleware entries.

    The first entry is the outermost wrapper: it sees the request first
    and the response last. Every mutating method returns the stack so
    calls can be chained.
    """

    def __init__(
        self,
        registry: Optional[MiddlewareRegistry] = None,
        entries: Optional[List[MiddlewareEntry]] = None,
    ):
        self.registry = registry or MiddlewareRegistry()
        self._entries: List[MiddlewareEntry] = list(entries or [])

    # =========================================================================
    # MUTATION
    # =========================================================================

    def use(self, ref: Any, *args, condition: Optional[Predicate] = None, **options) -> "MiddlewareStack":
        """Append a middleware. ``condition`` gates it in active()."""
        self._entries.append(MiddlewareEntry(ref, args, options, condition))
        logger.debug(f"use {ref_name(ref)}")
        return self

    def unshift(self, ref: Any, *args, condition: Optional[Predicate] = None, **options) -> "MiddlewareStack":
        """Prepend a middleware, making it the outermost."""
        return self.insert(0, ref, *args, condition=condition, **options)

    def insert(self, index: Any, ref: Any, *args, condition: Optional[Predicate] = None, **options) -> "MiddlewareStack":
        """
        Insert at an absolute position. Later entries shift by one.

        ``index`` may be anything from 0 to len(stack) inclusive; the
        upper bound appends. A non-integer index is treated as a target
        reference, making this an alias for insert_before.

        Raises:
            IndexOutOfRangeError: for a negative or too-large index.
            NotFoundError: for a target reference that is not present.
        """
        if not isinstance(index, int) or isinstance(index, bool):
            return self.insert_before(index, ref, *args, condition=condition, **options)

        if not 0 <= index <= len(self._entries):
            raise IndexOutOfRangeError(index, len(self._entries))

        self._entries.insert(index, MiddlewareEntry(ref, args, options, condition))
        logger.debug(f"insert {ref_name(ref)} at {index}")
        return self

    def insert_before(self, target: Any, ref: Any, *args, condition: Optional[Predicate] = None, **options) -> "MiddlewareStack":
        """Insert immediately before the first entry matching ``target``."""
        index = self.index(target)
        self._entries.insert(index, MiddlewareEntry(ref, args, options, condition))
        logger.debug(f"insert {ref_name(ref)} before {ref_name(target)}")
        return self

    def insert_after(self, target: Any, ref: Any, *args, condition: Optional[Predicate] = None, **options) -> "MiddlewareStack":
        """Insert immediately after the first entry matching ``target``."""
        index = self.index(target)
        self._entries.insert(index + 1, MiddlewareEntry(ref, args, options, condition))
        logger.debug(f"insert {ref_name(ref)} after {ref_name(target)}")
        return self

    def swap(self, target: Any, ref: Any, *args, condition: Optional[Predicate] = None, **options) -> "MiddlewareStack":
        """Replace the first entry matching ``target`` in place."""
        index = self.index(target)
        self._entries[index] = MiddlewareEntry(ref, args, options, condition)
        logger.debug(f"swap {ref_name(target)} for {ref_name(ref)}")
        return self

    def delete(self, target: Any) -> "MiddlewareStack":
        """Remove the first entry matching ``target``."""
        del self._entries[self.index(target)]
        logger.debug(f"delete {ref_name(target)}")
        return self

    def move_before(self, target: Any, ref: Any) -> "MiddlewareStack":
        """Relocate the existing ``ref`` entry to just before ``target``."""
        return self._move(target, ref, offset=0)

    def move_after(self, target: Any, ref: Any) -> "MiddlewareStack":
        """Relocate the existing ``ref`` entry to just after ``target``."""
        return self._move(target, ref, offset=1)

    def _move(self, target: Any, ref: Any, offset: int) -> "MiddlewareStack":
        source = self.index(ref)
        entry = self._entries.pop(source)
        try:
            destination = self.index(target)
        except NotFoundError:
            self._entries.insert(source, entry)
            raise
        self._entries.insert(destination + offset, entry)
        logger.debug(f"move {entry.name} next to {ref_name(target)}")
        return self

    # =========================================================================
    # READING
    # =========================================================================

    def index(self, target: Any) -> int:
        """Position of the first entry matching ``target``."""
        for position, entry in enumerate(self._entries):
            if entry.matches(target):
                return position
        raise NotFoundError(target)

    def active(self) -> List[MiddlewareEntry]:
        """
        Entries whose condition holds right now, in stack order.

        Also resolves every active string reference, so an unresolvable
        name fails here rather than on the first request.

        Raises:
            ConfigurationError: if an active reference cannot be resolved.
        """
        entries = [entry for entry in self._entries if entry.is_active()]
        for entry in entries:
            entry.resolve(self.registry)
        return entries

    def build(self, app: Handler) -> Handler:
        """
        Instantiate the active middleware around ``app``.

        Given [A, B, C] the result is A(B(C(app))): wrapping happens in
        reverse so the first entry ends up outermost.
        """
        current = app
        for entry in reversed(self.active()):
            current = entry.build(current, self.registry)
        return current

    def names(self) -> List[str]:
        return [entry.name for entry in self._entries]

    def copy(self) -> "MiddlewareStack":
        """Shallow copy sharing the registry; entries are duplicated."""
        return MiddlewareStack(
            self.registry,
            [MiddlewareEntry(e.ref, e.args, dict(e.options), e.condition) for e in self._entries],
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[MiddlewareEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> MiddlewareEntry:
        return self._entries[index]

    def __contains__(self, target: Any) -> bool:
        return any(entry.matches(target) for entry in self._entries)

    def __repr__(self) -> str:
        return f"MiddlewareStack({self.names()!r})"
