from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._container import Container
    from ._context import Context
    from ._introspect import Dependency


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"
    SCOPED = "scoped"


class TypeKey(NamedTuple):
    abstraction: Any
    name: str = ""


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass
class Binding:
    """Means of producing the value for one TypeKey.

    `concrete` is written once, after the first successful factory call, for
    every lifetime except TRANSIENT.
    """

    factory: Callable[..., object] | None
    lifetime: Lifetime
    dependencies: tuple[Dependency, ...] = ()
    concrete: object = UNSET
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def resolved(self) -> bool:
        return self.concrete is not UNSET

    def make(self, ctx: Context, container: Container) -> object:
        """Return the cached concrete, or invoke the factory through `container`.

        Dependencies are resolved before the lock is taken, so a thread never
        holds this binding while it waits on another one.
        """
        if self.concrete is not UNSET:
            return self.concrete

        if self.lifetime is Lifetime.TRANSIENT:
            return container._invoke(ctx, self.factory, self.dependencies)  # noqa: SLF001

        args, kwargs = container._arguments(ctx, self.dependencies)  # noqa: SLF001
        with self._lock:
            if self.concrete is UNSET:
                self.concrete = container._call_factory(self.factory, args, kwargs)  # noqa: SLF001
            return self.concrete

    def fresh_copy(self) -> Binding:
        """Same factory and lifetime, empty cache."""
        return Binding(factory=self.factory, lifetime=self.lifetime, dependencies=self.dependencies)
