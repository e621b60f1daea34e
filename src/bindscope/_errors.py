from __future__ import annotations

from typing import Any


def type_name(tp: Any) -> str:
    """Readable name of an abstraction for error messages."""
    if isinstance(tp, type):
        module = getattr(tp, "__module__", "")
        if module == "builtins":
            return tp.__qualname__
        return f"{module}.{tp.__qualname__}"
    return repr(tp)


class ContainerError(Exception):
    """Base class for every error raised by the container."""


class InvalidResolverError(ContainerError, TypeError):
    """A factory or instance cannot be registered."""


class InvalidAbstractionError(ContainerError, TypeError):
    """The requested abstraction is not a usable key."""


class InvalidStructureError(ContainerError, TypeError):
    """The fill target or one of its injection fields is malformed."""


class InvalidReceiverError(ContainerError, TypeError):
    """The callable given to `Container.call` has an unsupported shape."""


class ContextRequiredError(ContainerError, ValueError):
    def __init__(self) -> None:
        super().__init__("A context is required. If you have none, pass `Context.background()`.")


class BindingNotFoundError(ContainerError, LookupError):
    def __init__(self, abstraction: Any, name: str = "") -> None:
        self.abstraction = abstraction
        self.name = name
        msg = f"No binding found for abstraction '{type_name(abstraction)}'"
        if name:
            msg += f" with name '{name}'"
        super().__init__(msg)


class CircularDependencyError(ContainerError):
    def __init__(self, chain: list[Any]) -> None:
        self.chain = chain
        path = " -> ".join(type_name(key.abstraction) + (f"[{key.name}]" if key.name else "") for key in chain)
        super().__init__(f"Circular dependency detected: {path}")


class ResolutionError(ContainerError, RuntimeError):
    """Failed making an instance.

    The underlying failure (missing binding, cycle, or the factory's own
    exception) is always available through `__cause__`.
    """

    def __init__(self, abstraction: Any, name: str = "", *, field: str | None = None) -> None:
        self.abstraction = abstraction
        self.name = name
        self.field = field
        if field is not None:
            msg = f"Failed making instance for field '{field}' of type '{type_name(abstraction)}'"
        elif name:
            msg = f"Failed making instance for type '{type_name(abstraction)}' with name '{name}'"
        else:
            msg = f"Failed making instance for type '{type_name(abstraction)}'"
        super().__init__(msg)

    def __str__(self) -> str:
        base = super().__str__()
        if self.__cause__ is not None:
            return f"{base}: {self.__cause__}"
        return base

    def find_cause(self, kind: type[BaseException]) -> BaseException | None:
        """Return the first exception of `kind` in the `__cause__` chain, if any."""
        current: BaseException | None = self
        seen: set[int] = set()
        while current is not None and id(current) not in seen:
            if isinstance(current, kind):
                return current
            seen.add(id(current))
            current = current.__cause__
        return None

    def caused_by(self, kind: type[BaseException]) -> bool:
        return self.find_cause(kind) is not None
