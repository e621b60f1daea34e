from __future__ import annotations

from typing import Any


_MISSING = object()


class Context:
    """Ambient value handed to factories and receivers that declare it.

    The container never inspects it; a parameter annotated with `Context`
    (or a subclass) simply receives whatever the caller passed in.
    Values are layered: `with_value` returns a child context and leaves the
    receiver unchanged.
    """

    __slots__ = ("_key", "_parent", "_value")

    def __init__(self, parent: Context | None = None, key: Any = _MISSING, value: Any = None) -> None:
        self._parent = parent
        self._key = key
        self._value = value

    @classmethod
    def background(cls) -> Context:
        return cls()

    def with_value(self, key: Any, value: Any) -> Context:
        return type(self)(self, key, value)

    def value(self, key: Any, default: Any = None) -> Any:
        ctx: Context | None = self
        while ctx is not None:
            if ctx._key is not _MISSING and ctx._key == key:  # noqa: SLF001
                return ctx._value  # noqa: SLF001
            ctx = ctx._parent  # noqa: SLF001
        return default

    def __repr__(self) -> str:
        if self._key is _MISSING:
            return "Context.background()"
        return f"{self._parent!r}.with_value({self._key!r}, {self._value!r})"
