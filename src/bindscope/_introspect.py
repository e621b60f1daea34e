from __future__ import annotations

import inspect
import logging
import sys
import typing
from typing import TYPE_CHECKING, Any, NamedTuple, Protocol, cast, get_type_hints

from ._errors import InvalidResolverError, type_name


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from dataclasses import Field


logger = logging.getLogger(__name__)

VARIADIC_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


class Dependency(NamedTuple):
    """One argument a factory expects from the container.

    `keyword` is set for keyword-only parameters; every other dependency is
    passed positionally in declaration order. An unannotated parameter keeps
    its default (`abstraction` is `Parameter.empty`).
    """

    abstraction: Any
    keyword: str | None = None
    default: Any = inspect.Parameter.empty

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


def get_hints(func: Callable[..., Any]) -> dict[str, Any]:
    """Evaluated annotations of a callable; classes report their `__init__`."""
    if inspect.isclass(func):
        target: Any = inspect.getattr_static(func, "__init__")
    elif inspect.isfunction(func) or inspect.ismethod(func):
        target = func
    else:
        target = getattr(type(func), "__call__", func)

    try:
        return get_type_hints(target)
    except TypeError:
        return {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s type hints", exc.name, getattr(func, "__qualname__", func))
        return {}


def field_type(cls: type, f: Field[Any]) -> Any:
    """Evaluated annotation of one dataclass field.

    String annotations are evaluated against the module of `cls`. When that
    fails the string is returned unchanged.
    """
    if not isinstance(f.type, str):
        return f.type

    module = sys.modules.get(cls.__module__)
    globalns = dict(getattr(module, "__dict__", {}))
    try:
        return eval(f.type, globalns, dict(vars(cls)))  # noqa: S307
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s.%s type hint", exc.name, cls.__qualname__, f.name)
    except (TypeError, SyntaxError):
        logger.warning("Cannot evaluate %s.%s type hint %r", cls.__qualname__, f.name, f.type)
    return f.type


def product_of(factory: Callable[..., Any]) -> Any:
    """The type a factory produces, or None when it declares nothing."""
    if inspect.isclass(factory):
        return factory

    ret = get_hints(factory).get("return")
    if ret is None or ret is type(None):
        return None
    return ret


def signature_of(func: Callable[..., Any]) -> inspect.Signature:
    try:
        return inspect.signature(func)
    except (TypeError, ValueError) as exc:
        msg = f"Cannot inspect the signature of {func!r}: {exc}"
        raise InvalidResolverError(msg) from exc


def factory_dependencies(
    factory: Callable[..., Any],
    explicit: Sequence[Any] | None = None,
) -> tuple[Dependency, ...]:
    """Dependencies of a factory, introspected or taken from `explicit`.

    Explicit dependencies are matched positionally against the signature.
    """
    sig = signature_of(factory)

    if explicit is not None:
        explicit = tuple(explicit)
        try:
            sig.bind(*explicit)
        except TypeError as exc:
            names = [type_name(d) for d in explicit]
            msg = f"Dependencies {names} don't match {_callable_name(factory)} signature: {exc}"
            raise InvalidResolverError(msg) from exc
        return tuple(Dependency(abstraction) for abstraction in explicit)

    hints = get_hints(factory)
    deps: list[Dependency] = []
    for name, p in sig.parameters.items():
        if p.kind in VARIADIC_KINDS:
            continue

        ann = hints.get(name, inspect.Parameter.empty)
        if ann is inspect.Parameter.empty and p.default is inspect.Parameter.empty:
            msg = f"Parameter '{name}' of {_callable_name(factory)} has no type annotation"
            raise InvalidResolverError(msg)

        keyword = name if p.kind is inspect.Parameter.KEYWORD_ONLY else None
        deps.append(Dependency(ann, keyword, p.default))

    return tuple(deps)


def _callable_name(func: Callable[..., Any]) -> str:
    return getattr(func, "__qualname__", None) or repr(func)


def is_protocol(tp: Any) -> bool:
    if not inspect.isclass(tp):
        return False
    if hasattr(typing, "is_protocol"):
        return typing.is_protocol(tp)
    return issubclass(tp, cast("type", Protocol)) and bool(getattr(tp, "_is_protocol", False))


def check_conforms(abstraction: Any, impl: object) -> None:
    """Raise InvalidResolverError when `impl` cannot stand in for `abstraction`.

    `impl` is either an implementation class or a ready-made instance.
    Only class abstractions are checked. Protocols are accepted nominally
    (in the MRO) or structurally (every public member is present).
    """
    if not inspect.isclass(abstraction):
        return

    impl_type = impl if inspect.isclass(impl) else type(impl)

    if not is_protocol(abstraction):
        if not issubclass(impl_type, abstraction):
            msg = f"Implementation {impl_type.__name__} must be a subclass of {abstraction.__name__}"
            raise InvalidResolverError(msg)
        return

    if abstraction in impl_type.__mro__:
        return

    try:
        members = set(get_type_hints(abstraction))
    except (NameError, TypeError):
        members = set(getattr(abstraction, "__annotations__", {}))
    members.update(name for name, attr in vars(abstraction).items() if inspect.isfunction(attr))
    missing = sorted(name for name in members if not name.startswith("_") and not hasattr(impl, name))
    if missing:
        msg = (
            f"Implementation {impl_type.__name__} does not structurally conform to protocol "
            f"{abstraction.__name__}: missing members: {', '.join(missing)}"
        )
        raise InvalidResolverError(msg)
