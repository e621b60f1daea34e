from __future__ import annotations

import dataclasses
import inspect
import logging
import threading
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._binding import Binding, Lifetime, TypeKey
from ._context import Context
from ._errors import (
    BindingNotFoundError,
    CircularDependencyError,
    ContextRequiredError,
    InvalidAbstractionError,
    InvalidReceiverError,
    InvalidResolverError,
    InvalidStructureError,
    ResolutionError,
    type_name,
)
from ._introspect import (
    VARIADIC_KINDS,
    Dependency,
    check_conforms,
    factory_dependencies,
    field_type,
    get_hints,
    product_of,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

T = TypeVar("T")

INJECT_METADATA_KEY = "container"

# Keys currently under construction in this thread / task.
_resolving: ContextVar[tuple[TypeKey, ...]] = ContextVar("bindscope_resolving", default=())


def inject(mode: str = "type", **kwargs: Any) -> Any:
    """Dataclass field filled by `Container.fill`.

    mode "type" resolves the unnamed binding of the field's type, mode
    "name" resolves the binding named after the field. Other keyword
    arguments go to `dataclasses.field`; the default is None.
    """
    metadata = {**kwargs.pop("metadata", {}), INJECT_METADATA_KEY: mode}
    if "default" not in kwargs and "default_factory" not in kwargs:
        kwargs["default"] = None
    return dataclasses.field(metadata=metadata, **kwargs)


class Container:
    """Registry of bindings plus the engine that resolves them.

    - register factories, classes or ready-made instances per (type, name)
    - lifetimes: singleton / transient / scoped
    - scopes: child containers isolating scoped instances
    - injection into call arguments and dataclass fields.
    """

    def __init__(self) -> None:
        self._parent: Container | None = None
        self._bindings: dict[TypeKey, Binding] = {}
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"<Container bindings={len(self._bindings)} scoped={self._parent is not None}>"

    @property
    def parent(self) -> Container | None:
        return self._parent

    def __contains__(self, key: object) -> bool:
        """`Shape in c`, `(Shape, "name") in c` and `TypeKey(...) in c` all work."""
        if isinstance(key, tuple) and not isinstance(key, TypeKey) and len(key) == 2 and isinstance(key[1], str):
            key = TypeKey(*key)
        elif not isinstance(key, TypeKey):
            key = TypeKey(key)
        return self.lookup(key) is not None

    def __iter__(self) -> Iterator[TypeKey]:
        with self._lock:
            return iter(list(self._bindings))

    def __len__(self) -> int:
        return len(self._bindings)

    # Registration

    def register(
        self,
        factory: Callable[..., Any],
        *,
        name: str = "",
        lifetime: Lifetime = Lifetime.SINGLETON,
        abstraction: Any = None,
        dependencies: Sequence[Any] | None = None,
    ) -> TypeKey:
        """Register a factory (function or class) for the type it produces.

        Example:
          container.register(make_database)                  # keyed by return annotation
          container.register(Circle, abstraction=Shape)      # class bound to a base
          container.register(make_db, name="replica", lifetime=Lifetime.SCOPED)

        """
        if not isinstance(lifetime, Lifetime):
            msg = f"Unknown lifetime {lifetime!r}"
            raise InvalidResolverError(msg)

        abstraction, deps = self._prepare_factory(factory, abstraction, dependencies)
        key = TypeKey(abstraction, name)
        self._bind(key, Binding(factory=factory, lifetime=lifetime, dependencies=deps))
        return key

    def register_singleton(
        self,
        factory: Callable[..., Any],
        *,
        name: str = "",
        abstraction: Any = None,
        dependencies: Sequence[Any] | None = None,
    ) -> TypeKey:
        return self.register(
            factory, name=name, lifetime=Lifetime.SINGLETON, abstraction=abstraction, dependencies=dependencies
        )

    def register_transient(
        self,
        factory: Callable[..., Any],
        *,
        name: str = "",
        abstraction: Any = None,
        dependencies: Sequence[Any] | None = None,
    ) -> TypeKey:
        return self.register(
            factory, name=name, lifetime=Lifetime.TRANSIENT, abstraction=abstraction, dependencies=dependencies
        )

    def register_scoped(
        self,
        factory: Callable[..., Any],
        *,
        name: str = "",
        abstraction: Any = None,
        dependencies: Sequence[Any] | None = None,
    ) -> TypeKey:
        return self.register(
            factory, name=name, lifetime=Lifetime.SCOPED, abstraction=abstraction, dependencies=dependencies
        )

    def register_instance(self, instance: object, *, name: str = "", abstraction: Any = None) -> TypeKey:
        """Register a pre-built instance (always singleton).

        The key is `abstraction` when given, otherwise the instance's own type.
        """
        if callable(instance):
            msg = f"Cannot register a callable ({type_name(type(instance))}) as an instance"
            raise InvalidResolverError(msg)

        if abstraction is None:
            abstraction = type(instance)
        else:
            _check_abstraction(abstraction)
            check_conforms(abstraction, instance)

        key = TypeKey(abstraction, name)
        self._bind(key, Binding(factory=None, lifetime=Lifetime.SINGLETON, concrete=instance))
        return key

    def invoke_and_register(
        self,
        ctx: Context,
        factory: Callable[..., Any],
        *,
        name: str = "",
        lifetime: Lifetime = Lifetime.SINGLETON,
        abstraction: Any = None,
        dependencies: Sequence[Any] | None = None,
    ) -> object:
        """Invoke the factory now and register its product, already resolved."""
        _require_context(ctx)
        abstraction, deps = self._prepare_factory(factory, abstraction, dependencies)

        try:
            instance = self._invoke(ctx, factory, deps)
        except Exception as exc:
            raise ResolutionError(abstraction, name) from exc

        binding = Binding(factory=factory, lifetime=lifetime, dependencies=deps, concrete=instance)
        self._bind(TypeKey(abstraction, name), binding)
        return instance

    def _prepare_factory(
        self,
        factory: Callable[..., Any],
        abstraction: Any,
        dependencies: Sequence[Any] | None,
    ) -> tuple[Any, tuple[Dependency, ...]]:
        if not callable(factory):
            msg = f"The resolver must be a function or a class, got {type_name(type(factory))}"
            raise InvalidResolverError(msg)

        product = product_of(factory)
        if abstraction is None:
            if product is None:
                msg = "Signature is invalid - the resolver must declare the abstraction it returns"
                raise InvalidResolverError(msg)
            abstraction = product
        else:
            _check_abstraction(abstraction)
            if inspect.isclass(product):
                check_conforms(abstraction, product)

        deps = factory_dependencies(factory, dependencies)
        for dep in deps:
            if dep.abstraction == abstraction or (product is not None and dep.abstraction == product):
                msg = f"Signature is invalid - the resolver depends on '{type_name(abstraction)}' which it returns"
                raise InvalidResolverError(msg)

        return abstraction, deps

    def _bind(self, key: TypeKey, binding: Binding) -> None:
        with self._lock:
            self._bindings[key] = binding
        logger.debug("Registered %s (name=%r) as %s", type_name(key.abstraction), key.name, binding.lifetime.value)

    def reset(self) -> None:
        """Delete every binding of this container. Parents are untouched."""
        with self._lock:
            self._bindings.clear()
        logger.debug("Container reset")

    # Lookup and scopes

    def lookup(self, key: TypeKey) -> Binding | None:
        """Nearest binding for `key`, searching this container then its ancestors."""
        current: Container | None = self
        while current is not None:
            with current._lock:  # noqa: SLF001
                found = current._bindings.get(key)  # noqa: SLF001
            if found is not None:
                return found
            current = current._parent  # noqa: SLF001
        return None

    def is_registered(self, abstraction: Any, name: str = "") -> bool:
        return self.lookup(TypeKey(abstraction, name)) is not None

    def new_scope(self) -> Container:
        """Create a child container.

        Scoped bindings of this container are copied into the child with an
        empty cache, so each scope builds its own instance. Everything else
        is looked up through the parent chain.
        """
        child = Container()
        child._parent = self

        with self._lock:
            scoped = [(key, b) for key, b in self._bindings.items() if b.lifetime is Lifetime.SCOPED]

        for key, binding in scoped:
            child._bindings[key] = binding.fresh_copy()

        logger.debug("Created scope with %d scoped binding(s)", len(scoped))
        return child

    # Resolution

    @overload
    def resolve(self, ctx: Context, abstraction: type[T], name: str = "") -> T: ...

    @overload
    def resolve(self, ctx: Context, abstraction: Any, name: str = "") -> Any: ...

    def resolve(self, ctx: Context, abstraction: Any, name: str = "") -> Any:
        """Resolve the abstraction (optionally named) to an instance.

        Any failure is raised as ResolutionError; the underlying error, such as
        BindingNotFoundError or the factory's own exception, is its cause.
        """
        _require_context(ctx)
        _check_abstraction(abstraction)

        try:
            return self._make(ctx, abstraction, name)
        except Exception as exc:
            raise ResolutionError(abstraction, name) from exc

    @overload
    def resolve_named(self, ctx: Context, abstraction: type[T], name: str) -> T: ...

    @overload
    def resolve_named(self, ctx: Context, abstraction: Any, name: str) -> Any: ...

    def resolve_named(self, ctx: Context, abstraction: Any, name: str) -> Any:
        return self.resolve(ctx, abstraction, name)

    def call(self, ctx: Context, function: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Invoke `function`, resolving every parameter not given explicitly.

        The function may return nothing, or an exception instance which is
        raised. Any other return value is an InvalidReceiverError.
        """
        _require_context(ctx)

        if not callable(function):
            msg = f"Receiver must be callable, got {type_name(type(function))}"
            raise InvalidReceiverError(msg)

        try:
            sig = inspect.signature(function)
            bound = sig.bind_partial(*args, **kwargs)
        except (TypeError, ValueError) as e:
            msg = f"Arguments don't match the receiver signature: {e}"
            raise InvalidReceiverError(msg) from e

        hints = get_hints(function)
        for param_name, p in sig.parameters.items():
            if param_name in bound.arguments or p.kind in VARIADIC_KINDS:
                continue

            ann = hints.get(param_name, inspect.Parameter.empty)
            if ann is inspect.Parameter.empty:
                if p.default is not inspect.Parameter.empty:
                    continue
                msg = f"Receiver parameter '{param_name}' has no type annotation"
                raise InvalidReceiverError(msg)

            bound.arguments[param_name] = self._argument(ctx, Dependency(ann, default=p.default))

        bound.apply_defaults()
        result = function(*bound.args, **bound.kwargs)

        if result is None:
            return
        if isinstance(result, BaseException):
            raise result

        msg = f"Receiver returned an unsupported value of type {type_name(type(result))}"
        raise InvalidReceiverError(msg)

    def fill(self, ctx: Context, target: object) -> None:
        """Resolve every injectable field of a dataclass instance in place.

        Fields are declared with `inject("type")` or `inject("name")`. Values
        are written with `object.__setattr__`, so frozen dataclasses work too.
        """
        _require_context(ctx)

        if isinstance(target, type) or not dataclasses.is_dataclass(target):
            msg = f"Fill target must be a dataclass instance, got {target!r}"
            raise InvalidStructureError(msg)

        plan: list[tuple[str, Any, str]] = []
        for f in dataclasses.fields(target):
            if INJECT_METADATA_KEY not in f.metadata:
                continue

            mode = f.metadata[INJECT_METADATA_KEY]
            if mode == "type":
                name = ""
            elif mode == "name":
                name = f.name
            else:
                msg = f"Field '{f.name}' has an invalid injection mode {mode!r}"
                raise InvalidStructureError(msg)

            abstraction = field_type(type(target), f)
            if isinstance(abstraction, str):
                msg = f"Field '{f.name}' has a type annotation that cannot be evaluated: {abstraction!r}"
                raise InvalidStructureError(msg)

            plan.append((f.name, abstraction, name))

        for field_name, abstraction, name in plan:
            try:
                value = self._make(ctx, abstraction, name)
            except Exception as exc:
                raise ResolutionError(abstraction, name, field=field_name) from exc
            object.__setattr__(target, field_name, value)

    def validate(self, ctx: Context) -> None:
        """Resolve every binding of this container once.

        Meant to run after registration is complete, so a missing dependency
        fails at startup instead of on first use.
        """
        _require_context(ctx)

        with self._lock:
            keys = list(self._bindings)

        for key in keys:
            try:
                self._make(ctx, key.abstraction, key.name)
            except Exception as exc:
                raise ResolutionError(key.abstraction, key.name) from exc

    # Engine

    def _make(self, ctx: Context, abstraction: Any, name: str = "") -> object:
        key = TypeKey(abstraction, name)
        binding = self.lookup(key)
        if binding is None:
            raise BindingNotFoundError(abstraction, name)

        if binding.resolved:
            return binding.concrete

        stack = _resolving.get()
        if key in stack:
            raise CircularDependencyError([*stack[stack.index(key) :], key])

        token = _resolving.set((*stack, key))
        try:
            return binding.make(ctx, self)
        finally:
            _resolving.reset(token)

    def _invoke(self, ctx: Context, factory: Callable[..., Any] | None, deps: tuple[Dependency, ...]) -> object:
        args, kwargs = self._arguments(ctx, deps)
        return self._call_factory(factory, args, kwargs)

    def _arguments(self, ctx: Context, deps: tuple[Dependency, ...]) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for dep in deps:
            value = self._argument(ctx, dep)
            if dep.keyword is None:
                args.append(value)
            else:
                kwargs[dep.keyword] = value
        return args, kwargs

    def _call_factory(self, factory: Callable[..., Any] | None, args: list[Any], kwargs: dict[str, Any]) -> object:
        if factory is None:
            msg = "Binding has neither a factory nor a value"
            raise InvalidResolverError(msg)

        try:
            return factory(*args, **kwargs)
        except Exception as exc:
            logger.debug("Resolver %r failed: %s", factory, exc)
            raise

    def _argument(self, ctx: Context, dep: Dependency) -> Any:
        """Value for one dependency. Unbound parameters with a default keep it."""
        if dep.abstraction is inspect.Parameter.empty:
            return dep.default

        if inspect.isclass(dep.abstraction) and issubclass(dep.abstraction, Context):
            return ctx

        try:
            if dep.has_default and self.lookup(TypeKey(dep.abstraction)) is None:
                return dep.default
            return self._make(ctx, dep.abstraction)
        except Exception as exc:
            raise ResolutionError(dep.abstraction) from exc


def _require_context(ctx: Context | None) -> None:
    if ctx is None:
        raise ContextRequiredError


def _check_abstraction(abstraction: Any) -> None:
    if abstraction is None:
        msg = "Abstraction must be a type, got None"
        raise InvalidAbstractionError(msg)
    try:
        hash(abstraction)
    except TypeError as exc:
        msg = f"Abstraction must be hashable, got {abstraction!r}"
        raise InvalidAbstractionError(msg) from exc
