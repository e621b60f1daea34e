"""Runtime dependency-resolution registry.

This package lets callers register factories, classes, and pre-built
instances keyed by an abstract type and an optional name, then resolve them,
inject them into call arguments, or fill dataclass fields with them.

Exports:
- `Container`: registry and resolution engine. `new_scope()` creates child
  containers whose scoped bindings are cached per scope.
- `Lifetime`: singleton, transient or scoped caching policy.
- `Context`: ambient value handed to factories and receivers that declare it.
- `inject`: dataclass field marker used by `Container.fill`.
- Errors: `ContainerError` and its subclasses.
"""

from ._binding import Lifetime, TypeKey
from ._container import Container, inject
from ._context import Context
from ._errors import (
    BindingNotFoundError,
    CircularDependencyError,
    ContainerError,
    ContextRequiredError,
    InvalidAbstractionError,
    InvalidReceiverError,
    InvalidResolverError,
    InvalidStructureError,
    ResolutionError,
)


__all__ = [
    "BindingNotFoundError",
    "CircularDependencyError",
    "Container",
    "ContainerError",
    "Context",
    "ContextRequiredError",
    "InvalidAbstractionError",
    "InvalidReceiverError",
    "InvalidResolverError",
    "InvalidStructureError",
    "Lifetime",
    "ResolutionError",
    "TypeKey",
    "inject",
]
