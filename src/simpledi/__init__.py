"""Minimal dependency injection container.

Register services with a lifetime, build a provider, and let it construct the
object graph by resolving constructor parameters from their type annotations.

Exports:
- `ServiceCollection`: ordered registrations; the first registration of a type wins.
- `ServiceProvider`: root provider for singleton and transient services.
- `ScopedServiceProvider`: per-scope provider for scoped services, created with
  `ServiceProvider.create_scope()`.
- `Lifetime`: singleton, transient or scoped.
- `constructor`: marks a classmethod as an alternate constructor.
- `Disposable`: protocol for instances released when their provider is disposed.
- `LockMode`: whether providers lock their caches.
"""

from ._constructor import constructor
from ._container import Disposable, ScopedServiceProvider, ServiceProvider
from ._descriptors import Lifetime, ServiceCollection, ServiceDescriptor
from ._errors import (
    AmbiguousConstructorError,
    CircularDependencyError,
    InvalidRegistrationError,
    NoConstructorError,
    NoSuitableConstructorError,
    ProviderDisposedError,
    ResolutionError,
    ScopedResolutionError,
    ServiceNotRegisteredError,
)
from ._lock_mode import LockMode


__all__ = [
    "AmbiguousConstructorError",
    "CircularDependencyError",
    "Disposable",
    "InvalidRegistrationError",
    "Lifetime",
    "LockMode",
    "NoConstructorError",
    "NoSuitableConstructorError",
    "ProviderDisposedError",
    "ResolutionError",
    "ScopedResolutionError",
    "ScopedServiceProvider",
    "ServiceCollection",
    "ServiceDescriptor",
    "ServiceNotRegisteredError",
    "ServiceProvider",
    "constructor",
]
