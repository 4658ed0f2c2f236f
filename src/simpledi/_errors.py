from __future__ import annotations


class ResolutionError(RuntimeError):
    """Base class for every failure raised while resolving a service."""


class ServiceNotRegisteredError(ResolutionError, LookupError):
    """The requested service type has no registration."""


class ScopedResolutionError(ResolutionError):
    """A scoped service was requested outside of a scope."""


class NoConstructorError(ResolutionError):
    """The implementation type exposes no public constructor."""


class NoSuitableConstructorError(ResolutionError):
    """Every constructor has a required parameter the provider cannot satisfy."""


class AmbiguousConstructorError(ResolutionError):
    """Two or more resolvable constructors share the highest parameter count.

    The container never guesses between them. Remove one of the constructors,
    give one of them an extra dependency, or register a narrower implementation.
    """


class CircularDependencyError(ResolutionError):
    """The implementation type depends on itself, directly or transitively."""

    def __init__(self, path: tuple[type, ...]) -> None:
        self.path = path
        chain = " -> ".join(tp.__name__ for tp in path)
        super().__init__(f"Circular dependency detected: {chain}")


class ProviderDisposedError(ResolutionError):
    """Resolution was attempted on a provider that has been disposed."""


class InvalidRegistrationError(TypeError):
    """A registration was rejected before it reached the provider."""
