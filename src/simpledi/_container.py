from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from ._constructor import Constructor
from ._descriptors import Lifetime, ServiceCollection
from ._errors import ProviderDisposedError, ScopedResolutionError, ServiceNotRegisteredError
from ._lock_mode import LockMode


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

    from ._descriptors import ServiceDescriptor

    T = TypeVar("T")


@runtime_checkable
class Disposable(Protocol):
    """Instances the container releases when their owning provider is disposed."""

    def dispose(self) -> None: ...


class ServiceProvider:
    """Root provider.

    - resolves singleton and transient services with constructor injection
    - caches singletons until `dispose()`
    - hands out scopes for scoped services.
    """

    def __init__(self, services: Iterable[ServiceDescriptor], *, lock_mode: LockMode = LockMode.THREAD) -> None:
        self._services = ServiceCollection(services)
        self._singletons: dict[ServiceDescriptor, object] = {}
        self._lock = lock_mode.new_lock()
        self._lock_mode = lock_mode
        self._constructor = Constructor(self)
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def lookup(self, service_type: object) -> ServiceDescriptor | None:
        return self._services.lookup(service_type)

    def can_resolve(self, service_type: object) -> bool:
        return service_type in self._services

    def resolve(self, service_type: type[T]) -> T:
        """Resolve the service type to an instance.

        Raises:
          ProviderDisposedError: the provider has been disposed.
          ServiceNotRegisteredError: nothing is registered for the service type.
          ScopedResolutionError: the service is scoped; resolve it from a scope.

        """
        if self._disposed:
            msg = f"Cannot resolve {_type_name(service_type)}: the service provider has been disposed."
            raise ProviderDisposedError(msg)

        descriptor = self._services.lookup(service_type)
        if descriptor is None:
            msg = f"Service of type {_type_name(service_type)} is not registered."
            raise ServiceNotRegisteredError(msg)

        if descriptor.lifetime is Lifetime.SINGLETON:
            return self._get_or_create_singleton(descriptor)  # type: ignore[return-value]

        if descriptor.lifetime is Lifetime.TRANSIENT:
            return self._constructor.construct(descriptor.implementation_type)  # type: ignore[return-value]

        msg = f"Cannot resolve scoped service {_type_name(service_type)} from the root provider; use create_scope()."
        raise ScopedResolutionError(msg)

    def _get_or_create_singleton(self, descriptor: ServiceDescriptor) -> object:
        with self._lock:
            if descriptor in self._singletons:
                return self._singletons[descriptor]

            instance = self._constructor.construct(descriptor.implementation_type)
            self._singletons[descriptor] = instance
            return instance

    def create_scope(self) -> ScopedServiceProvider:
        """Create a scope holding its own instances of the scoped services."""
        scoped = [descriptor for descriptor in self._services if descriptor.lifetime is Lifetime.SCOPED]
        return ScopedServiceProvider(self, scoped, _from_root=True)

    def dispose(self) -> None:
        """Dispose cached singletons implementing `Disposable`, then refuse further resolution.

        A failing `dispose()` is logged and does not stop the remaining ones.
        Calling this again is a no-op.
        """
        with self._lock:
            if self._disposed:
                return

            self._disposed = True
            instances, self._singletons = self._singletons, {}
            _dispose_all(instances.values())

    def __enter__(self) -> ServiceProvider:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else f"{len(self._singletons)} singletons"
        return f"<{type(self).__name__} {len(self._services)} services, {state}>"


class ScopedServiceProvider:
    """A scope: caches scoped services itself, defers everything else to the root provider.

    The scope never disposes its root; disposing it only releases its scoped instances.
    """

    def __init__(
        self,
        root: ServiceProvider,
        descriptors: Iterable[ServiceDescriptor],
        *,
        _from_root: bool = False,
    ) -> None:
        if not _from_root:
            msg = "Scopes must be created via ServiceProvider.create_scope()"
            raise RuntimeError(msg)

        self._root = root
        self._descriptors = frozenset(descriptors)
        self._instances: dict[ServiceDescriptor, object] = {}
        self._lock = root._lock_mode.new_lock()  # noqa: SLF001
        self._constructor = Constructor(self)
        self._disposed = False

    @property
    def root(self) -> ServiceProvider:
        return self._root

    @property
    def disposed(self) -> bool:
        return self._disposed

    def can_resolve(self, service_type: object) -> bool:
        return self._root.can_resolve(service_type)

    def resolve(self, service_type: type[T]) -> T:
        """Resolve the service type to an instance.

        Scoped services are built and cached in this scope; singleton and transient
        services, as well as unknown types, are resolved by the root provider.
        """
        if self._disposed or self._root.disposed:
            msg = f"Cannot resolve {_type_name(service_type)}: the scope or its root provider has been disposed."
            raise ProviderDisposedError(msg)

        descriptor = self._root.lookup(service_type)
        if descriptor is None or descriptor not in self._descriptors:
            return self._root.resolve(service_type)

        with self._lock:
            if descriptor in self._instances:
                return self._instances[descriptor]  # type: ignore[return-value]

            instance = self._constructor.construct(descriptor.implementation_type)
            self._instances[descriptor] = instance
            return instance  # type: ignore[return-value]

    def create_scope(self) -> ScopedServiceProvider:
        return self._root.create_scope()

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return

            self._disposed = True
            instances, self._instances = self._instances, {}
            _dispose_all(instances.values())

    def __enter__(self) -> ScopedServiceProvider:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.dispose()


def _dispose_all(instances: Iterable[object]) -> None:
    # dependents were cached after their dependencies: release them first
    for instance in reversed(list(instances)):
        if not isinstance(instance, Disposable):
            continue
        try:
            instance.dispose()
        except Exception:  # noqa: BLE001
            logger.exception("Error disposing service %s", type(instance).__name__)


def _type_name(tp: object) -> str:
    return getattr(tp, "__name__", repr(tp))
