from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar, get_type_hints

from ._errors import InvalidRegistrationError
from ._lock_mode import LockMode


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from ._container import ServiceProvider

    T = TypeVar("T")


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"
    SCOPED = "scoped"


@dataclass(frozen=True)
class ServiceDescriptor:
    """Binding of a service type to the class that implements it."""

    service_type: type
    implementation_type: type
    lifetime: Lifetime


class ServiceCollection:
    """Ordered set of service descriptors.

    Lookup is first match wins: registering the same service type again does not
    replace the earlier registration, it is shadowed by it.

    Example:
      services = ServiceCollection()
      services.add_singleton(Logger, ConsoleLogger).add_scoped(RequestContext)
      provider = services.build_provider()

    """

    def __init__(self, descriptors: Iterable[ServiceDescriptor] = ()) -> None:
        self._descriptors: list[ServiceDescriptor] = []
        for descriptor in descriptors:
            self.add(descriptor)

    def register(
        self,
        service_type: type[T],
        implementation_type: type[T] | None = None,
        lifetime: Lifetime = Lifetime.TRANSIENT,
    ) -> ServiceDescriptor:
        """Validate and append a registration, returning its descriptor.

        Without `implementation_type` the service type is bound to itself.
        """
        if implementation_type is None:
            implementation_type = service_type

        descriptor = ServiceDescriptor(
            service_type=service_type,
            implementation_type=implementation_type,
            lifetime=lifetime,
        )
        self.add(descriptor)
        return descriptor

    def add(self, descriptor: ServiceDescriptor) -> None:
        if not isinstance(descriptor.lifetime, Lifetime):
            msg = f"Unknown lifetime {descriptor.lifetime!r}; expected a Lifetime member."
            raise InvalidRegistrationError(msg)

        _validate_impl(descriptor.service_type, descriptor.implementation_type)
        self._descriptors.append(descriptor)

    def add_singleton(self, service_type: type[T], implementation_type: type[T] | None = None) -> ServiceCollection:
        self.register(service_type, implementation_type, Lifetime.SINGLETON)
        return self

    def add_transient(self, service_type: type[T], implementation_type: type[T] | None = None) -> ServiceCollection:
        self.register(service_type, implementation_type, Lifetime.TRANSIENT)
        return self

    def add_scoped(self, service_type: type[T], implementation_type: type[T] | None = None) -> ServiceCollection:
        self.register(service_type, implementation_type, Lifetime.SCOPED)
        return self

    def lookup(self, service_type: object) -> ServiceDescriptor | None:
        for descriptor in self._descriptors:
            if descriptor.service_type == service_type:
                return descriptor
        return None

    def build_provider(self, *, lock_mode: LockMode = LockMode.THREAD) -> ServiceProvider:
        from ._container import ServiceProvider  # noqa: PLC0415

        return ServiceProvider(self, lock_mode=lock_mode)

    def __iter__(self) -> Iterator[ServiceDescriptor]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, service_type: object) -> bool:
        return self.lookup(service_type) is not None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._descriptors!r})"


def is_protocol(tp: object) -> bool:
    """Detect whether 'tp' is a typing.Protocol subclass (safe)."""
    if not inspect.isclass(tp):
        return False
    if hasattr(typing, "is_protocol"):
        # https://docs.python.org/3/library/typing.html#typing.is_protocol
        return typing.is_protocol(tp)
    return bool(getattr(tp, "_is_protocol", False))


def _validate_impl(service_type: object, impl: object) -> None:
    """Validate that 'impl' can stand in for 'service_type'.

    - Both must be classes.
    - For normal classes/ABCs: require issubclass(impl, service_type).
    - For Protocols: nominal conformance via MRO, otherwise structural conformance.
    """
    if not inspect.isclass(service_type):
        msg = f"Service type must be a class, got {service_type!r}"
        raise InvalidRegistrationError(msg)

    if not inspect.isclass(impl):
        msg = f"Implementation of {service_type.__name__} must be a class, got {impl!r}"
        raise InvalidRegistrationError(msg)

    if not is_protocol(service_type):
        if not issubclass(impl, service_type):
            msg = f"Implementation {impl.__name__} must be a subclass of {service_type.__name__}"
            raise InvalidRegistrationError(msg)
        return

    if service_type in impl.__mro__:
        return

    _validate_structural_conformance(service_type, impl)


def _validate_structural_conformance(proto_cls: type, impl: type) -> None:
    """Best-effort structural check: member presence, positional arity and return types."""
    problems: list[str] = []

    try:
        proto_hints = get_type_hints(proto_cls)
    except (NameError, TypeError):
        proto_hints = {}

    for name in proto_hints:
        if not name.startswith("_") and not hasattr(impl, name):
            problems.append(f"missing attribute '{name}'")

    for name, proto_attr in vars(proto_cls).items():
        if name.startswith("_") or not inspect.isfunction(proto_attr):
            continue

        impl_attr = getattr(impl, name, None)
        if impl_attr is None:
            problems.append(f"missing method '{name}'")
            continue
        if not callable(impl_attr):
            problems.append(f"'{name}' is not callable")
            continue

        try:
            proto_sig = inspect.signature(proto_attr)
            impl_sig = inspect.signature(impl_attr)
        except (TypeError, ValueError):
            continue

        wanted = _required_positional(proto_sig)
        offered = _required_positional(impl_sig)
        if offered < wanted:
            problems.append(f"'{name}' takes {offered} required positional parameters, protocol expects {wanted}")

        proto_ret = proto_sig.return_annotation
        impl_ret = impl_sig.return_annotation
        if Any in (proto_ret, impl_ret) or inspect.Signature.empty in (proto_ret, impl_ret):
            continue
        if not _is_return_type_compatible(impl_ret, proto_ret):
            problems.append(f"'{name}' returns {impl_ret!r}, protocol expects {proto_ret!r}")

    if problems:
        msg = (
            f"Implementation {impl.__name__} does not conform to protocol "
            f"{proto_cls.__name__}: {'; '.join(problems)}"
        )
        raise InvalidRegistrationError(msg)


def _required_positional(sig: inspect.Signature) -> int:
    return sum(
        1
        for p in sig.parameters.values()
        if p.name != "self"
        and p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and p.default is inspect.Parameter.empty
    )


def _is_return_type_compatible(impl_ret: object, proto_ret: object) -> bool:
    if impl_ret == proto_ret:
        return True

    if isinstance(impl_ret, type) and isinstance(proto_ret, type):
        return issubclass(impl_ret, proto_ret)

    # Unions, TypeVars and string annotations: conservative failure
    return False
