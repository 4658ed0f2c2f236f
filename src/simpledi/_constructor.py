from __future__ import annotations

import inspect
import logging
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, get_type_hints

from ._descriptors import is_protocol
from ._errors import (
    AmbiguousConstructorError,
    CircularDependencyError,
    NoConstructorError,
    NoSuitableConstructorError,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable

    T = TypeVar("T")
    F = TypeVar("F", bound=Callable[..., Any])

_CONSTRUCTOR_MARKER = "__simpledi_constructor__"

# Values the container treats as resolvable without a registration. A required
# parameter of one of these types still has to be registered to be satisfied.
_VALUE_TYPES: tuple[type, ...] = (bool, int, float, complex, str, bytes, Enum)

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)

# Implementation types currently under construction in this context
_resolution_stack: ContextVar[tuple[type, ...]] = ContextVar("simpledi_resolution_stack", default=())


def constructor(func: F) -> F:
    """Mark a classmethod as an alternate constructor the container may select.

    Plain functions are wrapped in ``classmethod``; the decorator also accepts an
    existing classmethod. Names starting with an underscore stay private and are
    never considered.

    Example:
      class Repo:
          def __init__(self) -> None: ...

          @constructor
          def with_logger(cls, logger: Logger) -> Repo: ...

    """
    if isinstance(func, classmethod):
        setattr(func.__func__, _CONSTRUCTOR_MARKER, True)
        return func

    setattr(func, _CONSTRUCTOR_MARKER, True)
    return classmethod(func)  # type: ignore[return-value]


class ServiceResolver(Protocol):
    def resolve(self, service_type: type[T]) -> T: ...

    def can_resolve(self, service_type: object) -> bool: ...


@dataclass
class ConstructorCandidate:
    name: str
    factory: Callable[..., object]
    parameters: list[inspect.Parameter]
    hints: dict[str, Any] = field(default_factory=dict)

    @property
    def arity(self) -> int:
        return len(self.parameters)

    def annotation(self, p: inspect.Parameter) -> Any:
        return self.hints.get(p.name, p.annotation)


def is_value_type(tp: object) -> bool:
    return inspect.isclass(tp) and issubclass(tp, _VALUE_TYPES)


class Constructor:
    """Select a constructor for an implementation type and invoke it.

    Every public constructor competes: ``__init__`` and classmethods marked with
    ``@constructor``. Among those whose parameters the resolver can satisfy, the
    one with the most parameters wins. A tie at the top is an error.
    """

    def __init__(self, resolver: ServiceResolver) -> None:
        self._resolver = resolver

    def construct(self, cls: type[T]) -> T:
        stack = _resolution_stack.get()
        if cls in stack:
            raise CircularDependencyError((*stack[stack.index(cls) :], cls))

        token = _resolution_stack.set((*stack, cls))
        try:
            selected = self.select(cls)
            args, kwargs = self._build_arguments(selected)
            return selected.factory(*args, **kwargs)  # type: ignore[return-value]
        finally:
            _resolution_stack.reset(token)

    def select(self, cls: type) -> ConstructorCandidate:
        candidates = list(_public_constructors(cls))
        if not candidates:
            msg = f"Type {cls.__name__} does not have any public constructors."
            raise NoConstructorError(msg)

        resolvable = []
        unresolvable: list[str] = []
        for candidate in candidates:
            missing = [p.name for p in candidate.parameters if not self._can_satisfy(candidate, p)]
            if missing:
                unresolvable.append(f"{candidate.name}({', '.join(missing)})")
            else:
                resolvable.append(candidate)

        if not resolvable:
            msg = (
                f"No suitable constructor found for type {cls.__name__}. "
                f"Unresolvable parameters: {'; '.join(unresolvable)}."
            )
            raise NoSuitableConstructorError(msg)

        max_arity = max(candidate.arity for candidate in resolvable)
        eligible = [candidate for candidate in resolvable if candidate.arity == max_arity]
        if len(eligible) > 1:
            names = ", ".join(candidate.name for candidate in eligible)
            msg = (
                f"Multiple constructors with {max_arity} parameters found for type '{cls.__name__}' "
                f"({names}) and the container cannot determine which one to use."
            )
            raise AmbiguousConstructorError(msg)

        selected = eligible[0]
        logger.debug("Constructing %s via %s (%d parameters)", cls.__qualname__, selected.name, max_arity)
        return selected

    def _can_satisfy(self, candidate: ConstructorCandidate, p: inspect.Parameter) -> bool:
        if p.default is not inspect.Parameter.empty:
            return True

        ann = candidate.annotation(p)
        if ann is inspect.Parameter.empty or isinstance(ann, str):
            # no annotation, or a forward reference that could not be evaluated
            return False

        return self._resolver.can_resolve(ann) or is_value_type(ann)

    def _build_arguments(self, candidate: ConstructorCandidate) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        for p in candidate.parameters:
            # optional parameters always take their declared default
            if p.default is not inspect.Parameter.empty:
                continue

            value = self._resolver.resolve(candidate.annotation(p))
            if p.kind is inspect.Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[p.name] = value

        return args, kwargs


def _public_constructors(cls: type) -> list[ConstructorCandidate]:
    if inspect.isabstract(cls) or is_protocol(cls):
        return []

    candidates = [_init_candidate(cls)]

    seen: set[str] = set()
    for klass in cls.__mro__:
        for name, attr in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            if name.startswith("_") or not isinstance(attr, classmethod):
                continue
            if not getattr(attr.__func__, _CONSTRUCTOR_MARKER, False):
                continue

            bound = getattr(cls, name)
            candidates.append(
                ConstructorCandidate(
                    name=f"{cls.__name__}.{name}",
                    factory=bound,
                    parameters=_injectable_parameters(inspect.signature(bound)),
                    hints=_get_type_hints(cls, attr.__func__),
                )
            )

    return candidates


def _init_candidate(cls: type) -> ConstructorCandidate:
    try:
        sig = inspect.signature(cls)
    except (TypeError, ValueError):
        sig = _bound_init_signature(cls)

    init = inspect.getattr_static(cls, "__init__", None)
    return ConstructorCandidate(
        name=f"{cls.__name__}.__init__",
        factory=cls,
        parameters=_injectable_parameters(sig),
        hints=_get_type_hints(cls, init) if inspect.isfunction(init) else {},
    )


def _bound_init_signature(cls: type) -> inspect.Signature:
    # builtin bases (dict, list, Exception) may not expose a class signature
    try:
        sig = inspect.signature(cls.__init__)
    except (TypeError, ValueError):
        return inspect.Signature()

    params = list(sig.parameters.values())
    if params and params[0].kind not in _VARIADIC:
        params = params[1:]
    return sig.replace(parameters=params)


def _injectable_parameters(sig: inspect.Signature) -> list[inspect.Parameter]:
    # *args/**kwargs are never injected
    return [p for p in sig.parameters.values() if p.kind not in _VARIADIC]


def _get_type_hints(cls: type, func: Callable[..., Any]) -> dict[str, Any]:
    try:
        hints = get_type_hints(func)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    return hints
