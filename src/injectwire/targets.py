from __future__ import annotations

import inspect
import logging
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Protocol

from injectwire.exceptions import InjectWireConfigurationError, InjectWireResolutionError
from injectwire.markers import unwrap_injected_annotation

logger = logging.getLogger(__name__)

_INJECTED_NAME = "Injected"


@dataclass(frozen=True, slots=True)
class InjectionTarget:
    """Describe where a produced value must be placed.

    Created per resolution attempt; never persisted.
    """

    name: str
    declared_type: Any
    annotations: tuple[Any, ...] = ()
    mutable: bool = True
    static: bool = False
    owner: type[Any] | None = None

    @property
    def description(self) -> str:
        """Human-readable name used in error messages."""
        type_name = getattr(self.declared_type, "__qualname__", repr(self.declared_type))
        if self.owner is None:
            return f"'{self.name}' of type {type_name}"
        return f"'{self.owner.__qualname__}.{self.name}' of type {type_name}"


class TargetEnumerator(Protocol):
    """Enumerate the injection targets declared by a scope type."""

    def enumerate(self, scope_type: type[Any], *, static: bool) -> Iterator[InjectionTarget]: ...


class ValueAssigner(Protocol):
    """Write a produced value into a target's storage."""

    def assign(self, target: InjectionTarget, owner: Any, value: Any) -> None: ...


class AnnotatedTargetEnumerator:
    """Find ``Injected[...]`` class attributes.

    ``ClassVar[Injected[T]]`` declares a static target, everything else is an
    instance target. ``Final[Injected[T]]`` marks the target immutable so the
    driver can reject it.
    """

    def enumerate(self, scope_type: type[Any], *, static: bool) -> Iterator[InjectionTarget]:
        for owner in reversed(scope_type.__mro__):
            if owner is object:
                continue
            own_annotations = inspect.get_annotations(owner)
            if not own_annotations:
                continue
            module = sys.modules.get(owner.__module__)
            globalns = vars(module) if module is not None else {}
            localns = dict(vars(owner))
            for name, raw_annotation in own_annotations.items():
                annotation = _evaluate_annotation(
                    raw_annotation,
                    globalns,
                    localns,
                    target_name=f"{owner.__qualname__}.{name}",
                )
                injected = unwrap_injected_annotation(annotation)
                if injected is None:
                    continue
                # Final attributes assigned in the class body are class-level.
                is_static = injected.is_class_var or (injected.is_final and name in owner.__dict__)
                if is_static is not static:
                    continue
                yield InjectionTarget(
                    name=name,
                    declared_type=injected.declared_type,
                    annotations=injected.annotations,
                    mutable=not injected.is_final,
                    static=is_static,
                    owner=owner,
                )


def _evaluate_annotation(
    annotation: Any,
    globalns: dict[str, Any],
    localns: dict[str, Any],
    *,
    target_name: str,
) -> Any:
    """Evaluate one string annotation independently of its neighbours.

    Unresolvable annotations that mention ``Injected`` are configuration
    errors; any other unresolvable annotation is returned unchanged.
    """
    if not isinstance(annotation, str):
        return annotation
    try:
        return eval(annotation, globalns, localns)  # noqa: S307
    except Exception as error:
        if _INJECTED_NAME not in annotation:
            logger.debug("Could not resolve annotation %r of %s", annotation, target_name)
            return annotation
        msg = f"Could not resolve annotation {annotation!r} of injected target '{target_name}'."
        raise InjectWireConfigurationError(msg) from error


def parameter_targets(callable_obj: Callable[..., Any]) -> tuple[InjectionTarget, ...]:
    """Return the ``Injected[...]`` parameters of a callable as targets."""
    signature = inspect.signature(callable_obj)
    globalns = getattr(inspect.unwrap(callable_obj), "__globals__", {})
    qualname = getattr(callable_obj, "__qualname__", repr(callable_obj))

    targets: list[InjectionTarget] = []
    for parameter in signature.parameters.values():
        if parameter.annotation is inspect.Signature.empty:
            continue
        annotation = _evaluate_annotation(
            parameter.annotation,
            globalns,
            {},
            target_name=f"{qualname}({parameter.name})",
        )
        injected = unwrap_injected_annotation(annotation)
        if injected is None:
            continue
        targets.append(
            InjectionTarget(
                name=parameter.name,
                declared_type=injected.declared_type,
                annotations=injected.annotations,
            ),
        )
    return tuple(targets)


class AttributeAssigner:
    """Assign values with ``setattr`` on the owner instance or the scope type."""

    def assign(self, target: InjectionTarget, owner: Any, value: Any) -> None:
        destination = target.owner if target.static else owner
        if destination is None:
            msg = f"Cannot inject {target.description}: no owner to assign into."
            raise InjectWireResolutionError(msg, target=target)
        try:
            setattr(destination, target.name, value)
        except (AttributeError, TypeError) as error:
            msg = f"Could not make {target.description} accessible for injection."
            raise InjectWireResolutionError(msg, target=target) from error
