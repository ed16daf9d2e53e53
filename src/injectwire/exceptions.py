from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from injectwire.targets import InjectionTarget


class InjectWireError(Exception):
    """Represent a base class for all injectwire-specific failures.

    Catch this type when you want to handle any injectwire error path without
    matching each concrete exception class individually.
    """


class InjectWireConfigurationError(InjectWireError):
    """Signal structural misuse that the test author must fix.

    Raised by ``InjectionDriver.inject_all`` when a target is declared
    immutable (``Final``) or when no registered producer accepts the target,
    and by ``InjectionDriver.resolve_value`` when no producer matches.

    Always fatal to the current scope; never retried.
    """

    def __init__(self, message: str, *, target: InjectionTarget | None = None) -> None:
        super().__init__(message)
        self.target = target


class InjectWireInvalidProducerError(InjectWireConfigurationError):
    """Signal a registry entry that does not implement the producer protocol.

    Typical fix is implementing both ``can_produce`` and ``produce`` on the
    object registered under the producers entry point group.
    """

    def __init__(self, producer: Any) -> None:
        super().__init__(
            f"{producer!r} does not implement can_produce(context, declared_type, annotations) "
            "and produce(context, declared_type, annotations).",
        )
        self.producer = producer


class InjectWireResolutionError(InjectWireError):
    """Signal that a matched producer failed for a target.

    Raised when ``can_produce`` itself fails, when ``produce`` fails, or when
    the produced value cannot be written into the target. The original error
    is always chained as ``__cause__``.
    """

    def __init__(self, message: str, *, target: InjectionTarget | None = None) -> None:
        super().__init__(message)
        self.target = target


class InjectWireProductionError(InjectWireError):
    """Signal a failure raised by ``produce``.

    Internal classification used by ``ProducerInvoker``. ``InjectionDriver``
    re-raises it as ``InjectWireResolutionError``.
    """

    def __init__(self, message: str, *, producer: Any) -> None:
        super().__init__(message)
        self.producer = producer


class InjectWireLedgerClosedError(InjectWireError):
    """Signal a resource registration after the ledger was drained.

    A ledger is drained once at scope teardown. Registering afterwards would
    leak the resource, so it is rejected. The rejected resource is attached as
    ``resource``; the caller owns it.
    """

    def __init__(self, resource: Any) -> None:
        super().__init__(f"Cannot register {resource!r}: the resource ledger is already drained.")
        self.resource = resource
