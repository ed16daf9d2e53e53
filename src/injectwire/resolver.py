from __future__ import annotations

import logging
from typing import Any

from injectwire.exceptions import InjectWireProductionError, InjectWireResolutionError
from injectwire.producers import InjectionProducer, ProducerRegistry
from injectwire.resources import ResourceLedger, is_releasable

logger = logging.getLogger(__name__)


def _type_name(declared_type: Any) -> str:
    return getattr(declared_type, "__qualname__", repr(declared_type))


class TargetResolver:
    """Pick the first producer in registry order that accepts a target.

    Results are not memoized; every call scans the registry again.
    """

    def __init__(self, registry: ProducerRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ProducerRegistry:
        return self._registry

    def resolve(
        self,
        context: Any,
        declared_type: Any,
        annotations: tuple[Any, ...],
    ) -> InjectionProducer | None:
        """Return the matching producer, or ``None`` when nothing matches.

        Raises:
            InjectWireResolutionError: A producer's ``can_produce`` raised. The
                scan stops at that producer.

        """
        for producer in self._registry:
            try:
                accepted = producer.can_produce(context, declared_type, annotations)
            except Exception as error:
                msg = (
                    f"Producer {producer!r} failed to decide whether it can produce "
                    f"{_type_name(declared_type)}."
                )
                raise InjectWireResolutionError(msg) from error
            if accepted:
                logger.debug("Producer %r selected for %s", producer, _type_name(declared_type))
                return producer
        return None


class ProducerInvoker:
    """Run a matched producer and track releasable results in a ledger."""

    def __init__(self, ledger: ResourceLedger) -> None:
        self._ledger = ledger

    @property
    def ledger(self) -> ResourceLedger:
        return self._ledger

    def invoke(
        self,
        producer: InjectionProducer,
        context: Any,
        declared_type: Any,
        annotations: tuple[Any, ...],
        *,
        description: str,
    ) -> Any:
        """Produce a value for a target.

        A releasable value is registered in the ledger before it is returned,
        so it is released at teardown even if the caller fails to use it.

        Raises:
            InjectWireProductionError: ``produce`` raised.

        """
        try:
            value = producer.produce(context, declared_type, annotations)
        except Exception as error:
            msg = f"Producer {producer!r} failed to produce {description}."
            raise InjectWireProductionError(msg, producer=producer) from error

        if is_releasable(value):
            self._ledger.register(value)
        return value
