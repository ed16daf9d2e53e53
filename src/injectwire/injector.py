from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from injectwire.exceptions import (
    InjectWireConfigurationError,
    InjectWireProductionError,
    InjectWireResolutionError,
)
from injectwire.producers import InjectionProducer
from injectwire.resolver import ProducerInvoker, TargetResolver
from injectwire.targets import AttributeAssigner, InjectionTarget, ValueAssigner

logger = logging.getLogger(__name__)


class InjectionDriver:
    """Resolve, produce, and assign values for injection targets.

    Bulk injection stops at the first failing target; targets processed
    before it keep their values and any resources they registered stay in the
    ledger for teardown.
    """

    def __init__(
        self,
        resolver: TargetResolver,
        invoker: ProducerInvoker,
        assigner: ValueAssigner | None = None,
    ) -> None:
        self._resolver = resolver
        self._invoker = invoker
        self._assigner = assigner or AttributeAssigner()

    def inject_all(
        self,
        context: Any,
        scope_owner: Any,
        targets: Iterable[InjectionTarget],
    ) -> None:
        """Inject every target into ``scope_owner`` in the given order.

        Args:
            context: Opaque host context handed to producers.
            scope_owner: Live instance for instance targets, ``None`` for
                static targets.
            targets: Targets in enumeration order.

        Raises:
            InjectWireConfigurationError: A target is immutable or no producer
                accepts it.
            InjectWireResolutionError: A producer failed or the value could not
                be assigned.

        """
        for target in targets:
            if not target.mutable:
                msg = f"Field {target.description} cannot be Final for injection."
                raise InjectWireConfigurationError(msg, target=target)

            producer = self._find_producer(context, target)
            if producer is None:
                msg = f"Could not find a producer for field {target.description}."
                raise InjectWireConfigurationError(msg, target=target)

            value = self._produce(producer, context, target)
            self._assigner.assign(target, scope_owner, value)
            logger.debug("Injected %s", target.description)

    def supports(self, context: Any, target: InjectionTarget) -> bool:
        """Return whether any producer accepts the target."""
        return self._find_producer(context, target) is not None

    def resolve_value(self, context: Any, target: InjectionTarget) -> Any:
        """Resolve and produce a value for one target without assigning it.

        Raises:
            InjectWireConfigurationError: No producer accepts the target.
            InjectWireResolutionError: The producer failed.

        """
        producer = self._find_producer(context, target)
        if producer is None:
            msg = f"Could not find a producer for parameter {target.description}."
            raise InjectWireConfigurationError(msg, target=target)
        return self._produce(producer, context, target)

    def _find_producer(self, context: Any, target: InjectionTarget) -> InjectionProducer | None:
        try:
            return self._resolver.resolve(context, target.declared_type, target.annotations)
        except InjectWireResolutionError as error:
            if error.target is None:
                error.target = target
            raise

    def _produce(self, producer: InjectionProducer, context: Any, target: InjectionTarget) -> Any:
        try:
            return self._invoker.invoke(
                producer,
                context,
                target.declared_type,
                target.annotations,
                description=target.description,
            )
        except InjectWireProductionError as error:
            msg = f"Failed to resolve {target.description}: {error}"
            raise InjectWireResolutionError(msg, target=target) from error.__cause__
