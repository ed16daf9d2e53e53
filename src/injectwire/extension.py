from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from injectwire.config import InjectWireSettings
from injectwire.injector import InjectionDriver
from injectwire.producers import ProducerRegistry
from injectwire.resolver import ProducerInvoker, TargetResolver
from injectwire.resources import CloseErrorHandler, ResourceLedger
from injectwire.targets import (
    AnnotatedTargetEnumerator,
    AttributeAssigner,
    InjectionTarget,
    TargetEnumerator,
    ValueAssigner,
)

if TYPE_CHECKING:
    from typing_extensions import Self

logger = logging.getLogger(__name__)


class InjectionExtension:
    """Inject producer values into test scopes and release them at teardown.

    The host calls the lifecycle hooks in order: ``on_scope_setup_static``
    once before static targets are used, ``on_scope_setup_instance`` once per
    test instance, and ``on_scope_teardown`` after the scope is done.
    ``supports_target``/``resolve_value`` serve on-demand parameter
    resolution in between.

    Every scope gets its own ``ResourceLedger``. Teardown drains it and starts
    a new one, so a reused extension never mixes resources of two scopes.
    """

    def __init__(
        self,
        registry: ProducerRegistry,
        *,
        enumerator: TargetEnumerator | None = None,
        assigner: ValueAssigner | None = None,
        close_error_handler: CloseErrorHandler | None = None,
    ) -> None:
        self._resolver = TargetResolver(registry)
        self._enumerator = enumerator or AnnotatedTargetEnumerator()
        self._assigner = assigner or AttributeAssigner()
        self._close_error_handler = close_error_handler
        self._ledger = ResourceLedger(close_error_handler=close_error_handler)
        self._driver = self._build_driver(self._ledger)

    @classmethod
    def from_settings(
        cls,
        settings: InjectWireSettings | None = None,
        *,
        registry: ProducerRegistry | None = None,
    ) -> Self:
        """Build an extension from settings, discovering producers when needed."""
        settings = settings or InjectWireSettings()
        if registry is None:
            registry = ProducerRegistry.discover(settings.producers_entry_point_group)
        return cls(registry, close_error_handler=settings.close_error_handler())

    @property
    def registry(self) -> ProducerRegistry:
        return self._resolver.registry

    @property
    def ledger(self) -> ResourceLedger:
        """Ledger of the scope currently in progress."""
        return self._ledger

    def on_scope_setup_static(self, context: Any, scope_type: type[Any]) -> None:
        targets = self._enumerator.enumerate(scope_type, static=True)
        self._driver.inject_all(context, None, targets)

    def on_scope_setup_instance(
        self,
        context: Any,
        scope_type: type[Any],
        owner_instances: Iterable[Any],
    ) -> None:
        # Outer instances of nested scopes declare their own targets.
        logger.debug("Injecting instance targets for %s", scope_type.__qualname__)
        for instance in owner_instances:
            targets = self._enumerator.enumerate(type(instance), static=False)
            self._driver.inject_all(context, instance, targets)

    def on_scope_teardown(self) -> None:
        ledger = self._ledger
        self._ledger = ResourceLedger(close_error_handler=self._close_error_handler)
        self._driver = self._build_driver(self._ledger)
        ledger.drain_and_close_all()

    def supports_target(self, context: Any, target: InjectionTarget) -> bool:
        return self._driver.supports(context, target)

    def resolve_value(self, context: Any, target: InjectionTarget) -> Any:
        return self._driver.resolve_value(context, target)

    def _build_driver(self, ledger: ResourceLedger) -> InjectionDriver:
        return InjectionDriver(self._resolver, ProducerInvoker(ledger), self._assigner)
