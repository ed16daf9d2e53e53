from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from importlib import metadata
from typing import Any, Protocol, runtime_checkable

from injectwire.exceptions import InjectWireInvalidProducerError

logger = logging.getLogger(__name__)

DEFAULT_PRODUCERS_ENTRY_POINT_GROUP = "injectwire.producers"


@runtime_checkable
class InjectionProducer(Protocol):
    """Decide whether a target can be served and manufacture its value.

    ``context`` is passed through untouched from the host (the pytest plugin
    hands over the ``FixtureRequest``). ``annotations`` holds the ``Annotated``
    metadata declared next to the target, without the ``Injected`` marker.

    Examples:
        .. code-block:: python

            class ClientProducer:
                def can_produce(self, context, declared_type, annotations) -> bool:
                    return declared_type is HttpClient

                def produce(self, context, declared_type, annotations) -> HttpClient:
                    return HttpClient(base_url="http://localhost:8080")

    """

    def can_produce(
        self,
        context: Any,
        declared_type: Any,
        annotations: tuple[Any, ...],
    ) -> bool: ...

    def produce(
        self,
        context: Any,
        declared_type: Any,
        annotations: tuple[Any, ...],
    ) -> Any: ...


class ProducerRegistry:
    """Hold the ordered producers of one resolver.

    Order is match priority and never changes after construction, so the
    registry is safe to read from several threads without locking.
    """

    __slots__ = ("_producers",)

    def __init__(self, producers: Iterable[InjectionProducer] = ()) -> None:
        collected = tuple(producers)
        for producer in collected:
            if not isinstance(producer, InjectionProducer):
                raise InjectWireInvalidProducerError(producer)
        self._producers = collected

    @classmethod
    def discover(
        cls,
        group: str = DEFAULT_PRODUCERS_ENTRY_POINT_GROUP,
    ) -> ProducerRegistry:
        """Load producers registered under an entry point group.

        Example (pyproject.toml):
            [project.entry-points."injectwire.producers"]
            http = "my_pkg.producers:HttpClientProducer"

        Classes are instantiated without arguments; any other loaded object is
        used as is.

        Args:
            group: Entry point group to load.

        Returns:
            A registry ordered as the entry points are enumerated.

        """
        producers: list[InjectionProducer] = []
        for entry_point in metadata.entry_points(group=group):
            loaded = entry_point.load()
            producer = loaded() if isinstance(loaded, type) else loaded
            logger.debug("Discovered producer %r from entry point %s", producer, entry_point.name)
            producers.append(producer)
        return cls(producers)

    @property
    def producers(self) -> tuple[InjectionProducer, ...]:
        return self._producers

    def __iter__(self) -> Iterator[InjectionProducer]:
        return iter(self._producers)

    def __len__(self) -> int:
        return len(self._producers)

    def __repr__(self) -> str:
        return f"ProducerRegistry({list(self._producers)!r})"
