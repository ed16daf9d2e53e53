"""Shared pytest fixtures for injectwire tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from injectwire.resources import ResourceLedger


class Resource:
    """Releasable value that records close order into a shared journal."""

    def __init__(self, name: str, journal: list[str] | None = None, *, fail: bool = False) -> None:
        self.name = name
        self.journal = journal if journal is not None else []
        self.fail = fail
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        self.journal.append(self.name)
        if self.fail:
            msg = f"{self.name} failed to close"
            raise RuntimeError(msg)

    def __repr__(self) -> str:
        return f"Resource({self.name!r})"


class RecordingProducer:
    """Producer that accepts one declared type and records every call."""

    def __init__(
        self,
        accepts: Any,
        factory: Callable[[], Any] | None = None,
        *,
        name: str = "producer",
        journal: list[str] | None = None,
    ) -> None:
        self.accepts = accepts
        self.factory = factory or (lambda: object())
        self.name = name
        self.journal = journal if journal is not None else []
        self.seen: list[tuple[Any, Any, tuple[Any, ...]]] = []

    def can_produce(self, context: Any, declared_type: Any, annotations: tuple[Any, ...]) -> bool:
        self.journal.append(f"{self.name}.can_produce")
        self.seen.append((context, declared_type, annotations))
        return declared_type is self.accepts

    def produce(self, context: Any, declared_type: Any, annotations: tuple[Any, ...]) -> Any:
        self.journal.append(f"{self.name}.produce")
        return self.factory()

    def __repr__(self) -> str:
        return f"RecordingProducer({self.name!r})"


@pytest.fixture()
def journal() -> list[str]:
    """Ordered record of producer calls and resource closes."""
    return []


@pytest.fixture()
def make_producer(journal: list[str]) -> Callable[..., RecordingProducer]:
    """Factory for recording producers that share the test journal."""

    def _make(
        accepts: Any,
        factory: Callable[[], Any] | None = None,
        *,
        name: str = "producer",
    ) -> RecordingProducer:
        return RecordingProducer(accepts, factory, name=name, journal=journal)

    return _make


@pytest.fixture()
def make_resource(journal: list[str]) -> Callable[..., Resource]:
    """Factory for releasable resources that share the test journal."""

    def _make(name: str, *, fail: bool = False) -> Resource:
        return Resource(name, journal, fail=fail)

    return _make


@pytest.fixture()
def ledger() -> ResourceLedger:
    """Ledger that drops close errors."""
    return ResourceLedger(close_error_handler=lambda resource, error: None)
