"""Tests for ResourceLedger registration and release."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pytest

from injectwire.exceptions import InjectWireLedgerClosedError
from injectwire.resources import (
    Releasable,
    ResourceLedger,
    discard_close_error,
    is_releasable,
    log_close_error,
)


class TestIsReleasable:
    def test_object_with_close_is_releasable(self, make_resource: Callable[..., Any]) -> None:
        resource = make_resource("r")

        assert is_releasable(resource)
        assert isinstance(resource, Releasable)

    def test_plain_object_is_not_releasable(self) -> None:
        assert not is_releasable(object())

    def test_non_callable_close_attribute_is_not_releasable(self) -> None:
        class Door:
            close = "shut"

        assert not is_releasable(Door())


class TestDrainAndCloseAll:
    def test_closes_in_registration_order(
        self,
        ledger: ResourceLedger,
        make_resource: Callable[..., Any],
        journal: list[str],
    ) -> None:
        for name in ("r1", "r2", "r3"):
            ledger.register(make_resource(name))

        ledger.drain_and_close_all()

        assert journal == ["r1", "r2", "r3"]
        assert len(ledger) == 0

    def test_close_failure_does_not_stop_later_closes(
        self,
        make_resource: Callable[..., Any],
        journal: list[str],
    ) -> None:
        failures: list[tuple[Any, Exception]] = []
        ledger = ResourceLedger(close_error_handler=lambda r, e: failures.append((r, e)))
        first = make_resource("r1")
        broken = make_resource("r2", fail=True)
        last = make_resource("r3")
        for resource in (first, broken, last):
            ledger.register(resource)

        ledger.drain_and_close_all()

        assert journal == ["r1", "r2", "r3"]
        assert [resource.close_calls for resource in (first, broken, last)] == [1, 1, 1]
        assert len(failures) == 1
        assert failures[0][0] is broken
        assert isinstance(failures[0][1], RuntimeError)

    def test_raising_handler_does_not_stop_later_closes(
        self,
        make_resource: Callable[..., Any],
        journal: list[str],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        def _broken_handler(resource: Any, error: Exception) -> None:
            msg = "handler broke"
            raise ValueError(msg)

        ledger = ResourceLedger(close_error_handler=_broken_handler)
        broken = make_resource("r1", fail=True)
        last = make_resource("r2")
        ledger.register(broken)
        ledger.register(last)

        with caplog.at_level(logging.ERROR, logger="injectwire.resources"):
            ledger.drain_and_close_all()

        assert journal == ["r1", "r2"]
        assert last.close_calls == 1
        assert "Close-error handler failed for Resource('r1')" in caplog.text

    def test_second_drain_is_noop(
        self,
        ledger: ResourceLedger,
        make_resource: Callable[..., Any],
    ) -> None:
        resource = make_resource("r1")
        ledger.register(resource)

        ledger.drain_and_close_all()
        ledger.drain_and_close_all()

        assert resource.close_calls == 1

    def test_drain_seals_ledger(
        self,
        ledger: ResourceLedger,
        make_resource: Callable[..., Any],
    ) -> None:
        ledger.drain_and_close_all()
        late = make_resource("late")

        with pytest.raises(InjectWireLedgerClosedError) as exc_info:
            ledger.register(late)

        assert ledger.closed
        assert exc_info.value.resource is late
        assert late.close_calls == 0

    def test_default_handler_logs_close_errors(
        self,
        make_resource: Callable[..., Any],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        ledger = ResourceLedger()
        ledger.register(make_resource("broken", fail=True))

        with caplog.at_level(logging.WARNING, logger="injectwire.resources"):
            ledger.drain_and_close_all()

        assert "Failed to close Resource('broken')" in caplog.text

    def test_log_close_error_uses_requested_level(
        self,
        make_resource: Callable[..., Any],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        handler = log_close_error(logging.ERROR)

        with caplog.at_level(logging.DEBUG, logger="injectwire.resources"):
            handler(make_resource("r"), RuntimeError("boom"))

        assert [record.levelno for record in caplog.records] == [logging.ERROR]

    def test_discard_handler_logs_nothing(
        self,
        make_resource: Callable[..., Any],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        ledger = ResourceLedger(close_error_handler=discard_close_error)
        ledger.register(make_resource("broken", fail=True))

        with caplog.at_level(logging.DEBUG, logger="injectwire.resources"):
            ledger.drain_and_close_all()

        assert not any(record.levelno >= logging.WARNING for record in caplog.records)


class TestInspection:
    def test_snapshot_and_contains(
        self,
        ledger: ResourceLedger,
        make_resource: Callable[..., Any],
    ) -> None:
        first = make_resource("r1")
        second = make_resource("r2")
        ledger.register(first)
        ledger.register(second)

        assert ledger.snapshot() == (first, second)
        assert first in ledger
        assert make_resource("other") not in ledger


class TestConcurrentRegistration:
    def test_concurrent_register_keeps_every_resource(
        self,
        ledger: ResourceLedger,
        make_resource: Callable[..., Any],
    ) -> None:
        resources = [make_resource(f"r{i}") for i in range(200)]
        barrier = threading.Barrier(8)

        def register_batch(batch: list[Any]) -> None:
            barrier.wait()
            for resource in batch:
                ledger.register(resource)

        batches = [resources[i::8] for i in range(8)]
        with ThreadPoolExecutor(max_workers=8) as executor:
            for future in [executor.submit(register_batch, batch) for batch in batches]:
                future.result()

        assert len(ledger) == 200

        ledger.drain_and_close_all()

        assert all(resource.close_calls == 1 for resource in resources)

    def test_per_thread_registration_order_is_preserved(
        self,
        ledger: ResourceLedger,
        make_resource: Callable[..., Any],
        journal: list[str],
    ) -> None:
        def register_sequence(prefix: str) -> None:
            for index in range(50):
                ledger.register(make_resource(f"{prefix}{index}"))

        threads = [threading.Thread(target=register_sequence, args=(p,)) for p in ("a", "b")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ledger.drain_and_close_all()

        for prefix in ("a", "b"):
            closed = [name for name in journal if name.startswith(prefix)]
            assert closed == [f"{prefix}{index}" for index in range(50)]
