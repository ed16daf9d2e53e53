from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from injectwire.exceptions import InjectWireLedgerClosedError

logger = logging.getLogger(__name__)

CloseErrorHandler = Callable[["Releasable", Exception], None]


@runtime_checkable
class Releasable(Protocol):
    """A produced value that owns a resource and must be closed."""

    def close(self) -> Any: ...


def is_releasable(value: object) -> bool:
    """Return True when value exposes a callable ``close``."""
    return callable(getattr(value, "close", None))


def log_close_error(level: int = logging.WARNING) -> CloseErrorHandler:
    """Build a close-error handler that logs the failure at ``level``."""

    def _handler(resource: Releasable, error: Exception) -> None:
        logger.log(level, "Failed to close %r", resource, exc_info=error)

    return _handler


def discard_close_error(resource: Releasable, error: Exception) -> None:  # noqa: ARG001
    """Close-error handler that drops the failure."""


class ResourceLedger:
    """Track releasable values produced in one scope and close them at teardown.

    The ledger has two phases. While open, ``register`` may be called from any
    number of threads. ``drain_and_close_all`` is the terminal operation: it
    closes every resource in registration order and seals the ledger. The host
    must let all registrations finish before teardown starts.

    Close failures are handed to ``close_error_handler`` one by one and never
    stop the remaining closes. A handler that raises is logged and skipped.
    """

    def __init__(self, *, close_error_handler: CloseErrorHandler | None = None) -> None:
        self._resources: deque[Releasable] = deque()
        self._lock = threading.Lock()
        self._closed = False
        self._close_error_handler = close_error_handler or log_close_error()

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, resource: Releasable) -> None:
        """Append a resource for release at teardown."""
        with self._lock:
            if self._closed:
                raise InjectWireLedgerClosedError(resource)
            self._resources.append(resource)
        logger.debug("Registered %r for release", resource)

    def drain_and_close_all(self) -> None:
        """Close every registered resource first-in first-out and seal the ledger.

        Calling it again on a drained ledger is a no-op.
        """
        with self._lock:
            self._closed = True
            resources, self._resources = self._resources, deque()

        if resources:
            logger.debug("Releasing %d resource(s)", len(resources))
        while resources:
            resource = resources.popleft()
            try:
                resource.close()
            except Exception as error:  # noqa: BLE001
                self._report_close_error(resource, error)

    def _report_close_error(self, resource: Releasable, error: Exception) -> None:
        try:
            self._close_error_handler(resource, error)
        except Exception:
            logger.exception("Close-error handler failed for %r", resource)

    def snapshot(self) -> tuple[Releasable, ...]:
        """Return the currently registered resources in registration order."""
        with self._lock:
            return tuple(self._resources)

    def __contains__(self, resource: object) -> bool:
        with self._lock:
            return any(item is resource for item in self._resources)

    def __len__(self) -> int:
        with self._lock:
            return len(self._resources)
