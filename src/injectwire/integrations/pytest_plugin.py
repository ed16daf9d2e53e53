from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable, Iterator
from typing import Any, cast

import pytest

from injectwire.config import InjectWireSettings
from injectwire.exceptions import InjectWireConfigurationError
from injectwire.extension import InjectionExtension
from injectwire.producers import ProducerRegistry
from injectwire.targets import InjectionTarget, parameter_targets

logger = logging.getLogger(__name__)

_INJECTWIRE_EXTENSION_ATTR = "_injectwire_extension"
_INJECTWIRE_REQUEST_ATTR = "_injectwire_request"
_INJECTWIRE_PARAMETER_TARGETS_ATTR = "__injectwire_pytest_parameter_targets__"


@pytest.fixture(scope="session")
def injectwire_settings() -> InjectWireSettings:
    """Settings used by the plugin, read from ``INJECTWIRE_*`` variables."""
    return InjectWireSettings()


@pytest.fixture(scope="session")
def injectwire_registry(injectwire_settings: InjectWireSettings) -> ProducerRegistry:
    """Producers available to every test.

    Defaults to producers registered under the configured entry point group.
    Override this fixture (at class, module, package, or session scope) to
    supply producers explicitly.

    Returns:
        The registry shared by all scopes.

    """
    return ProducerRegistry.discover(injectwire_settings.producers_entry_point_group)


@pytest.fixture(scope="class", autouse=True)
def injectwire_extension(
    request: pytest.FixtureRequest,
    injectwire_registry: ProducerRegistry,
    injectwire_settings: InjectWireSettings,
) -> Iterator[InjectionExtension]:
    """Own one injection scope per test class.

    Static ``ClassVar[Injected[...]]`` targets of the test class are injected
    on entry. Every resource produced inside the scope is closed when the last
    test of the class finishes. Plain test functions get a scope of their own.

    Yields:
        The extension serving the current scope.

    """
    extension = InjectionExtension(
        injectwire_registry,
        close_error_handler=injectwire_settings.close_error_handler(),
    )
    try:
        if request.cls is not None:
            extension.on_scope_setup_static(request, request.cls)
        yield extension
    finally:
        extension.on_scope_teardown()


@pytest.fixture(autouse=True)
def _injectwire_state(
    request: pytest.FixtureRequest,
    injectwire_extension: InjectionExtension,
) -> None:
    """Inject instance targets and store plugin state on the test node."""
    node = cast("Any", request.node)
    setattr(node, _INJECTWIRE_EXTENSION_ATTR, injectwire_extension)
    setattr(node, _INJECTWIRE_REQUEST_ATTR, request)
    if request.instance is not None:
        injectwire_extension.on_scope_setup_instance(
            request,
            type(request.instance),
            [request.instance],
        )


def pytest_pycollect_makeitem(
    collector: Any,
    name: str,
    obj: object,
) -> Any | None:
    """Hide ``Injected[...]`` parameters from pytest fixture name matching.

    Args:
        collector: Pytest collector instance.
        name: Collected object name.
        obj: Candidate object.

    Returns:
        ``None`` to continue default collection flow.

    """
    if not callable(obj):
        return None
    if not collector.istestfunction(obj, name):
        return None

    callable_obj = cast("Callable[..., Any]", obj)
    targets = parameter_targets(callable_obj)
    if not targets:
        return None

    hidden_parameter_names = {target.name for target in targets}
    signature = inspect.signature(callable_obj)
    obj_as_any = cast("Any", obj)
    obj_as_any.__dict__[_INJECTWIRE_PARAMETER_TARGETS_ATTR] = targets
    obj_as_any.__signature__ = signature.replace(
        parameters=[
            parameter
            for parameter in signature.parameters.values()
            if parameter.name not in hidden_parameter_names
        ],
    )
    return None


@pytest.hookimpl(hookwrapper=True, tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> Iterator[None]:
    """Resolve ``Injected[...]`` parameters before the test function runs.

    Each parameter is checked with ``supports_target`` and then produced with
    ``resolve_value``. Produced resources belong to the current class scope.
    If no plugin state is attached to the item, this hook is a no-op.

    Args:
        pyfuncitem: Collected pytest function item.

    Yields:
        Control back to pytest around test execution.

    Raises:
        InjectWireConfigurationError: No producer supports a parameter.

    """
    original_callable = cast("Callable[..., Any]", pyfuncitem.obj)
    targets = cast(
        "tuple[InjectionTarget, ...] | None",
        getattr(original_callable, _INJECTWIRE_PARAMETER_TARGETS_ATTR, None),
    )
    if targets is None:
        targets = parameter_targets(original_callable)
    item = cast("Any", pyfuncitem)
    extension = cast("InjectionExtension | None", getattr(item, _INJECTWIRE_EXTENSION_ATTR, None))
    if not targets or extension is None:
        yield
        return

    request = getattr(item, _INJECTWIRE_REQUEST_ATTR, None)
    resolved: dict[str, Any] = {}
    for target in targets:
        if not extension.supports_target(request, target):
            msg = f"No producer supports parameter {target.description} of {pyfuncitem.name}."
            raise InjectWireConfigurationError(msg, target=target)
        resolved[target.name] = extension.resolve_value(request, target)
    logger.debug("Resolved %d injected parameter(s) for %s", len(resolved), pyfuncitem.name)

    pyfuncitem.obj = functools.partial(original_callable, **resolved)
    try:
        yield
    finally:
        pyfuncitem.obj = original_callable
