from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, ClassVar, Final, NamedTuple, TypeVar, Union, get_args, get_origin

T = TypeVar("T")
_ANNOTATED_MARKER_MIN_ARGS = 2


class InjectedMarker:
    """Marker that flags a field or parameter as a producer injection target."""

    def __repr__(self) -> str:
        return "InjectedMarker()"


class Qualifier(NamedTuple):
    """Attach free-form metadata for producers to match on.

    Producers receive every non-marker ``Annotated`` item in ``annotations``,
    so ``Qualifier`` is simply a hashable, value-based carrier for names.

    Examples:
        .. code-block:: python

            class TestApi:
                admin: Injected[Annotated[Client, Qualifier("admin")]]

    """

    value: Any


class InjectedAnnotation(NamedTuple):
    """Unwrapped ``Injected[...]`` declaration."""

    declared_type: Any
    annotations: tuple[Any, ...]
    is_class_var: bool
    is_final: bool


if TYPE_CHECKING:
    Injected = Union[T, T]  # noqa: UP007,PYI016
    """Mark a field or parameter for producer-driven injection.

    At runtime ``Injected[T]`` becomes ``Annotated[T, InjectedMarker()]``.
    """

else:

    class Injected:
        """Mark a field or parameter for producer-driven injection.

        At runtime ``Injected[T]`` resolves to ``Annotated[T, InjectedMarker()]``.
        Extra ``Annotated`` metadata on ``T`` is kept and passed to producers.

        Examples:
            .. code-block:: python

                class TestOrders:
                    client: Injected[HttpClient]
                    shared: ClassVar[Injected[HttpClient]]

                    def test_create(self, token: Injected[Token]) -> None: ...

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, InjectedMarker]:
            if get_origin(item) is Annotated:
                args = get_args(item)
                return _build_annotated((args[0], *args[1:], InjectedMarker()))
            return _build_annotated((item, InjectedMarker()))


def unwrap_injected_annotation(annotation: Any) -> InjectedAnnotation | None:
    """Return the declared type and metadata of an ``Injected[...]`` annotation.

    ``ClassVar[...]`` and ``Final[...]`` wrappers are peeled off and reported
    through ``is_class_var``/``is_final``. Returns ``None`` when the
    annotation carries no ``InjectedMarker``.
    """
    is_class_var = False
    is_final = False
    while get_origin(annotation) in (ClassVar, Final):
        if get_origin(annotation) is ClassVar:
            is_class_var = True
        else:
            is_final = True
        wrapped = get_args(annotation)
        if not wrapped:
            return None
        annotation = wrapped[0]

    if get_origin(annotation) is not Annotated:
        return None
    annotation_args = get_args(annotation)
    if len(annotation_args) < _ANNOTATED_MARKER_MIN_ARGS:
        return None
    metadata = annotation_args[1:]
    if not any(isinstance(item, InjectedMarker) for item in metadata):
        return None

    return InjectedAnnotation(
        declared_type=annotation_args[0],
        annotations=tuple(item for item in metadata if not isinstance(item, InjectedMarker)),
        is_class_var=is_class_var,
        is_final=is_final,
    )


def is_injected_annotation(annotation: Any) -> bool:
    """Return True when annotation is ``Injected[...]``, optionally wrapped."""
    return unwrap_injected_annotation(annotation) is not None


def _build_annotated(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] with a pre-built params tuple (Py 3.10+ compatible)."""
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]
