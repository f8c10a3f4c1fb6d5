"""Field decoder: exact decode, null handling, coercion, then default or ``None``.

One call decodes one field and reports at most one event:

* exact value: the value, silently.
* null: the default plus ``Defaulted(null)``, or ``None`` silently when optional.
* missing key (keyed containers): the default plus ``Defaulted(missing)``, or
  ``None`` silently when optional.
* coerced: the value plus one ``Coerced`` event.
* empty URL string treated as absent: handled exactly like null.
* no coercion possible: the default plus ``Defaulted(coercion-failed)``, or
  ``None`` plus ``Failed(coercion-failed)`` when optional.

Bad field data never raises. Only a target outside
:class:`~safedecode.supported.SupportedType` does, and that is a programming
error.

Examples
--------
>>> from safedecode.containers import JsonValueContainer
>>> from safedecode.decoder import decode_field, decode_optional_field
>>> decode_field(JsonValueContainer(None), int)
0
>>> decode_optional_field(JsonValueContainer("n/a"), float) is None
True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never, cast

from safedecode.config import get_config
from safedecode.defaults import DEFAULT_REGISTRY
from safedecode.engine import CoercionStatus, coerce
from safedecode.events import DefaultedEvent, FailedEvent, FailureReason, emit, get_reporter
from safedecode.supported import SupportedType

if TYPE_CHECKING:
    from safedecode.config import CoercionConfig
    from safedecode.containers import SingleValueDecodingContainer, SingleValueEncodingContainer
    from safedecode.events import CoercionReporter
    from safedecode.types import CodingPath

__all__ = [
    "decode_field",
    "decode_optional_field",
    "encode_field",
    "encode_optional_field",
    "resolve_missing",
]


def _decode(
    container: SingleValueDecodingContainer,
    target: SupportedType,
    *,
    optional: bool,
    config: CoercionConfig | None,
    reporter: CoercionReporter | None,
    treat_empty_string_as_nil_for_url: bool | None,
) -> object | None:
    active_config = config if config is not None else get_config()
    active_reporter = reporter if reporter is not None else get_reporter()
    path = container.coding_path

    exact = container.decode_exact(target)
    if exact is not None:
        return exact

    if container.decode_nil():
        if optional:
            return None
        return _default(target, path, FailureReason.NULL, active_reporter)

    result = coerce(
        container,
        target,
        config=active_config,
        reporter=active_reporter,
        coding_path=path,
        treat_empty_url_as_absent=treat_empty_string_as_nil_for_url,
    )
    match result.status:
        case CoercionStatus.COERCED:
            return result.value
        case CoercionStatus.ABSENT:
            if optional:
                return None
            return _default(target, path, FailureReason.NULL, active_reporter)
        case CoercionStatus.UNSUPPORTED:
            if optional:
                emit(FailedEvent(target.value, path, FailureReason.COERCION_FAILED), active_reporter)
                return None
            return _default(target, path, FailureReason.COERCION_FAILED, active_reporter)
        case _:
            assert_never(result.status)


def _default(
    target: SupportedType,
    path: CodingPath,
    reason: FailureReason,
    reporter: CoercionReporter | None,
) -> object:
    emit(DefaultedEvent(target.value, path, reason), reporter)
    return DEFAULT_REGISTRY.default_for(target)


def decode_field[T](
    container: SingleValueDecodingContainer,
    target: type[T] | SupportedType,
    *,
    config: CoercionConfig | None = None,
    reporter: CoercionReporter | None = None,
    treat_empty_string_as_nil_for_url: bool | None = None,
) -> T:
    """Decode a non-optional field, falling back to the type's default.

    Parameters
    ----------
    container : SingleValueDecodingContainer
        Source of the raw value.
    target : type[T] | SupportedType
        Destination type.
    config : CoercionConfig | None, optional
        Rule set. Defaults to the process-wide snapshot.
    reporter : CoercionReporter | None, optional
        Event sink. Defaults to the process-wide reporter.
    treat_empty_string_as_nil_for_url : bool | None, optional
        Per-field override of the config flag of the same name.

    Returns
    -------
    T
        The decoded, coerced or default value. Never ``None``.

    Raises
    ------
    UnsupportedTypeError
        If ``target`` is not a supported type.
    """
    value = _decode(
        container,
        SupportedType.resolve(target),
        optional=False,
        config=config,
        reporter=reporter,
        treat_empty_string_as_nil_for_url=treat_empty_string_as_nil_for_url,
    )
    return cast("T", value)


def decode_optional_field[T](
    container: SingleValueDecodingContainer,
    target: type[T] | SupportedType,
    *,
    config: CoercionConfig | None = None,
    reporter: CoercionReporter | None = None,
    treat_empty_string_as_nil_for_url: bool | None = None,
) -> T | None:
    """Decode an optional field: null is silently ``None``, failures report ``Failed``.

    Parameters and exceptions are as for :func:`decode_field`.
    """
    value = _decode(
        container,
        SupportedType.resolve(target),
        optional=True,
        config=config,
        reporter=reporter,
        treat_empty_string_as_nil_for_url=treat_empty_string_as_nil_for_url,
    )
    return cast("T | None", value)


def resolve_missing(
    target: type | SupportedType,
    coding_path: CodingPath,
    *,
    optional: bool,
    reporter: CoercionReporter | None = None,
) -> object | None:
    """Resolve a field whose key is absent from its keyed container.

    Optional fields become ``None`` silently; non-optional fields take the
    default and report ``Defaulted(reason="missing")``.
    """
    member = SupportedType.resolve(target)
    if optional:
        return None
    active_reporter = reporter if reporter is not None else get_reporter()
    return _default(member, coding_path, FailureReason.MISSING, active_reporter)


def encode_field(container: SingleValueEncodingContainer, value: object) -> None:
    """Write ``value`` unchanged."""
    container.encode(value)


def encode_optional_field(container: SingleValueEncodingContainer, value: object | None) -> None:
    """Write ``value`` unchanged, or null when it is ``None``."""
    if value is None:
        container.encode_nil()
    else:
        container.encode(value)
