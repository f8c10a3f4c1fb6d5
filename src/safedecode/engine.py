"""Coercion engine: fixed-order lenient conversion of a raw value to a target type.

The engine is consulted only after exact decoding and null handling have been
tried. It asks the container for each reinterpretation of the raw value in a
fixed order and stops at the first one whose conversion succeeds:

1. string (whitespace-trimmed when :attr:`CoercionConfig.trim_strings` is set)
2. signed 64-bit integer
3. float
4. bool

Every successful conversion reports exactly one
:class:`~safedecode.events.CoercedEvent`. A conversion that is not possible
is a normal outcome (:attr:`CoercionStatus.UNSUPPORTED`), never an exception.

Examples
--------
>>> from safedecode.config import CoercionConfig
>>> from safedecode.containers import JsonValueContainer
>>> from safedecode.engine import coerce
>>> result = coerce(JsonValueContainer(" 42 "), int, config=CoercionConfig(), reporter=None)
>>> result.status, result.value
(<CoercionStatus.COERCED: 'coerced'>, 42)
"""

from __future__ import annotations

import datetime as dt
import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import TYPE_CHECKING, Final

import numpy as np
from pydantic import AnyUrl, TypeAdapter, ValidationError

from safedecode.events import CoercedEvent, CoercionReporter, emit, truncate_sample
from safedecode.logging import get_logger
from safedecode.supported import INT64_MAX, INT64_MIN, SupportedType

if TYPE_CHECKING:
    from safedecode.config import CoercionConfig
    from safedecode.containers import SingleValueDecodingContainer
    from safedecode.types import CodingPath

__all__ = [
    "MILLISECONDS_THRESHOLD",
    "CoercionResult",
    "CoercionStatus",
    "coerce",
    "parse_decimal",
    "parse_float",
    "parse_int",
    "parse_url",
    "to_float32",
]

logger = get_logger(__name__)

# Numbers at or above this magnitude are read as Unix milliseconds
MILLISECONDS_THRESHOLD: Final[float] = 1e12

_INT_PATTERN: Final[re.Pattern[str]] = re.compile(r"[+-]?[0-9]+")
_DECIMAL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
)
_FLOAT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)

_URL_ADAPTER: Final[TypeAdapter[AnyUrl]] = TypeAdapter(AnyUrl)


class CoercionStatus(StrEnum):
    """Outcome of a coercion attempt."""

    COERCED = "coerced"
    ABSENT = "absent"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, slots=True)
class CoercionResult:
    """Status plus the converted value (``None`` unless :attr:`status` is COERCED)."""

    status: CoercionStatus
    value: object = None

    @property
    def ok(self) -> bool:
        return self.status is CoercionStatus.COERCED


_ABSENT: Final[CoercionResult] = CoercionResult(CoercionStatus.ABSENT)
_UNSUPPORTED: Final[CoercionResult] = CoercionResult(CoercionStatus.UNSUPPORTED)


@dataclass(frozen=True, slots=True)
class _Attempt:
    """Everything a single coercion needs besides the raw value."""

    target: SupportedType
    config: CoercionConfig
    coding_path: CodingPath
    reporter: CoercionReporter | None
    treat_empty_url_as_absent: bool

    def coerced(
        self, value: object, from_type: str, raw: object, to_type: str | None = None
    ) -> CoercionResult:
        emit(
            CoercedEvent(
                from_type=from_type,
                to_type=to_type or self.target.value,
                coding_path=self.coding_path,
                raw_sample=truncate_sample(raw),
            ),
            self.reporter,
        )
        return CoercionResult(CoercionStatus.COERCED, value)


def parse_int(text: str) -> int | None:
    """Parse a base-10 integer literal in the signed 64-bit range.

    Examples
    --------
    >>> parse_int("+42")
    42
    >>> parse_int("4.2") is None
    True
    >>> parse_int("9223372036854775808") is None
    True
    """
    if _INT_PATTERN.fullmatch(text) is None:
        return None
    try:
        value = int(text)
    except ValueError:
        # Beyond the interpreter's integer string conversion limit
        return None
    if not INT64_MIN <= value <= INT64_MAX:
        return None
    return value


def parse_float(text: str) -> float | None:
    """Parse a decimal or exponent float literal, including ``inf`` and ``nan``.

    Examples
    --------
    >>> parse_float("1e3")
    1000.0
    >>> parse_float("1_000") is None
    True
    """
    if _FLOAT_PATTERN.fullmatch(text) is None:
        return None
    return float(text)


def parse_decimal(text: str) -> Decimal | None:
    """Parse a finite decimal literal without going through binary floating point.

    Examples
    --------
    >>> parse_decimal("0.10")
    Decimal('0.10')
    >>> parse_decimal("nan") is None
    True
    """
    if _DECIMAL_PATTERN.fullmatch(text) is None:
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def to_float32(value: float) -> np.float32:
    """Narrow ``value`` to float32; overflow becomes ``inf`` without a warning."""
    with np.errstate(over="ignore"):
        return np.float32(value)


def _float_to_int(value: float) -> int | None:
    if not math.isfinite(value):
        return None
    truncated = int(value)
    if not INT64_MIN <= truncated <= INT64_MAX:
        return None
    return truncated


def _from_timestamp(seconds: float) -> dt.datetime | None:
    try:
        return dt.datetime.fromtimestamp(seconds, tz=dt.UTC)
    except (OverflowError, ValueError, OSError):
        return None


def _parse_iso8601(text: str) -> dt.datetime | None:
    # Internet date-time: a zone designator is required
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


def parse_url(text: str) -> AnyUrl | None:
    try:
        return _URL_ADAPTER.validate_python(text)
    except ValidationError:
        return None


def _float_to_date(value: float, attempt: _Attempt, family: str, raw: object) -> CoercionResult:
    config = attempt.config
    if config.allow_unix_timestamp_milliseconds and abs(value) >= MILLISECONDS_THRESHOLD:
        parsed = _from_timestamp(value / 1000.0)
        if parsed is not None:
            return attempt.coerced(parsed, f"{family}(timestamp_ms)", raw)
        return _UNSUPPORTED
    if config.allow_unix_timestamp_seconds:
        parsed = _from_timestamp(value)
        if parsed is not None:
            return attempt.coerced(parsed, f"{family}(timestamp_sec)", raw)
    return _UNSUPPORTED


def _string_to_bool(text: str, attempt: _Attempt) -> CoercionResult:
    literal = text.casefold()
    if literal in attempt.config.bool_true_literals:
        return attempt.coerced(True, "String", text, "Bool(true)")
    if literal in attempt.config.bool_false_literals:
        return attempt.coerced(False, "String", text, "Bool(false)")
    number: float | None = parse_int(text)
    if number is None:
        number = parse_float(text)
    if number is None:
        return _UNSUPPORTED
    flag = number != 0
    return attempt.coerced(flag, "String(number)", text, f"Bool({str(flag).lower()})")


def _string_to_date(text: str, attempt: _Attempt) -> CoercionResult:
    config = attempt.config
    if config.allow_iso8601_date:
        parsed = _parse_iso8601(text)
        if parsed is not None:
            return attempt.coerced(parsed, "String(ISO8601)", text)
    if config.allow_custom_date_formats:
        for formatter in config.custom_date_formatters:
            parsed = formatter.parse(text)
            if parsed is not None:
                return attempt.coerced(parsed, f"String(DateFormatter:{formatter.pattern})", text)
    if config.allow_stringified_timestamp:
        timestamp = parse_float(text)
        if timestamp is not None:
            return _float_to_date(timestamp, attempt, "String", text)
    return _UNSUPPORTED


def _from_string(text: str, attempt: _Attempt) -> CoercionResult:
    config = attempt.config
    numbers_allowed = config.allow_string_to_number
    match attempt.target:
        case SupportedType.STRING:
            return attempt.coerced(text, "String", text)
        case SupportedType.INT if numbers_allowed:
            integer = parse_int(text)
            return _UNSUPPORTED if integer is None else attempt.coerced(integer, "String", text)
        case SupportedType.DOUBLE if numbers_allowed:
            number = parse_float(text)
            return _UNSUPPORTED if number is None else attempt.coerced(number, "String", text)
        case SupportedType.FLOAT if numbers_allowed:
            number = parse_float(text)
            if number is None:
                return _UNSUPPORTED
            return attempt.coerced(to_float32(number), "String", text)
        case SupportedType.DECIMAL if numbers_allowed:
            decimal = parse_decimal(text)
            return _UNSUPPORTED if decimal is None else attempt.coerced(decimal, "String", text)
        case SupportedType.BOOL if config.allow_string_to_bool:
            return _string_to_bool(text, attempt)
        case SupportedType.DATE:
            return _string_to_date(text, attempt)
        case SupportedType.URL:
            if not text and attempt.treat_empty_url_as_absent:
                return _ABSENT
            if not config.allow_url_from_string:
                return _UNSUPPORTED
            url = parse_url(text)
            return _UNSUPPORTED if url is None else attempt.coerced(url, "String", text)
        case _:
            return _UNSUPPORTED


def _from_int(integer: int, attempt: _Attempt) -> CoercionResult:
    config = attempt.config
    match attempt.target:
        case SupportedType.STRING if config.allow_number_to_string:
            return attempt.coerced(str(integer), "Int", integer)
        case SupportedType.INT:
            return attempt.coerced(integer, "Int", integer)
        case SupportedType.DOUBLE:
            return attempt.coerced(float(integer), "Int", integer)
        case SupportedType.FLOAT:
            return attempt.coerced(to_float32(float(integer)), "Int", integer)
        case SupportedType.DECIMAL:
            return attempt.coerced(Decimal(integer), "Int", integer)
        case SupportedType.BOOL if config.allow_number_to_bool:
            flag = integer != 0
            return attempt.coerced(flag, "Int", integer, f"Bool({str(flag).lower()})")
        case SupportedType.DATE if config.allow_unix_timestamp_seconds:
            parsed = _from_timestamp(integer)
            if parsed is None:
                return _UNSUPPORTED
            return attempt.coerced(parsed, "Int(timestamp_sec)", integer)
        case _:
            return _UNSUPPORTED


def _from_float(number: float, attempt: _Attempt) -> CoercionResult:
    config = attempt.config
    raw = repr(number)
    match attempt.target:
        case SupportedType.STRING if config.allow_number_to_string:
            return attempt.coerced(raw, "Double", raw)
        case SupportedType.INT:
            integer = _float_to_int(number)
            return _UNSUPPORTED if integer is None else attempt.coerced(integer, "Double", raw)
        case SupportedType.DOUBLE:
            return attempt.coerced(number, "Double", raw)
        case SupportedType.FLOAT:
            return attempt.coerced(to_float32(number), "Double", raw)
        case SupportedType.DECIMAL:
            if not math.isfinite(number):
                return _UNSUPPORTED
            return attempt.coerced(Decimal(raw), "Double", raw)
        case SupportedType.BOOL if config.allow_number_to_bool:
            flag = number != 0
            return attempt.coerced(flag, "Double", raw, f"Bool({str(flag).lower()})")
        case SupportedType.DATE:
            return _float_to_date(number, attempt, "Double", raw)
        case _:
            return _UNSUPPORTED


def _from_bool(flag: bool, attempt: _Attempt) -> CoercionResult:
    config = attempt.config
    literal = "true" if flag else "false"
    numbers_allowed = config.allow_bool_to_number
    match attempt.target:
        case SupportedType.STRING if config.allow_bool_to_string:
            return attempt.coerced(literal, "Bool", literal)
        case SupportedType.INT if numbers_allowed:
            return attempt.coerced(int(flag), "Bool", literal)
        case SupportedType.DOUBLE if numbers_allowed:
            return attempt.coerced(float(flag), "Bool", literal)
        case SupportedType.FLOAT if numbers_allowed:
            return attempt.coerced(np.float32(flag), "Bool", literal)
        case SupportedType.DECIMAL if numbers_allowed:
            return attempt.coerced(Decimal(int(flag)), "Bool", literal)
        case SupportedType.BOOL:
            return attempt.coerced(flag, "Bool", literal, f"Bool({literal})")
        case _:
            return _UNSUPPORTED


def coerce(
    container: SingleValueDecodingContainer,
    target: SupportedType | type,
    *,
    config: CoercionConfig,
    reporter: CoercionReporter | None,
    coding_path: CodingPath | None = None,
    treat_empty_url_as_absent: bool | None = None,
) -> CoercionResult:
    """Convert the container's raw value to ``target`` using lenient rules.

    Parameters
    ----------
    container : SingleValueDecodingContainer
        Source of the raw value and its reinterpretations.
    target : SupportedType | type
        Destination type.
    config : CoercionConfig
        Snapshot gating each conversion family.
    reporter : CoercionReporter | None
        Receives one :class:`CoercedEvent` on success.
    coding_path : CodingPath | None, optional
        Location reported in events. Defaults to ``container.coding_path``.
    treat_empty_url_as_absent : bool | None, optional
        Per-field replacement for ``config.treat_empty_string_as_nil_for_url``.

    Returns
    -------
    CoercionResult
        COERCED with the value, ABSENT for an empty URL string treated as
        absent, or UNSUPPORTED when no reinterpretation converts.

    Raises
    ------
    UnsupportedTypeError
        If ``target`` is not a supported type.
    """
    attempt = _Attempt(
        target=SupportedType.resolve(target),
        config=config,
        coding_path=container.coding_path if coding_path is None else coding_path,
        reporter=reporter,
        treat_empty_url_as_absent=(
            config.treat_empty_string_as_nil_for_url
            if treat_empty_url_as_absent is None
            else treat_empty_url_as_absent
        ),
    )

    text = container.decode_string()
    if text is not None:
        result = _from_string(text.strip() if config.trim_strings else text, attempt)
        if result.status is not CoercionStatus.UNSUPPORTED:
            return result

    integer = container.decode_int()
    if integer is not None:
        result = _from_int(integer, attempt)
        if result.ok:
            return result

    number = container.decode_float()
    if number is not None:
        result = _from_float(number, attempt)
        if result.ok:
            return result

    flag = container.decode_bool()
    if flag is not None:
        result = _from_bool(flag, attempt)
        if result.ok:
            return result

    logger.debug(
        "No coercion to %s",
        attempt.target.value,
        extra={"operation": "safedecode.coerce", "status": "unsupported"},
    )
    return _UNSUPPORTED

