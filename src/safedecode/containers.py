"""Decoding and encoding containers over parsed JSON.

Field decoding needs a small capability surface from its source: "is this
null", "give me exactly a T", and "reinterpret as string / int / float / bool".
:class:`SingleValueDecodingContainer` names that surface;
:class:`JsonValueContainer` implements it for one value produced by
:func:`json.loads` (or an already-typed Python value).

:class:`KeyedDecodingContainer` walks a JSON object. It captures one
configuration snapshot and one reporter when constructed and hands them to
every field it decodes, so a whole structure is decoded under a single rule
set. Structural problems (not an object, malformed text) raise
:class:`~safedecode.errors.StructureError`; bad field data never raises.

Examples
--------
>>> from safedecode.containers import KeyedDecodingContainer
>>> user = KeyedDecodingContainer.from_json('{"id": "42", "active": "yes"}')
>>> user.decode("id", int), user.decode("active", bool)
(42, True)
>>> user.decode_optional("nickname", str) is None
True
"""

from __future__ import annotations

import datetime as dt
import json
import math
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, Self, cast, runtime_checkable

import numpy as np
from pydantic import AnyUrl

from safedecode.config import get_config
from safedecode.decoder import (
    decode_field,
    decode_optional_field,
    encode_field,
    encode_optional_field,
    resolve_missing,
)
from safedecode.engine import parse_url, to_float32
from safedecode.errors import StructureError
from safedecode.events import get_reporter
from safedecode.logging import get_logger
from safedecode.supported import INT64_MAX, INT64_MIN, SupportedType
from safedecode.types import CodingPath, extend_path, format_coding_path

if TYPE_CHECKING:
    from safedecode.config import CoercionConfig
    from safedecode.events import CoercionReporter

__all__ = [
    "JsonValueContainer",
    "JsonValueEncoder",
    "KeyedDecodingContainer",
    "KeyedEncodingContainer",
    "SingleValueDecodingContainer",
    "SingleValueEncodingContainer",
]

logger = get_logger(__name__)


@runtime_checkable
class SingleValueDecodingContainer(Protocol):
    """Capabilities the field decoder needs from a value source.

    Every ``decode_*`` method returns ``None`` when the raw value cannot be
    read that way; none of them raise for data mismatches.
    """

    @property
    def coding_path(self) -> CodingPath:
        """Location of the value inside its parent structure."""
        ...

    def decode_nil(self) -> bool:
        """Return True when the raw value is null."""
        ...

    def decode_exact(self, target: SupportedType) -> object | None:
        """Return the value when it already is (or natively decodes as) ``target``."""
        ...

    def decode_string(self) -> str | None:
        """Reinterpret the raw value as a string."""
        ...

    def decode_int(self) -> int | None:
        """Reinterpret the raw value as a signed 64-bit integer."""
        ...

    def decode_float(self) -> float | None:
        """Reinterpret the raw value as a float."""
        ...

    def decode_bool(self) -> bool | None:
        """Reinterpret the raw value as a bool."""
        ...


@runtime_checkable
class SingleValueEncodingContainer(Protocol):
    """Sink for one encoded field value."""

    @property
    def coding_path(self) -> CodingPath:
        """Location of the value inside its parent structure."""
        ...

    def encode_nil(self) -> None:
        """Write null."""
        ...

    def encode(self, value: object) -> None:
        """Write ``value`` unchanged."""
        ...


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class JsonValueContainer:
    """Single-value container over one parsed JSON value.

    Exact decoding follows what a JSON decoder produces natively: JSON
    integers also decode exactly as Double, Float and Decimal, JSON numbers as
    Decimal, and a string that parses as an absolute URL as URL. Values that
    already have the target's Python type (as written by
    :class:`JsonValueEncoder`) always decode exactly, so encoded structures
    re-decode without coercion.

    Parameters
    ----------
    value : object
        Raw value.
    coding_path : CodingPath, optional
        Location of the value. Defaults to the root.
    """

    __slots__ = ("_coding_path", "value")

    def __init__(self, value: object, coding_path: CodingPath = ()) -> None:
        self.value = value
        self._coding_path = tuple(coding_path)

    def __repr__(self) -> str:
        return f"JsonValueContainer({self.value!r}, path={format_coding_path(self._coding_path)!r})"

    @property
    def coding_path(self) -> CodingPath:
        return self._coding_path

    def decode_nil(self) -> bool:
        return self.value is None

    def decode_exact(self, target: SupportedType) -> object | None:  # noqa: PLR0911 - one branch per type
        value = self.value
        match target:
            case SupportedType.STRING:
                return value if isinstance(value, str) else None
            case SupportedType.INT:
                return value if _is_int(value) and INT64_MIN <= cast("int", value) <= INT64_MAX else None
            case SupportedType.DOUBLE:
                if isinstance(value, float):
                    return value
                return self.decode_float() if _is_int(value) else None
            case SupportedType.FLOAT:
                if isinstance(value, np.floating):
                    return to_float32(float(value))
                number = self.decode_float()
                if number is None or (math.isfinite(number) and abs(number) > np.finfo(np.float32).max):
                    return None
                return to_float32(number)
            case SupportedType.BOOL:
                return value if isinstance(value, bool) else None
            case SupportedType.DECIMAL:
                if isinstance(value, Decimal):
                    return value
                if _is_int(value):
                    return Decimal(cast("int", value))
                if isinstance(value, float) and math.isfinite(value):
                    return Decimal(repr(value))
                return None
            case SupportedType.DATE:
                if isinstance(value, dt.datetime) and value.tzinfo is not None:
                    return value
                return None
            case SupportedType.URL:
                if isinstance(value, AnyUrl):
                    return value
                return parse_url(value) if isinstance(value, str) and value else None
            case _:
                return None

    def decode_string(self) -> str | None:
        return self.value if isinstance(self.value, str) else None

    def decode_int(self) -> int | None:
        value = self.value
        if _is_int(value) and INT64_MIN <= cast("int", value) <= INT64_MAX:
            return cast("int", value)
        return None

    def decode_float(self) -> float | None:
        value = self.value
        if isinstance(value, bool):
            return None
        if isinstance(value, (float, np.floating)):
            return float(value)
        if isinstance(value, int):
            try:
                return float(value)
            except OverflowError:
                return None
        return None

    def decode_bool(self) -> bool | None:
        return self.value if isinstance(self.value, bool) else None


class KeyedDecodingContainer:
    """Decode fields out of a JSON object.

    Parameters
    ----------
    payload : Mapping[str, object]
        Parsed JSON object.
    coding_path : CodingPath, optional
        Location of the object itself. Defaults to the root.
    config : CoercionConfig | None, optional
        Rule set for every field. Defaults to the process-wide snapshot at
        construction time.
    reporter : CoercionReporter | None, optional
        Event sink for every field. Defaults to the process-wide reporter at
        construction time.

    Raises
    ------
    StructureError
        If ``payload`` is not a mapping.
    """

    def __init__(
        self,
        payload: Mapping[str, object],
        *,
        coding_path: CodingPath = (),
        config: CoercionConfig | None = None,
        reporter: CoercionReporter | None = None,
    ) -> None:
        if not isinstance(payload, Mapping):
            path = format_coding_path(coding_path)
            msg = f"Expected a JSON object at {path}, got {type(payload).__name__}"
            raise StructureError(msg, context={"path": path, "type": type(payload).__name__})
        self._payload = payload
        self.coding_path: CodingPath = tuple(coding_path)
        self.config: CoercionConfig = config if config is not None else get_config()
        self.reporter: CoercionReporter | None = reporter if reporter is not None else get_reporter()

    @classmethod
    def from_json(
        cls,
        text: str | bytes,
        *,
        config: CoercionConfig | None = None,
        reporter: CoercionReporter | None = None,
    ) -> Self:
        """Parse ``text`` and wrap the resulting object.

        Raises
        ------
        StructureError
            If ``text`` is not valid JSON or is not a JSON object.
        """
        try:
            payload = json.loads(text)
        except ValueError as exc:
            if isinstance(exc, json.JSONDecodeError):
                msg = f"Malformed JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})"
            else:
                msg = f"Malformed JSON: {exc}"
            logger.log_failure(msg, exception=exc, operation="safedecode.containers.from_json")
            raise StructureError(msg, cause=exc) from exc
        return cls(payload, config=config, reporter=reporter)

    def contains(self, key: str) -> bool:
        return key in self._payload

    def keys(self) -> list[str]:
        return list(self._payload)

    def value_container(self, key: str) -> JsonValueContainer:
        """Return a single-value container for ``key`` (null when absent)."""
        return JsonValueContainer(self._payload.get(key), extend_path(self.coding_path, key))

    def decode[T](
        self,
        key: str,
        target: type[T] | SupportedType,
        *,
        treat_empty_string_as_nil_for_url: bool | None = None,
    ) -> T:
        """Decode a non-optional field; a missing key resolves to the default."""
        if key not in self._payload:
            return cast(
                "T",
                resolve_missing(
                    target,
                    extend_path(self.coding_path, key),
                    optional=False,
                    reporter=self.reporter,
                ),
            )
        return decode_field(
            self.value_container(key),
            target,
            config=self.config,
            reporter=self.reporter,
            treat_empty_string_as_nil_for_url=treat_empty_string_as_nil_for_url,
        )

    def decode_optional[T](
        self,
        key: str,
        target: type[T] | SupportedType,
        *,
        treat_empty_string_as_nil_for_url: bool | None = None,
    ) -> T | None:
        """Decode an optional field; a missing key resolves to ``None`` silently."""
        if key not in self._payload:
            return None
        return decode_optional_field(
            self.value_container(key),
            target,
            config=self.config,
            reporter=self.reporter,
            treat_empty_string_as_nil_for_url=treat_empty_string_as_nil_for_url,
        )

    def decode_list[T](self, key: str, target: type[T] | SupportedType) -> list[T]:
        """Decode every element of the array at ``key`` as a non-optional field.

        A missing or null key yields an empty list.

        Raises
        ------
        StructureError
            If the value at ``key`` is present but not an array.
        """
        items = self._sequence_at(key)
        path = extend_path(self.coding_path, key)
        return [
            decode_field(
                JsonValueContainer(item, extend_path(path, index)),
                target,
                config=self.config,
                reporter=self.reporter,
            )
            for index, item in enumerate(items)
        ]

    def nested(self, key: str) -> KeyedDecodingContainer:
        """Return a container for the object at ``key``, sharing this snapshot and reporter.

        Raises
        ------
        StructureError
            If the value at ``key`` is missing or not an object.
        """
        return KeyedDecodingContainer(
            cast("Mapping[str, object]", self._payload.get(key)),
            coding_path=extend_path(self.coding_path, key),
            config=self.config,
            reporter=self.reporter,
        )

    def nested_list(self, key: str) -> list[KeyedDecodingContainer]:
        """Return one container per object in the array at ``key``.

        Raises
        ------
        StructureError
            If the value is present but not an array, or an element is not an object.
        """
        path = extend_path(self.coding_path, key)
        return [
            KeyedDecodingContainer(
                cast("Mapping[str, object]", item),
                coding_path=extend_path(path, index),
                config=self.config,
                reporter=self.reporter,
            )
            for index, item in enumerate(self._sequence_at(key))
        ]

    def _sequence_at(self, key: str) -> Sequence[object]:
        value = self._payload.get(key)
        if value is None:
            return []
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            path = format_coding_path(extend_path(self.coding_path, key))
            msg = f"Expected a JSON array at {path}, got {type(value).__name__}"
            raise StructureError(msg, context={"path": path, "type": type(value).__name__})
        return value


class JsonValueEncoder:
    """Single-value encoding container collecting one value."""

    __slots__ = ("_coding_path", "value")

    def __init__(self, coding_path: CodingPath = ()) -> None:
        self._coding_path = tuple(coding_path)
        self.value: object = None

    @property
    def coding_path(self) -> CodingPath:
        return self._coding_path

    def encode_nil(self) -> None:
        self.value = None

    def encode(self, value: object) -> None:
        self.value = value


class KeyedEncodingContainer:
    """Build a JSON-shaped dict field by field.

    Values are stored as-is (an ``AnyUrl`` stays an ``AnyUrl``), so the result
    re-decodes exactly through :class:`KeyedDecodingContainer`.
    """

    def __init__(self, coding_path: CodingPath = ()) -> None:
        self.coding_path: CodingPath = tuple(coding_path)
        self._fields: dict[str, object] = {}
        self._children: dict[str, KeyedEncodingContainer] = {}

    def _encoder(self, key: str) -> JsonValueEncoder:
        return JsonValueEncoder(extend_path(self.coding_path, key))

    def encode(self, key: str, value: object) -> None:
        encoder = self._encoder(key)
        encode_field(encoder, value)
        self._fields[key] = encoder.value

    def encode_optional(self, key: str, value: object | None) -> None:
        encoder = self._encoder(key)
        encode_optional_field(encoder, value)
        self._fields[key] = encoder.value

    def nested(self, key: str) -> KeyedEncodingContainer:
        child = KeyedEncodingContainer(extend_path(self.coding_path, key))
        self._children[key] = child
        return child

    def to_dict(self) -> dict[str, object]:
        result = dict(self._fields)
        for key, child in self._children.items():
            result[key] = child.to_dict()
        return result
