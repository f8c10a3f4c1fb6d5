"""Coercion rule set: which lenient conversions are allowed and how.

:class:`CoercionConfig` is a frozen pydantic model. A decode pass reads one
snapshot from start to finish; "mutating" the configuration means building a
new validated snapshot (:meth:`CoercionConfig.with_overrides`) and installing
it in the process-wide holder (:func:`configure` / :func:`set_config`). The
holder serializes installs behind a lock, so a decode that already captured a
snapshot never observes a half-applied change.

Examples
--------
>>> from safedecode.config import configure, get_config, reset_config
>>> _ = configure(allow_string_to_number=False)
>>> get_config().allow_string_to_number
False
>>> reset_config()
"""

from __future__ import annotations

import datetime as dt
import threading
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Final, Protocol, Self, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from safedecode.errors import CoercionConfigError
from safedecode.logging import get_logger

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails

__all__ = [
    "DEFAULT_FALSE_LITERALS",
    "DEFAULT_TRUE_LITERALS",
    "CoercionConfig",
    "DateFormatter",
    "StrptimeDateFormatter",
    "configure",
    "formatter_patterns",
    "get_config",
    "override_config",
    "reset_config",
    "set_config",
]

logger = get_logger(__name__)

DEFAULT_TRUE_LITERALS: Final[frozenset[str]] = frozenset({"true", "yes", "y", "on", "1"})
DEFAULT_FALSE_LITERALS: Final[frozenset[str]] = frozenset({"false", "no", "n", "off", "0"})


@runtime_checkable
class DateFormatter(Protocol):
    """Injectable parser for one custom date layout."""

    @property
    def pattern(self) -> str:
        """Human-readable layout description, used in coercion events."""
        ...

    def parse(self, text: str) -> dt.datetime | None:
        """Return the parsed timezone-aware datetime, or ``None`` when ``text`` does not match."""
        ...


@dataclass(frozen=True, slots=True)
class StrptimeDateFormatter:
    """Date formatter backed by :meth:`datetime.datetime.strptime`.

    Parameters
    ----------
    pattern : str
        ``strptime`` format string, e.g. ``"%Y-%m-%d %H:%M:%S"``.
    tz : datetime.tzinfo, optional
        Zone assigned to naive parse results. Defaults to UTC.

    Examples
    --------
    >>> fmt = StrptimeDateFormatter("%Y-%m-%d %H:%M:%S")
    >>> fmt.parse("2024-08-20 10:00:00").isoformat()
    '2024-08-20T10:00:00+00:00'
    >>> fmt.parse("yesterday") is None
    True
    """

    pattern: str
    tz: dt.tzinfo = field(default=dt.UTC)

    def parse(self, text: str) -> dt.datetime | None:
        try:
            parsed = dt.datetime.strptime(text, self.pattern)  # noqa: DTZ007 - zone applied below
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=self.tz)
        return parsed


class CoercionConfig(BaseModel):
    """Gates and parameters for every lenient conversion path.

    All coercions are enabled by default, strings are trimmed, ISO-8601 dates
    are accepted, and an empty string decodes as an absent URL.

    Attributes
    ----------
    trim_strings : bool
        Strip surrounding whitespace from string input before converting.
    allow_string_to_number : bool
        Parse numeric literals for Int/Double/Float/Decimal targets.
    allow_string_to_bool : bool
        Map literal strings (and numeric strings) to Bool.
    allow_number_to_string : bool
        Stringify Int/Double input for String targets.
    allow_number_to_bool : bool
        Map numbers to Bool (non-zero is true).
    allow_bool_to_number : bool
        Map Bool to 1/0 for numeric targets.
    allow_bool_to_string : bool
        Map Bool to ``"true"``/``"false"`` for String targets.
    allow_iso8601_date : bool
        Parse ISO-8601 strings for Date targets.
    allow_custom_date_formats : bool
        Try :attr:`custom_date_formatters` for Date targets.
    custom_date_formatters : tuple[DateFormatter, ...]
        Formatters tried in order, first match wins. Plain strings are
        wrapped in :class:`StrptimeDateFormatter`.
    allow_unix_timestamp_seconds : bool
        Interpret numbers as Unix seconds for Date targets.
    allow_unix_timestamp_milliseconds : bool
        Interpret floats with magnitude ≥ 1e12 as Unix milliseconds.
    allow_stringified_timestamp : bool
        Interpret numeric strings as Unix timestamps for Date targets.
    allow_url_from_string : bool
        Parse strings for URL targets.
    treat_empty_string_as_nil_for_url : bool
        Decode ``""`` as an absent URL rather than a failed one.
    bool_true_literals : frozenset[str]
        Case-insensitive literals decoded as ``True``.
    bool_false_literals : frozenset[str]
        Case-insensitive literals decoded as ``False``. When a literal is in
        both sets, true wins.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    trim_strings: bool = Field(default=True, description="Trim whitespace from string input")

    allow_string_to_number: bool = Field(default=True, description="String → Int/Double/Float/Decimal")
    allow_string_to_bool: bool = Field(default=True, description="String → Bool")
    allow_number_to_string: bool = Field(default=True, description="Int/Double → String")
    allow_number_to_bool: bool = Field(default=True, description="Int/Double → Bool")
    allow_bool_to_number: bool = Field(default=True, description="Bool → numeric targets")
    allow_bool_to_string: bool = Field(default=True, description="Bool → String")

    allow_iso8601_date: bool = Field(default=True, description="ISO-8601 strings → Date")
    allow_custom_date_formats: bool = Field(default=True, description="Custom formatters → Date")
    custom_date_formatters: tuple[DateFormatter, ...] = Field(
        default=(), description="Custom date formatters, tried in order"
    )
    allow_unix_timestamp_seconds: bool = Field(default=True, description="Unix seconds → Date")
    allow_unix_timestamp_milliseconds: bool = Field(
        default=True, description="Unix milliseconds (|value| ≥ 1e12) → Date"
    )
    allow_stringified_timestamp: bool = Field(default=True, description="Numeric strings → Date")

    allow_url_from_string: bool = Field(default=True, description="String → URL")
    treat_empty_string_as_nil_for_url: bool = Field(
        default=True, description="Empty string decodes as an absent URL"
    )

    bool_true_literals: frozenset[str] = Field(
        default=DEFAULT_TRUE_LITERALS, description="Literals decoded as True"
    )
    bool_false_literals: frozenset[str] = Field(
        default=DEFAULT_FALSE_LITERALS, description="Literals decoded as False"
    )

    def __init__(self, **values: object) -> None:
        """Validate ``values``, raising :class:`CoercionConfigError` on failure."""
        try:
            super().__init__(**values)  # type: ignore[arg-type]  # BaseModel.__init__ accepts Any kwargs
        except ValidationError as exc:
            msg = f"Coercion config validation failed: {_format_validation_error(exc)}"
            logger.log_failure(msg, exception=exc, operation="safedecode.config.validate")
            raise CoercionConfigError(
                msg,
                cause=exc,
                context={"errors": [_error_summary(err) for err in exc.errors()]},
            ) from exc

    @field_validator("custom_date_formatters", mode="before")
    @classmethod
    def _wrap_patterns(cls, value: object) -> object:
        if isinstance(value, (str, DateFormatter)):
            value = (value,)
        if isinstance(value, Iterable) and not isinstance(value, Mapping):
            return tuple(
                StrptimeDateFormatter(item) if isinstance(item, str) else item for item in value
            )
        return value

    @field_validator("bool_true_literals", "bool_false_literals", mode="before")
    @classmethod
    def _wrap_single_literal(cls, value: object) -> object:
        if isinstance(value, str):
            return frozenset({value})
        return value

    @field_validator("bool_true_literals", "bool_false_literals")
    @classmethod
    def _normalize_literals(cls, value: frozenset[str]) -> frozenset[str]:
        return frozenset(literal.strip().casefold() for literal in value)

    @model_validator(mode="after")
    def _warn_on_literal_overlap(self) -> Self:
        overlap = self.bool_true_literals & self.bool_false_literals
        if overlap:
            logger.warning(
                "Bool literal sets overlap; overlapping literals decode as True",
                extra={
                    "operation": "safedecode.config.validate",
                    "overlap": sorted(overlap),
                },
            )
        return self

    def with_overrides(self, **changes: object) -> CoercionConfig:
        """Return a new validated snapshot with ``changes`` applied.

        Parameters
        ----------
        **changes : object
            Field values to replace.

        Returns
        -------
        CoercionConfig
            New configuration; ``self`` is unchanged.

        Raises
        ------
        CoercionConfigError
            If the merged values fail validation (including unknown fields).
        """
        merged: dict[str, object] = dict(self)
        merged.update(changes)
        return type(self)(**merged)


def _format_validation_error(exc: ValidationError) -> str:
    """Return the most helpful message from a pydantic ``ValidationError``."""
    errors_raw = exc.errors()
    if errors_raw:
        primary = errors_raw[0]
        location = ".".join(str(part) for part in primary.get("loc", ()))
        message = primary.get("msg")
        if isinstance(message, str) and message:
            return f"{location}: {message}" if location else message
    return str(exc)


def _error_summary(error: ErrorDetails) -> dict[str, object]:
    return {
        "loc": [str(part) for part in error.get("loc", ())],
        "msg": error.get("msg", ""),
        "type": error.get("type", ""),
    }


class _ConfigHolder:
    """Process-wide configuration slot guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._config = CoercionConfig()

    def get(self) -> CoercionConfig:
        with self._lock:
            return self._config

    def swap(self, config: CoercionConfig) -> CoercionConfig:
        if not isinstance(config, CoercionConfig):
            msg = f"Expected CoercionConfig, got {type(config).__name__}"
            raise TypeError(msg)
        with self._lock:
            previous = self._config
            self._config = config
            return previous

    def update(self, changes: Mapping[str, object]) -> CoercionConfig:
        with self._lock:
            self._config = self._config.with_overrides(**changes)
            return self._config


_HOLDER = _ConfigHolder()


def get_config() -> CoercionConfig:
    """Return the current process-wide configuration snapshot."""
    return _HOLDER.get()


def set_config(config: CoercionConfig) -> CoercionConfig:
    """Install ``config`` process-wide and return the snapshot it replaced.

    Intended for application startup. Decodes already in flight keep the
    snapshot they captured.
    """
    previous = _HOLDER.swap(config)
    logger.log_success("Coercion config installed", operation="safedecode.config.set")
    return previous


def configure(**changes: object) -> CoercionConfig:
    """Apply ``changes`` to the process-wide configuration and return the new snapshot.

    Parameters
    ----------
    **changes : object
        :class:`CoercionConfig` field values.

    Returns
    -------
    CoercionConfig
        The installed snapshot.

    Raises
    ------
    CoercionConfigError
        If the changes fail validation; the previous snapshot stays installed.

    Examples
    --------
    >>> cfg = configure(custom_date_formatters=["%Y-%m-%d %H:%M:%S"])
    >>> cfg.custom_date_formatters[0].pattern
    '%Y-%m-%d %H:%M:%S'
    >>> reset_config()
    """
    config = _HOLDER.update(changes)
    logger.log_success(
        "Coercion config updated",
        operation="safedecode.config.configure",
        changed=sorted(changes),
    )
    return config


def reset_config() -> None:
    """Restore the built-in defaults process-wide."""
    _HOLDER.swap(CoercionConfig())


@contextmanager
def override_config(**changes: object) -> Iterator[CoercionConfig]:
    """Install a modified configuration for the duration of a ``with`` block.

    The override is process-wide, not thread-local: use it at startup or in
    tests, not around concurrent decodes.

    Yields
    ------
    CoercionConfig
        The temporary snapshot.
    """
    previous = _HOLDER.get()
    temporary = previous.with_overrides(**changes)
    _HOLDER.swap(temporary)
    try:
        yield temporary
    finally:
        _HOLDER.swap(previous)


def formatter_patterns(formatters: Sequence[DateFormatter]) -> list[str]:
    """Return the pattern of each formatter, for diagnostics."""
    return [formatter.pattern for formatter in formatters]
