"""Field outcome events and the process-wide reporter slot.

Every non-exact field decode produces exactly one event, reported
synchronously on the decoding thread:

* :class:`CoercedEvent`: a lenient conversion succeeded.
* :class:`DefaultedEvent`: a non-optional field fell back to its default.
* :class:`FailedEvent`: an optional field resolved to ``None`` after coercion failed.

Exact decodes (and ``null`` into an optional field) emit nothing.

Examples
--------
>>> from safedecode.events import CoercedEvent, emit
>>> event = CoercedEvent("String", "Int", ("user", "id"), "42")
>>> event.path
'user.id'
>>> emit(event, None)  # no reporter installed: silently dropped
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Final, Protocol, runtime_checkable

from safedecode.types import CodingPath, format_coding_path

__all__ = [
    "RAW_SAMPLE_LIMIT",
    "CoercedEvent",
    "CoercionReporter",
    "DefaultedEvent",
    "EventKind",
    "FailedEvent",
    "FailureReason",
    "FieldOutcome",
    "emit",
    "get_reporter",
    "set_reporter",
    "truncate_sample",
    "use_reporter",
]

RAW_SAMPLE_LIMIT: Final[int] = 64
_ELLIPSIS: Final[str] = "…"


class EventKind(StrEnum):
    """Discriminator for :data:`FieldOutcome` variants."""

    COERCED = "coerced"
    DEFAULTED = "defaulted"
    FAILED = "failed"


class FailureReason(StrEnum):
    """Why a field fell back to its default or to ``None``."""

    NULL = "null"
    MISSING = "missing"
    COERCION_FAILED = "coercion-failed"


def truncate_sample(raw: object, limit: int = RAW_SAMPLE_LIMIT) -> str:
    """Render ``raw`` for diagnostics, truncated to ``limit`` characters.

    Examples
    --------
    >>> truncate_sample("x" * 70)[-3:]
    'xx…'
    >>> len(truncate_sample("x" * 70))
    64
    """
    text = raw if isinstance(raw, str) else str(raw)
    if len(text) <= limit:
        return text
    return text[: limit - len(_ELLIPSIS)] + _ELLIPSIS


@dataclass(frozen=True, slots=True)
class CoercedEvent:
    """A non-exact conversion produced the field value.

    Attributes
    ----------
    from_type : str
        Source descriptor, e.g. ``"String"`` or ``"Double(timestamp_ms)"``.
    to_type : str
        Destination descriptor, e.g. ``"Int"`` or ``"Bool(true)"``.
    coding_path : CodingPath
        Location of the field.
    raw_sample : str | None
        Truncated rendering of the raw input.
    """

    kind: ClassVar[EventKind] = EventKind.COERCED

    from_type: str
    to_type: str
    coding_path: CodingPath
    raw_sample: str | None = None

    @property
    def path(self) -> str:
        return format_coding_path(self.coding_path)

    def to_log_fields(self) -> dict[str, object]:
        return {
            "event": self.kind.value,
            "path": self.path,
            "from_type": self.from_type,
            "to_type": self.to_type,
            "raw_sample": self.raw_sample,
        }


@dataclass(frozen=True, slots=True)
class DefaultedEvent:
    """A non-optional field fell back to its type's default."""

    kind: ClassVar[EventKind] = EventKind.DEFAULTED

    expected_type: str
    coding_path: CodingPath
    reason: FailureReason

    @property
    def path(self) -> str:
        return format_coding_path(self.coding_path)

    def to_log_fields(self) -> dict[str, object]:
        return {
            "event": self.kind.value,
            "path": self.path,
            "expected_type": self.expected_type,
            "reason": self.reason.value,
        }


@dataclass(frozen=True, slots=True)
class FailedEvent:
    """An optional field resolved to ``None`` because coercion failed."""

    kind: ClassVar[EventKind] = EventKind.FAILED

    expected_type: str
    coding_path: CodingPath
    reason: FailureReason

    @property
    def path(self) -> str:
        return format_coding_path(self.coding_path)

    def to_log_fields(self) -> dict[str, object]:
        return {
            "event": self.kind.value,
            "path": self.path,
            "expected_type": self.expected_type,
            "reason": self.reason.value,
        }


type FieldOutcome = CoercedEvent | DefaultedEvent | FailedEvent


@runtime_checkable
class CoercionReporter(Protocol):
    """Audit sink receiving one event per non-exact field decode.

    Implementations should be side-effect only (log line, metric increment)
    and quick: they run synchronously on the decoding thread. Return values
    are ignored; exceptions propagate to the caller.
    """

    def report(self, event: FieldOutcome) -> None:
        """Handle ``event``."""
        ...


class _ReporterSlot:
    """Optional process-wide reporter guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reporter: CoercionReporter | None = None

    def get(self) -> CoercionReporter | None:
        with self._lock:
            return self._reporter

    def swap(self, reporter: CoercionReporter | None) -> CoercionReporter | None:
        if reporter is not None and not isinstance(reporter, CoercionReporter):
            msg = f"Reporter must implement report(event), got {type(reporter).__name__}"
            raise TypeError(msg)
        with self._lock:
            previous = self._reporter
            self._reporter = reporter
            return previous


_SLOT = _ReporterSlot()


def set_reporter(reporter: CoercionReporter | None) -> CoercionReporter | None:
    """Install ``reporter`` process-wide (``None`` silences reporting).

    Returns
    -------
    CoercionReporter | None
        The reporter that was replaced.
    """
    return _SLOT.swap(reporter)


def get_reporter() -> CoercionReporter | None:
    """Return the installed reporter, or ``None`` when reporting is silent."""
    return _SLOT.get()


@contextmanager
def use_reporter(reporter: CoercionReporter | None) -> Iterator[CoercionReporter | None]:
    """Install ``reporter`` for the duration of a ``with`` block, then restore the previous one."""
    previous = _SLOT.swap(reporter)
    try:
        yield reporter
    finally:
        _SLOT.swap(previous)


def emit(event: FieldOutcome, reporter: CoercionReporter | None) -> None:
    """Deliver ``event`` to ``reporter`` if there is one."""
    if reporter is not None:
        reporter.report(event)
