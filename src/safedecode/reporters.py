"""Ready-made :class:`~safedecode.events.CoercionReporter` implementations.

* :class:`LoggingReporter` writes one structured log entry per event.
* :class:`CollectingReporter` keeps events in memory and can turn defaulted or
  failed fields into a :class:`~safedecode.errors.StrictDecodeError`, which is
  how callers layer strict validation over lenient decoding.
* :class:`MetricsReporter` counts outcomes in Prometheus.
* :class:`CompositeReporter` fans one event out to several reporters.

Examples
--------
>>> from safedecode.reporters import collect_events
>>> with collect_events() as collected:
...     pass  # decode here
>>> collected.events
[]
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Final

from safedecode.errors import StrictDecodeError
from safedecode.events import (
    CoercedEvent,
    CoercionReporter,
    DefaultedEvent,
    EventKind,
    FailedEvent,
    FieldOutcome,
    get_reporter,
    use_reporter,
)
from safedecode.logging import LoggerAdapter, get_logger, with_fields
from safedecode.metrics import build_counter

if TYPE_CHECKING:
    from safedecode.metrics import CollectorRegistry, CounterLike

__all__ = [
    "DEFAULT_EVENT_LEVELS",
    "CollectingReporter",
    "CompositeReporter",
    "LoggingReporter",
    "MetricsReporter",
    "collect_events",
]

DEFAULT_EVENT_LEVELS: Final[Mapping[EventKind, int]] = {
    EventKind.COERCED: logging.DEBUG,
    EventKind.DEFAULTED: logging.WARNING,
    EventKind.FAILED: logging.WARNING,
}

_MESSAGES: Final[Mapping[EventKind, str]] = {
    EventKind.COERCED: "Field coerced %s: %s -> %s",
    EventKind.DEFAULTED: "Field defaulted %s: expected %s (%s)",
    EventKind.FAILED: "Field failed %s: expected %s (%s)",
}


class LoggingReporter:
    """Log each event through :mod:`safedecode.logging`.

    Parameters
    ----------
    logger : LoggerAdapter | None, optional
        Destination logger. Defaults to ``get_logger("safedecode.events")``.
    levels : Mapping[EventKind, int] | None, optional
        Per-kind log levels, merged over :data:`DEFAULT_EVENT_LEVELS`.
    """

    def __init__(
        self,
        logger: LoggerAdapter | None = None,
        *,
        levels: Mapping[EventKind, int] | None = None,
    ) -> None:
        self._logger = logger or get_logger("safedecode.events")
        self._levels = {**DEFAULT_EVENT_LEVELS, **(levels or {})}

    def report(self, event: FieldOutcome) -> None:
        level = self._levels[event.kind]
        with with_fields(
            self._logger,
            operation="safedecode.decode",
            status="success" if event.kind is EventKind.COERCED else "warning",
        ) as adapter:
            match event:
                case CoercedEvent():
                    adapter.log(
                        level,
                        _MESSAGES[event.kind],
                        event.path,
                        event.from_type,
                        event.to_type,
                        extra=event.to_log_fields(),
                    )
                case DefaultedEvent() | FailedEvent():
                    adapter.log(
                        level,
                        _MESSAGES[event.kind],
                        event.path,
                        event.expected_type,
                        event.reason.value,
                        extra=event.to_log_fields(),
                    )


class CollectingReporter:
    """Thread-safe in-memory event collector."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[FieldOutcome] = []

    def report(self, event: FieldOutcome) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[FieldOutcome]:
        """Snapshot of every event collected so far, in report order."""
        with self._lock:
            return list(self._events)

    @property
    def coerced(self) -> list[CoercedEvent]:
        return [event for event in self.events if isinstance(event, CoercedEvent)]

    @property
    def defaulted(self) -> list[DefaultedEvent]:
        return [event for event in self.events if isinstance(event, DefaultedEvent)]

    @property
    def failed(self) -> list[FailedEvent]:
        return [event for event in self.events if isinstance(event, FailedEvent)]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def raise_for_failures(self, *, include_defaulted: bool = True) -> None:
        """Raise if any field could not be decoded exactly or by coercion.

        Parameters
        ----------
        include_defaulted : bool, optional
            Treat :class:`DefaultedEvent` as a failure too. Defaults to True.

        Raises
        ------
        StrictDecodeError
            Listing the offending events.
        """
        offending: list[FieldOutcome] = list(self.failed)
        if include_defaulted:
            offending.extend(self.defaulted)
        if offending:
            paths = ", ".join(event.path for event in offending)
            msg = f"{len(offending)} field(s) could not be decoded: {paths}"
            raise StrictDecodeError(msg, events=offending)


class MetricsReporter:
    """Count events in ``safedecode_field_outcomes_total{kind, expected_type}``.

    For coerced events ``expected_type`` is the destination type without its
    qualifier (``"Bool(true)"`` counts as ``"Bool"``).
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._counter: CounterLike = build_counter(
            "safedecode_field_outcomes_total",
            "Non-exact field decode outcomes by kind and target type.",
            ("kind", "expected_type"),
            registry=registry,
        )

    def report(self, event: FieldOutcome) -> None:
        match event:
            case CoercedEvent(to_type=to_type):
                target = to_type.partition("(")[0]
            case DefaultedEvent(expected_type=expected) | FailedEvent(expected_type=expected):
                target = expected
        self._counter.labels(kind=event.kind.value, expected_type=target).inc()


class CompositeReporter:
    """Forward each event to several reporters, in order."""

    def __init__(self, *reporters: CoercionReporter) -> None:
        self.reporters: tuple[CoercionReporter, ...] = reporters

    def report(self, event: FieldOutcome) -> None:
        for reporter in self.reporters:
            reporter.report(event)


@contextmanager
def collect_events() -> Iterator[CollectingReporter]:
    """Collect events reported inside the block, still forwarding to the installed reporter.

    Yields
    ------
    CollectingReporter
        Collector receiving every event reported process-wide within the block.

    Examples
    --------
    >>> with collect_events() as collected:
    ...     pass
    >>> collected.raise_for_failures()
    """
    collector = CollectingReporter()
    previous = get_reporter()
    tee: CoercionReporter = collector if previous is None else CompositeReporter(previous, collector)
    with use_reporter(tee):
        yield collector
