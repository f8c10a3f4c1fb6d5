"""Shared pytest fixtures.

Provides:
- Reset of the process-wide coercion config and reporter around every test
- An isolated Prometheus registry
- A collecting reporter installed process-wide
- Captured log records looked up by operation name
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, cast

import pytest
from prometheus_client import CollectorRegistry

from safedecode.config import reset_config
from safedecode.events import set_reporter
from safedecode.reporters import CollectingReporter

if TYPE_CHECKING:
    from _pytest.logging import LogCaptureFixture


@pytest.fixture(autouse=True)
def _isolate_process_state() -> Iterator[None]:
    """Start and finish every test with default config and no reporter."""
    reset_config()
    set_reporter(None)
    yield
    reset_config()
    set_reporter(None)


@pytest.fixture
def prometheus_registry() -> CollectorRegistry:
    """Return a fresh Prometheus registry isolated from the global one."""
    return CollectorRegistry()


@pytest.fixture
def collector() -> CollectingReporter:
    """Install a :class:`CollectingReporter` process-wide and return it."""
    reporter = CollectingReporter()
    set_reporter(reporter)
    return reporter


@pytest.fixture
def records_for(caplog: LogCaptureFixture) -> Callable[[str], list[logging.LogRecord]]:
    """Return a lookup of captured log records by their ``operation`` field."""

    def _records(operation: str) -> list[logging.LogRecord]:
        return [
            record
            for record in caplog.records
            if cast("dict[str, object]", record.__dict__).get("operation") == operation
        ]

    return _records
