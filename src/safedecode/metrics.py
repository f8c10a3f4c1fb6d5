"""Typed Prometheus helpers.

Collectors register against the default :mod:`prometheus_client` registry
unless one is supplied. Building a metric whose name is already registered
returns the existing collector instead of failing, so reporters can be
constructed more than once per process (tests, re-bootstrap).

Examples
--------
>>> from prometheus_client import CollectorRegistry
>>> from safedecode.metrics import build_counter
>>> registry = CollectorRegistry()
>>> counter = build_counter("example_total", "Example operations", ["status"], registry=registry)
>>> counter.labels(status="success").inc()
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, cast

from prometheus_client import REGISTRY, Counter
from prometheus_client.registry import CollectorRegistry

__all__ = [
    "CollectorRegistry",
    "CounterLike",
    "build_counter",
    "get_default_registry",
]


class CounterLike(Protocol):
    """Protocol describing Prometheus counter behaviour relied upon."""

    def labels(self, **labels: object) -> CounterLike:
        """Return a counter labelled with the provided fields."""
        ...

    def inc(self, amount: float = 1.0) -> None:
        """Increment the counter by ``amount``."""
        ...


def get_default_registry() -> CollectorRegistry:
    """Return the global Prometheus registry."""
    return REGISTRY


def _existing_collector(name: str, registry: CollectorRegistry) -> object | None:
    """Return an already-registered collector for ``name``, if any."""
    names_to_collectors = cast(
        "dict[str, object] | None",
        getattr(registry, "_names_to_collectors", None),
    )
    if isinstance(names_to_collectors, dict):
        # Counters register under both the bare and the ``_total`` name
        return names_to_collectors.get(name) or names_to_collectors.get(f"{name}_total")
    return None


def build_counter(
    name: str,
    documentation: str,
    labelnames: Sequence[str] | None = None,
    *,
    registry: CollectorRegistry | None = None,
) -> CounterLike:
    """Return a counter metric, reusing an existing collector with the same name.

    Parameters
    ----------
    name : str
        Metric name registered with Prometheus.
    documentation : str
        Human readable description of the metric.
    labelnames : Sequence[str] | None, optional
        Label names applied to the metric (defaults to empty tuple).
    registry : CollectorRegistry | None, optional
        Prometheus registry to register against (defaults to global registry).

    Returns
    -------
    CounterLike
        Counter metric instance.

    Raises
    ------
    ValueError
        If registration fails and no existing collector is found.
    """
    target_registry = registry if registry is not None else get_default_registry()
    labels = tuple(labelnames) if labelnames is not None else ()
    try:
        return cast(
            "CounterLike",
            Counter(name, documentation, labels, registry=target_registry),
        )
    except ValueError:
        existing = _existing_collector(name, target_registry)
        if existing is None:
            raise
        return cast("CounterLike", existing)
