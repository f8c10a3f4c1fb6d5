"""Lenient decoding of loosely-typed structured data.

safedecode turns values read from JSON-like sources into strongly-typed
fields even when the source's literal type does not match (``"42"`` for an
int, ``1.7e12`` for a date, ``"yes"`` for a bool), under a configurable rule
set, and reports every non-exact decode to an audit sink.

Examples
--------
>>> import safedecode
>>> order = safedecode.KeyedDecodingContainer.from_json('{"qty": "3", "paid": 1}')
>>> order.decode("qty", int), order.decode("paid", bool)
(3, True)
"""

from __future__ import annotations

from safedecode import (
    bootstrap,
    config,
    containers,
    decoder,
    defaults,
    engine,
    errors,
    events,
    logging,
    metrics,
    reporters,
    settings,
    supported,
    types,
)
from safedecode.config import CoercionConfig, configure, get_config, override_config, set_config
from safedecode.containers import (
    JsonValueContainer,
    KeyedDecodingContainer,
    KeyedEncodingContainer,
)
from safedecode.decoder import decode_field, decode_optional_field
from safedecode.defaults import default_for
from safedecode.events import (
    CoercedEvent,
    CoercionReporter,
    DefaultedEvent,
    FailedEvent,
    FieldOutcome,
    set_reporter,
    use_reporter,
)
from safedecode.reporters import CollectingReporter, LoggingReporter, collect_events
from safedecode.supported import SupportedType

__all__ = [
    "CoercedEvent",
    "CoercionConfig",
    "CoercionReporter",
    "CollectingReporter",
    "DefaultedEvent",
    "FailedEvent",
    "FieldOutcome",
    "JsonValueContainer",
    "KeyedDecodingContainer",
    "KeyedEncodingContainer",
    "LoggingReporter",
    "SupportedType",
    "bootstrap",
    "collect_events",
    "config",
    "configure",
    "containers",
    "decode_field",
    "decode_optional_field",
    "decoder",
    "default_for",
    "defaults",
    "engine",
    "errors",
    "events",
    "get_config",
    "logging",
    "metrics",
    "override_config",
    "reporters",
    "set_config",
    "set_reporter",
    "settings",
    "supported",
    "types",
    "use_reporter",
]
