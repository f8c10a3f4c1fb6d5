"""Application startup wiring.

Call :func:`bootstrap` once, early, before any decoding happens: it
configures logging, installs the coercion rule set and installs the reporter
chosen by :class:`~safedecode.settings.ObservabilitySettings`.

Examples
--------
>>> from safedecode.bootstrap import bootstrap
>>> reporter = bootstrap(formatters=["%Y-%m-%d %H:%M:%S", "%Y/%m/%d"])
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from safedecode.config import CoercionConfig, DateFormatter, formatter_patterns, set_config
from safedecode.events import set_reporter
from safedecode.logging import get_logger, setup_logging
from safedecode.reporters import CompositeReporter, LoggingReporter, MetricsReporter
from safedecode.settings import ObservabilitySettings, load_settings

if TYPE_CHECKING:
    from safedecode.events import CoercionReporter
    from safedecode.metrics import CollectorRegistry

__all__ = ["bootstrap"]

logger = get_logger(__name__)


def _build_reporter(
    settings: ObservabilitySettings, registry: CollectorRegistry | None
) -> CoercionReporter | None:
    reporters: list[CoercionReporter] = []
    if settings.log_coercions:
        reporters.append(LoggingReporter())
    if settings.metrics_enabled:
        reporters.append(MetricsReporter(registry))
    if not reporters:
        return None
    if len(reporters) == 1:
        return reporters[0]
    return CompositeReporter(*reporters)


def bootstrap(
    config: CoercionConfig | None = None,
    settings: ObservabilitySettings | None = None,
    formatters: Sequence[DateFormatter | str] = (),
    *,
    registry: CollectorRegistry | None = None,
) -> CoercionReporter | None:
    """Configure logging, the process-wide coercion config and the reporter.

    Parameters
    ----------
    config : CoercionConfig | None, optional
        Rule set to install. Defaults to the built-in defaults.
    settings : ObservabilitySettings | None, optional
        Observability settings. Defaults to :func:`load_settings` (environment).
    formatters : Sequence[DateFormatter | str], optional
        Custom date formatters appended to ``config.custom_date_formatters``.
        Strings are ``strptime`` patterns.
    registry : CollectorRegistry | None, optional
        Prometheus registry for :class:`MetricsReporter`. Defaults to the
        global registry.

    Returns
    -------
    CoercionReporter | None
        The installed reporter, or ``None`` when reporting is disabled.

    Raises
    ------
    SettingsError
        If the environment holds invalid ``SAFEDECODE_*`` values.
    CoercionConfigError
        If a formatter is neither a string nor a :class:`DateFormatter`.
    """
    active_settings = settings if settings is not None else load_settings()
    setup_logging(active_settings.level, log_format=active_settings.log_format)

    active_config = config if config is not None else CoercionConfig()
    if formatters:
        active_config = active_config.with_overrides(
            custom_date_formatters=(*active_config.custom_date_formatters, *formatters)
        )
    set_config(active_config)

    reporter = _build_reporter(active_settings, registry)
    set_reporter(reporter)
    logger.log_success(
        "safedecode bootstrapped",
        operation="safedecode.bootstrap",
        reporter=type(reporter).__name__ if reporter is not None else None,
        date_formats=formatter_patterns(active_config.custom_date_formatters),
        metrics_enabled=active_settings.metrics_enabled,
    )
    return reporter
