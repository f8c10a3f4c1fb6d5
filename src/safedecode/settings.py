"""Observability settings loaded from the environment.

The coercion rules themselves live in :mod:`safedecode.config`; this module
only covers how decode events are surfaced (``SAFEDECODE_*`` variables).

Examples
--------
>>> from safedecode.settings import load_settings
>>> settings = load_settings(log_format="text")
>>> settings.log_format
'text'
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from safedecode.errors import SettingsError
from safedecode.logging import get_logger

__all__ = [
    "ObservabilitySettings",
    "load_settings",
]

logger = get_logger(__name__)


class ObservabilitySettings(BaseSettings):
    """Logging and metrics toggles (``SAFEDECODE_*`` namespace)."""

    model_config = SettingsConfigDict(
        env_prefix="SAFEDECODE_",
        extra="forbid",
        case_sensitive=False,
    )

    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_format: Literal["json", "text"] = Field(
        default="json", description="Log line format"
    )
    log_coercions: bool = Field(
        default=True, description="Install a LoggingReporter for decode events"
    )
    metrics_enabled: bool = Field(
        default=False, description="Count decode events in Prometheus"
    )

    def __init__(self, **overrides: object) -> None:
        """Initialise settings with fail-fast validation."""
        try:
            super().__init__(**overrides)  # type: ignore[arg-type]  # BaseSettings.__init__ accepts Any kwargs
        except ValidationError as exc:
            msg = f"Settings validation failed: {exc.error_count()} error(s)"
            logger.exception(
                "Settings validation failed",
                extra={"operation": "safedecode.settings.load", "error_type": type(exc).__name__},
            )
            raise SettingsError(
                msg,
                errors=[
                    {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
                    for err in exc.errors()
                ],
                cause=exc,
            ) from exc

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            msg = f"Unknown log level: {value!r}"
            raise ValueError(msg)
        return level

    @property
    def level(self) -> int:
        """Numeric logging level."""
        return logging.getLevelNamesMapping()[self.log_level]


def load_settings(**overrides: object) -> ObservabilitySettings:
    """Load :class:`ObservabilitySettings` with optional overrides.

    Raises
    ------
    SettingsError
        If the environment or overrides fail validation.
    """
    return ObservabilitySettings(**overrides)
