"""Typed exception hierarchy for safedecode.

All safedecode exceptions inherit from SafeDecodeError, which carries a stable
error code, a log level and a structured context mapping. None of these are
raised for bad field data: lenient decoding degrades to defaults and reports
events instead. They signal programming or setup mistakes, malformed
structures, and opt-in strict validation failures.

Examples
--------
>>> from safedecode.errors import ErrorCode, UnsupportedTypeError
>>> try:
...     raise UnsupportedTypeError("bytes is not a supported target", context={"type": "bytes"})
... except UnsupportedTypeError as e:
...     assert e.code == ErrorCode.UNSUPPORTED_TYPE
...     assert e.to_dict()["context"] == {"type": "bytes"}
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from safedecode.errors.codes import ErrorCode

if TYPE_CHECKING:
    from safedecode.events import FieldOutcome

__all__ = [
    "CoercionConfigError",
    "ConfigurationError",
    "DefaultRegistryError",
    "SafeDecodeError",
    "SettingsError",
    "StrictDecodeError",
    "StructureError",
    "UnsupportedTypeError",
]


class SafeDecodeError(Exception):
    """Base exception for all safedecode errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    code : ErrorCode, optional
        Stable error code. Defaults to ``ErrorCode.RUNTIME_ERROR``.
    log_level : int, optional
        Level at which callers should log the error. Defaults to ``logging.ERROR``.
    cause : Exception | None, optional
        Underlying exception, chained as ``__cause__``. Defaults to None.
    context : Mapping[str, object] | None, optional
        Additional structured details. Defaults to None.

    Attributes
    ----------
    message : str
        Human-readable error message.
    code : ErrorCode
        Error code enum value.
    log_level : int
        Logging level for error logging.
    context : dict[str, object]
        Additional context dictionary for error details.
    """

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.RUNTIME_ERROR,
        log_level: int = logging.ERROR,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.log_level = log_level
        self.context = dict(context) if context else {}
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, object]:
        """Return a serializable summary of the error.

        Returns
        -------
        dict[str, object]
            Mapping with ``type``, ``code``, ``detail`` and (when present) ``context``.
        """
        payload: dict[str, object] = {
            "type": self.__class__.__name__,
            "code": self.code.value,
            "detail": self.message,
        }
        if self.context:
            payload["context"] = dict(self.context)
        return payload

    def __str__(self) -> str:
        """Return formatted error string.

        Returns
        -------
        str
            Formatted error string (e.g., "StructureError[structure-error]: Payload must be an object").
        """
        base = f"{self.__class__.__name__}[{self.code.value}]: {self.message}"
        if self.__cause__:
            base += f" (caused by: {type(self.__cause__).__name__})"
        return base


class ConfigurationError(SafeDecodeError):
    """Error during configuration validation or loading.

    Uses error code CONFIGURATION_ERROR with CRITICAL log level.

    Examples
    --------
    >>> raise ConfigurationError("Coercion config rejected")  # doctest: +SKIP
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
        *,
        code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
    ) -> None:
        super().__init__(
            message,
            code=code,
            log_level=logging.CRITICAL,
            cause=cause,
            context=context,
        )


class CoercionConfigError(ConfigurationError):
    """Raised when a :class:`~safedecode.config.CoercionConfig` fails validation."""


class DefaultRegistryError(ConfigurationError):
    """Raised when the default registry does not cover every supported type.

    This is fatal at construction time and never surfaces per field.

    Parameters
    ----------
    message : str
        Human-readable error message.
    missing : Sequence[str]
        Names of the supported types without a default.
    """

    def __init__(self, message: str, *, missing: Sequence[str]) -> None:
        super().__init__(
            message,
            context={"missing": list(missing)},
            code=ErrorCode.DEFAULT_REGISTRY_INCOMPLETE,
        )
        self.missing = tuple(missing)


class SettingsError(ConfigurationError):
    """Error raised when observability settings validation fails.

    Parameters
    ----------
    message : str
        Human-readable error message.
    errors : list[dict[str, object]] | None, optional
        Validation error dictionaries. Defaults to None.
    cause : Exception | None, optional
        Underlying exception. Defaults to None.
    context : Mapping[str, object] | None, optional
        Additional context dictionary. Defaults to None.
    """

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, object]] | None = None,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        merged: dict[str, object] = dict(context) if context else {}
        if errors:
            merged["errors"] = errors
        super().__init__(message, cause=cause, context=merged)


class UnsupportedTypeError(SafeDecodeError):
    """Raised when a caller asks for a target type outside the supported set."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.UNSUPPORTED_TYPE,
            cause=cause,
            context=context,
        )


class StructureError(SafeDecodeError):
    """Raised when a payload does not have the shape a container expects.

    Field-level data problems are never structure errors; they are coerced or
    defaulted. This covers a non-object payload, malformed JSON text, or a
    nested value that is not an object/array where one is required.
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.STRUCTURE_ERROR,
            log_level=logging.WARNING,
            cause=cause,
            context=context,
        )


class StrictDecodeError(SafeDecodeError):
    """Raised by strict validation when lenient decoding had to give up on fields.

    Parameters
    ----------
    message : str
        Human-readable error message.
    events : Sequence[FieldOutcome]
        The defaulted/failed events that triggered the error.
    """

    def __init__(self, message: str, *, events: Sequence[FieldOutcome]) -> None:
        super().__init__(
            message,
            code=ErrorCode.STRICT_DECODE_FAILED,
            log_level=logging.WARNING,
            context={"paths": [event.path for event in events]},
        )
        self.events = tuple(events)
