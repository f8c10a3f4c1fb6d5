"""Error code registry for safedecode exceptions.

Codes are stable kebab-case identifiers that survive into structured log
records and serialized error payloads. They are frozen after release so log
queries and alerting rules keep matching.

Examples
--------
>>> from safedecode.errors.codes import ErrorCode
>>> code = ErrorCode.DEFAULT_REGISTRY_INCOMPLETE
>>> assert code == "default-registry-incomplete"
"""

from __future__ import annotations

from enum import StrEnum

__all__ = [
    "ErrorCode",
]


class ErrorCode(StrEnum):
    """Stable error codes for safedecode exceptions.

    Error codes are organized by category:
    - Configuration: invalid coercion rules, settings, or registry setup
    - Programming: unsupported target types requested by the caller
    - Structure: containers handed a payload of the wrong shape
    - Validation: strict checks layered on top of lenient decoding

    Attributes
    ----------
    CONFIGURATION_ERROR
        Coercion configuration or settings failed validation.
    DEFAULT_REGISTRY_INCOMPLETE
        A supported type has no registered default value.
    UNSUPPORTED_TYPE
        The requested target type is outside the supported set.
    STRUCTURE_ERROR
        The payload does not have the shape the container expects.
    STRICT_DECODE_FAILED
        A strict decode observed defaulted or failed fields.
    RUNTIME_ERROR
        Catch-all runtime failure.
    """

    # Configuration
    CONFIGURATION_ERROR = "configuration-error"
    DEFAULT_REGISTRY_INCOMPLETE = "default-registry-incomplete"

    # Programming
    UNSUPPORTED_TYPE = "unsupported-type"

    # Structure
    STRUCTURE_ERROR = "structure-error"

    # Validation
    STRICT_DECODE_FAILED = "strict-decode-failed"

    RUNTIME_ERROR = "runtime-error"

    def __str__(self) -> str:
        """Return the code value as a string.

        Returns
        -------
        str
            The error code value (e.g., "unsupported-type").
        """
        return self.value
