"""Exception hierarchy and stable error codes.

Examples
--------
>>> from safedecode.errors import SafeDecodeError, ErrorCode
>>> try:
...     raise SafeDecodeError("Operation failed", code=ErrorCode.RUNTIME_ERROR)
... except SafeDecodeError as e:
...     assert e.to_dict()["code"] == "runtime-error"
"""

from __future__ import annotations

from safedecode.errors.codes import ErrorCode
from safedecode.errors.exceptions import (
    CoercionConfigError,
    ConfigurationError,
    DefaultRegistryError,
    SafeDecodeError,
    SettingsError,
    StrictDecodeError,
    StructureError,
    UnsupportedTypeError,
)

__all__ = [
    "CoercionConfigError",
    "ConfigurationError",
    "DefaultRegistryError",
    "ErrorCode",
    "SafeDecodeError",
    "SettingsError",
    "StrictDecodeError",
    "StructureError",
    "UnsupportedTypeError",
]
