"""Default values for every supported target type.

The registry is a total function over :class:`~safedecode.supported.SupportedType`:
construction fails with :class:`~safedecode.errors.DefaultRegistryError` when a
member has no default, so an incomplete registry can never reach a decode
call. The module-level :data:`DEFAULT_REGISTRY` is built at import time.

Examples
--------
>>> from safedecode.defaults import default_for
>>> from safedecode.supported import SupportedType
>>> default_for(int)
0
>>> str(default_for(SupportedType.URL))
'about:blank'
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from decimal import Decimal
from types import MappingProxyType
from typing import Final

import numpy as np
from pydantic import AnyUrl

from safedecode.errors import DefaultRegistryError
from safedecode.logging import get_logger
from safedecode.supported import SupportedType

__all__ = [
    "DEFAULT_REGISTRY",
    "DISTANT_PAST",
    "PLACEHOLDER_URL",
    "DefaultRegistry",
    "default_for",
]

logger = get_logger(__name__)

DISTANT_PAST: Final[dt.datetime] = dt.datetime(1, 1, 1, tzinfo=dt.UTC)

# about:blank is stable and always parses
PLACEHOLDER_URL: Final[AnyUrl] = AnyUrl("about:blank")


class DefaultRegistry:
    """Immutable mapping from supported type to its zero/sentinel value.

    Parameters
    ----------
    defaults : Mapping[SupportedType, object]
        One entry per supported type. Each value must be an instance of the
        member's Python type.

    Raises
    ------
    DefaultRegistryError
        If a member is missing or a value has the wrong Python type.
    """

    __slots__ = ("_defaults",)

    def __init__(self, defaults: Mapping[SupportedType, object]) -> None:
        missing = [member.value for member in SupportedType if member not in defaults]
        if missing:
            msg = f"Default registry is missing entries for: {', '.join(missing)}"
            logger.log_failure(msg, operation="safedecode.defaults.init", missing=missing)
            raise DefaultRegistryError(msg, missing=missing)
        for member, value in defaults.items():
            if not isinstance(value, member.python_type):
                msg = (
                    f"Default for {member.value} must be {member.python_type.__name__}, "
                    f"got {type(value).__name__}"
                )
                raise DefaultRegistryError(msg, missing=[member.value])
        self._defaults: Mapping[SupportedType, object] = MappingProxyType(dict(defaults))

    def default_for(self, target: SupportedType | type) -> object:
        """Return the default value for ``target``."""
        return self._defaults[SupportedType.resolve(target)]

    def __contains__(self, target: object) -> bool:
        return target in self._defaults

    def __len__(self) -> int:
        return len(self._defaults)


DEFAULT_REGISTRY: Final[DefaultRegistry] = DefaultRegistry(
    {
        SupportedType.STRING: "",
        SupportedType.INT: 0,
        SupportedType.DOUBLE: 0.0,
        SupportedType.FLOAT: np.float32(0),
        SupportedType.BOOL: False,
        SupportedType.DECIMAL: Decimal(0),
        SupportedType.DATE: DISTANT_PAST,
        SupportedType.URL: PLACEHOLDER_URL,
    }
)


def default_for[T](target: type[T] | SupportedType) -> T:
    """Return the registered default for ``target`` from :data:`DEFAULT_REGISTRY`."""
    return DEFAULT_REGISTRY.default_for(target)  # type: ignore[return-value]  # registry values are keyed by python type
