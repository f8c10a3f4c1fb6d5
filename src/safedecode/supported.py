"""Closed set of target types understood by the coercion engine.

Each :class:`SupportedType` member names one target and maps to exactly one
Python representation:

========  ======================
Member    Python type
========  ======================
String    ``str``
Int       ``int`` (signed 64-bit)
Double    ``float``
Float     ``numpy.float32``
Bool      ``bool``
Decimal   ``decimal.Decimal``
Date      ``datetime.datetime`` (timezone-aware)
URL       ``pydantic.AnyUrl``
========  ======================

Callers may name a target either by member or by Python type; anything else is
a programming error and raises :class:`~safedecode.errors.UnsupportedTypeError`.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import StrEnum
from typing import Final

import numpy as np
from pydantic import AnyUrl

from safedecode.errors import UnsupportedTypeError

__all__ = [
    "INT64_MAX",
    "INT64_MIN",
    "SupportedType",
]

INT64_MIN: Final[int] = -(2**63)
INT64_MAX: Final[int] = 2**63 - 1


class SupportedType(StrEnum):
    """Target types with a default value and a full set of coercion paths.

    Values double as the display names used in coercion events.

    Examples
    --------
    >>> SupportedType.resolve(int)
    <SupportedType.INT: 'Int'>
    >>> SupportedType.INT.python_type
    <class 'int'>
    """

    STRING = "String"
    INT = "Int"
    DOUBLE = "Double"
    FLOAT = "Float"
    BOOL = "Bool"
    DECIMAL = "Decimal"
    DATE = "Date"
    URL = "URL"

    @property
    def python_type(self) -> type:
        """Python type used to represent values of this target."""
        return _PYTHON_TYPES[self]

    @classmethod
    def resolve(cls, target: SupportedType | type) -> SupportedType:
        """Return the member for ``target``.

        Parameters
        ----------
        target : SupportedType | type
            A member, or one of the Python types listed in the module docstring.

        Returns
        -------
        SupportedType
            Matching member.

        Raises
        ------
        UnsupportedTypeError
            If ``target`` is not a member and not a supported Python type.
        """
        if isinstance(target, SupportedType):
            return target
        member = _BY_PYTHON_TYPE.get(target)
        if member is None:
            name = getattr(target, "__name__", repr(target))
            msg = f"{name} is not a supported decode target"
            raise UnsupportedTypeError(
                msg,
                context={"type": name, "supported": [m.value for m in cls]},
            )
        return member


_PYTHON_TYPES: Final[dict[SupportedType, type]] = {
    SupportedType.STRING: str,
    SupportedType.INT: int,
    SupportedType.DOUBLE: float,
    SupportedType.FLOAT: np.float32,
    SupportedType.BOOL: bool,
    SupportedType.DECIMAL: Decimal,
    SupportedType.DATE: dt.datetime,
    SupportedType.URL: AnyUrl,
}

_BY_PYTHON_TYPE: Final[dict[type, SupportedType]] = {
    python_type: member for member, python_type in _PYTHON_TYPES.items()
}
