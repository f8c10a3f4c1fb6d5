"""Type aliases for safedecode.

This module provides shared type definitions without any dependencies, avoiding circular imports
across the package.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Final

__all__ = [
    "ROOT_PATH_LABEL",
    "CodingPath",
    "JsonPrimitive",
    "JsonValue",
    "extend_path",
    "format_coding_path",
]


# Primitive JSON types (leaf values)
type JsonPrimitive = str | int | float | bool | None

# JSON value can be primitive or nested (dict/list)
type JsonValue = JsonPrimitive | dict[str, JsonValue] | list[JsonValue]

# Ordered field-name segments locating a value inside its parent structure
type CodingPath = tuple[str, ...]

ROOT_PATH_LABEL: Final[str] = "<root>"


def extend_path(path: CodingPath, *segments: str | int) -> CodingPath:
    """Return ``path`` with ``segments`` appended (indices rendered as strings)."""
    return (*path, *(str(segment) for segment in segments))


def format_coding_path(path: Iterable[str]) -> str:
    """Render a coding path as a dotted string.

    Parameters
    ----------
    path : Iterable[str]
        Path segments, outermost first.

    Returns
    -------
    str
        Segments joined by ``"."``, or ``"<root>"`` for an empty path.

    Examples
    --------
    >>> format_coding_path(("user", "id"))
    'user.id'
    >>> format_coding_path(())
    '<root>'
    """
    rendered = ".".join(path)
    return rendered or ROOT_PATH_LABEL
