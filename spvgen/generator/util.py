"""Identifier helpers shared by the emitters."""

import keyword
import re

_SNAKE_BOUNDARY_1 = re.compile(r"([A-Z]+)([A-Z][a-z])")
_SNAKE_BOUNDARY_2 = re.compile(r"([a-z0-9])([A-Z])")

# Names an Enum subclass cannot use for members
_ENUM_RESERVED = frozenset(["name", "value", "mro"])


def to_snake_case(name: str) -> str:
    """Convert CamelCase to snake_case (``MemoryAccess`` -> ``memory_access``)."""
    name = _SNAKE_BOUNDARY_1.sub(r"\1_\2", name)
    name = _SNAKE_BOUNDARY_2.sub(r"\1_\2", name)
    return name.lower()


def member_name(symbol: str) -> str:
    """Return a Python identifier usable as an enum member for ``symbol``."""
    if symbol.startswith("_") and symbol.endswith("_"):
        # _sunder_ and __dunder__ names are not members
        return "m" + symbol
    if keyword.iskeyword(symbol) or symbol in _ENUM_RESERVED:
        return symbol + "_"
    return symbol
