"""Conversions between 32-bit instruction words and attributes."""

from collections.abc import Iterable
from enum import Enum

from .errors import SerializationError
from .ir import ArrayAttr, AttributeValue, IntegerAttr, UnitAttr

WORD_MASK = 0xFFFFFFFF
INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1


def _int_value(attr: object) -> int:
    if isinstance(attr, IntegerAttr):
        return attr.value
    if isinstance(attr, Enum):
        return int(attr.value)
    if isinstance(attr, int) and not isinstance(attr, bool):
        return attr
    raise SerializationError(f"expected an integer attribute, got {attr!r}")


def int32_word(attr: object) -> int:
    """Encode an integer (or enum) attribute as one zero-extended word."""
    value = _int_value(attr)
    if not INT32_MIN <= value <= INT32_MAX:
        raise SerializationError(f"attribute value {value} does not fit in int32")
    return value & WORD_MASK


def int32_attr(word: int) -> IntegerAttr:
    """Decode one word as a signed 32-bit integer attribute."""
    word &= WORD_MASK
    if word & 0x80000000:
        word -= 1 << 32
    return IntegerAttr(word)


def int32_array_words(attr: object) -> list[int]:
    """Encode an array attribute as one word per element, in order."""
    if isinstance(attr, ArrayAttr):
        elements: Iterable[object] = attr.elements
    elif isinstance(attr, (list, tuple)):
        elements = attr
    else:
        raise SerializationError(f"expected an array attribute, got {attr!r}")
    return [int32_word(element) for element in elements]


def attribute_words(attr: AttributeValue) -> list[int]:
    """Encode any attribute as decoration literal words."""
    if isinstance(attr, ArrayAttr):
        return int32_array_words(attr)
    if isinstance(attr, IntegerAttr):
        return [int32_word(attr)]
    if isinstance(attr, UnitAttr):
        return []
    raise SerializationError(f"cannot encode {attr!r} as decoration literals")
