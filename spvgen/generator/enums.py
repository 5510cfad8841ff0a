"""Enum codec planning for value enums and bit-flag enums."""

import logging
from dataclasses import dataclass

from .planner import GenerationError
from .types import EnumDescriptor
from .util import member_name, to_snake_case

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnumMember:
    """One case as it appears in generated code."""

    symbol: str  # string form used by the codecs
    member: str  # Python identifier of the enum member
    value: int


@dataclass(frozen=True)
class ValueEnumPlan:
    """Codec functions of a value enum.

    ``strings`` keeps the first declared symbol for each value.
    """

    class_name: str
    attribute_name: str
    symbolize_fn: str
    stringify_fn: str
    members: tuple[EnumMember, ...]
    strings: tuple[EnumMember, ...]
    namespace: tuple[str, ...]

    is_bit_enum = False


@dataclass(frozen=True)
class BitEnumPlan:
    """Codec functions of a bit-flag enum.

    ``bits`` holds the nonzero cases in declaration order; it drives both
    the stringify walk and the symbol lookup. ``mask`` is the union of all
    declared nonzero values.
    """

    class_name: str
    attribute_name: str
    symbolize_fn: str
    stringify_fn: str
    from_underlying_fn: str
    members: tuple[EnumMember, ...]
    bits: tuple[EnumMember, ...]
    mask: int
    separator: str
    namespace: tuple[str, ...]

    is_bit_enum = True


EnumPlan = ValueEnumPlan | BitEnumPlan


def _members(enum: EnumDescriptor) -> tuple[EnumMember, ...]:
    members: list[EnumMember] = []
    names: dict[str, str] = {}
    for case in enum.cases:
        name = member_name(case.symbol)
        if name in names:
            raise GenerationError(
                f"enum {enum.class_name}: case {case.symbol} clashes with case {names[name]}",
                enum.loc,
            )
        names[name] = case.symbol
        members.append(EnumMember(symbol=case.symbol, member=name, value=case.value))
    return tuple(members)


def plan_enum(enum: EnumDescriptor) -> EnumPlan:
    """Plan the generated codec for ``enum``."""
    snake = to_snake_case(enum.class_name)
    members = _members(enum)
    logger.debug("planning %s enum %s", "bit" if enum.is_bit_enum else "value", enum.class_name)

    if not enum.is_bit_enum:
        strings: dict[int, EnumMember] = {}
        for member in members:
            strings.setdefault(member.value, member)
        return ValueEnumPlan(
            class_name=enum.class_name,
            attribute_name=snake,
            symbolize_fn=f"symbolize_{snake}",
            stringify_fn=f"stringify_{snake}",
            members=members,
            strings=tuple(strings.values()),
            namespace=enum.namespace,
        )

    bits = tuple(member for member in members if member.value != 0)
    mask = 0
    for member in bits:
        mask |= member.value

    return BitEnumPlan(
        class_name=enum.class_name,
        attribute_name=snake,
        symbolize_fn=f"symbolize_{snake}",
        stringify_fn=f"stringify_{snake}",
        from_underlying_fn=f"{snake}_from_underlying",
        members=members,
        bits=bits,
        mask=mask,
        separator=enum.separator,
        namespace=enum.namespace,
    )
