"""Attribute codec planning.

This module is the single place that knows which attribute kinds can be
carried inline as instruction words, and how. Both operation emitters walk
an operation's arguments through ``plan_arguments`` so that the encode and
decode sides always agree on the word layout.
"""

from dataclasses import dataclass
from enum import StrEnum

from .types import Attribute, Operand, OperationDescriptor, SourceLocation


class GenerationError(RuntimeError):
    """Raised when a schema cannot be turned into code.

    Generation errors abort the whole run; no output is produced.
    """

    def __init__(self, message: str, loc: SourceLocation | None = None) -> None:
        self.loc = loc
        self.message = message
        super().__init__(f"{loc}: {message}" if loc else message)


class AttributeKind(StrEnum):
    """Attribute kinds that can be encoded as operand words."""

    SCALAR_INT32 = "scalar-int32"
    ENUM_AS_INT32 = "enum-as-int32"
    ARRAY_OF_INT32 = "array-of-int32"


class EncodeStrategy(StrEnum):
    APPEND_WORD = "append-word"  # one word holding the integer value
    APPEND_EACH_WORD = "append-each-word"  # one word per array element


class DecodeStrategy(StrEnum):
    CONSUME_WORD = "consume-word"  # one word at the cursor
    CONSUME_REMAINING = "consume-remaining"  # every word left in the region


_ENCODE_STRATEGIES = {
    AttributeKind.SCALAR_INT32: EncodeStrategy.APPEND_WORD,
    AttributeKind.ENUM_AS_INT32: EncodeStrategy.APPEND_WORD,
    AttributeKind.ARRAY_OF_INT32: EncodeStrategy.APPEND_EACH_WORD,
}

_DECODE_STRATEGIES = {
    AttributeKind.SCALAR_INT32: DecodeStrategy.CONSUME_WORD,
    AttributeKind.ENUM_AS_INT32: DecodeStrategy.CONSUME_WORD,
    AttributeKind.ARRAY_OF_INT32: DecodeStrategy.CONSUME_REMAINING,
}


@dataclass(frozen=True)
class AttributePlan:
    """How one attribute argument is written and read."""

    name: str
    kind: AttributeKind
    optional: bool
    encode: EncodeStrategy
    decode: DecodeStrategy

    is_operand = False


@dataclass(frozen=True)
class OperandStep:
    """One operand group of an operation.

    ``number`` is the operand group ordinal used in diagnostics and ``index``
    the position of the group's first value in the flat operand list.
    """

    name: str
    number: int
    index: int
    variadic: bool

    is_operand = True


ArgumentStep = OperandStep | AttributePlan


def _base_kind(kind: str, op_name: str, loc: SourceLocation | None) -> AttributeKind:
    try:
        return AttributeKind(kind)
    except ValueError:
        raise GenerationError(
            f"unhandled attribute kind '{kind}' in operation {op_name}", loc
        ) from None


def plan_encode(
    kind: str, optional: bool, *, op_name: str, loc: SourceLocation | None = None
) -> EncodeStrategy:
    """Return the encode strategy for an attribute kind.

    Optional attributes use the strategy of their base kind; the emitted code
    checks presence before encoding.
    """
    del optional
    return _ENCODE_STRATEGIES[_base_kind(kind, op_name, loc)]


def plan_decode(
    kind: str, optional: bool, *, op_name: str, loc: SourceLocation | None = None
) -> DecodeStrategy:
    """Return the decode strategy for an attribute kind."""
    del optional
    return _DECODE_STRATEGIES[_base_kind(kind, op_name, loc)]


def plan_attribute(op: OperationDescriptor, attr: Attribute) -> AttributePlan:
    """Plan both directions for one attribute argument of ``op``."""
    return AttributePlan(
        name=attr.name,
        kind=_base_kind(attr.kind, op.name, op.loc),
        optional=attr.optional,
        encode=plan_encode(attr.kind, attr.optional, op_name=op.name, loc=op.loc),
        decode=plan_decode(attr.kind, attr.optional, op_name=op.name, loc=op.loc),
    )


def check_result_arity(op: OperationDescriptor) -> None:
    """Operations carry at most one result."""
    if op.result_arity not in (0, 1):
        raise GenerationError(
            f"operation {op.name} declares {op.result_arity} results; "
            "only zero or one result is supported",
            op.loc,
        )


def plan_arguments(op: OperationDescriptor) -> tuple[ArgumentStep, ...]:
    """Walk the arguments of ``op`` in declaration order.

    A variadic operand consumes the rest of the word region, so it may only
    appear once and only as the last argument.
    """
    steps: list[ArgumentStep] = []
    operand_number = 0
    last = len(op.arguments) - 1

    for position, arg in enumerate(op.arguments):
        if isinstance(arg, Operand):
            if arg.variadic and position != last:
                raise GenerationError(
                    f"operation {op.name} has variadic operand {arg.name} "
                    "which is not its last argument",
                    op.loc,
                )
            steps.append(
                OperandStep(
                    name=arg.name,
                    number=operand_number,
                    index=operand_number,
                    variadic=arg.variadic,
                )
            )
            operand_number += 1
        else:
            steps.append(plan_attribute(op, arg))

    return tuple(steps)
