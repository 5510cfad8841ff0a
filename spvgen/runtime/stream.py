"""Instruction framing and whole-stream drivers.

Every instruction starts with one word holding the instruction's total word
count in the high 16 bits and its opcode in the low 16 bits, followed by the
operand words.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import TYPE_CHECKING

from .errors import DeserializationError, SerializationError

if TYPE_CHECKING:
    from .context import CodecContext
    from .ir import Operation

logger = logging.getLogger(__name__)

OP_DECORATE = 71
WORD_COUNT_SHIFT = 16
OPCODE_MASK = 0xFFFF
MAX_WORD = 0xFFFFFFFF

SerializeDispatch = Callable[["CodecContext", "Operation"], None]
DeserializeDispatch = Callable[["CodecContext", int, Sequence[int]], "Operation"]


def encode_instruction(opcode: int, operands: Sequence[int]) -> list[int]:
    """Frame one instruction."""
    word_count = len(operands) + 1
    if word_count > OPCODE_MASK:
        raise SerializationError(f"instruction with {word_count} words exceeds the word count limit")
    if not 0 <= opcode <= OPCODE_MASK:
        raise SerializationError(f"opcode {opcode} does not fit in 16 bits")
    for position, word in enumerate(operands):
        if not 0 <= word <= MAX_WORD:
            raise SerializationError(f"operand word {position} ({word}) is not a 32-bit word")
    return [(word_count << WORD_COUNT_SHIFT) | opcode, *operands]


def iter_instructions(words: Sequence[int]) -> Iterator[tuple[int, list[int]]]:
    """Split a word stream into (opcode, operand words) pairs."""
    index = 0
    while index < len(words):
        first = words[index]
        word_count = first >> WORD_COUNT_SHIFT
        opcode = first & OPCODE_MASK
        if word_count == 0:
            raise DeserializationError(f"instruction at word {index} has a zero word count")
        if index + word_count > len(words):
            raise DeserializationError(
                f"instruction at word {index} needs {word_count} words, "
                f"only {len(words) - index} remain"
            )
        yield opcode, list(words[index + 1 : index + word_count])
        index += word_count


def serialize_operations(
    ctx: CodecContext,
    operations: Iterable[Operation],
    dispatch: SerializeDispatch,
) -> list[int]:
    """Encode operations in order and return the context's word stream.

    Operations registered in ``ctx.custom_serializers`` bypass ``dispatch``.
    """
    for op in operations:
        custom = ctx.custom_serializers.get(type(op))
        if custom is not None:
            custom(ctx, op)
        else:
            dispatch(ctx, op)
    return ctx.binary()


def deserialize_words(
    ctx: CodecContext,
    words: Sequence[int],
    dispatch: DeserializeDispatch,
) -> list[Operation]:
    """Decode a word stream into operations.

    Decorations are buffered in a first pass so they may appear before or
    after the instruction defining their target.
    """
    instructions = list(iter_instructions(words))
    for opcode, operands in instructions:
        if opcode == OP_DECORATE:
            ctx.process_decoration(operands)

    operations: list[Operation] = []
    for opcode, operands in instructions:
        if opcode == OP_DECORATE:
            continue
        custom = ctx.custom_deserializers.get(opcode)
        if custom is not None:
            operations.append(custom(ctx, operands))
        else:
            operations.append(dispatch(ctx, opcode, operands))

    logger.debug("decoded %d operations from %d words", len(operations), len(words))
    return operations
