"""Codec context shared by generated serializers and deserializers."""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TypeVar

from .errors import DeserializationError, SerializationError
from .ir import UNKNOWN_LOC, ArrayAttr, AttributeValue, Location, Operation, Type, UnitAttr, Value
from .stream import OP_DECORATE, encode_instruction
from .words import attribute_words, int32_attr

logger = logging.getLogger(__name__)

# Decoration attribute names and their SPIR-V decoration numbers
DEFAULT_DECORATIONS: dict[str, int] = {
    "relaxed_precision": 0,
    "spec_id": 1,
    "block": 2,
    "buffer_block": 3,
    "row_major": 4,
    "col_major": 5,
    "array_stride": 6,
    "matrix_stride": 7,
    "builtin": 11,
    "no_perspective": 13,
    "flat": 14,
    "patch": 15,
    "centroid": 16,
    "sample": 17,
    "invariant": 18,
    "restrict": 19,
    "aliased": 20,
    "volatile": 21,
    "constant": 22,
    "coherent": 23,
    "non_writable": 24,
    "non_readable": 25,
    "uniform": 26,
    "location": 30,
    "component": 31,
    "index": 32,
    "binding": 33,
    "descriptor_set": 34,
    "offset": 35,
    "no_contraction": 42,
    "input_attachment_index": 43,
    "alignment": 44,
}


@dataclass(frozen=True)
class Diagnostic:
    """A recorded, non-fatal error."""

    loc: Location
    message: str

    def __str__(self) -> str:
        return f"{self.loc}: {self.message}"


TOp = TypeVar("TOp", bound=Operation)


class CodecContext:
    """Owns the id registries, the decoration buffer and the output words.

    One context is used for one module. Types and values share a single id
    space; ids start at 1 so that 0 never names anything.

    Example:
        ctx = CodecContext()
        f32 = Type("f32")
        ctx.register_type(f32)
        x = Value(f32)
        ctx.register_value(x)
        dispatch_to_autogen_serialization(ctx, Negate(operands=[x], result_types=[f32]))
        words = ctx.binary()
    """

    def __init__(self, *, decorations: Mapping[str, int] | None = None) -> None:
        self._next_id = 1
        self._type_ids: dict[Type, int] = {}
        self._types: dict[int, Type] = {}
        self._value_ids: dict[Value, int] = {}
        self._values: dict[int, Value] = {}
        self._pending_decorations: dict[int, dict[str, AttributeValue]] = {}

        table = DEFAULT_DECORATIONS if decorations is None else decorations
        self._decoration_numbers = dict(table)
        self._decoration_names = {number: name for name, number in table.items()}

        self.annotations: list[int] = []
        self.functions: list[int] = []
        self.diagnostics: list[Diagnostic] = []

        self.custom_serializers: dict[type[Operation], Callable[["CodecContext", Operation], None]] = {}
        self.custom_deserializers: dict[int, Callable[["CodecContext", Sequence[int]], Operation]] = {}

    # Ids

    def allocate_value_id(self) -> int:
        """Return a fresh id."""
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def _claim(self, given_id: int | None) -> int:
        if given_id is None:
            return self.allocate_value_id()
        if given_id <= 0:
            raise ValueError(f"ids start at 1, got {given_id}")
        self._next_id = max(self._next_id, given_id + 1)
        return given_id

    # Types

    def register_type(self, type: Type, type_id: int | None = None) -> int:
        """Declare a type, optionally with a fixed id."""
        if type in self._type_ids and type_id is None:
            return self._type_ids[type]
        type_id = self._claim(type_id)
        self._type_ids[type] = type_id
        self._types[type_id] = type
        return type_id

    def resolve_type(self, loc: Location, type: Type) -> int:
        """Return the id of a declared type."""
        type_id = self._type_ids.get(type)
        if type_id is None:
            raise SerializationError(f"{loc}: failed to resolve type {type.name}")
        return type_id

    def get_type(self, type_id: int) -> Type | None:
        return self._types.get(type_id)

    # Values

    def register_value(self, value: Value, value_id: int | None = None) -> int:
        """Declare a value defined outside the encoded operations."""
        value_id = self._claim(value_id)
        self.bind_value(value, value_id)
        return value_id

    def bind_value(self, value: Value, value_id: int) -> None:
        """Record the id assigned to a produced value."""
        self._value_ids[value] = value_id
        self._values[value_id] = value

    def find_value_id(self, value: Value) -> int | None:
        return self._value_ids.get(value)

    def check_result_id(self, value_id: int) -> None:
        """Reject a decoded result id that is invalid or already in use."""
        if value_id <= 0:
            raise DeserializationError(f"invalid result <id> : {value_id}")
        if value_id in self._types or value_id in self._values:
            raise DeserializationError(f"result <id> {value_id} is already defined")

    def bind_id(self, value_id: int, value: Value) -> None:
        """Record the value produced for a decoded id."""
        self.check_result_id(value_id)
        self._claim(value_id)
        self._values[value_id] = value
        self._value_ids[value] = value_id

    def get_value(self, value_id: int) -> Value | None:
        return self._values.get(value_id)

    # Output

    def append_instruction(self, opcode: int, operands: Sequence[int]) -> None:
        self.functions.extend(encode_instruction(opcode, operands))

    def emit_decoration(self, loc: Location, value_id: int, name: str, attr: AttributeValue) -> None:
        """Express a non-operand attribute as an OpDecorate instruction."""
        number = self._decoration_numbers.get(name)
        if number is None:
            raise SerializationError(f"{loc}: unhandled decoration {name}")
        operands = [value_id, number, *attribute_words(attr)]
        self.annotations.extend(encode_instruction(OP_DECORATE, operands))

    def binary(self) -> list[int]:
        """Return the encoded words: decorations first, then instructions."""
        return [*self.annotations, *self.functions]

    # Decorations

    def process_decoration(self, words: Sequence[int]) -> None:
        """Buffer the attribute carried by one OpDecorate instruction."""
        if len(words) < 2:
            raise DeserializationError("OpDecorate needs at least 2 words")
        value_id, number = words[0], words[1]
        name = self._decoration_names.get(number)
        if name is None:
            raise DeserializationError(f"unhandled decoration {number} for <id> {value_id}")

        literals = words[2:]
        attr: AttributeValue
        if not literals:
            attr = UnitAttr()
        elif len(literals) == 1:
            attr = int32_attr(literals[0])
        else:
            attr = ArrayAttr(int32_attr(word) for word in literals)
        self._pending_decorations.setdefault(value_id, {})[name] = attr

    def decorations_for(self, value_id: int) -> dict[str, AttributeValue]:
        return dict(self._pending_decorations.get(value_id, {}))

    # Construction and diagnostics

    def create_operation(
        self,
        op_class: type[TOp],
        loc: Location,
        result_types: Sequence[Type],
        operands: Sequence[Value],
        attributes: Mapping[str, AttributeValue],
    ) -> TOp:
        return op_class(
            operands=operands,
            attributes=attributes,
            result_types=result_types,
            loc=loc,
        )

    def emit_error(self, loc: Location | None, message: str) -> None:
        """Record an error without aborting the current instruction."""
        diagnostic = Diagnostic(loc or UNKNOWN_LOC, message)
        self.diagnostics.append(diagnostic)
        logger.warning("%s", diagnostic)
