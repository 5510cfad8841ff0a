"""Descriptor types consumed by the code generator."""

from dataclasses import dataclass, field

from dataclasses_json import DataClassJsonMixin


@dataclass(frozen=True)
class SourceLocation(DataClassJsonMixin):
    """Position of a definition in a schema file."""

    file: str
    line: int
    column: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Operand(DataClassJsonMixin):
    """An operand argument; variadic operands take the rest of the operand list."""

    name: str
    variadic: bool = False


@dataclass(frozen=True)
class Attribute(DataClassJsonMixin):
    """A named attribute argument.

    ``kind`` is kept as written in the schema. Only the planner decides
    whether a kind is supported.
    """

    name: str
    kind: str
    optional: bool = False


Argument = Operand | Attribute


@dataclass(frozen=True)
class OperationDescriptor(DataClassJsonMixin):
    """Represents one operation definition."""

    name: str
    opcode: int | None
    result_arity: int = 0
    arguments: tuple[Argument, ...] = ()
    autogen_serialization: bool = True
    loc: SourceLocation | None = None

    @property
    def has_opcode(self) -> bool:
        return self.opcode is not None

    @property
    def operands(self) -> list[Operand]:
        return [arg for arg in self.arguments if isinstance(arg, Operand)]

    @property
    def attributes(self) -> list[Attribute]:
        return [arg for arg in self.arguments if isinstance(arg, Attribute)]


@dataclass(frozen=True)
class EnumCase(DataClassJsonMixin):
    """A single enum case."""

    symbol: str
    value: int


@dataclass(frozen=True)
class EnumDescriptor(DataClassJsonMixin):
    """Represents a value enum or a bit-flag enum definition.

    For bit enums each case value is a mask; a case with value 0 is the
    "unset" case and never takes part in joining or splitting.
    """

    class_name: str
    underlying_type: str
    cases: tuple[EnumCase, ...]
    is_bit_enum: bool = False
    separator: str = "|"
    namespace: tuple[str, ...] = ()
    loc: SourceLocation | None = None


@dataclass(frozen=True)
class Schema(DataClassJsonMixin):
    """The ordered operation and enum lists of one generation run."""

    operations: tuple[OperationDescriptor, ...] = ()
    enums: tuple[EnumDescriptor, ...] = field(default=())


# Fixed-width integer types usable as enum storage, with their widths
UNDERLYING_TYPES: dict[str, tuple[int, bool]] = {
    "uint8": (8, False),
    "uint16": (16, False),
    "uint32": (32, False),
    "uint64": (64, False),
    "int8": (8, True),
    "int16": (16, True),
    "int32": (32, True),
    "int64": (64, True),
}


def value_range(underlying_type: str) -> tuple[int, int]:
    """Return the inclusive (min, max) range of an underlying type."""
    bits, signed = UNDERLYING_TYPES[underlying_type]
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1
