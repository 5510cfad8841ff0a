"""Minimal in-memory operation model used by generated code.

Generated modules subclass ``Operation`` once per schema operation. Values
compare by identity: two values are the same operand only if they are the
same object.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True, slots=True)
class Location:
    """Where an operation came from, used in diagnostics."""

    name: str = "<unknown>"
    line: int = 0

    def __str__(self) -> str:
        return f"{self.name}:{self.line}" if self.line else self.name


UNKNOWN_LOC = Location()


@dataclass(frozen=True, slots=True)
class Type:
    """An opaque type, identified by its name."""

    name: str


@dataclass(frozen=True, slots=True)
class IntegerAttr:
    value: int


@dataclass(frozen=True, slots=True)
class ArrayAttr:
    elements: tuple["IntegerAttr | ArrayAttr | UnitAttr", ...]

    def __post_init__(self) -> None:
        # Accept any iterable; store a tuple so the attribute stays hashable
        object.__setattr__(self, "elements", tuple(self.elements))


@dataclass(frozen=True, slots=True)
class UnitAttr:
    """An attribute whose presence is its only information."""


AttributeValue = IntegerAttr | ArrayAttr | UnitAttr


class Value:
    """A value produced by an operation (or a block argument when ``owner`` is None)."""

    __slots__ = ("type", "owner")

    def __init__(self, type: Type, owner: "Operation | None" = None) -> None:
        self.type = type
        self.owner = owner

    def __repr__(self) -> str:
        owner = self.owner.op_name if self.owner is not None else "arg"
        return f"<Value {self.type.name} from {owner}>"


class Operation:
    """Base class for generated operation types.

    Example:
        class Add(Operation):
            op_name: ClassVar[str] = "Add"
            opcode: ClassVar[int | None] = 12
            num_results: ClassVar[int] = 1
    """

    op_name: ClassVar[str] = "<operation>"
    opcode: ClassVar[int | None] = None
    num_results: ClassVar[int] = 0

    def __init__(
        self,
        operands: Sequence[Value] = (),
        attributes: Mapping[str, AttributeValue] | None = None,
        result_types: Sequence[Type] = (),
        loc: Location = UNKNOWN_LOC,
    ) -> None:
        self.operands = list(operands)
        self.attributes = dict(attributes or {})
        self.results = [Value(t, self) for t in result_types]
        self.loc = loc

    @property
    def result(self) -> Value:
        if len(self.results) != 1:
            raise ValueError(f"{self.op_name} has {len(self.results)} results, expected one")
        return self.results[0]

    @property
    def result_types(self) -> list[Type]:
        return [r.type for r in self.results]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Operation):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.result_types == other.result_types
            and self.operands == other.operands
            and self.attributes == other.attributes
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(operands={self.operands!r}, "
            f"attributes={self.attributes!r}, result_types={self.result_types!r})"
        )
