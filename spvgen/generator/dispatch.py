"""Dispatch table planning."""

from collections.abc import Sequence
from dataclasses import dataclass

from .deserializer import deserializer_name
from .planner import GenerationError
from .serializer import is_eligible, serializer_name
from .types import OperationDescriptor

MAX_OPCODE = 0xFFFF


@dataclass(frozen=True)
class OpcodeEntry:
    op_name: str
    opcode: int


@dataclass(frozen=True)
class SerializeEntry:
    op_name: str
    function_name: str


@dataclass(frozen=True)
class DeserializeEntry:
    opcode: int
    function_name: str


@dataclass(frozen=True)
class DispatchPlan:
    """Opcode table and both dispatch structures, in declaration order."""

    opcodes: tuple[OpcodeEntry, ...]
    serializers: tuple[SerializeEntry, ...]
    deserializers: tuple[DeserializeEntry, ...]


def check_unique_opcodes(operations: Sequence[OperationDescriptor]) -> None:
    """Opcodes must fit in 16 bits and two operations may not share one."""
    seen: dict[int, OperationDescriptor] = {}
    for op in operations:
        if not op.has_opcode:
            continue
        if not 0 <= op.opcode <= MAX_OPCODE:
            raise GenerationError(
                f"operation {op.name} has opcode {op.opcode} outside 0..{MAX_OPCODE}", op.loc
            )
        previous = seen.get(op.opcode)
        if previous is not None:
            raise GenerationError(
                f"operation {op.name} reuses opcode {op.opcode} of operation {previous.name}",
                op.loc,
            )
        seen[op.opcode] = op


def plan_dispatch(operations: Sequence[OperationDescriptor]) -> DispatchPlan:
    """Build the dispatch plan over ``operations``.

    Every operation with an opcode is listed in the opcode table; only
    eligible operations take part in the dispatch structures.
    """
    check_unique_opcodes(operations)

    opcodes: list[OpcodeEntry] = []
    serializers: list[SerializeEntry] = []
    deserializers: list[DeserializeEntry] = []

    for op in operations:
        if op.opcode is None:
            continue
        opcodes.append(OpcodeEntry(op.name, op.opcode))
        if not is_eligible(op):
            continue
        serializers.append(SerializeEntry(op.name, serializer_name(op)))
        deserializers.append(DeserializeEntry(op.opcode, deserializer_name(op)))

    return DispatchPlan(
        opcodes=tuple(opcodes),
        serializers=tuple(serializers),
        deserializers=tuple(deserializers),
    )
