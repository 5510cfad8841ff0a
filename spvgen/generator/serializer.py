"""Serializer planning: one encode function per eligible operation."""

import logging
from dataclasses import dataclass

from .planner import ArgumentStep, check_result_arity, plan_arguments
from .types import OperationDescriptor
from .util import to_snake_case

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SerializerPlan:
    """Everything the serialization template needs for one operation."""

    op_name: str
    function_name: str
    opcode: int
    has_result: bool
    steps: tuple[ArgumentStep, ...]

    @property
    def has_operands(self) -> bool:
        return any(step.is_operand for step in self.steps)


def is_eligible(op: OperationDescriptor) -> bool:
    """Operations with an opcode and generated (de)serialization."""
    return op.has_opcode and op.autogen_serialization


def serializer_name(op: OperationDescriptor) -> str:
    return f"serialize_{to_snake_case(op.name)}"


def plan_serializer(op: OperationDescriptor) -> SerializerPlan | None:
    """Plan the encode function for ``op``, or None if it is not generated."""
    check_result_arity(op)
    steps = plan_arguments(op)
    if not is_eligible(op):
        return None

    assert op.opcode is not None
    logger.debug("planning serializer for %s", op.name)
    return SerializerPlan(
        op_name=op.name,
        function_name=serializer_name(op),
        opcode=op.opcode,
        has_result=op.result_arity == 1,
        steps=steps,
    )
