"""Deserializer planning: the inverse of the serializer plans."""

import logging
from dataclasses import dataclass

from .planner import ArgumentStep, check_result_arity, plan_arguments
from .serializer import is_eligible
from .types import OperationDescriptor
from .util import to_snake_case

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeserializerPlan:
    """Everything the deserialization template needs for one operation.

    Steps are consumed in order with a single advancing word cursor.
    """

    op_name: str
    function_name: str
    opcode: int
    has_result: bool
    steps: tuple[ArgumentStep, ...]


def deserializer_name(op: OperationDescriptor) -> str:
    return f"deserialize_{to_snake_case(op.name)}"


def plan_deserializer(op: OperationDescriptor) -> DeserializerPlan | None:
    """Plan the decode function for ``op``, or None if it is not generated."""
    check_result_arity(op)
    steps = plan_arguments(op)
    if not is_eligible(op):
        return None

    assert op.opcode is not None
    logger.debug("planning deserializer for %s", op.name)
    return DeserializerPlan(
        op_name=op.name,
        function_name=deserializer_name(op),
        opcode=op.opcode,
        has_result=op.result_arity == 1,
        steps=steps,
    )
