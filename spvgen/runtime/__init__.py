"""Runtime support for generated spvgen codecs."""

from .context import DEFAULT_DECORATIONS, CodecContext, Diagnostic
from .errors import CodecError, DeserializationError, SerializationError
from .ir import (
    UNKNOWN_LOC,
    ArrayAttr,
    AttributeValue,
    IntegerAttr,
    Location,
    Operation,
    Type,
    UnitAttr,
    Value,
)
from .stream import (
    OP_DECORATE,
    deserialize_words,
    encode_instruction,
    iter_instructions,
    serialize_operations,
)
from .words import int32_array_words, int32_attr, int32_word

__all__ = [
    "DEFAULT_DECORATIONS",
    "OP_DECORATE",
    "UNKNOWN_LOC",
    "ArrayAttr",
    "AttributeValue",
    "CodecContext",
    "CodecError",
    "DeserializationError",
    "Diagnostic",
    "IntegerAttr",
    "Location",
    "Operation",
    "SerializationError",
    "Type",
    "UnitAttr",
    "Value",
    "deserialize_words",
    "encode_instruction",
    "int32_array_words",
    "int32_attr",
    "int32_word",
    "iter_instructions",
    "serialize_operations",
]
