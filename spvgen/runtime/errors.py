"""Errors raised by generated (de)serialization code."""


class CodecError(RuntimeError):
    """Base class for recoverable per-instruction failures."""


class SerializationError(CodecError):
    """Raised when an operation cannot be encoded."""


class DeserializationError(CodecError):
    """Raised when a word sequence cannot be decoded."""
