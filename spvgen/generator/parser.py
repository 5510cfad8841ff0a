"""Schema definition parser using Lark."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from lark import Lark, Token
from lark.exceptions import UnexpectedInput, VisitError
from lark.visitors import Transformer, v_args

from .types import (
    UNDERLYING_TYPES,
    Attribute,
    EnumCase,
    EnumDescriptor,
    Operand,
    OperationDescriptor,
    Schema,
    SourceLocation,
    value_range,
)

logger = logging.getLogger(__name__)

_g_parser: Lark | None = None


class ValidationError(RuntimeError):
    """Raised when schema parsing or validation fails."""


@dataclass
class _Annotation:
    name: str
    arguments: list[Any]


@dataclass
class _Opcode:
    value: int


@dataclass
class _Results:
    value: int


TFilter = TypeVar("TFilter", bound=object)


def _find_many(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[TFilter], error: str) -> TFilter | None:
    filtered = _find_many(args, class_type)
    if len(filtered) == 0:
        return None
    if len(filtered) > 1:
        raise ValidationError(error)
    return filtered[0]


def _tokens(args: list[Any], token_type: str) -> list[str]:
    return [str(v) for v in args if isinstance(v, Token) and v.type == token_type]


class TreeTransformer(Transformer):
    """Transform parse tree into descriptor types."""

    def __init__(self, filename: str) -> None:
        super().__init__()
        self.filename = filename

    def _loc(self, meta: Any) -> SourceLocation:
        return SourceLocation(
            file=self.filename,
            line=getattr(meta, "line", 0),
            column=getattr(meta, "column", 0),
        )

    def _annotations(self, args: list[Any], allowed: set[str], loc: SourceLocation) -> dict:
        annotations: dict[str, list[Any]] = {}
        for annotation in _find_many(args, _Annotation):
            if annotation.name not in allowed:
                raise ValidationError(f"{loc}: unknown annotation @{annotation.name}")
            if annotation.name in annotations:
                raise ValidationError(f"{loc}: duplicate annotation @{annotation.name}")
            annotations[annotation.name] = annotation.arguments
        return annotations

    def number(self, args: list[Any]) -> int:
        text = str(args[0])
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)

    def string_arg(self, args: list[Any]) -> str:
        return str(args[0])[1:-1]

    def name_arg(self, args: list[Any]) -> str:
        return str(args[0])

    def number_arg(self, args: list[Any]) -> int:
        return args[0]

    def annotation(self, args: list[Any]) -> _Annotation:
        return _Annotation(
            name=str(args[0]),
            arguments=[arg for arg in args[1:] if arg is not None],
        )

    def enum_case(self, args: list[Any]) -> EnumCase:
        return EnumCase(symbol=str(args[0]), value=args[1])

    @v_args(meta=True)
    def enum(self, meta: Any, args: list[Any]) -> EnumDescriptor:
        loc = self._loc(meta)
        keyword = _tokens(args, "ENUM_KEYWORD")[0]
        class_name, underlying_type = _tokens(args, "NAME")
        annotations = self._annotations(args, {"separator", "namespace"}, loc)

        is_bit_enum = keyword == "bitenum"
        separator = "|"
        if "separator" in annotations:
            if not is_bit_enum:
                raise ValidationError(f"{loc}: @separator is only valid on a bitenum")
            values = annotations["separator"]
            if len(values) != 1 or not isinstance(values[0], str) or not values[0]:
                raise ValidationError(f"{loc}: @separator takes one non-empty string")
            separator = values[0]

        return EnumDescriptor(
            class_name=class_name,
            underlying_type=underlying_type,
            cases=tuple(_find_many(args, EnumCase)),
            is_bit_enum=is_bit_enum,
            separator=separator,
            namespace=tuple(str(part) for part in annotations.get("namespace", [])),
            loc=loc,
        )

    def opcode(self, args: list[Any]) -> _Opcode:
        return _Opcode(value=args[0])

    def results(self, args: list[Any]) -> _Results:
        return _Results(value=args[0])

    def operand(self, args: list[Any]) -> Operand:
        return Operand(name=str(args[0]), variadic=bool(_tokens(args, "VARIADIC")))

    def attr(self, args: list[Any]) -> Attribute:
        return Attribute(
            name=str(args[0]),
            kind=_tokens(args, "KIND")[0],
            optional=bool(_tokens(args, "OPTIONAL")),
        )

    @v_args(meta=True)
    def op(self, meta: Any, args: list[Any]) -> OperationDescriptor:
        loc = self._loc(meta)
        annotations = self._annotations(args, {"manual"}, loc)
        name = _tokens(args, "NAME")[0]
        opcode = _find_one(args, _Opcode, f"{loc}: operation {name} has more than one opcode")
        results = _find_one(args, _Results, f"{loc}: operation {name} declares results more than once")

        return OperationDescriptor(
            name=name,
            opcode=opcode.value if opcode else None,
            result_arity=results.value if results else 0,
            arguments=tuple(v for v in args if isinstance(v, (Operand, Attribute))),
            autogen_serialization="manual" not in annotations,
            loc=loc,
        )

    def start(self, args: list[Any]) -> Schema:
        return Schema(
            operations=tuple(_find_many(args, OperationDescriptor)),
            enums=tuple(_find_many(args, EnumDescriptor)),
        )


def validate(schema: Schema) -> None:
    """Validate a parsed schema.

    Only checks what the front end owns; structural operation rules are
    enforced by the generator itself.
    """
    op_names: set[str] = set()
    for op in schema.operations:
        if op.name in op_names:
            raise ValidationError(f"{op.loc}: operation {op.name} declared more than once")
        op_names.add(op.name)
        arg_names: set[str] = set()
        for arg in op.arguments:
            if arg.name in arg_names:
                raise ValidationError(f"{op.loc}: {op.name} declares argument {arg.name} twice")
            arg_names.add(arg.name)

    enum_names: set[str] = set()
    for enum in schema.enums:
        if enum.class_name in enum_names:
            raise ValidationError(f"{enum.loc}: enum {enum.class_name} declared more than once")
        enum_names.add(enum.class_name)

        if enum.underlying_type not in UNDERLYING_TYPES:
            raise ValidationError(
                f"{enum.loc}: {enum.class_name} has unknown underlying type {enum.underlying_type}"
            )
        low, high = value_range(enum.underlying_type)
        if enum.is_bit_enum:
            low = 0

        symbols: set[str] = set()
        for case in enum.cases:
            if case.symbol in symbols:
                raise ValidationError(f"{enum.loc}: {enum.class_name}.{case.symbol} declared twice")
            symbols.add(case.symbol)
            if not low <= case.value <= high:
                raise ValidationError(
                    f"{enum.loc}: {enum.class_name}.{case.symbol} = {case.value} "
                    f"does not fit in {enum.underlying_type}"
                )


def parse(text: str, filename: str = "<string>") -> Schema:
    """Parse a schema definition."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/schema.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(grammar, propagate_positions=True)

    try:
        tree = _g_parser.parse(text)
    except UnexpectedInput as e:
        raise ValidationError(f"{filename}:{e.line}: syntax error\n{e.get_context(text)}") from e

    try:
        schema = TreeTransformer(filename).transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, ValidationError):
            raise e.orig_exc from None
        raise
    validate(schema)

    logger.debug(
        "parsed %s: %d operations, %d enums",
        filename,
        len(schema.operations),
        len(schema.enums),
    )
    return schema


def load(path: str | Path) -> Schema:
    """Parse a schema definition file."""
    path = Path(path)
    return parse(path.read_text(encoding="utf-8"), filename=str(path))
