"""Python code generator for SPIR-V style operation codecs.

The generated module is split into named sections, each wrapped in begin/end
marker comments so a build can splice any section into its own file.
"""

import keyword
import logging
from dataclasses import dataclass
from importlib import resources

from jinja2 import Environment, PackageLoader

from .deserializer import DeserializerPlan, plan_deserializer
from .dispatch import DispatchPlan, plan_dispatch
from .enums import EnumPlan, plan_enum
from .planner import GenerationError
from .serializer import SerializerPlan, plan_serializer
from .types import OperationDescriptor, Schema, SourceLocation

logger = logging.getLogger(__name__)

SECTIONS = (
    "enum-decls",
    "enum-defs",
    "op-utils",
    "operations",
    "opcode-table",
    "serialization",
    "deserialization",
)

RUNTIME_FILES = [
    "__init__.py",
    "errors.py",
    "ir.py",
    "words.py",
    "context.py",
    "stream.py",
]

BEGIN_MARKER = "# ---- BEGIN {} ----"
END_MARKER = "# ---- END {} ----"

# Module level names of the generated file that do not come from the schema
_FIXED_NAMES = frozenset(
    [
        # header imports
        "Callable",
        "Sequence",
        "IntEnum",
        "IntFlag",
        "ClassVar",
        "UNKNOWN_LOC",
        "ArrayAttr",
        "AttributeValue",
        "CodecContext",
        "DeserializationError",
        "IntegerAttr",
        "Operation",
        "SerializationError",
        "Type",
        "Value",
        "int32_array_words",
        "int32_attr",
        "int32_word",
        # section helpers
        "bit_enum_contains",
        "attribute_name",
        "symbolize_enum",
        "OPCODES",
        "OPCODE_NAMES",
        "get_opcode",
        "stringify_opcode",
        "dispatch_to_autogen_serialization",
        "dispatch_to_autogen_deserialization",
        "_ENUM_ATTRIBUTE_NAMES",
        "_ENUM_SYMBOLIZERS",
        "_DESERIALIZERS",
    ]
)

env = Environment(
    loader=PackageLoader("spvgen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)
env.filters["pyrepr"] = repr

header_template = env.get_template("header.py.j2")
section_templates = {name: env.get_template(f"{name.replace('-', '_')}.py.j2") for name in SECTIONS}


@dataclass(frozen=True)
class GeneratorOptions:
    """Options of one render call."""

    runtime_import: str = "spvgen.runtime"
    source_name: str = "<schema>"


@dataclass(frozen=True)
class GenerationPlan:
    """All plans of one schema, in declaration order."""

    enums: tuple[EnumPlan, ...]
    operations: tuple[OperationDescriptor, ...]
    serializers: tuple[SerializerPlan, ...]
    deserializers: tuple[DeserializerPlan, ...]
    dispatch: DispatchPlan

    @property
    def has_bit_enums(self) -> bool:
        return any(enum.is_bit_enum for enum in self.enums)


def _check_identifier(name: str, what: str, loc: SourceLocation | None) -> None:
    if not name.isidentifier() or keyword.iskeyword(name):
        raise GenerationError(f"{what} name '{name}' is not a valid Python identifier", loc)


class _NameTable:
    """Tracks which definition claimed each generated module level name."""

    def __init__(self) -> None:
        self._owners: dict[str, str] = {name: "the generated module" for name in _FIXED_NAMES}

    def claim(self, name: str, owner: str, loc: SourceLocation | None) -> None:
        previous = self._owners.get(name)
        if previous is not None:
            raise GenerationError(
                f"generated name {name} of {owner} clashes with {previous}", loc
            )
        self._owners[name] = owner


def check_names(schema: Schema) -> None:
    """Definitions must produce distinct, valid Python names."""
    names = _NameTable()

    for enum in schema.enums:
        _check_identifier(enum.class_name, "enum", enum.loc)
        for ns in enum.namespace:
            _check_identifier(ns, "namespace", enum.loc)
        owner = f"enum {enum.class_name}"
        enum_plan = plan_enum(enum)
        table = "_" + enum_plan.attribute_name.upper()
        generated = [enum.class_name, enum_plan.symbolize_fn, enum_plan.stringify_fn]
        if enum_plan.is_bit_enum:
            generated += [enum_plan.from_underlying_fn, f"{table}_BITS"]
        else:
            generated += [f"{table}_SYMBOLS", f"{table}_STRINGS"]
        for name in generated:
            names.claim(name, owner, enum.loc)

    for op in schema.operations:
        _check_identifier(op.name, "operation", op.loc)
        owner = f"operation {op.name}"
        names.claim(op.name, owner, op.loc)
        if op.has_opcode and op.autogen_serialization:
            serializer = plan_serializer(op)
            deserializer = plan_deserializer(op)
            assert serializer is not None and deserializer is not None
            names.claim(serializer.function_name, owner, op.loc)
            names.claim(deserializer.function_name, owner, op.loc)


def plan(schema: Schema) -> GenerationPlan:
    """Validate ``schema`` and plan every section.

    Raises GenerationError before any text is produced.
    """
    check_names(schema)

    enums = tuple(plan_enum(enum) for enum in schema.enums)

    serializers: list[SerializerPlan] = []
    deserializers: list[DeserializerPlan] = []
    for op in schema.operations:
        serializer = plan_serializer(op)
        deserializer = plan_deserializer(op)
        if serializer is not None:
            serializers.append(serializer)
        if deserializer is not None:
            deserializers.append(deserializer)

    dispatch = plan_dispatch(schema.operations)
    logger.debug(
        "planned %d enums, %d operations, %d generated codecs",
        len(enums),
        len(schema.operations),
        len(serializers),
    )
    return GenerationPlan(
        enums=enums,
        operations=schema.operations,
        serializers=tuple(serializers),
        deserializers=tuple(deserializers),
        dispatch=dispatch,
    )


def render_sections(schema: Schema, options: GeneratorOptions | None = None) -> dict[str, str]:
    """Render every section of ``schema``, keyed by section name, in order."""
    options = options or GeneratorOptions()
    generation = plan(schema)

    context = {
        "enums": generation.enums,
        "operations": generation.operations,
        "serializers": generation.serializers,
        "deserializers": generation.deserializers,
        "dispatch": generation.dispatch,
        "has_bit_enums": generation.has_bit_enums,
        "runtime_import": options.runtime_import,
        "source_name": options.source_name,
        "BLANK_LINE": "",
    }
    return {name: section_templates[name].render(**context) for name in SECTIONS}


def render(
    schema: Schema,
    options: GeneratorOptions | None = None,
    sections: list[str] | None = None,
) -> str:
    """Render ``schema`` to a Python module.

    ``sections`` selects a subset of SECTIONS; the output keeps the canonical
    section order whatever order they are given in.
    """
    options = options or GeneratorOptions()
    if sections is not None:
        unknown = [name for name in sections if name not in SECTIONS]
        if unknown:
            raise ValueError(f"unknown section: {', '.join(unknown)}")

    rendered = render_sections(schema, options)
    header = header_template.render(
        runtime_import=options.runtime_import,
        source_name=options.source_name,
    )

    parts = [header.rstrip("\n")]
    for name in SECTIONS:
        if sections is not None and name not in sections:
            continue
        body = rendered[name].strip("\n")
        block = [BEGIN_MARKER.format(name)]
        if body:
            block.append(body)
        block.append(END_MARKER.format(name))
        parts.append("\n".join(block))

    logger.info("rendered %s", options.source_name)
    return "\n\n\n".join(parts) + "\n"


def extract_section(text: str, name: str) -> str:
    """Return the body of one section of a rendered module."""
    begin = BEGIN_MARKER.format(name) + "\n"
    end = END_MARKER.format(name)
    start = text.find(begin)
    if start < 0:
        raise ValueError(f"section {name} not found")
    start += len(begin)
    stop = text.find(end, start)
    if stop < 0:
        raise ValueError(f"section {name} is not terminated")
    return text[start:stop]


def runtime() -> dict[str, str]:
    """Return the Python runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("spvgen.runtime").joinpath(filename).read_text()
        result[filename] = content
    return result
