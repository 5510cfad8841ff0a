"""Command-line interface for spvgen code generation."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from spvgen.generator import assembler, parse
from spvgen.generator.enums import plan_enum
from spvgen.generator.parser import ValidationError
from spvgen.generator.planner import GenerationError
from spvgen.generator.serializer import is_eligible
from spvgen.generator.types import Schema


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(input_file: str) -> Schema:
    with open(input_file, encoding="utf-8") as f:
        text = f.read()
    return parse(text, filename=input_file)


@click.group()
def cli() -> None:
    """SPIR-V style operation codec generator."""


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
@click.option("--output", "-o", "output_file", required=True, help="Output file")
@click.option(
    "--section",
    "-s",
    "sections",
    multiple=True,
    type=click.Choice(assembler.SECTIONS),
    help="Section to emit (repeatable, default all)",
)
@click.option(
    "--runtime-import",
    "runtime_import",
    default="spvgen.runtime",
    help="Import path of the runtime package",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log planning details")
def gen(
    input_file: str,
    output_file: str,
    sections: tuple[str, ...],
    runtime_import: str,
    verbose: bool,
) -> None:
    """Generate codec code from a schema file."""
    _setup_logging(verbose)
    options = assembler.GeneratorOptions(
        runtime_import=runtime_import,
        source_name=Path(input_file).name,
    )

    try:
        schema = _load(input_file)
        generated_file = assembler.render(schema, options, list(sections) if sections else None)
    except (ValidationError, GenerationError) as e:
        click.echo(f"error: {e}", err=True)
        sys.exit(1)

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(generated_file)


@cli.command()
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="spvgen_runtime", help="Runtime folder name")
def runtime(output_path: str, name: str) -> None:
    """Write the runtime package for vendoring."""
    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in assembler.runtime().items():
        (runtime_dir / filename).write_text(content)
    print(f"Generated Python runtime in {runtime_dir}")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display the operations and enums of a schema."""
    try:
        schema = _load(input_file)
        if output_json:
            _output_json(schema)
        else:
            _output_plain(schema)
    except (ValidationError, GenerationError) as e:
        click.echo(f"error: {e}", err=True)
        sys.exit(1)


def _output_json(schema: Schema) -> None:
    """Output the schema as JSON."""
    data = schema.to_dict()
    for op_data, op in zip(data["operations"], schema.operations):
        op_data["generated"] = is_eligible(op)
    print(json.dumps(data, indent=2))


def _output_plain(schema: Schema) -> None:
    """Output the schema using rich text formatting."""
    console = Console()

    console.print("[bold cyan]Operations[/bold cyan]")
    op_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    op_table.add_column("Name", style="white")
    op_table.add_column("Opcode", style="green", justify="right")
    op_table.add_column("Results", style="yellow", justify="right")
    op_table.add_column("Operands", style="dim")
    op_table.add_column("Attributes", style="dim")
    op_table.add_column("Codec", style="dim")

    for op in schema.operations:
        operands = ", ".join(f"{o.name}..." if o.variadic else o.name for o in op.operands)
        attributes = ", ".join(
            f"{a.name}: {a.kind}{'?' if a.optional else ''}" for a in op.attributes
        )
        if is_eligible(op):
            codec = "generated"
        elif op.has_opcode:
            codec = "manual"
        else:
            codec = "none"
        opcode = "" if op.opcode is None else str(op.opcode)
        op_table.add_row(op.name, opcode, str(op.result_arity), operands, attributes, codec)

    console.print(op_table)
    console.print()

    console.print("[bold cyan]Enums[/bold cyan]")
    enum_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    enum_table.add_column("Name", style="white")
    enum_table.add_column("Kind", style="dim")
    enum_table.add_column("Storage", style="yellow")
    enum_table.add_column("Cases", style="green", justify="right")
    enum_table.add_column("Mask", style="dim", justify="right")

    for enum in schema.enums:
        enum_plan = plan_enum(enum)
        if enum_plan.is_bit_enum:
            kind = "bit"
            mask = f"0x{enum_plan.mask:x}"
        else:
            kind = "value"
            mask = ""
        enum_table.add_row(enum.class_name, kind, enum.underlying_type, str(len(enum.cases)), mask)

    console.print(enum_table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
