"""Command-line interface for wirekiln code generation."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from wirekiln.generator import python
from wirekiln.generator.batch import generate
from wirekiln.generator.emitter import DEFAULT_PACKAGE, DEFAULT_RUNTIME_IMPORT, GeneratorContext
from wirekiln.generator.schema import SchemaRegistry, ValidationError, load_schemas
from wirekiln.generator.sizes import ProtocolSizeInfo, calculate_sizes
from wirekiln.generator.types import GenerationError


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def _load(input_file: str) -> SchemaRegistry:
    with open(input_file, encoding="utf-8") as f:
        text = f.read()

    try:
        return load_schemas(text)
    except (ValidationError, GenerationError, json.JSONDecodeError, KeyError) as e:
        print(f"Invalid schema file {input_file}: {e}")
        sys.exit(1)


@click.group()
def cli() -> None:
    """wirekiln protocol code generator."""


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file (JSON)")
@click.option("--output", "-o", "output_path", required=True, help="Output directory")
@click.option("--package", default=DEFAULT_PACKAGE, help="Name of the generated package")
@click.option(
    "--runtime-import",
    "runtime_import",
    default=DEFAULT_RUNTIME_IMPORT,
    help="Import path of the runtime used by generated code",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log every written unit")
def gen(
    input_file: str, output_path: str, package: str, runtime_import: str, verbose: bool
) -> None:
    """Generate protocol code from a schema file."""
    _setup_logging(verbose)
    registry = _load(input_file)

    context = GeneratorContext(
        output_dir=Path(output_path),
        package=package,
        runtime_import=runtime_import,
    )
    report = generate(registry, context)

    if not report.ok:
        failed = ", ".join(str(protocol_id) for protocol_id in report.failures)
        print(f"Generation failed for protocol(s): {failed}")
        sys.exit(1)


@cli.command()
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="wirekiln_runtime", help="Runtime folder name")
def runtime(output_path: str, name: str) -> None:
    """Generate runtime support code."""
    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in python.runtime().items():
        (runtime_dir / filename).write_text(content)
    print(f"Generated Python runtime in {runtime_dir}")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file (JSON)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display protocol information and size calculations."""
    registry = _load(input_file)
    try:
        size_info = calculate_sizes(registry)
    except GenerationError as e:
        print(f"Cannot calculate sizes: {e}")
        sys.exit(1)

    if output_json:
        _output_json(size_info, registry)
    else:
        _output_plain(size_info, registry)


def _format_size(size: int | None) -> str:
    """Format a size value, handling None for unbounded."""
    return "unbounded" if size is None else str(size)


def _output_json(size_info: dict[int, ProtocolSizeInfo], registry: SchemaRegistry) -> None:
    """Output protocol info as JSON."""
    data: dict = {"protocols": []}

    for schema in registry:
        protocol_info = size_info[schema.id]
        data["protocols"].append(
            {
                "id": schema.id,
                "name": schema.name,
                "fields": len(schema.fields),
                "compatible": schema.compatible,
                "predicted_length": protocol_info.predicted_length,
                "min_size": protocol_info.size.min_size,
                "max_size": protocol_info.size.max_size,
                "kind": protocol_info.size.kind.value,
            }
        )

    print(json.dumps(data, indent=2))


def _output_plain(size_info: dict[int, ProtocolSizeInfo], registry: SchemaRegistry) -> None:
    """Output protocol info using rich text formatting."""
    console = Console()

    console.print("[bold cyan]Protocols[/bold cyan]")
    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("ID", style="green", justify="right")
    table.add_column("Name", style="white")
    table.add_column("Fields", justify="right")
    table.add_column("Compatible", style="dim")
    table.add_column("Predicted", style="yellow", justify="right")
    table.add_column("Size", style="yellow", justify="right")

    for schema in registry:
        protocol_info = size_info[schema.id]
        min_size = protocol_info.size.min_size
        max_size = protocol_info.size.max_size

        if min_size == max_size:
            size_str = f"{min_size} bytes"
        else:
            size_str = f"{min_size}-{_format_size(max_size)} bytes"

        predicted = str(protocol_info.predicted_length) if schema.compatible else ""
        table.add_row(
            str(schema.id),
            schema.name,
            str(len(schema.fields)),
            "yes" if schema.compatible else "no",
            predicted,
            size_str,
        )

    console.print(table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
