"""CLI interface for ev3parse using Typer framework."""

import json as jsonlib
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ev3diagram import DiagramError, Document, MotorMoveBlock, validate_document
from ev3parse import __description__, __version__
from ev3parse.config import Ev3ParseConfig, FileErrorPolicy, LogLevel, load_config
from ev3parse.project import Project, load_project, parse_program_file

app = typer.Typer(
    name="ev3parse",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()
err_console = Console(stderr=True)

_LOG_LEVELS = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        console.print(f"ev3parse version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, help="Show version and exit")
    ] = False,
) -> None:
    """ev3parse - Strict parser for EV3 block-diagram projects."""


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=_LOG_LEVELS[LogLevel(level)],
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=err_console, show_time=False, show_path=False)],
        force=True,
    )


def _resolve_config(
    config_path: Path | None,
    ignore_unknown: bool,
    on_error: FileErrorPolicy | None,
    log_level: LogLevel | None,
) -> Ev3ParseConfig:
    """Load configuration and apply command-line overrides."""
    config = load_config(config_path)
    if ignore_unknown:
        config.parser.ignore_unknown_tags = True
    if on_error is not None:
        config.project.on_file_error = on_error.value
    if log_level is not None:
        config.logging.level = log_level.value
    _configure_logging(config.logging.level)
    return config


def _load_documents(path: Path, config: Ev3ParseConfig) -> tuple[dict[str, Document], dict[str, str], Project | None]:
    """Parse a single program file or a whole project archive."""
    if path.suffix == config.project.program_suffix:
        document = parse_program_file(path, ignore_unknown=config.parser.ignore_unknown_tags)
        return {document.name: document}, {}, None
    project = load_project(path, config)
    return project.files, project.failures, project


def _block_details(block) -> str:
    if isinstance(block, MotorMoveBlock):
        ports = "+".join(block.ports)
        return f"ports {ports}, steering {block.steering}, speed {block.speed}"
    return ""


def _output_document_table(document: Document) -> None:
    """Output a document's blocks and wires as tables."""
    console.print(
        f"\n[cyan]{escape(document.name)}[/cyan] "
        f"[dim]version {escape(document.version.number)}[/dim]"
    )

    if not document.blocks:
        console.print("[dim]No blocks found[/dim]")
    else:
        table = Table(title=f"Blocks ({len(document.blocks)} found)")
        table.add_column("Id", style="cyan", no_wrap=True)
        table.add_column("Kind", style="white")
        table.add_column("Size", style="dim", justify="right")
        table.add_column("Details", style="white")
        table.add_column("Next", style="green")
        for block in document.blocks.values():
            following = document.next_block(block.id)
            width, height = block.bounds
            table.add_row(
                escape(block.id),
                block.kind,
                f"{width}x{height}",
                _block_details(block),
                escape(following.id) if following else "-",
            )
        console.print(table)

    if document.wires:
        table = Table(title=f"Wires ({len(document.wires)} found)")
        table.add_column("Id", style="cyan", no_wrap=True)
        table.add_column("From", style="white")
        table.add_column("To", style="white")
        for wire in document.wires.values():
            table.add_row(escape(wire.id), escape(wire.output), escape(wire.input))
        console.print(table)

    for problem in validate_document(document):
        console.print(f"[yellow]WARN[/yellow] {escape(problem)}")


@app.command()
def parse(
    path: Annotated[
        Path,
        typer.Argument(help="Path to an .ev3 project archive or a single .ev3p program file")
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output parsed documents as JSON")
    ] = False,
    ignore_unknown: Annotated[
        bool,
        typer.Option("--ignore-unknown", help="Skip unknown tags with a warning instead of failing")
    ] = False,
    on_error: Annotated[
        Optional[FileErrorPolicy],
        typer.Option("--on-error", help="Policy for program files that fail to parse (abort, skip)")
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .ev3parse.json)")
    ] = None,
    log_level: Annotated[
        Optional[LogLevel],
        typer.Option("--log-level", help="Logging level (error, warn, info, debug)")
    ] = None,
) -> None:
    """Parse an EV3 project or program file and show its blocks and wires."""
    try:
        settings = _resolve_config(config, ignore_unknown, on_error, log_level)
        documents, failures, project = _load_documents(path, settings)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except (DiagramError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if json_output:
        data = {
            "files": {name: doc.model_dump(mode="json") for name, doc in documents.items()},
            "warnings": {name: validate_document(doc) for name, doc in documents.items()},
            "failures": failures,
        }
        if project is not None:
            data["project"] = {
                "title": project.title,
                "description": project.description,
                "year": project.year,
            }
        print(jsonlib.dumps(data, indent=2))
        return

    if project is not None:
        console.print(f"[blue]Project:[/blue] {escape(project.title)} ({project.year})")

    for document in documents.values():
        _output_document_table(document)

    for name, message in failures.items():
        console.print(f"[yellow]SKIPPED[/yellow] {escape(name)}: {escape(message)}")

    console.print(f"\n[green]OK[/green] Parsed {len(documents)} program file(s)")
    if failures:
        console.print(f"  - [yellow]Failed: {len(failures)}[/yellow]")


@app.command()
def order(
    path: Annotated[
        Path,
        typer.Argument(help="Path to an .ev3 project archive or a single .ev3p program file")
    ],
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .ev3parse.json)")
    ] = None,
) -> None:
    """Show the execution order of each program, following sequence wires from the start block."""
    try:
        settings = _resolve_config(config, False, None, None)
        documents, _, _ = _load_documents(path, settings)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except (DiagramError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    for document in documents.values():
        chain = document.execution_order()
        if not chain:
            console.print(f"{escape(document.name)}: [dim]no start block[/dim]")
            continue
        console.print(f"{escape(document.name)}: {escape(' -> '.join(chain))}")
