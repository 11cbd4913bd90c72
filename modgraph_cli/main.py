"""
modgraph CLI

Command-line interface for the module call-graph extractor.
Provides commands for scanning a C/C++ source tree and exporting the
resulting module graph for an external diagram renderer.

Commands:
    modgraph scan <path>      Scan a source tree and summarize the module graph
    modgraph export <path>    Write the module graph as Mermaid or JSON

Usage:
    $ modgraph scan ./firmware
    $ modgraph scan ./firmware --ext .c --ext .h --exclude-dir vendor
    $ modgraph export ./firmware -f mermaid -o graph.mmd
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from modgraph import __version__
from modgraph.config import ScanConfig
from modgraph.export import FORMATS, ORIENTATIONS, export_graph
from modgraph.graph import build_graph_from_directory
from modgraph.models import ScanResult

# Initialize Typer app and Rich consoles
app = typer.Typer(
    name="modgraph",
    help="modgraph: module-level call graphs for C/C++ source trees",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through Rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _build_config(
    extensions: Optional[list[str]],
    exclude_dirs: Optional[list[str]],
    workers: Optional[int],
) -> ScanConfig:
    try:
        return ScanConfig.from_options(
            extensions=extensions,
            exclude_dirs=exclude_dirs,
            max_workers=workers,
        )
    except ValueError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _scan(path: Path, config: ScanConfig, out: Console) -> ScanResult:
    """Run the scan behind a spinner, turning caller errors into exit code 1."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=out,
        transient=True,
    ) as progress:
        progress.add_task("Scanning source files...", total=None)
        try:
            return build_graph_from_directory(path, config)
        except (FileNotFoundError, NotADirectoryError, ValueError) as e:
            err_console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)


@app.command()
def scan(
    path: Path = typer.Argument(
        ...,
        help="Root directory of the source tree to scan",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    extensions: Optional[list[str]] = typer.Option(
        None,
        "--ext",
        "-e",
        help="File extension to include (repeatable; default: .c .cpp .h .hpp)",
    ),
    exclude_dirs: Optional[list[str]] = typer.Option(
        None,
        "--exclude-dir",
        "-x",
        help="Directory name to skip, in addition to .git .hg .svn (repeatable)",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        help="Threads used per scanning pass",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Show debug logging",
    ),
) -> None:
    """
    Scan a source tree and summarize its module call graph.

    This command:
    1. Recursively collects source files under PATH
    2. Extracts function definitions and builds the symbol table
    3. Attributes call sites to their enclosing functions
    4. Reports the cross-module edges found
    """
    configure_logging(verbose)
    config = _build_config(extensions, exclude_dirs, workers)

    console.print(f"\n[bold blue]📂 Scanning:[/bold blue] {path}\n")
    result = _scan(path, config, console)

    if result.all_unreadable:
        console.print(
            f"[yellow]None of the {result.files_found} source file(s) found could be read.[/yellow]"
        )
        _print_warnings(result)
        return

    if result.is_empty:
        console.print(
            "[yellow]No source files found.[/yellow] "
            f"Extensions searched: {', '.join(sorted(config.extensions))}"
        )
        _print_warnings(result)
        return

    _print_scan_summary(result)

    if not result.has_definitions:
        console.print("\n[yellow]No function definitions found in any file.[/yellow]")
    elif result.graph.edge_count:
        _print_edge_table(result)
    else:
        console.print("\n[dim]No cross-module calls found.[/dim]")

    _print_warnings(result)


@app.command()
def export(
    path: Path = typer.Argument(
        ...,
        help="Root directory of the source tree to scan",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    fmt: str = typer.Option(
        "mermaid",
        "--format",
        "-f",
        help=f"Output format ({', '.join(FORMATS)})",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file (default: stdout)",
    ),
    orientation: str = typer.Option(
        "LR",
        "--orientation",
        help=f"Mermaid flowchart orientation ({', '.join(ORIENTATIONS)})",
    ),
    extensions: Optional[list[str]] = typer.Option(
        None,
        "--ext",
        "-e",
        help="File extension to include (repeatable; default: .c .cpp .h .hpp)",
    ),
    exclude_dirs: Optional[list[str]] = typer.Option(
        None,
        "--exclude-dir",
        "-x",
        help="Directory name to skip, in addition to .git .hg .svn (repeatable)",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        help="Threads used per scanning pass",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Show debug logging",
    ),
) -> None:
    """
    Write the module call graph as Mermaid or JSON.

    The Mermaid output declares one node per module and one labeled
    edge per module pair, the label listing the called functions.
    """
    configure_logging(verbose)
    config = _build_config(extensions, exclude_dirs, workers)
    result = _scan(path, config, err_console)

    if result.all_unreadable:
        err_console.print("[yellow]No source file could be read; exporting an empty graph.[/yellow]")
    elif result.is_empty:
        err_console.print("[yellow]No source files found; exporting an empty graph.[/yellow]")

    try:
        text = export_graph(result.graph, fmt=fmt, orientation=orientation)
    except ValueError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if output is None:
        typer.echo(text, nl=False)
        return

    try:
        output.write_text(text, encoding="utf-8")
    except OSError as e:
        err_console.print(f"[bold red]Error writing output:[/bold red] {e}")
        raise typer.Exit(1)
    err_console.print(f"[green]✓[/green] Output written to: {output}")


# Helper functions for output formatting

def _print_scan_summary(result: ScanResult) -> None:
    """Print a summary panel after scanning."""
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Label", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Files found", str(result.files_found))
    table.add_row("Files scanned", str(result.files_scanned))
    table.add_row("Definitions found", str(result.definitions_found))
    table.add_row("Distinct symbols", str(len(result.symbols)))
    table.add_row("Call sites", str(result.calls_found))
    table.add_row("Modules", str(result.graph.module_count))
    table.add_row("Module edges", str(result.graph.edge_count))
    table.add_row("Warnings", str(result.warning_count))
    table.add_row("Scan time", f"{result.scan_time_seconds:.2f}s")

    panel = Panel(table, title="[bold green]✓ Scan Complete[/bold green]", border_style="green")
    console.print(panel)


def _print_edge_table(result: ScanResult) -> None:
    """Print one row per module edge."""
    table = Table(title="Module Calls", box=box.ROUNDED)
    table.add_column("Caller", style="cyan")
    table.add_column("Callee", style="cyan")
    table.add_column("Functions")

    for edge in result.graph.iter_edges():
        table.add_row(edge.from_module, edge.to_module, "\n".join(edge.functions))

    console.print(table)


def _print_warnings(result: ScanResult) -> None:
    """List skipped files and directories, if any."""
    if not result.warnings:
        return
    console.print(f"\n[yellow]⚠️  {result.warning_count} path(s) skipped:[/yellow]")
    for file_path, message in result.warnings[:5]:
        console.print(f"   • {file_path}: {message}")
    if result.warning_count > 5:
        console.print(f"   ... and {result.warning_count - 5} more")


# Version command
@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
    ),
) -> None:
    """
    modgraph: module-level call graphs for C/C++ source trees.
    """
    if version:
        console.print(f"[bold]modgraph[/bold] version {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
