import logging
from collections import Counter
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from funqy._env import Environment
from funqy._errors import FunqyError
from funqy._eval_engine import SeededRandomSource
from funqy._io import ScriptImporter, ScriptNotFoundError, export_results_to_toml, load_script
from funqy._parser import ParseError, parse_program
from funqy._program import run_program
from funqy._settings import InterpreterSettings
from funqy._values import format_value

from .config import ConfigError, get_config

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()

PROMPT = "funqy> "


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """FunQy interpreter CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _report_error(error: Exception) -> None:
    err_console.print(f"[red]✗ {type(error).__name__}:[/red] {escape(str(error))}")


def _load_settings(seed: int | None) -> InterpreterSettings:
    """Settings from pyproject.toml with command-line overrides applied."""
    try:
        config = get_config()
        settings = config.with_overrides(seed=seed)
    except ConfigError as e:
        _report_error(e)
        raise typer.Exit(code=1) from e
    if config.project_root is not None:
        logger.debug("Using configuration from %s", config.project_root / "pyproject.toml")
    return settings


def _echo(text: str) -> None:
    out_console.print(f":: {text}", markup=False, highlight=False)


@app.command()
def run(
    script: Annotated[
        Path,
        typer.Argument(help="Path to the FunQy script (the .fqy extension may be omitted)"),
    ],
    *,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output TOML file"),
    ] = None,
    seed: Annotated[
        int | None,
        typer.Option("--seed", help="Seed for measurement (overrides [tool.funqy].seed)"),
    ] = None,
) -> None:
    """Run a script, printing its output and final value."""
    settings = _load_settings(seed)

    try:
        script_path, program = load_script(script)
    except (ScriptNotFoundError, ParseError) as e:
        _report_error(e)
        raise typer.Exit(code=1) from e

    logger.debug("Running %s", script_path)
    random_source = SeededRandomSource(settings.seed)
    importer = ScriptImporter(
        base_dir=script_path.parent,
        settings=settings,
        random_source=random_source,
        active=frozenset({script_path}),
    )

    try:
        result = run_program(
            program,
            settings=settings,
            random_source=random_source,
            importer=importer,
            on_print=_echo,
            fail_fast=False,
        )
    except (FunqyError, ScriptNotFoundError, ParseError) as e:
        _report_error(e)
        raise typer.Exit(code=1) from e

    if result.value is not None:
        out_console.print(f">> {format_value(result.value, settings.precision)}", markup=False, highlight=False)

    for record in result.assertions:
        if not record.passed:
            err_console.print(
                f"[red]✗ Assertion failed:[/red] expected {escape(record.expected)}, got {escape(record.actual)}",
            )

    if output is not None:
        err_console.print(f"[cyan]Exporting results to:[/cyan] {output}")
        export_results_to_toml(result, output, settings.precision)

    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def repl(
    *,
    history: Annotated[
        Path | None,
        typer.Option("--history", help="File to load and save the input history"),
    ] = None,
    seed: Annotated[
        int | None,
        typer.Option("--seed", help="Seed for measurement (overrides [tool.funqy].seed)"),
    ] = None,
) -> None:
    """Start an interactive session; every line shares one scope."""
    settings = _load_settings(seed)

    if history is not None:
        # Only needed for line editing; unavailable on some platforms
        import readline  # noqa: PLC0415

        if history.exists():
            readline.read_history_file(history)

    random_source = SeededRandomSource(settings.seed)
    importer = ScriptImporter(base_dir=Path.cwd(), settings=settings, random_source=random_source)
    env = Environment.empty()

    err_console.print("[cyan]FunQy REPL[/cyan] [dim](Ctrl-D to exit)[/dim]")
    try:
        while True:
            try:
                line = input(PROMPT)
            except EOFError:
                break
            if not line.strip():
                continue

            try:
                result = run_program(
                    parse_program(line),
                    env,
                    settings=settings,
                    random_source=random_source,
                    importer=importer,
                    on_print=_echo,
                )
            except (FunqyError, ScriptNotFoundError, ParseError) as e:
                _report_error(e)
                continue

            env = result.env
            if result.value is not None:
                out_console.print(
                    f">> {format_value(result.value, settings.precision)}",
                    markup=False,
                    highlight=False,
                )
    finally:
        if history is not None:
            readline.write_history_file(history)


@app.command()
def check(
    script: Annotated[
        Path,
        typer.Argument(help="Path to the FunQy script (the .fqy extension may be omitted)"),
    ],
) -> None:
    """Parse a script without running it and summarize its declarations."""
    try:
        script_path, program = load_script(script)
    except (ScriptNotFoundError, ParseError) as e:
        _report_error(e)
        raise typer.Exit(code=1) from e

    counts = Counter(type(decl).__name__.removesuffix("Decl") for decl in program.decls)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Declaration", style="bold")
    table.add_column("Count", justify="right", style="yellow")
    for kind, count in sorted(counts.items()):
        table.add_row(kind, str(count))

    err_console.print(
        Panel(
            table,
            title=f"[bold]Script: {escape(script_path.name)}[/bold]",
            subtitle=f"[dim]{len(program.decls)} declarations[/dim]",
            border_style="cyan",
        ),
    )
    err_console.print("[green]✓ Script is well-formed[/green]")


def main() -> None:
    app()
