"""Shellware command-line interface."""

from __future__ import annotations

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from shellware.config import Settings, get_settings
from shellware.errors import ConfigurationError
from shellware.framework import ShellwareFramework
from shellware.logging_utils import configure_logging
from shellware.plugins.s3_uri import run_selftest

app = typer.Typer(
    name="shellware",
    help="Command-line middleware: route, rewrite or block shell input before it runs.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


def _settings() -> Settings:
    try:
        return get_settings()
    except ConfigurationError as exc:
        err_console.print(f"[red]invalid configuration:[/red] {escape(str(exc))}")
        raise typer.Exit(2) from exc


def _load_framework(settings: Settings | None = None) -> ShellwareFramework:
    settings = settings or _settings()
    framework = ShellwareFramework(settings)
    framework.load_plugins()
    return framework


@app.command()
def dispatch(line: str = typer.Argument(..., help="Command line as typed")) -> None:
    """Print the line the shell should execute.

    Exit code 1 means a plugin blocked the line; the reason is on stderr.
    """

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        # never stop the shell over a bad configuration
        err_console.print(f"shellware: {exc}", markup=False, highlight=False)
        typer.echo(line)
        return
    configure_logging(profile="hook", level=settings.log_level)
    try:
        result = _load_framework(settings).dispatch(line)
    except Exception:
        logger.opt(exception=True).warning("dispatch.failed line={!r}", line)
        typer.echo(line)
        return
    if result.blocked:
        if result.message:
            err_console.print(result.message, markup=False, highlight=False)
        typer.echo(result.line)
        raise typer.Exit(1)
    typer.echo(result.line)


@app.command()
def route(lines: list[str] = typer.Argument(..., help="Command lines to route")) -> None:
    """Show which plugins each line routes to."""

    settings = _settings()
    configure_logging(level=settings.log_level)
    framework = _load_framework(settings)

    table = Table(title="Routing")
    table.add_column("Line", overflow="fold")
    table.add_column("Plugins")
    routed = 0
    for line in lines:
        names = [plugin.name for plugin in framework.pipeline.route(line)]
        if names:
            routed += 1
        table.add_row(escape(line), ", ".join(names) or "[dim]-[/dim]")
    console.print(table)
    console.print(f"{routed}/{len(lines)} lines routed")
    console.print(_stats_table(framework))


@app.command()
def status() -> None:
    """Show registered plugins, the pattern index and provider hooks."""

    settings = _settings()
    configure_logging(level=settings.log_level)
    framework = _load_framework(settings)

    plugins = Table(title="Plugins")
    plugins.add_column("Name")
    plugins.add_column("Patterns")
    plugins.add_column("Commands")
    for plugin in framework.registry.plugins():
        plugins.add_row(plugin.name, " ".join(plugin.patterns), " ".join(plugin.commands) or "*")
    console.print(plugins)

    index = Table(title="Pattern index")
    index.add_column("Pattern")
    index.add_column("Plugins")
    for pattern, owners in framework.registry.index().items():
        index.add_row(pattern, ", ".join(owners))
    console.print(index)

    hooks = framework.hook_report()
    if hooks:
        for hook_name, provider_names in hooks.items():
            console.print(f"{hook_name}: {', '.join(provider_names)}")
    else:
        console.print("(no hook implementations)")
    for name, reason in framework.failed_providers.items():
        err_console.print(f"[red]provider {name} failed:[/red] {escape(reason)}")
    console.print(_stats_table(framework))


@app.command()
def selftest() -> None:
    """Run the S3 URI rewriter regression matrix."""

    configure_logging(level=_settings().log_level)
    results = run_selftest()

    table = Table(title="S3 URI rewriter")
    table.add_column("")
    table.add_column("Input", overflow="fold")
    table.add_column("Output", overflow="fold")
    failed = 0
    for result in results:
        if result.passed:
            table.add_row("[green]ok[/green]", escape(result.case.line), escape(result.actual))
        else:
            failed += 1
            table.add_row(
                "[red]FAIL[/red]",
                escape(result.case.line),
                f"{escape(result.actual)}\n[dim]expected {escape(result.case.expected)}[/dim]",
            )
    console.print(table)
    console.print(f"{len(results) - failed} passed, {failed} failed")
    if failed:
        raise typer.Exit(1)


def _stats_table(framework: ShellwareFramework) -> Table:
    table = Table(title="Detector")
    table.add_column("Counter")
    table.add_column("Value", justify="right")
    for name, value in framework.pipeline.detector.stats.as_dict().items():
        table.add_row(name, str(value))
    return table
