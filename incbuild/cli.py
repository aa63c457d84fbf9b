"""Thin CLI wrapper for incbuild.

This module provides the command-line interface using Typer.
All build logic is delegated to incbuild.builds.service.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from incbuild import __version__
from incbuild.builds.service import TARGET_HELP, Orchestrator
from incbuild.config import Settings, get_settings, print_settings_json
from incbuild.errors import IncbuildError, ProjectLoadError, ToolchainFailure
from incbuild.project.io import load_project
from incbuild.types import BuildReport, Goal

app = typer.Typer(
    name="incbuild",
    help="incbuild - incremental builds for a library and its derived artifacts",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"incbuild version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    root: Annotated[
        Path | None,
        typer.Option("--root", "-C", help="Working root of the project"),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Build the debug configuration"),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Show what would be rebuilt"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """incbuild - incremental builds for a library and its derived artifacts."""
    settings = get_settings()
    overrides: dict[str, object] = {}
    if root is not None:
        overrides["root"] = root
    if debug:
        overrides["debug"] = True
    if verbose:
        overrides["log_level"] = "DEBUG"
    if overrides:
        settings = settings.model_copy(update=overrides)

    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"settings": settings, "dry_run": dry_run}


def _settings(ctx: typer.Context) -> Settings:
    if ctx.obj is None:
        return get_settings()
    return ctx.obj["settings"]


def _orchestrator(ctx: typer.Context) -> Orchestrator:
    settings = _settings(ctx)
    try:
        project = load_project(Path(settings.root) / settings.project_file)
    except ProjectLoadError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None
    return Orchestrator(settings, project)


def _report_failure(error: IncbuildError) -> None:
    if isinstance(error, ToolchainFailure):
        if error.output:
            console.print(error.output.rstrip(), markup=False, highlight=False)
        console.print(f"[red]✗ {escape(str(error))}[/red]")
        if error.target:
            console.print(f"  Target:  {error.target}", markup=False)
        if error.command:
            console.print(f"  Command: {error.command}", markup=False)
    else:
        console.print(f"[red]✗ {escape(str(error))}[/red]")


def _print_report(report: BuildReport) -> None:
    if not report.built:
        console.print(f"[blue]{report.goal}: everything is up to date[/blue]")
        return
    verb = "Would build" if report.dry_run else "Built"
    for name in report.built:
        console.print(f"  [green]{verb} {name}[/green]")
    for name in report.removed_intermediates:
        console.print(f"  Removed intermediate {name}")


def _run_goal(ctx: typer.Context, goal: Goal) -> None:
    orchestrator = _orchestrator(ctx)
    try:
        report = orchestrator.build(goal, dry_run=ctx.obj["dry_run"])
    except IncbuildError as e:
        _report_failure(e)
        raise typer.Exit(code=1) from None
    _print_report(report)


@app.command("all")
def build_all(ctx: typer.Context) -> None:
    """Build the library, example, documentation and test binary."""
    _run_goal(ctx, Goal.ALL)


@app.command("lib")
def build_lib(ctx: typer.Context) -> None:
    """Build the library only."""
    _run_goal(ctx, Goal.LIB)


@app.command("example")
def build_example(ctx: typer.Context) -> None:
    """Build the library and the example binary."""
    _run_goal(ctx, Goal.EXAMPLE)


@app.command("doc")
def build_doc(ctx: typer.Context) -> None:
    """Generate documentation."""
    _run_goal(ctx, Goal.DOC)


@app.command("test")
def run_test(
    ctx: typer.Context,
    name: Annotated[
        str | None,
        typer.Argument(help="Only run tests matching NAME (also accepts NAME=foo)"),
    ] = None,
    name_option: Annotated[
        str | None,
        typer.Option("--name", help="Only run tests matching this name"),
    ] = None,
) -> None:
    """Build and run the test binary.

    The exit status is the test binary's.
    """
    test_name = name_option or name or _settings(ctx).test_name
    if test_name and test_name.startswith("NAME="):
        test_name = test_name.removeprefix("NAME=") or None

    orchestrator = _orchestrator(ctx)
    try:
        report, exit_code = orchestrator.run_tests(test_name, dry_run=ctx.obj["dry_run"])
    except IncbuildError as e:
        _report_failure(e)
        raise typer.Exit(code=1) from None

    _print_report(report)
    if exit_code != 0:
        console.print(f"[red]✗ Tests failed (exit code {exit_code})[/red]")
        raise typer.Exit(code=exit_code if exit_code > 0 else 1)
    if not report.dry_run:
        console.print("[green]✓ Tests passed[/green]")


@app.command("clean")
def clean(ctx: typer.Context) -> None:
    """Remove all produced artifacts, including the sub-project's."""
    orchestrator = _orchestrator(ctx)
    removed = orchestrator.clean()
    if not removed:
        console.print("[yellow]Nothing to clean[/yellow]")
        return
    for name in removed:
        console.print(f"  Removed {name}")


@app.command("help")
def list_targets(ctx: typer.Context) -> None:
    """List targets."""
    settings = _settings(ctx)
    project_path = Path(settings.root) / settings.project_file
    if project_path.exists():
        targets = _orchestrator(ctx).describe_targets()
    else:
        targets = list(TARGET_HELP.items())

    console.print("[bold]Targets:[/bold]")
    for name, text in targets:
        console.print(f"  [green]{name:<8}[/green] {text}")


@app.command()
def config(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = _settings(ctx)
    if json_output:
        typer.echo(print_settings_json(settings))
        return

    test_name_display = settings.test_name or "(all tests)"
    search_display = ", ".join(settings.search_paths) or "(none)"
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Working root:        {settings.root}")
    console.print(f"  Project file:        {settings.project_file}")
    console.print(f"  Build directory:     {settings.build_dir}")
    console.print()
    console.print("[bold]Toolchain:[/bold]")
    console.print(f"  Compiler:            {settings.compiler}")
    console.print(f"  Doc generator:       {settings.doc_tool}")
    console.print(f"  Configuration:       {'debug' if settings.debug else 'release'}")
    console.print(f"  Search paths:        {search_display}")
    console.print()
    console.print("[bold]Tests:[/bold]")
    console.print(f"  Test threads:        {settings.test_threads}")
    console.print(f"  Test filter:         {test_name_display}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Build timeout:       {settings.build_timeout}")
    console.print(f"  Probe timeout:       {settings.probe_timeout}")
