"""
uxcheck command-line interface.

Examples:
    uxcheck run                          # Test the project in the current directory
    uxcheck run ../shop --mode smoke     # Smoke + visual checks only
    uxcheck run --flow "Sign in"         # One flow
    uxcheck run --update-baselines       # Accept current screenshots
    uxcheck run --all --scan-dir ~/code  # Every project under ~/code
    uxcheck routes                       # Show the routes that would be tested
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console

from uxcheck import __version__
from uxcheck.config import load_config
from uxcheck.errors import ConfigurationError
from uxcheck.runner import RunOptions, resolve_routes, run

app = typer.Typer(
    help="Smoke, accessibility, visual-regression and flow checks for local web apps.",
    no_args_is_help=True,
)

console = Console()

MODES = ("all", "smoke", "flows", "a11y")


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"uxcheck {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.getenv("UXCHECK_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """uxcheck CLI main callback for global options."""
    configure_logging(verbose)


@app.command("run")
def run_command(
    target: Path = typer.Argument(Path("."), help="Project directory containing .ux-test.json"),
    all_projects: bool = typer.Option(
        False, "--all", help="Test every project with a .ux-test.json under the scan dirs"
    ),
    scan_dir: list[str] = typer.Option(
        [], "--scan-dir", help="Directory to scan in --all mode (repeatable)"
    ),
    mode: str = typer.Option("all", "--mode", "-m", help="all, smoke, flows or a11y"),
    flow: str | None = typer.Option(None, "--flow", help="Run only the flow with this name"),
    headed: bool = typer.Option(False, "--headed", help="Show the browser window"),
    update_baselines: bool = typer.Option(
        False, "--update-baselines", help="Overwrite baselines with the current screenshots"
    ),
    no_visual: bool = typer.Option(False, "--no-visual", help="Skip baseline comparison"),
    no_a11y: bool = typer.Option(False, "--no-a11y", help="Skip accessibility audits"),
) -> None:
    """
    Run UX checks for a project.

    Exits with code 1 if any route, flow or audit failed.
    """
    if mode not in MODES:
        typer.echo(f"Unknown mode: {mode} (expected one of {', '.join(MODES)})", err=True)
        raise typer.Exit(code=2)

    options = RunOptions(
        target=target,
        all_projects=all_projects,
        scan_dirs=tuple(scan_dir),
        mode=mode,  # type: ignore[arg-type]
        flow_name=flow,
        headed=headed,
        update_baselines=update_baselines,
        no_visual=no_visual,
        no_a11y=no_a11y,
    )
    passed = asyncio.run(run(options, console))
    raise typer.Exit(code=0 if passed else 1)


@app.command("routes")
def routes_command(
    target: Path = typer.Argument(Path("."), help="Project directory containing .ux-test.json"),
) -> None:
    """Print the routes that would be tested, after discovery and skips."""
    project_dir = target.resolve()
    try:
        config = load_config(project_dir)
    except ConfigurationError as e:
        typer.echo(f"Config: {e.message}", err=True)
        raise typer.Exit(code=1)
    if config is None:
        typer.echo(f"No .ux-test.json found in {project_dir}", err=True)
        raise typer.Exit(code=1)

    try:
        routes = resolve_routes(config)
    except OSError as e:
        typer.echo(f"Routes: {e}", err=True)
        raise typer.Exit(code=1)
    for route in routes:
        typer.echo(route)


def main() -> None:
    app(standalone_mode=True)


if __name__ == "__main__":
    main()
