"""
Run orchestration.

Provides the top-level run that:
1. Loads the project's ``.ux-test.json``
2. Resolves routes (configured or discovered) and drops skipped ones
3. Reuses or starts the dev server
4. Runs smoke, accessibility and flow phases on one browser
5. Reports, then closes the browser and stops the server

Scan mode repeats this for every project found under the scan directories,
one project at a time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal

from playwright.async_api import Error as PlaywrightError
from rich.console import Console

from uxcheck.accessibility import AccessibilityResult, run_a11y_tests
from uxcheck.browser import launch_browser
from uxcheck.config import (
    ProjectConfig,
    config_exists,
    load_config,
    load_global_config,
    should_skip_route,
)
from uxcheck.discover import discover_routes
from uxcheck.errors import ConfigurationError, ServerError
from uxcheck.flow import FlowResult, run_flow_tests
from uxcheck.reporter import (
    console,
    print_a11y_results,
    print_flow_results,
    print_header,
    print_smoke_results,
    print_summary,
    write_json_report,
)
from uxcheck.server import ServerHandle, ensure_server, stop_server
from uxcheck.smoke import RouteResult, run_smoke_tests
from uxcheck.visual import BASELINES_DIR, RUNS_DIR, VisualOptions

logger = logging.getLogger("uxcheck.runner")

RunMode = Literal["all", "smoke", "flows", "a11y"]


@dataclass(frozen=True)
class RunOptions:
    """Options for a uxcheck run, fixed for its whole duration."""

    target: Path = Path(".")
    all_projects: bool = False
    scan_dirs: tuple[str, ...] = ()
    mode: RunMode = "all"
    flow_name: str | None = None
    headed: bool = False
    update_baselines: bool = False
    no_visual: bool = False
    no_a11y: bool = False


def resolve_routes(config: ProjectConfig) -> list[str]:
    """Configured or discovered routes, minus skipped ones."""
    routes = list(config.routes) if config.routes is not None else discover_routes(config)
    if config.skip_routes:
        routes = [r for r in routes if not should_skip_route(r, config.skip_routes)]
    return routes


def run_directory(project_dir: Path, now: datetime | None = None) -> Path:
    """``screenshots/runs/<YYYY-MM-DDTHH-MM-SS>`` under the project."""
    stamp = (now or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
    return project_dir / RUNS_DIR / stamp


async def run(options: RunOptions, out: Console = console) -> bool:
    """Run one project, or every discovered project in scan mode."""
    if options.all_projects:
        return await run_all(options, out)
    return await run_project(options.target.resolve(), options, out)


def find_projects(scan_dirs: list[str]) -> list[Path]:
    """Immediate subdirectories of the scan directories that hold a config file."""
    projects = []
    for parent in scan_dirs:
        parent_dir = Path(parent).expanduser()
        try:
            entries = sorted(parent_dir.iterdir())
        except OSError:
            logger.debug("Cannot scan %s", parent_dir)
            continue
        projects.extend(entry for entry in entries if entry.is_dir() and config_exists(entry))
    return projects


async def run_all(options: RunOptions, out: Console = console) -> bool:
    """Run every project found under the scan directories, sequentially."""
    scan_dirs = list(options.scan_dirs)
    if not scan_dirs:
        global_config = load_global_config()
        scan_dirs = list(global_config.scan_dirs) if global_config else []
    if not scan_dirs:
        scan_dirs = [str(Path.cwd())]

    projects = find_projects(scan_dirs)
    if not projects:
        out.print("[yellow]No projects with .ux-test.json found[/yellow]")
        return True

    out.print(f"\nFound {len(projects)} projects with UX test configs\n")
    all_passed = True
    for project_dir in projects:
        try:
            passed = await run_project(project_dir, options, out)
        except Exception:
            logger.exception("Run failed for %s", project_dir)
            out.print(f"[red]Run failed for {project_dir}[/red]")
            passed = False
        all_passed = all_passed and passed
    return all_passed


async def run_project(project_dir: Path, options: RunOptions, out: Console = console) -> bool:
    """
    Run all configured phases for one project.

    Returns:
        True if every smoke, accessibility and flow check passed
    """
    try:
        config = load_config(project_dir)
    except ConfigurationError as e:
        out.print(f"[red]Config:[/red] {e.message}")
        return False
    if config is None:
        out.print(f"[yellow]No .ux-test.json found in {project_dir}[/yellow]")
        return False

    origin = config.origin
    output_dir = run_directory(project_dir)
    visual = VisualOptions(
        baselines_dir=project_dir / BASELINES_DIR,
        run_dir=output_dir,
        threshold=config.visual_threshold,
        enabled=config.visual and not options.no_visual,
        update_baselines=options.update_baselines,
    )

    print_header(project_dir, origin, out)

    try:
        routes = resolve_routes(config)
    except OSError as e:
        out.print(f"[red]Routes:[/red] {e}")
        return False

    server: ServerHandle | None = None
    try:
        server = await ensure_server(config)
        if server.started:
            out.print(f"Started dev server ({config.start_command})")

        smoke_results: list[RouteResult] = []
        a11y_results: list[AccessibilityResult] = []
        flow_results: list[FlowResult] = []

        async with launch_browser(headless=False if options.headed else None) as browser:
            page = await browser.new_page()

            if options.mode in ("all", "smoke"):
                smoke_results = await run_smoke_tests(
                    page, routes, origin, list(config.breakpoints), visual
                )
                print_smoke_results(smoke_results, out)

            if options.mode in ("all", "a11y") and config.a11y and not options.no_a11y:
                a11y_results = await run_a11y_tests(browser, routes, origin, config.a11y_rules)
                print_a11y_results(a11y_results, out)

            if options.mode in ("all", "flows") and config.flows:
                flows = list(config.flows)
                if options.flow_name:
                    flows = [f for f in flows if f.name == options.flow_name]
                    if not flows:
                        out.print(f'[yellow]No flow named "{options.flow_name}" found[/yellow]')
                if flows:
                    flow_results = await run_flow_tests(page, flows, origin, output_dir, config)
                    print_flow_results(flow_results, out)

        all_passed = print_summary(smoke_results, flow_results, output_dir, a11y_results, out)
        write_json_report(
            output_dir, project_dir.name, smoke_results, flow_results, a11y_results, all_passed
        )
        return all_passed
    except ServerError as e:
        out.print(f"[red]Server:[/red] {e.message}")
        return False
    except PlaywrightError as e:
        out.print(f"[red]Browser:[/red] {e.message}")
        return False
    finally:
        await stop_server(server)
