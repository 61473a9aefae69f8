"""Console and JSON reporting of run results."""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from uxcheck.accessibility import AccessibilityResult
from uxcheck.flow import FlowResult
from uxcheck.smoke import RouteResult
from uxcheck.visual import ScreenshotResult

console = Console()

ROUTE_COLUMN = 24


def format_diff_percent(pct: float) -> str:
    if pct < 0.01:
        return "<0.01%"
    if pct < 10:
        return f"{pct:.2f}%"
    return f"{pct:.1f}%"


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


def _status(passed: bool) -> str:
    return "[green]PASS[/green]" if passed else "[red]FAIL[/red]"


def _breakpoint_badge(shot: ScreenshotResult) -> str:
    if shot.baseline_created:
        return f"{shot.width} [cyan]new[/cyan]"
    if shot.baseline_updated:
        return f"{shot.width} [cyan]updated[/cyan]"
    if shot.visual is not None:
        if shot.visual.match:
            return f"{shot.width} [green]ok[/green]"
        if shot.visual.dimension_mismatch:
            return f"{shot.width} [red]resize[/red]"
        return f"{shot.width} [red]{format_diff_percent(shot.visual.diff_percent)}[/red]"
    return f"{shot.width} captured"


def print_header(project_dir: Path, origin: str, out: Console = console) -> None:
    name = project_dir.name
    out.print()
    out.print(f"[bold]{escape(name)}[/bold] ({escape(origin)})")
    out.print("=" * (len(name) + 20))


def print_smoke_results(results: list[RouteResult], out: Console = console) -> None:
    out.print()
    out.print("[bold]SMOKE TESTS[/bold]")
    for r in results:
        out.print(f"  {escape(r.route.ljust(ROUTE_COLUMN))} {_status(r.passed)} {r.duration_ms}ms")
        if r.timed_out:
            out.print("    Timed out")
        if r.is_blank:
            out.print("    Page is blank")
        for err in r.console_errors:
            out.print(f"    [yellow]console:[/yellow] {escape(truncate(err, 80))}")
        for failure in r.network_failures:
            out.print(f"    [yellow]network:[/yellow] {escape(truncate(failure, 80))}")
        if r.screenshots:
            out.print("    " + "  ".join(_breakpoint_badge(s) for s in r.screenshots))


def print_flow_results(results: list[FlowResult], out: Console = console) -> None:
    if not results:
        return
    out.print()
    out.print("[bold]FLOW TESTS[/bold]")
    for flow in results:
        out.print(f"  {_status(flow.passed)} {escape(flow.name)}")
        for i, step in enumerate(flow.steps, start=1):
            timing = f" {step.duration_ms}ms" if step.duration_ms else ""
            label = escape(step.label.ljust(ROUTE_COLUMN))
            out.print(f"    {i}. {label} {_status(step.passed)}{timing}")
            if not step.passed and step.error:
                out.print(f"       [yellow]{escape(truncate(step.error, 70))}[/yellow]")


def print_a11y_results(results: list[AccessibilityResult], out: Console = console) -> None:
    if not results:
        return
    out.print()
    out.print("[bold]ACCESSIBILITY (WCAG 2.1 AA)[/bold]")
    for r in results:
        line = f"  {escape(r.route.ljust(ROUTE_COLUMN))} {_status(r.passed)} {r.duration_ms}ms"
        if r.error:
            out.print(line)
            out.print(f"    [yellow]{escape(truncate(r.error, 80))}[/yellow]")
            continue
        if not r.passed:
            line += f"  {r.violation_count} violations, {r.affected_node_count} elements"
        out.print(line)
        for v in r.violations:
            colour = "red" if v.is_severe else "yellow" if v.impact == "moderate" else "green"
            rule = f"[{colour}]{escape(v.rule_id)}[/{colour}]"
            out.print(f"    {rule} ({v.impact}) x {v.affected_nodes}")
            out.print(f"       {escape(v.description)}")
            if v.first_target:
                out.print(f"       -> {escape(v.first_target)}")


def print_summary(
    smoke_results: list[RouteResult],
    flow_results: list[FlowResult],
    output_dir: Path | None,
    a11y_results: list[AccessibilityResult] | None = None,
    out: Console = console,
) -> bool:
    """Print totals and return True when every check passed."""
    a11y_results = a11y_results or []
    units: list[Any] = [*smoke_results, *flow_results, *a11y_results]
    total = len(units)
    passed = sum(1 for u in units if u.passed)
    all_passed = passed == total

    out.print()
    if all_passed:
        out.print(f"RESULTS: [green]{passed}/{total} passed[/green]")
    else:
        out.print(f"RESULTS: [red]{passed}/{total} passed, {total - passed} failed[/red]")

    shots = [s for r in smoke_results for s in r.screenshots]
    if shots:
        created = sum(1 for s in shots if s.baseline_created)
        updated = sum(1 for s in shots if s.baseline_updated)
        compared = [(s.filename, s.visual) for s in shots if s.visual is not None]
        failed = [(name, v) for name, v in compared if not v.match]
        out.print(f"Screenshots: {len(shots)} total")
        if created:
            out.print(f"  No baselines found, created {created} baselines")
        if updated:
            out.print(f"  Updated {updated} baselines")
        if compared:
            matched = len(compared) - len(failed)
            out.print(f"  Compared {len(compared)}: {matched} matched, {len(failed)} failed")
        for name, v in failed:
            if v.dimension_mismatch and v.current_size and v.baseline_size:
                cw, ch = v.current_size
                bw, bh = v.baseline_size
                out.print(f"    {escape(name)}: dimension mismatch ({cw}x{ch} vs {bw}x{bh})")
            else:
                out.print(
                    f"    {escape(name)}: {format_diff_percent(v.diff_percent)} diff"
                    f" -> {v.diff_path}"
                )

    if a11y_results:
        clean = sum(1 for r in a11y_results if r.passed)
        violations = sum(r.violation_count for r in a11y_results)
        nodes = sum(r.affected_node_count for r in a11y_results)
        line = f"Accessibility: {clean}/{len(a11y_results)} routes clean"
        if violations:
            line += f", {violations} violations across {nodes} elements"
        out.print(line)

    if output_dir is not None:
        out.print(f"Output: {output_dir}")
    out.print()
    return all_passed


def _jsonable(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def write_json_report(
    output_dir: Path,
    project_name: str,
    smoke_results: list[RouteResult],
    flow_results: list[FlowResult],
    a11y_results: list[AccessibilityResult],
    all_passed: bool,
) -> Path:
    """Write every result record to ``report.json`` in the run directory."""
    output_dir.mkdir(parents=True, exist_ok=True)
    report = {
        "project_name": project_name,
        "generated_at": datetime.now(UTC).isoformat(),
        "passed": all_passed,
        "routes": [asdict(r) for r in smoke_results],
        "flows": [asdict(f) for f in flow_results],
        "accessibility": [
            {
                **asdict(r),
                "violation_count": r.violation_count,
                "affected_node_count": r.affected_node_count,
            }
            for r in a11y_results
        ],
    }
    path = output_dir / "report.json"
    path.write_text(json.dumps(report, indent=2, default=_jsonable), encoding="utf-8")
    return path
