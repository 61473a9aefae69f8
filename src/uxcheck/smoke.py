"""
Route smoke tests with responsive screenshots.

Routes are visited one after another on a single shared page.  Each visit
collects console errors, uncaught exceptions and failed responses, checks
that the page is not blank, and captures a full-page screenshot at every
breakpoint for visual comparison.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from uxcheck.events import collect_page_events
from uxcheck.visual import ScreenshotResult, VisualOptions, resolve_screenshot, screenshot_filename

logger = logging.getLogger("uxcheck.smoke")

NAVIGATION_TIMEOUT_MS = 15_000
NETWORK_IDLE_TIMEOUT_MS = 5_000
SETTLE_MS = 500
BREAKPOINT_SETTLE_MS = 300
VIEWPORT_HEIGHT = 720

# A page is blank when <body> has no visible text and at most one child.
# Sparse pages (a lone <canvas>, an image-only splash) are reported as blank too.
_JS_IS_BLANK = """
() => {
    const body = document.body;
    if (!body) return true;
    const text = body.innerText.trim();
    return text.length === 0 && body.children.length <= 1;
}
""".strip()


@dataclass
class RouteResult:
    """Smoke and visual outcome for one route."""

    route: str
    passed: bool
    duration_ms: int
    timed_out: bool = False
    is_blank: bool = False
    console_errors: list[str] = field(default_factory=list)
    network_failures: list[str] = field(default_factory=list)
    screenshots: list[ScreenshotResult] = field(default_factory=list)


def route_passed(
    timed_out: bool,
    is_blank: bool,
    console_errors: list[str],
    network_failures: list[str],
    screenshots: list[ScreenshotResult],
) -> bool:
    return (
        not timed_out
        and not is_blank
        and not console_errors
        and not network_failures
        and not any(s.failed for s in screenshots)
    )


async def run_smoke_tests(
    page: Any,
    routes: list[str],
    base_url: str,
    breakpoints: list[int],
    options: VisualOptions,
) -> list[RouteResult]:
    """
    Smoke-test routes in order on one page.

    Args:
        page: Playwright page shared across routes
        routes: Leading-slash paths
        base_url: App origin, e.g. ``http://localhost:5173``
        breakpoints: Viewport widths to capture, in order
        options: Baseline and run-directory settings

    Returns:
        One RouteResult per route, in the same order
    """
    options.run_dir.mkdir(parents=True, exist_ok=True)
    results: list[RouteResult] = []
    for route in routes:
        result = await check_route(page, route, base_url, breakpoints, options)
        status = "passed" if result.passed else "FAILED"
        logger.info("%s %s (%dms)", route, status, result.duration_ms)
        results.append(result)
    return results


async def check_route(
    page: Any,
    route: str,
    base_url: str,
    breakpoints: list[int],
    options: VisualOptions,
) -> RouteResult:
    """Visit one route and run the health, blank-page and visual checks."""
    start = time.monotonic()
    timed_out = False
    is_blank = False
    screenshots: list[ScreenshotResult] = []

    with collect_page_events(page) as events:
        try:
            await page.goto(f"{base_url}{route}", wait_until="load", timeout=NAVIGATION_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            timed_out = True
        except PlaywrightError as e:
            events.console_errors.append(e.message)
        else:
            await _wait_for_network_idle(page)
            await page.wait_for_timeout(SETTLE_MS)
            try:
                is_blank = bool(await page.evaluate(_JS_IS_BLANK))
                await _capture_breakpoints(page, route, breakpoints, options, screenshots)
            except PlaywrightTimeoutError:
                timed_out = True
            except Exception as e:
                events.console_errors.append(str(e))

    console_errors = list(events.console_errors)
    network_failures = list(events.network_failures)
    return RouteResult(
        route=route,
        passed=route_passed(timed_out, is_blank, console_errors, network_failures, screenshots),
        duration_ms=int((time.monotonic() - start) * 1000),
        timed_out=timed_out,
        is_blank=is_blank,
        console_errors=console_errors,
        network_failures=network_failures,
        screenshots=screenshots,
    )


async def _wait_for_network_idle(page: Any) -> None:
    try:
        await page.wait_for_load_state("networkidle", timeout=NETWORK_IDLE_TIMEOUT_MS)
    except PlaywrightError:
        logger.debug("Network did not go idle within %dms", NETWORK_IDLE_TIMEOUT_MS)


async def _capture_breakpoints(
    page: Any,
    route: str,
    breakpoints: list[int],
    options: VisualOptions,
    results: list[ScreenshotResult],
) -> None:
    for width in breakpoints:
        await page.set_viewport_size({"width": width, "height": VIEWPORT_HEIGHT})
        await page.wait_for_timeout(BREAKPOINT_SETTLE_MS)
        filename = screenshot_filename(route, width)
        current = options.run_dir / filename
        await page.screenshot(path=str(current), full_page=True)
        results.append(resolve_screenshot(current, width, filename, options))
