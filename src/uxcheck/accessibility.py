"""
WCAG accessibility audits using axe-core.

Each route is audited in its own browser context so that audits never
share state with the smoke-test page.  axe-core is injected from the CDN
when the app does not already bundle it.

Usage:
    results = await run_a11y_tests(browser, ["/", "/about"], origin, config.a11y_rules)
    for r in results:
        print(r.route, r.violation_count)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import Error as PlaywrightError

from uxcheck.config import A11yRules

logger = logging.getLogger("uxcheck.accessibility")

# axe-core script (minified version loaded via CDN)
AXE_CDN_URL = "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.8.3/axe.min.js"

WCAG_TAGS = ["wcag2a", "wcag2aa", "wcag21a", "wcag21aa"]
AUDIT_VIEWPORT = {"width": 1024, "height": 720}
NAVIGATION_TIMEOUT_MS = 15_000
NETWORK_IDLE_TIMEOUT_MS = 5_000
SETTLE_MS = 300

_JS_RUN_AXE = """
async ([context, options]) => await axe.run(context ?? document, options)
""".strip()


@dataclass
class A11yViolation:
    """A single axe-core rule violation on a page."""

    rule_id: str  # e.g. "color-contrast"
    impact: str  # "critical", "serious", "moderate", "minor"
    description: str
    help_url: str
    affected_nodes: int
    first_target: str | None = None

    @property
    def is_severe(self) -> bool:
        return self.impact in ("critical", "serious")


@dataclass
class AccessibilityResult:
    """Audit outcome for one route."""

    route: str
    passed: bool
    duration_ms: int
    violations: list[A11yViolation] = field(default_factory=list)
    error: str | None = None

    @property
    def violation_count(self) -> int:
        return len(self.violations)

    @property
    def affected_node_count(self) -> int:
        return sum(v.affected_nodes for v in self.violations)


class AccessibilityChecker:
    """
    Accessibility checker using axe-core.

    Runs axe-core in the browser restricted to a WCAG tag set, with
    configured rules disabled and the audit scoped by include/exclude
    selectors.
    """

    def __init__(self, page: Any, rules: A11yRules | None = None) -> None:
        """
        Initialize the accessibility checker.

        Args:
            page: Playwright Page instance
            rules: Optional rule adjustments from the project config
        """
        self.page = page
        self.rules = rules or A11yRules()
        self._axe_loaded = False

    async def _ensure_axe_loaded(self) -> None:
        """Load axe-core into the page if not already loaded."""
        if self._axe_loaded:
            return

        has_axe = await self.page.evaluate("typeof window.axe !== 'undefined'")
        if not has_axe:
            await self.page.add_script_tag(url=AXE_CDN_URL)
            await self.page.wait_for_function("typeof window.axe !== 'undefined'", timeout=10000)
        self._axe_loaded = True

    def build_context(self) -> dict[str, Any] | None:
        """axe context object, or None to audit the whole document."""
        context: dict[str, Any] = {}
        if self.rules.include:
            context["include"] = [[selector] for selector in self.rules.include]
        if self.rules.exclude:
            context["exclude"] = [[selector] for selector in self.rules.exclude]
        return context or None

    def build_options(self, tags: list[str]) -> dict[str, Any]:
        options: dict[str, Any] = {"runOnly": {"type": "tag", "values": tags}}
        if self.rules.disable:
            options["rules"] = {rule_id: {"enabled": False} for rule_id in self.rules.disable}
        return options

    async def audit(self, tags: list[str] | None = None) -> list[A11yViolation]:
        """
        Run axe-core and return its violations.

        Args:
            tags: axe tag filter, defaults to WCAG 2.1 A/AA

        Returns:
            Violations in the order axe reports them
        """
        await self._ensure_axe_loaded()
        raw = await self.page.evaluate(
            _JS_RUN_AXE, [self.build_context(), self.build_options(tags or WCAG_TAGS)]
        )
        return parse_violations(raw)


def parse_violations(results: dict[str, Any]) -> list[A11yViolation]:
    """Parse raw axe-core results into violations."""
    violations = []
    for v in results.get("violations", []):
        nodes = v.get("nodes", [])
        target = nodes[0].get("target", []) if nodes else []
        violations.append(
            A11yViolation(
                rule_id=v.get("id", ""),
                impact=v.get("impact") or "minor",
                description=v.get("help", ""),
                help_url=v.get("helpUrl", ""),
                affected_nodes=len(nodes),
                first_target=str(target[0]) if target else None,
            )
        )
    return violations


async def run_a11y_tests(
    browser: Any,
    routes: list[str],
    base_url: str,
    rules: A11yRules | None = None,
) -> list[AccessibilityResult]:
    """Audit each route in a fresh browser context."""
    results: list[AccessibilityResult] = []
    for route in routes:
        start = time.monotonic()
        context = None
        try:
            context = await browser.new_context(viewport=AUDIT_VIEWPORT)
            page = await context.new_page()
            await page.goto(
                f"{base_url}{route}", wait_until="domcontentloaded", timeout=NAVIGATION_TIMEOUT_MS
            )
            try:
                await page.wait_for_load_state("networkidle", timeout=NETWORK_IDLE_TIMEOUT_MS)
            except PlaywrightError:
                pass
            await page.wait_for_timeout(SETTLE_MS)

            violations = await AccessibilityChecker(page, rules).audit()
            results.append(
                AccessibilityResult(
                    route=route,
                    passed=not violations,
                    duration_ms=int((time.monotonic() - start) * 1000),
                    violations=violations,
                )
            )
        except Exception as e:
            logger.info("Accessibility audit failed for %s: %s", route, e)
            results.append(
                AccessibilityResult(
                    route=route,
                    passed=False,
                    duration_ms=int((time.monotonic() - start) * 1000),
                    error=getattr(e, "message", None) or str(e),
                )
            )
        finally:
            if context is not None:
                await context.close()
    return results
