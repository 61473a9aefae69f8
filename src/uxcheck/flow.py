"""
Scripted user-flow execution.

Runs each flow's steps in order against the shared page and stops at the
first failing step; steps after it are not executed and do not appear in
the result.  Console errors and uncaught exceptions are collected for the
whole flow so that ``assertNoConsoleErrors`` sees errors raised by any
earlier step.

Usage:
    results = await run_flow_tests(page, config.flows, config.origin, run_dir, config)
    for flow in results:
        print(flow.name, flow.passed, [s.label for s in flow.steps])
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from uxcheck.config import FlowConfig, FlowStep, ProjectConfig
from uxcheck.errors import ConfigurationError, FlowAssertionError, UnknownActionError
from uxcheck.events import EventBuffer, collect_page_events
from uxcheck.identity import IdentityFixture

logger = logging.getLogger("uxcheck.flow")

NAVIGATION_TIMEOUT_MS = 15_000
SELECTOR_TIMEOUT_MS = 10_000
SETTLE_MS = 500
DEFAULT_WAIT_MS = 1000


class StepKind(str, Enum):
    """Actions a flow step can perform."""

    NAVIGATE = "navigate"
    CLICK = "click"
    HOVER = "hover"
    TYPE = "type"
    PRESS_KEY = "pressKey"
    WAIT_FOR_SELECTOR = "waitForSelector"
    WAIT_FIXED = "waitFixed"
    ASSERT_VISIBLE = "assertVisible"
    ASSERT_TEXT = "assertText"
    ASSERT_URL = "assertUrl"
    ASSERT_NO_CONSOLE_ERRORS = "assertNoConsoleErrors"
    SCREENSHOT = "screenshot"
    IDENTITY_AUTH = "identityAuth"
    IDENTITY_SIGN_OUT = "identitySignOut"


@dataclass
class StepResult:
    """Result of executing a single flow step."""

    action: str
    label: str
    passed: bool
    duration_ms: int = 0
    error: str | None = None


@dataclass
class FlowResult:
    """Result of executing a flow; ``steps`` ends at the first failure."""

    name: str
    passed: bool
    steps: list[StepResult] = field(default_factory=list)

    @property
    def failed_step(self) -> StepResult | None:
        for step in self.steps:
            if not step.passed:
                return step
        return None


def describe_step(step: FlowStep) -> str:
    """Human-readable one-line rendering of a step."""
    try:
        kind = StepKind(step.action)
    except ValueError:
        return step.action

    match kind:
        case StepKind.NAVIGATE:
            return f"navigate {step.url}"
        case StepKind.CLICK:
            return f"click {step.selector}"
        case StepKind.HOVER:
            return f"hover {step.selector}"
        case StepKind.TYPE:
            return f'type "{step.value}" into {step.selector}'
        case StepKind.PRESS_KEY:
            return f"press {step.key}"
        case StepKind.WAIT_FOR_SELECTOR:
            return f"waitFor {step.selector}"
        case StepKind.WAIT_FIXED:
            return f"wait {step.ms or DEFAULT_WAIT_MS}ms"
        case StepKind.ASSERT_VISIBLE:
            return f"assertVisible {step.selector}"
        case StepKind.ASSERT_TEXT:
            return f'assertText "{step.value}"'
        case StepKind.ASSERT_URL:
            return f"assertUrl {step.url}"
        case StepKind.ASSERT_NO_CONSOLE_ERRORS:
            return "assertNoConsoleErrors"
        case StepKind.SCREENSHOT:
            return f"screenshot {step.name or ''}".rstrip()
        case StepKind.IDENTITY_AUTH:
            return f"identityAuth {step.email}"
        case StepKind.IDENTITY_SIGN_OUT:
            return "identitySignOut"


class FlowRunner:
    """
    Executes configured flows on a Playwright page.

    One runner serves every flow of a project run; each flow gets its own
    console-error subscription.
    """

    def __init__(
        self,
        page: Any,
        base_url: str,
        screenshot_dir: Path,
        config: ProjectConfig,
        identity: IdentityFixture | None = None,
    ) -> None:
        self.page = page
        self.base_url = base_url
        self.screenshot_dir = screenshot_dir
        self.config = config
        self.identity = identity
        if self.identity is None and config.identity is not None:
            self.identity = IdentityFixture(config.identity, origin=config.origin)

    async def run_flow(self, flow: FlowConfig) -> FlowResult:
        """Run one flow, halting at the first failed step."""
        step_results: list[StepResult] = []
        with collect_page_events(self.page, responses=False) as events:
            for step in flow.steps:
                result = await self._run_step(step, flow.name, events)
                step_results.append(result)
                if not result.passed:
                    logger.info("Flow %r failed at %r: %s", flow.name, result.label, result.error)
                    break

        return FlowResult(
            name=flow.name,
            passed=all(r.passed for r in step_results),
            steps=step_results,
        )

    async def _run_step(self, step: FlowStep, flow_name: str, events: EventBuffer) -> StepResult:
        start = time.monotonic()
        label = describe_step(step)
        try:
            await self._execute_step(step, flow_name, events)
        except Exception as e:
            return StepResult(
                action=step.action,
                label=label,
                passed=False,
                duration_ms=int((time.monotonic() - start) * 1000),
                error=getattr(e, "message", None) or str(e),
            )
        return StepResult(
            action=step.action,
            label=label,
            passed=True,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    async def _execute_step(self, step: FlowStep, flow_name: str, events: EventBuffer) -> None:
        """Execute a single flow step."""
        try:
            kind = StepKind(step.action)
        except ValueError:
            raise UnknownActionError(step.action) from None

        page = self.page
        match kind:
            case StepKind.NAVIGATE:
                await page.goto(
                    f"{self.base_url}{_require(step, 'url')}",
                    wait_until="load",
                    timeout=NAVIGATION_TIMEOUT_MS,
                )
                await page.wait_for_timeout(SETTLE_MS)
            case StepKind.CLICK:
                await page.click(_require(step, "selector"), timeout=SELECTOR_TIMEOUT_MS)
            case StepKind.HOVER:
                await page.hover(_require(step, "selector"), timeout=SELECTOR_TIMEOUT_MS)
            case StepKind.TYPE:
                await page.fill(
                    _require(step, "selector"), step.value or "", timeout=SELECTOR_TIMEOUT_MS
                )
            case StepKind.PRESS_KEY:
                await page.press(
                    step.selector or "body", _require(step, "key"), timeout=SELECTOR_TIMEOUT_MS
                )
            case StepKind.WAIT_FOR_SELECTOR:
                await page.wait_for_selector(
                    _require(step, "selector"),
                    state=step.state or "attached",
                    timeout=SELECTOR_TIMEOUT_MS,
                )
            case StepKind.WAIT_FIXED:
                await asyncio.sleep((step.ms or DEFAULT_WAIT_MS) / 1000)
            case StepKind.ASSERT_VISIBLE:
                await page.wait_for_selector(
                    _require(step, "selector"), state="visible", timeout=SELECTOR_TIMEOUT_MS
                )
            case StepKind.ASSERT_TEXT:
                await self._assert_text(step)
            case StepKind.ASSERT_URL:
                self._assert_url(step)
            case StepKind.ASSERT_NO_CONSOLE_ERRORS:
                messages = events.drain_console_errors()
                if messages:
                    raise FlowAssertionError(f"Console errors detected: {', '.join(messages)}")
            case StepKind.SCREENSHOT:
                name = step.name or re.sub(r"\s+", "-", f"{flow_name}-step").lower()
                self.screenshot_dir.mkdir(parents=True, exist_ok=True)
                await page.screenshot(
                    path=str(self.screenshot_dir / f"flow-{name}.png"), full_page=True
                )
            case StepKind.IDENTITY_AUTH:
                identity = self._require_identity(step.action)
                await identity.authenticate(
                    page, _require(step, "email"), _require(step, "password"), step.metadata
                )
            case StepKind.IDENTITY_SIGN_OUT:
                identity = self._require_identity(step.action)
                await identity.sign_out(page)

    async def _assert_text(self, step: FlowStep) -> None:
        selector = _require(step, "selector")
        expected = _require(step, "value")
        element = await self.page.wait_for_selector(selector, timeout=SELECTOR_TIMEOUT_MS)
        text = (await element.text_content()) or ""
        if expected not in text:
            raise FlowAssertionError(
                f'Expected text "{expected}" in {selector}, got "{text[:100]}"'
            )

    def _assert_url(self, step: FlowStep) -> None:
        url = _require(step, "url")
        expected = f"{self.base_url}{url}" if url.startswith("/") else url
        current = self.page.url
        if expected not in current:
            raise FlowAssertionError(f'Expected URL containing "{expected}", got "{current}"')

    def _require_identity(self, action: str) -> IdentityFixture:
        if self.identity is None:
            raise ConfigurationError(
                f'{action} requires an "identity" config section in .ux-test.json'
            )
        return self.identity


def _require(step: FlowStep, attr: str) -> str:
    value = getattr(step, attr)
    if value is None:
        raise ConfigurationError(f'{step.action} step requires "{attr}"')
    return value


async def run_flow_tests(
    page: Any,
    flows: list[FlowConfig],
    base_url: str,
    screenshot_dir: Path,
    config: ProjectConfig,
) -> list[FlowResult]:
    """Run flows sequentially on the shared page."""
    runner = FlowRunner(page, base_url, screenshot_dir, config)
    return [await runner.run_flow(flow) for flow in flows]
