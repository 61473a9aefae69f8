"""Tests for axe-core accessibility audits."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from uxcheck.accessibility import (
    AXE_CDN_URL,
    WCAG_TAGS,
    A11yViolation,
    AccessibilityChecker,
    AccessibilityResult,
    parse_violations,
    run_a11y_tests,
)
from uxcheck.config import A11yRules

AXE_RESULTS = {
    "violations": [
        {
            "id": "color-contrast",
            "impact": "serious",
            "help": "Elements must have sufficient color contrast",
            "helpUrl": "https://dequeuniversity.com/rules/axe/4.8/color-contrast",
            "nodes": [{"target": [".btn"]}, {"target": [".link"]}],
        },
        {
            "id": "region",
            "impact": None,
            "help": "All page content should be contained by landmarks",
            "helpUrl": "https://dequeuniversity.com/rules/axe/4.8/region",
            "nodes": [{"target": ["#footer"]}],
        },
    ]
}


def _page(axe_present: bool = True, results: dict | None = None) -> MagicMock:
    page = MagicMock()

    async def evaluate(script, arg=None):
        if "typeof window.axe" in script:
            return axe_present
        return results if results is not None else {"violations": []}

    page.evaluate = AsyncMock(side_effect=evaluate)
    page.add_script_tag = AsyncMock()
    page.wait_for_function = AsyncMock()
    page.goto = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    return page


def _browser(pages: list[MagicMock]) -> tuple[MagicMock, list[MagicMock]]:
    browser = MagicMock()
    contexts = []
    for page in pages:
        context = MagicMock()
        context.new_page = AsyncMock(return_value=page)
        context.close = AsyncMock()
        contexts.append(context)
    browser.new_context = AsyncMock(side_effect=contexts)
    return browser, contexts


class TestParseViolations:
    def test_parses_fields(self) -> None:
        violations = parse_violations(AXE_RESULTS)

        assert len(violations) == 2
        first = violations[0]
        assert first.rule_id == "color-contrast"
        assert first.impact == "serious"
        assert first.description == "Elements must have sufficient color contrast"
        assert first.affected_nodes == 2
        assert first.first_target == ".btn"
        assert first.is_severe is True

    def test_missing_impact_defaults_to_minor(self) -> None:
        violations = parse_violations(AXE_RESULTS)

        assert violations[1].impact == "minor"
        assert violations[1].is_severe is False

    def test_no_violations(self) -> None:
        assert parse_violations({"violations": []}) == []
        assert parse_violations({}) == []


class TestAccessibilityResult:
    def test_counts(self) -> None:
        result = AccessibilityResult(
            route="/",
            passed=False,
            duration_ms=10,
            violations=[
                A11yViolation("a", "minor", "", "", affected_nodes=2),
                A11yViolation("b", "critical", "", "", affected_nodes=3),
            ],
        )

        assert result.violation_count == 2
        assert result.affected_node_count == 5


class TestAccessibilityChecker:
    def test_default_options(self) -> None:
        checker = AccessibilityChecker(_page())

        assert checker.build_context() is None
        assert checker.build_options(WCAG_TAGS) == {
            "runOnly": {"type": "tag", "values": ["wcag2a", "wcag2aa", "wcag21a", "wcag21aa"]}
        }

    def test_rules_applied(self) -> None:
        rules = A11yRules(disable=["color-contrast"], include=["main"], exclude=["#ads", ".embed"])
        checker = AccessibilityChecker(_page(), rules)

        assert checker.build_context() == {
            "include": [["main"]],
            "exclude": [["#ads"], [".embed"]],
        }
        assert checker.build_options(WCAG_TAGS)["rules"] == {"color-contrast": {"enabled": False}}

    @pytest.mark.asyncio
    async def test_injects_axe_when_missing(self) -> None:
        page = _page(axe_present=False)

        await AccessibilityChecker(page).audit()

        page.add_script_tag.assert_awaited_once_with(url=AXE_CDN_URL)
        page.wait_for_function.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_skips_injection_when_bundled(self) -> None:
        page = _page(axe_present=True)
        checker = AccessibilityChecker(page)

        await checker.audit()
        await checker.audit()

        page.add_script_tag.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_audit_returns_violations(self) -> None:
        page = _page(results=AXE_RESULTS)

        violations = await AccessibilityChecker(page).audit()

        assert [v.rule_id for v in violations] == ["color-contrast", "region"]
        _, (context, options) = page.evaluate.await_args.args
        assert context is None
        assert options["runOnly"]["values"] == WCAG_TAGS


class TestRunA11yTests:
    @pytest.mark.asyncio
    async def test_fresh_context_per_route(self) -> None:
        pages = [_page(), _page(results=AXE_RESULTS)]
        browser, contexts = _browser(pages)

        results = await run_a11y_tests(browser, ["/", "/about"], "http://localhost:5173")

        assert [r.route for r in results] == ["/", "/about"]
        assert [r.passed for r in results] == [True, False]
        assert results[1].violation_count == 2
        assert browser.new_context.await_count == 2
        browser.new_context.assert_awaited_with(viewport={"width": 1024, "height": 720})
        for context in contexts:
            context.close.assert_awaited_once()
        pages[1].goto.assert_awaited_once_with(
            "http://localhost:5173/about", wait_until="domcontentloaded", timeout=15_000
        )

    @pytest.mark.asyncio
    async def test_failed_audit_is_reported_not_raised(self) -> None:
        broken = _page()
        broken.goto = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 15000ms exceeded."))
        browser, contexts = _browser([broken, _page()])

        results = await run_a11y_tests(browser, ["/slow", "/"], "http://localhost:5173")

        assert results[0].passed is False
        assert results[0].error == "Timeout 15000ms exceeded."
        assert results[0].violations == []
        assert results[1].passed is True
        contexts[0].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_network_idle_timeout_ignored(self) -> None:
        page = _page()
        page.wait_for_load_state = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout"))
        browser, _ = _browser([page])

        results = await run_a11y_tests(browser, ["/"], "http://localhost:5173")

        assert results[0].passed is True

    @pytest.mark.asyncio
    async def test_context_that_fails_to_open_is_reported(self) -> None:
        browser, contexts = _browser([_page()])
        browser.new_context = AsyncMock(
            side_effect=[PlaywrightError("Target closed"), contexts[0]]
        )

        results = await run_a11y_tests(browser, ["/broken", "/"], "http://localhost:5173")

        assert [r.passed for r in results] == [False, True]
        assert results[0].error == "Target closed"
        contexts[0].close.assert_awaited_once()
