"""Playwright browser launching.

Usage::

    from uxcheck.browser import launch_browser

    async with launch_browser(headless=False) as browser:
        page = await browser.new_page()
        ...

Configuration via environment variables:

- ``UXCHECK_BROWSER_HEADLESS``: ``1``/``true`` or ``0``/``false`` (default: ``1``)
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from playwright.async_api import async_playwright

logger = logging.getLogger("uxcheck.browser")


def default_headless() -> bool:
    """Headless unless ``UXCHECK_BROWSER_HEADLESS`` turns it off."""
    return os.environ.get("UXCHECK_BROWSER_HEADLESS", "1").lower() not in ("0", "false")


@asynccontextmanager
async def launch_browser(headless: bool | None = None, **launch_kwargs: Any) -> AsyncIterator[Any]:
    """Launch Chromium, yield it, and close it on exit.

    Keyword arguments are forwarded to ``chromium.launch()``.
    """
    if headless is None:
        headless = default_headless()
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless, **launch_kwargs)
        logger.debug("Launched Chromium (headless=%s)", headless)
        try:
            yield browser
        finally:
            await browser.close()
