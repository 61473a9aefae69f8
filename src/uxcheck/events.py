"""Scoped page-event collection.

A single Playwright page is reused across routes and flows, so listeners
must never outlive the unit that attached them.  :func:`collect_page_events`
attaches the handlers on entry and always detaches them on exit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger("uxcheck.events")


@dataclass
class EventBuffer:
    """Errors observed on a page while a subscription is active."""

    console_errors: list[str] = field(default_factory=list)
    network_failures: list[str] = field(default_factory=list)

    def drain_console_errors(self) -> list[str]:
        """Return the collected console errors and clear the buffer."""
        drained = list(self.console_errors)
        self.console_errors.clear()
        return drained


@contextmanager
def collect_page_events(page: Any, *, responses: bool = True) -> Iterator[EventBuffer]:
    """
    Subscribe to console, page-error and (optionally) response events.

    Args:
        page: Playwright page object
        responses: Also record HTTP responses with status >= 400

    Yields:
        The buffer the handlers write into
    """
    buffer = EventBuffer()

    def on_console(msg: Any) -> None:
        if msg.type == "error":
            buffer.console_errors.append(msg.text)

    def on_page_error(err: Any) -> None:
        buffer.console_errors.append(f"Uncaught: {getattr(err, 'message', err)}")

    def on_response(response: Any) -> None:
        if response.status >= 400:
            buffer.network_failures.append(f"{response.status} {response.url}")

    handlers: list[tuple[str, Any]] = [("console", on_console), ("pageerror", on_page_error)]
    if responses:
        handlers.append(("response", on_response))

    for event, handler in handlers:
        page.on(event, handler)
    try:
        yield buffer
    finally:
        for event, handler in handlers:
            page.remove_listener(event, handler)
        logger.debug("Detached %d page listeners", len(handlers))
