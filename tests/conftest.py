"""Shared pytest fixtures for uxcheck tests."""

from __future__ import annotations

import io
import json
from collections import defaultdict
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from uxcheck.config import ProjectConfig, load_config


def make_png(
    width: int = 4,
    height: int = 4,
    color: tuple[int, ...] = (255, 255, 255),
    dots: list[tuple[int, int]] | None = None,
    dot_color: tuple[int, ...] = (0, 0, 0),
) -> bytes:
    """Create a PNG image, optionally with some pixels painted another colour."""
    img = Image.new("RGB", (width, height), color)
    for x, y in dots or []:
        img.putpixel((x, y), dot_color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def console_message(text: str, type: str = "error") -> SimpleNamespace:
    return SimpleNamespace(type=type, text=text)


def page_error(message: str) -> SimpleNamespace:
    return SimpleNamespace(message=message)


def response(status: int, url: str) -> SimpleNamespace:
    return SimpleNamespace(status=status, url=url)


class FakePage:
    """
    Stand-in for a Playwright async Page.

    Event listeners behave like the real ``on``/``remove_listener`` pair, and
    ``goto`` replays any events queued in ``events_on_goto`` so tests can
    simulate errors emitted while a route loads.
    """

    def __init__(self, png: bytes | None = None) -> None:
        self.listeners: dict[str, list[Callable[[Any], None]]] = defaultdict(list)
        self.url = "about:blank"
        self.png = png or make_png()
        self.events_on_goto: list[tuple[str, Any]] = []
        self.goto = AsyncMock(side_effect=self._goto)
        self.reload = AsyncMock()
        self.wait_for_timeout = AsyncMock()
        self.wait_for_load_state = AsyncMock()
        self.evaluate = AsyncMock(return_value=False)
        self.set_viewport_size = AsyncMock()
        self.screenshot = AsyncMock(side_effect=self._screenshot)
        self.click = AsyncMock()
        self.hover = AsyncMock()
        self.fill = AsyncMock()
        self.press = AsyncMock()
        self.wait_for_selector = AsyncMock()

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.listeners[event].append(handler)

    def remove_listener(self, event: str, handler: Callable[[Any], None]) -> None:
        self.listeners[event].remove(handler)

    def emit(self, event: str, payload: Any) -> None:
        for handler in list(self.listeners[event]):
            handler(payload)

    @property
    def listener_count(self) -> int:
        return sum(len(handlers) for handlers in self.listeners.values())

    async def _goto(self, url: str, **kwargs: Any) -> None:
        self.url = url
        for event, payload in self.events_on_goto:
            self.emit(event, payload)

    async def _screenshot(self, path: str, full_page: bool = True) -> None:
        Path(path).write_bytes(self.png)


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., ProjectConfig]:
    """Write a ``.ux-test.json`` into tmp_path and load it."""

    def _write(**overrides: Any) -> ProjectConfig:
        data = {"port": 5173, **overrides}
        (tmp_path / ".ux-test.json").write_text(json.dumps(data))
        config = load_config(tmp_path)
        assert config is not None
        return config

    return _write


@pytest.fixture
def png() -> Callable[..., bytes]:
    """PNG bytes factory, see :func:`make_png`."""
    return make_png


@pytest.fixture
def events() -> SimpleNamespace:
    """Factories for console, page-error and response event payloads."""
    return SimpleNamespace(console=console_message, page_error=page_error, response=response)
