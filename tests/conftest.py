from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

INDEX_HTML = "<html><body>hi</body></html>"


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    (site / "app.js").write_text("console.log('app');", encoding="utf-8")
    (site / ".well-known").mkdir()
    (site / ".well-known" / "security.txt").write_text("Contact: me@example.com", encoding="utf-8")
    return site


class FakePage:
    """Stands in for a Playwright Page; records calls and tracks how many pages are open."""

    def __init__(self, browser: "FakeBrowser") -> None:
        self.browser = browser
        self.calls: list[tuple] = []
        self.url = ""
        self.closed = False

    async def route(self, pattern, handler) -> None:
        self.calls.append(("route", pattern))

    async def add_init_script(self, script=None, path=None) -> None:
        self.calls.append(("add_init_script", script))

    async def goto(self, url, wait_until=None, timeout=None) -> None:
        self.calls.append(("goto", url, wait_until, timeout))
        self.url = url
        if any(url.endswith(route) for route in self.browser.failing_routes):
            raise RuntimeError(f"net::ERR_FAILED at {url}")
        await asyncio.sleep(self.browser.delay)

    async def evaluate(self, expression, arg=None):
        self.calls.append(("evaluate", arg))
        await asyncio.sleep(0)
        return True

    async def wait_for_timeout(self, ms) -> None:
        self.calls.append(("wait_for_timeout", ms))

    async def content(self) -> str:
        return f"<html><body>{self.url}</body></html>"

    async def close(self) -> None:
        self.closed = True
        self.browser.open_pages -= 1


class FakeBrowser:
    def __init__(self, delay: float = 0.01, failing_routes: tuple[str, ...] = ()) -> None:
        self.delay = delay
        self.failing_routes = failing_routes
        self.open_pages = 0
        self.max_open_pages = 0
        self.pages: list[FakePage] = []

    async def new_page(self) -> FakePage:
        self.open_pages += 1
        self.max_open_pages = max(self.max_open_pages, self.open_pages)
        page = FakePage(self)
        self.pages.append(page)
        return page


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser()
