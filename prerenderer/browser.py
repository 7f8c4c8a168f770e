# prerenderer/browser.py
# Async Playwright helpers: launch chromium, filter requests, wait until a page is renderable.

import json
import logging
from contextlib import asynccontextmanager
from urllib.parse import urlsplit

from playwright.async_api import async_playwright

from prerenderer.config import AfterDelay, AfterEvent, Immediate

logger = logging.getLogger(__name__)

# --no-sandbox is needed on many container hosts
CHROMIUM_ARGS = ["--no-sandbox"]


@asynccontextmanager
async def launch_browser(headless: bool = True):
    """
    Launch headless chromium and yield the Browser.
    Browser and driver are closed when the block exits, whatever the outcome.
    """
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless, args=CHROMIUM_ARGS)
        try:
            yield browser
        finally:
            await browser.close()


def _origin(url: str):
    parts = urlsplit(url)
    port = parts.port
    if port is None:
        port = {"http": 80, "https": 443}.get(parts.scheme)
    return parts.scheme, (parts.hostname or "").lower(), port


def is_same_origin(url: str, base_url: str) -> bool:
    try:
        return _origin(url) == _origin(base_url)
    except ValueError:
        # unparseable port
        return False


async def install_request_filter(page, base_url: str):
    """Abort every request whose origin is not the local server's."""

    async def _handler(route):
        url = route.request.url
        if not is_same_origin(url, base_url):
            logger.debug("[prerendering] skipping third-party request %s", url)
            await route.abort()
            return
        await route.continue_()

    await page.route("**/*", _handler)


# Runs before any page script, so an event fired during load is not missed.
_EVENT_LISTENER_SCRIPT = """
(() => {
  window['__PRERENDER_STATUS'] = {};
  document.addEventListener(%s, () => {
    window['__PRERENDER_STATUS'].__DOCUMENT_EVENT_RESOLVED = true;
  });
})();
"""

_WAIT_FOR_EVENT_SCRIPT = """
(eventName) => new Promise((resolve) => {
  const status = window['__PRERENDER_STATUS'];
  if (status && status.__DOCUMENT_EVENT_RESOLVED) {
    resolve(true);
    return;
  }
  document.addEventListener(eventName, () => resolve(true));
})
"""

_NEXT_TICK_SCRIPT = "() => new Promise((resolve) => setTimeout(() => resolve(document.readyState), 0))"


async def install_event_listener(page, event_name: str):
    await page.add_init_script(script=_EVENT_LISTENER_SCRIPT % json.dumps(event_name))


async def wait_for_render(page, strategy):
    """
    Suspend until the page may be captured.
    Immediate waits one tick, AfterEvent until the document event fired
    (possibly before this call), AfterDelay a fixed number of milliseconds.
    """
    if isinstance(strategy, AfterEvent):
        await page.evaluate(_WAIT_FOR_EVENT_SCRIPT, strategy.name)
    elif isinstance(strategy, AfterDelay):
        await page.wait_for_timeout(strategy.ms)
    elif isinstance(strategy, Immediate):
        await page.evaluate(_NEXT_TICK_SCRIPT)
    else:
        raise TypeError(f"unknown wait strategy: {strategy!r}")
