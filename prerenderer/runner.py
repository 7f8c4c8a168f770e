# prerenderer/runner.py
# Orchestrates a run: local server, browser, bounded per-route render jobs.

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, List

from prerenderer.browser import install_event_listener, install_request_filter, launch_browser, wait_for_render
from prerenderer.config import AfterEvent, RunConfig
from prerenderer.output import write_content
from prerenderer.server import StaticServer

logger = logging.getLogger(__name__)


class PrerenderError(RuntimeError):
    """A route failed to render; the underlying error is chained as __cause__."""

    def __init__(self, route: str, message: str = ""):
        self.route = route
        super().__init__(f"failed to prerender route {route}" + (f": {message}" if message else ""))


@dataclass
class RenderResult:
    route: str
    html: str


@dataclass(frozen=True)
class RunContext:
    config: RunConfig
    base_url: str
    browser: Any


async def render_route(ctx: RunContext, route: str) -> RenderResult:
    """Open a page, navigate to the route, wait, capture and write its HTML."""
    config = ctx.config
    page = await ctx.browser.new_page()
    try:
        if config.skip_third_party_requests:
            await install_request_filter(page, ctx.base_url)
        if isinstance(config.wait, AfterEvent):
            await install_event_listener(page, config.wait.name)

        await page.goto(ctx.base_url + route, wait_until=config.wait_until,
                        timeout=config.navigation_timeout_ms)
        logger.info("[prerendering] rendering route %s", route)
        await wait_for_render(page, config.wait)
        html = await page.content()
        write_content(config.resolved_output_dir, route, html)
        logger.info("[prerendering] completed route %s", route)
    finally:
        await page.close()
    return RenderResult(route=route, html=html)


async def _guarded(ctx: RunContext, route: str, limiter) -> RenderResult:
    async with limiter:
        try:
            return await render_route(ctx, route)
        except Exception as e:
            raise PrerenderError(route, str(e)) from e


async def render_routes(ctx: RunContext, routes: List[str]) -> List[RenderResult]:
    """
    Render every route with at most `max_concurrent_routes` jobs in flight.
    Results keep the input order. The first failure cancels the remaining jobs.
    """
    limit = ctx.config.concurrency_limit
    limiter = asyncio.Semaphore(limit) if limit else contextlib.nullcontext()

    tasks = [asyncio.ensure_future(_guarded(ctx, route, limiter)) for route in routes]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        # let cancelled jobs close their pages before the browser goes away
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def prerender(config: RunConfig) -> List[RenderResult]:
    """
    Run a whole prerender: every route rendered or the run fails.
    Server and browser are released on every exit path.
    """
    logger.info("[prerendering] prerendering started")
    server = StaticServer(config.static_dir, config.index_html)
    # start/close block on the server thread, keep them off the event loop
    await asyncio.to_thread(server.start)
    try:
        logger.info("[prerendering] server launched: %s", server.base_url)
        async with launch_browser(headless=config.headless) as browser:
            ctx = RunContext(config=config, base_url=server.base_url, browser=browser)
            results = await render_routes(ctx, config.routes)
    finally:
        await asyncio.to_thread(server.close)
    logger.info("[prerendering] prerendering completed")
    return results


def run_prerender(config: RunConfig, timeout=None) -> List[RenderResult]:
    """Blocking entry point; `timeout` (seconds) bounds the whole run."""
    return asyncio.run(asyncio.wait_for(prerender(config), timeout=timeout))
