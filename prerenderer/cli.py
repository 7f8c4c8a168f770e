# prerenderer/cli.py
import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv
from playwright.async_api import Error as PlaywrightError


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Prerender the routes of a single-page application to static HTML.")
    ap.add_argument("static_dir", help="Directory holding the built SPA (index.html and assets).")
    ap.add_argument("routes", nargs="+", help="Routes to render, e.g. / /about /blog/first-post")
    ap.add_argument("--index-html-file", default=None, help="Serve this file's HTML for every non-file request.")
    wait = ap.add_mutually_exclusive_group()
    wait.add_argument("--render-after-event", default=None, help="Capture once this event fires on the document.")
    wait.add_argument("--render-after-time", type=int, default=None, help="Capture after this many milliseconds.")
    ap.add_argument("--skip-third-party-requests", action="store_true", help="Abort requests to other origins.")
    ap.add_argument("--max-concurrent-routes", type=int, default=None, help="Pages rendered at once (0 = unbounded).")
    ap.add_argument("-o", "--output-dir", default=None, help="Where to write the HTML (default: the static dir).")
    ap.add_argument("--wait-until", default=None, help="Navigation condition: load, domcontentloaded, networkidle, commit.")
    ap.add_argument("--timeout-ms", type=int, default=None, help="Navigation timeout in ms (0 disables).")
    ap.add_argument("--headed", action="store_true", help="Show the browser window.")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return ap.parse_args(argv)


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # per-request access lines from the local server
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    # env defaults are read at import time, after load_dotenv
    from prerenderer.config import ConfigError, RunConfig
    from prerenderer.runner import PrerenderError, run_prerender

    options = {
        "routes": args.routes,
        "staticDir": args.static_dir,
        "renderAfterDocumentEvent": args.render_after_event,
        "renderAfterTime": args.render_after_time,
        "skipThirdPartyRequests": args.skip_third_party_requests,
        "maxConcurrentRoutes": args.max_concurrent_routes,
        "outputDir": args.output_dir,
        "waitUntil": args.wait_until,
    }
    try:
        if args.index_html_file:
            options["indexHtml"] = Path(args.index_html_file).read_text(encoding="utf-8")
        config = RunConfig.from_mapping(options)
        overrides = {}
        if args.timeout_ms is not None:
            overrides["navigation_timeout_ms"] = args.timeout_ms
        if args.headed:
            overrides["headless"] = False
        if overrides:
            config = replace(config, **overrides)
    except (ConfigError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        results = run_prerender(config)
    except PrerenderError as e:
        logging.getLogger(__name__).error("%s (%s)", e, e.__cause__)
        return 1
    except PlaywrightError as e:
        # e.g. chromium not installed
        logging.getLogger(__name__).error("browser failed: %s", e)
        return 1

    for r in results:
        print(r.route)
    return 0


if __name__ == "__main__":
    sys.exit(main())
