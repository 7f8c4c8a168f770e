# prerenderer/config.py
# Run configuration, wait strategies and environment defaults.

import os
from dataclasses import dataclass, field
from typing import List, Optional, Union

# Defaults from environment (a .env file is loaded by the entry points)
MAX_CONCURRENT_ROUTES = int(os.environ.get("PRERENDER_MAX_CONCURRENT_ROUTES", "0"))
WAIT_UNTIL = os.environ.get("PRERENDER_WAIT_UNTIL", "load")
NAVIGATION_TIMEOUT_MS = int(os.environ.get("PRERENDER_NAVIGATION_TIMEOUT_MS", "30000"))
HEADLESS = os.environ.get("PRERENDER_HEADLESS", "1").lower() not in ("0", "false", "no")

WAIT_UNTIL_CHOICES = ("load", "domcontentloaded", "networkidle", "commit")


class ConfigError(ValueError):
    """Raised when a run configuration is invalid."""


@dataclass(frozen=True)
class Immediate:
    """Capture as soon as the navigation finished."""


@dataclass(frozen=True)
class AfterEvent:
    """Capture once `name` has been dispatched on the document."""
    name: str


@dataclass(frozen=True)
class AfterDelay:
    """Capture after a fixed number of milliseconds."""
    ms: int


WaitStrategy = Union[Immediate, AfterEvent, AfterDelay]


def wait_strategy_from_options(render_after_event: Optional[str] = None,
                               render_after_time: Optional[int] = None) -> WaitStrategy:
    """
    Pick the wait strategy from the loose option pair.
    The document event wins over the delay; neither given means Immediate.
    """
    if render_after_event:
        return AfterEvent(str(render_after_event))
    if render_after_time:
        try:
            ms = int(render_after_time)
        except (TypeError, ValueError):
            raise ConfigError(f"renderAfterTime must be an integer, got {render_after_time!r}")
        if ms < 0:
            raise ConfigError("renderAfterTime must not be negative")
        return AfterDelay(ms) if ms else Immediate()
    return Immediate()


@dataclass(frozen=True)
class RunConfig:
    routes: List[str]
    static_dir: str
    index_html: Optional[str] = None
    wait: WaitStrategy = field(default_factory=Immediate)
    skip_third_party_requests: bool = False
    max_concurrent_routes: int = MAX_CONCURRENT_ROUTES
    output_dir: Optional[str] = None
    wait_until: str = WAIT_UNTIL
    navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS
    headless: bool = HEADLESS

    def __post_init__(self):
        if isinstance(self.routes, str) or not isinstance(self.routes, (list, tuple)):
            raise ConfigError("routes must be a list of path strings")
        for route in self.routes:
            if not isinstance(route, str) or not route.startswith("/"):
                raise ConfigError(f"route must be a path starting with '/': {route!r}")
            if ".." in route.split("/"):
                raise ConfigError(f"route must not leave the output directory: {route!r}")
        if not self.static_dir or not os.path.isdir(self.static_dir):
            raise ConfigError(f"staticDir is not a directory: {self.static_dir!r}")
        if not isinstance(self.wait, (Immediate, AfterEvent, AfterDelay)):
            raise ConfigError(f"unknown wait strategy: {self.wait!r}")
        if self.wait_until not in WAIT_UNTIL_CHOICES:
            raise ConfigError(f"waitUntil must be one of {', '.join(WAIT_UNTIL_CHOICES)}")
        if isinstance(self.max_concurrent_routes, bool) or not isinstance(self.max_concurrent_routes, int):
            raise ConfigError("maxConcurrentRoutes must be an integer")
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "routes", list(self.routes))

    @property
    def resolved_output_dir(self) -> str:
        return self.output_dir or self.static_dir

    @property
    def concurrency_limit(self) -> Optional[int]:
        """Positive limit, or None for unbounded."""
        return self.max_concurrent_routes if self.max_concurrent_routes > 0 else None

    @classmethod
    def from_mapping(cls, options: dict) -> "RunConfig":
        """
        Build a config from the camelCase option bag
        (routes, staticDir, indexHtml, renderAfterDocumentEvent, renderAfterTime,
        skipThirdPartyRequests, maxConcurrentRoutes, outputDir, waitUntil).
        """
        if not isinstance(options, dict):
            raise ConfigError("options must be an object")
        max_routes = options.get("maxConcurrentRoutes")
        if max_routes is None:
            max_routes = MAX_CONCURRENT_ROUTES
        try:
            max_routes = int(max_routes)
        except (TypeError, ValueError):
            raise ConfigError(f"maxConcurrentRoutes must be an integer, got {max_routes!r}")

        skip_third_party = options.get("skipThirdPartyRequests", False)
        if skip_third_party is None:
            skip_third_party = False
        if not isinstance(skip_third_party, bool):
            raise ConfigError(f"skipThirdPartyRequests must be true or false, got {skip_third_party!r}")

        return cls(
            routes=options.get("routes") or [],
            static_dir=options.get("staticDir") or "",
            index_html=options.get("indexHtml"),
            wait=wait_strategy_from_options(
                options.get("renderAfterDocumentEvent"),
                options.get("renderAfterTime"),
            ),
            skip_third_party_requests=skip_third_party,
            max_concurrent_routes=max_routes,
            output_dir=options.get("outputDir"),
            wait_until=options.get("waitUntil") or WAIT_UNTIL,
        )
