"""Concrete routes used by the chain."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

from ...config import FetchSettings, RouteConfig
from .chain import Route, RouteChain


@dataclass(frozen=True, slots=True)
class DirectRoute:
    """Request the target URL as-is."""

    name: str = "direct"

    def rewrite(self, url: str) -> str:
        return url


@dataclass(frozen=True, slots=True)
class RewriteRoute:
    """Send the request through a rewriting intermediary."""

    name: str
    template: str
    quote_target: bool = True

    def rewrite(self, url: str) -> str:
        target = quote(url, safe="") if self.quote_target else url
        return self.template.replace("{url}", target)


def route_from_config(config: RouteConfig) -> Route:
    if not config.template:
        return DirectRoute(name=config.name)
    return RewriteRoute(name=config.name, template=config.template, quote_target=config.quote)


def build_chain(settings: FetchSettings) -> RouteChain:
    """Utility to build a ready-to-use chain from config."""

    routes = [route_from_config(route) for route in settings.routes]
    return RouteChain(
        routes,
        headers={"User-Agent": settings.user_agent},
        timeout=settings.timeout,
        direct=DirectRoute(),
    )


__all__ = ["DirectRoute", "RewriteRoute", "build_chain", "route_from_config"]
