"""Route chain walking the prioritized list of direct/proxied routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Protocol, Sequence

import httpx


@dataclass
class RequestDirective:
    """Concrete request produced by a route for one attempt."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None


@dataclass
class RouteContext:
    """Per-call bookkeeping; discarded once the fetch returns."""

    target_url: str
    attempt: int = 1
    route_name: str | None = None
    last_response: httpx.Response | None = None
    last_exception: Exception | None = None

    @property
    def attempts_made(self) -> int:
        return self.attempt - 1


class Route(Protocol):
    """A stateless strategy for reaching an origin-restricted endpoint."""

    name: str

    def rewrite(self, url: str) -> str:
        """Return the URL to request for ``url``."""


class RouteChain:
    """Immutable ordered list of routes plus the headers every attempt carries."""

    def __init__(
        self,
        routes: Sequence[Route],
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        direct: Route | None = None,
    ) -> None:
        self.routes: tuple[Route, ...] = tuple(routes)
        self.headers = dict(headers or {})
        self.timeout = timeout
        self.direct = direct

    def plan(
        self,
        context: RouteContext,
        request_headers: dict[str, str] | None = None,
        direct_first: bool = False,
    ) -> Iterator[tuple[Route, RequestDirective]]:
        """Yield ``(route, directive)`` pairs in priority order."""

        ordered: list[Route] = []
        if direct_first and self.direct is not None:
            ordered.append(self.direct)
        ordered.extend(self.routes)
        for route in ordered:
            headers = dict(request_headers or {})
            headers.update(self.headers)
            context.route_name = route.name
            yield route, RequestDirective(
                url=route.rewrite(context.target_url),
                headers=headers,
                timeout=self.timeout,
            )

    def notify_success(self, context: RouteContext, response: httpx.Response) -> None:
        context.last_response = response
        context.last_exception = None

    def notify_failure(
        self,
        context: RouteContext,
        response: httpx.Response | None,
        error: Exception | None,
    ) -> None:
        context.last_response = response
        context.last_exception = error
        context.attempt += 1


__all__ = ["RequestDirective", "Route", "RouteChain", "RouteContext"]
