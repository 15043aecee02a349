"""HTTP fetching through the prioritized route chain."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

import httpx
import structlog

from ..config import ClientProfile, FetchSettings
from .cancellation import CancelToken, ensure_token
from .errors import Cancelled, FetchExhausted
from .retry import RetryPolicy, run_with_retry
from .routes import RouteChain, RouteContext, build_chain


@dataclass(slots=True)
class FetchRequest:
    """Input for the fetcher."""

    url: str
    headers: dict[str, str] | None = None


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    text: str
    headers: Dict[str, str]
    route: str
    raw: httpx.Response | None = field(repr=False, default=None)


class Fetcher:
    """Issue GET requests through direct and proxied routes until one succeeds."""

    def __init__(
        self,
        settings: FetchSettings | None = None,
        logger: structlog.BoundLogger | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or FetchSettings()
        self.logger = logger or structlog.get_logger("arxiv_digest.fetcher")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.settings.timeout,
        )
        self.listing_policy = RetryPolicy.from_config(self.settings.listing_retry)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    async def fetch(self, request: FetchRequest, token: CancelToken | None = None) -> FetchResponse:
        token = ensure_token(token)
        context, chain = self._build_chain(request)
        direct_first = self.settings.client_profile is ClientProfile.MOBILE
        for route, directive in chain.plan(context, request.headers, direct_first=direct_first):
            token.raise_if_cancelled()
            try:
                response = await token.guard(
                    self._client.get(
                        directive.url,
                        headers=directive.headers,
                        timeout=directive.timeout,
                    )
                )
            except Cancelled:
                self.logger.debug("fetch_cancelled", url=request.url, route=route.name)
                raise
            except httpx.HTTPError as exc:
                self.logger.warning(
                    "fetch_error",
                    url=request.url,
                    route=route.name,
                    attempt=context.attempt,
                    error=str(exc),
                )
                chain.notify_failure(context, None, exc)
                continue

            if self._is_failure(response):
                error = httpx.HTTPStatusError(
                    f"HTTP error! status: {response.status_code}",
                    request=response.request,
                    response=response,
                )
                self.logger.warning(
                    "fetch_bad_status",
                    url=request.url,
                    route=route.name,
                    attempt=context.attempt,
                    status=response.status_code,
                )
                chain.notify_failure(context, response, error)
                continue

            chain.notify_success(context, response)
            return FetchResponse(
                url=str(response.url),
                status_code=response.status_code,
                text=response.text,
                headers=dict(response.headers),
                route=route.name,
                raw=response,
            )

        raise FetchExhausted(
            request.url, context.attempts_made, context.last_exception
        ) from context.last_exception

    async def fetch_with_retry(
        self,
        request: FetchRequest,
        token: CancelToken | None = None,
        policy: RetryPolicy | None = None,
    ) -> FetchResponse:
        """Walk the route chain repeatedly with exponential backoff between walks."""

        token = ensure_token(token)
        return await run_with_retry(
            lambda: self.fetch(request, token),
            policy or self.listing_policy,
            token=token,
            logger=self.logger,
        )

    # ------------------------------------------------------------------
    def _build_chain(self, request: FetchRequest) -> tuple[RouteContext, RouteChain]:
        return RouteContext(target_url=request.url), build_chain(self.settings)

    @staticmethod
    def _is_failure(response: httpx.Response) -> bool:
        return not 200 <= response.status_code < 300


__all__ = ["Fetcher", "FetchRequest", "FetchResponse"]
