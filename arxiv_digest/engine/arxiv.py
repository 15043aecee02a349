"""Search API client: query construction, fetch and parse."""

from __future__ import annotations

from datetime import date
from typing import Sequence
from urllib.parse import urlencode

import structlog

from ..config import ArxivSettings, ListingSettings
from .cancellation import CancelToken, ensure_token
from .fetcher import FetchRequest, Fetcher
from .parser import DocumentKind, Parser
from .records import Candidate, Paper, canonical_id, collapse_whitespace
from .window import DateWindow

XML_HEADERS = {"Accept": "application/xml"}


def _query_params(search_query: str, max_results: int) -> dict[str, str]:
    return {
        "search_query": search_query,
        "start": "0",
        "max_results": str(max_results),
        "sortBy": "submittedDate",
        "sortOrder": "descending",
    }


def build_search_query(expression: str, window: DateWindow | None = None) -> str:
    expression = expression.strip()
    if window is None:
        return expression
    start, end = window.submitted_range()
    return f"{expression} AND submittedDate:[{start} TO {end}]"


def build_search_url(
    settings: ArxivSettings, expression: str, window: DateWindow | None = None
) -> str:
    params = _query_params(build_search_query(expression, window), settings.max_results)
    return f"{settings.api_url}?{urlencode(params)}"


def clean_term(term: str) -> str:
    """Drop double quotes, which the API cannot escape inside a phrase."""

    return collapse_whitespace(term.replace('"', " "))


def _keyword_clause(keyword: str) -> str:
    cleaned = clean_term(keyword)
    if " " in cleaned:
        return f'all:"{cleaned}"'
    return f"all:{cleaned}"


def build_title_url(settings: ArxivSettings, term: str) -> str:
    params = _query_params(f'ti:"{clean_term(term)}"', settings.max_results)
    return f"{settings.api_url}?{urlencode(params)}"


def build_keyword_url(settings: ArxivSettings, keywords: Sequence[str]) -> str:
    search_query = " AND ".join(_keyword_clause(keyword) for keyword in keywords)
    params = _query_params(search_query, settings.keyword_max_results)
    return f"{settings.api_url}?{urlencode(params)}"


def build_lookup_url(settings: ArxivSettings, paper_id: str) -> str:
    return f"{settings.api_url}?{urlencode({'id_list': canonical_id(paper_id)})}"


def build_listing_url(settings: ListingSettings, day: date) -> str:
    return f"{settings.base_url}?{urlencode({'date': day.isoformat()})}"


class ArxivClient:
    """Thin façade combining the fetcher and parser for each request shape."""

    def __init__(
        self,
        fetcher: Fetcher,
        parser: Parser | None = None,
        settings: ArxivSettings | None = None,
        listing: ListingSettings | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.parser = parser or Parser()
        self.settings = settings or ArxivSettings()
        self.listing = listing or ListingSettings()
        self.logger = logger or structlog.get_logger("arxiv_digest.arxiv")

    async def search(
        self,
        expression: str,
        window: DateWindow | None = None,
        token: CancelToken | None = None,
    ) -> list[Paper]:
        url = build_search_url(self.settings, expression, window)
        response = await self.fetcher.fetch(FetchRequest(url, XML_HEADERS), token)
        return self.parser.parse_feed(response.text, DocumentKind.SEARCH_RESULT, window)

    async def search_title(self, term: str, token: CancelToken | None = None) -> list[Paper]:
        if not clean_term(term):
            return []
        url = build_title_url(self.settings, term)
        response = await self.fetcher.fetch(FetchRequest(url, XML_HEADERS), token)
        return self.parser.parse_feed(response.text, DocumentKind.SEARCH_RESULT)

    async def search_keywords(
        self, keywords: Sequence[str], token: CancelToken | None = None
    ) -> list[Paper]:
        keywords = [keyword for keyword in keywords if clean_term(keyword)]
        if not keywords:
            return []
        url = build_keyword_url(self.settings, keywords)
        response = await self.fetcher.fetch(FetchRequest(url, XML_HEADERS), token)
        return self.parser.parse_feed(response.text, DocumentKind.SEARCH_RESULT)

    async def lookup(
        self, paper_id: str, token: CancelToken | None = None, *, retry: bool = False
    ) -> Paper:
        """Fetch one paper by id; ``retry`` uses the listing backoff policy."""

        token = ensure_token(token)
        request = FetchRequest(build_lookup_url(self.settings, paper_id), XML_HEADERS)
        if retry:
            response = await self.fetcher.fetch_with_retry(request, token)
        else:
            response = await self.fetcher.fetch(request, token)
        return self.parser.parse_lookup(response.text, paper_id)

    async def listing_candidates(self, day: date, token: CancelToken | None = None) -> list[Candidate]:
        url = build_listing_url(self.listing, day)
        response = await self.fetcher.fetch_with_retry(FetchRequest(url), token)
        candidates = self.parser.parse_listing(response.text, self.listing.anchor_selector)
        self.logger.info("listing_scanned", day=day.isoformat(), candidates=len(candidates))
        return candidates


__all__ = [
    "ArxivClient",
    "XML_HEADERS",
    "build_keyword_url",
    "build_listing_url",
    "build_lookup_url",
    "build_search_query",
    "build_search_url",
    "build_title_url",
    "clean_term",
]
