"""Cross-source deduplication of listing-page references."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable

import structlog
from selectolax.parser import HTMLParser

from .cancellation import CancelToken, ensure_token
from .errors import Cancelled, DigestError
from .records import Candidate, Paper, canonical_id, collapse_whitespace, is_arxiv_id, sort_by_published

LISTING_ANCHOR_SELECTOR = 'a[href^="/papers/"]'

Lookup = Callable[[str, CancelToken], Awaitable[Paper]]


@dataclass
class DeduplicationResult:
    candidate: Candidate | None
    duplicate: bool = False

    @property
    def accepted(self) -> bool:
        return self.candidate is not None and not self.duplicate


@dataclass
class SeenIdentifiers:
    """Per-pass set of canonical ids already accepted."""

    _seen: set[str] = field(default_factory=set)

    def check_and_store(self, display_title: str, href: str) -> DeduplicationResult:
        identifier = canonical_id(href)
        # Index, trending and date links share the /papers/ prefix.
        if not is_arxiv_id(identifier):
            return DeduplicationResult(candidate=None)
        if identifier in self._seen:
            return DeduplicationResult(candidate=None, duplicate=True)
        self._seen.add(identifier)
        return DeduplicationResult(
            candidate=Candidate(display_title=collapse_whitespace(display_title), canonical_id=identifier)
        )

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._seen

    def __len__(self) -> int:
        return len(self._seen)


def extract_candidates(html: str, selector: str = LISTING_ANCHOR_SELECTOR) -> list[Candidate]:
    """Collect one candidate per canonical id, in document order."""

    parser = HTMLParser(html or "")
    seen = SeenIdentifiers()
    candidates: list[Candidate] = []
    for node in parser.css(selector):
        href = (node.attributes.get("href") or "").strip()
        if not href:
            continue
        result = seen.check_and_store(node.text(separator=" ", strip=True), href)
        if result.accepted:
            candidates.append(result.candidate)
    return candidates


class CrossSourceDeduplicator:
    """Resolve listing candidates to full records, at most one per id."""

    def __init__(self, lookup: Lookup, logger: structlog.BoundLogger | None = None) -> None:
        self.lookup = lookup
        self.logger = logger or structlog.get_logger("arxiv_digest.dedup")

    async def resolve(
        self, candidates: Iterable[Candidate], token: CancelToken | None = None
    ) -> list[Paper]:
        token = ensure_token(token)
        unique: dict[str, Candidate] = {}
        for candidate in candidates:
            if candidate.canonical_id and candidate.canonical_id not in unique:
                unique[candidate.canonical_id] = candidate
        results = await asyncio.gather(
            *(self._resolve_one(candidate, token) for candidate in unique.values())
        )
        token.raise_if_cancelled()
        papers: dict[str, Paper] = {}
        for paper in results:
            if paper is not None and paper.id not in papers:
                papers[paper.id] = paper
        self.logger.info(
            "listing_resolved", candidates=len(unique), resolved=len(papers)
        )
        return sort_by_published(list(papers.values()))

    async def _resolve_one(self, candidate: Candidate, token: CancelToken) -> Paper | None:
        try:
            return await self.lookup(candidate.canonical_id, token)
        except Cancelled:
            return None
        except DigestError as exc:
            self.logger.warning(
                "lookup_failed",
                paper_id=candidate.canonical_id,
                title=candidate.display_title,
                error=str(exc),
            )
            return None


__all__ = [
    "CrossSourceDeduplicator",
    "DeduplicationResult",
    "LISTING_ANCHOR_SELECTOR",
    "SeenIdentifiers",
    "extract_candidates",
]
