"""Merge an in-hand batch with externally referenced identifiers."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Iterable, Sequence

import structlog

from .cancellation import CancelToken, ensure_token
from .dedup import Lookup
from .errors import Cancelled, DigestError
from .records import DigestResult, Paper, canonical_id, sort_by_published, unique_by_id


class Reconciler:
    """Answer "show me everything tagged X" from a primary batch plus lookups.

    Missing identifiers are fetched concurrently, one lookup each; a failed
    lookup only drops its own identifier. Output order comes from the final
    sort, never from lookup completion order.
    """

    def __init__(self, lookup: Lookup, logger: structlog.BoundLogger | None = None) -> None:
        self.lookup = lookup
        self.logger = logger or structlog.get_logger("arxiv_digest.reconcile")

    async def reconcile(
        self,
        primary: Sequence[Paper],
        external_ids: Iterable[str],
        token: CancelToken | None = None,
    ) -> list[Paper]:
        token = ensure_token(token)
        wanted = {canonical_id(raw) for raw in external_ids} - {""}
        primary_ids = {paper.id for paper in primary}

        present = [paper for paper in primary if paper.id in wanted]
        missing = sorted(wanted - primary_ids)

        fetched = await self._lookup_many(missing, token)
        merged = sort_by_published(unique_by_id(present + fetched))
        self.logger.info(
            "reconciled",
            requested=len(wanted),
            present=len(present),
            missing=len(missing),
            fetched=len(fetched),
            returned=len(merged),
        )
        return merged

    async def resolve_digest(
        self, results: Iterable[DigestResult], token: CancelToken | None = None
    ) -> list[Paper]:
        """Resolve digest results and order them by relevance, best first."""

        token = ensure_token(token)
        by_id: dict[str, DigestResult] = {}
        for result in results:
            bare = canonical_id(result.arxiv_id)
            if bare and bare not in by_id:
                by_id[bare] = result

        papers = await self._lookup_many(list(by_id), token)
        joined = [
            replace(
                paper,
                reason=by_id[paper.id].reason,
                relevancy_score=by_id[paper.id].relevancy_score,
            )
            for paper in papers
            if paper.id in by_id
        ]
        # Relevance first; publication date only breaks ties.
        joined.sort(key=lambda paper: (paper.relevancy_score or 0.0, paper.timestamp), reverse=True)
        self.logger.info("digest_resolved", requested=len(by_id), returned=len(joined))
        return joined

    async def _lookup_many(self, identifiers: Sequence[str], token: CancelToken) -> list[Paper]:
        if not identifiers:
            return []
        results = await asyncio.gather(
            *(self._lookup_one(identifier, token) for identifier in identifiers)
        )
        token.raise_if_cancelled()
        return [paper for paper in results if paper is not None]

    async def _lookup_one(self, identifier: str, token: CancelToken) -> Paper | None:
        try:
            return await self.lookup(identifier, token)
        except Cancelled:
            return None
        except DigestError as exc:
            self.logger.warning("lookup_failed", paper_id=identifier, error=str(exc))
            return None


__all__ = ["Reconciler"]
