"""Pipeline orchestrator wiring together fetching, parsing, filtering and reconciliation."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import date
from typing import Awaitable, Callable, Iterable, Sequence

import structlog

from .config import GlobalConfig
from .engine import (
    ArxivClient,
    CancelToken,
    Cancelled,
    CrossSourceDeduplicator,
    DateWindow,
    FetchExhausted,
    Fetcher,
    MalformedDocument,
    Paper,
    Parser,
    Reconciler,
    RunSupervisor,
)
from .infra import DigestStore, TagStore

SEARCH = "search"
TITLE = "title"
KEYWORDS = "keywords"
TAGGED = "tagged"
DAILY = "daily"
DIGEST = "digest"


@dataclass(slots=True)
class PipelineResult:
    """What a top-level run hands back to the presentation layer."""

    papers: list[Paper] = field(default_factory=list)
    error: str | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


Deliver = Callable[[PipelineResult], None]


class Orchestrator:
    """Central coordinator for every top-level query.

    Each query kind runs on its own channel; starting a query cancels the one
    still running on that channel. Fetch and parse failures of the top-level
    request become a single error message; cancelled runs are dropped
    silently and never delivered.
    """

    def __init__(
        self,
        config: GlobalConfig | None = None,
        client: ArxivClient | None = None,
        tag_store: TagStore | None = None,
        digest_store: DigestStore | None = None,
        supervisor: RunSupervisor | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config or GlobalConfig()
        self.logger = logger or structlog.get_logger("arxiv_digest.orchestrator")
        if client is None:
            fetcher = Fetcher(self.config.fetch)
            client = ArxivClient(
                fetcher,
                Parser(),
                settings=self.config.arxiv,
                listing=self.config.listing,
            )
        self.client = client
        self.tag_store = tag_store
        self.digest_store = digest_store
        self.supervisor = supervisor or RunSupervisor()
        self.reconciler = Reconciler(self._lookup)
        self.deduplicator = CrossSourceDeduplicator(self._lookup_with_retry)

    async def aclose(self) -> None:
        self.supervisor.shutdown()
        await self.client.fetcher.aclose()

    # ------------------------------------------------------------------
    async def search(
        self,
        expression: str | None = None,
        window: DateWindow | None = None,
        deliver: Deliver | None = None,
    ) -> PipelineResult:
        query = (expression or "").strip() or self.config.arxiv.default_query

        async def _work(token: CancelToken) -> list[Paper]:
            return await self.client.search(query, window, token)

        return await self._run(SEARCH, _work, deliver)

    async def search_title(self, term: str, deliver: Deliver | None = None) -> PipelineResult:
        async def _work(token: CancelToken) -> list[Paper]:
            return await self.client.search_title(term, token)

        return await self._run(TITLE, _work, deliver)

    async def search_keywords(
        self, keywords: Sequence[str], deliver: Deliver | None = None
    ) -> PipelineResult:
        async def _work(token: CancelToken) -> list[Paper]:
            return await self.client.search_keywords(keywords, token)

        return await self._run(KEYWORDS, _work, deliver)

    async def reconcile(
        self,
        primary: Sequence[Paper],
        external_ids: Iterable[str],
        deliver: Deliver | None = None,
    ) -> PipelineResult:
        ids = set(external_ids)

        async def _work(token: CancelToken) -> list[Paper]:
            return await self.reconciler.reconcile(primary, ids, token)

        return await self._run(TAGGED, _work, deliver)

    async def filter_by_tag(
        self,
        primary: Sequence[Paper],
        tag: str | None,
        user_id: str | None,
        deliver: Deliver | None = None,
    ) -> PipelineResult:
        """Everything carrying ``tag`` for ``user_id``, fetched when outside ``primary``.

        Every branch runs on the tagged channel, so changing the selection
        cancels a reconciliation still in flight.
        """

        async def _work(token: CancelToken) -> list[Paper]:
            if not tag:
                return list(primary)
            if not user_id or self.tag_store is None:
                return []
            try:
                ids = self.tag_store.paper_ids(user_id, tag)
            except sqlite3.Error as exc:
                # Unreadable tag store: keep showing the unfiltered batch.
                self.logger.error("tag_lookup_failed", tag=tag, error=str(exc))
                return list(primary)
            return await self.reconciler.reconcile(primary, ids, token)

        return await self._run(TAGGED, _work, deliver)

    async def daily(self, day: date, deliver: Deliver | None = None) -> PipelineResult:
        async def _work(token: CancelToken) -> list[Paper]:
            candidates = await self.client.listing_candidates(day, token)
            return await self.deduplicator.resolve(candidates, token)

        return await self._run(DAILY, _work, deliver)

    async def digest(self, digest_id: str, deliver: Deliver | None = None) -> PipelineResult:
        async def _work(token: CancelToken) -> list[Paper]:
            if self.digest_store is None:
                return []
            results = self.digest_store.results(digest_id)
            return await self.reconciler.resolve_digest(results, token)

        return await self._run(DIGEST, _work, deliver)

    # ------------------------------------------------------------------
    async def _run(
        self,
        channel: str,
        work: Callable[[CancelToken], Awaitable[list[Paper]]],
        deliver: Deliver | None,
    ) -> PipelineResult:
        log = self.logger.bind(channel=channel)
        delivered: list[PipelineResult] = []

        def _write_back(papers: list[Paper]) -> None:
            result = PipelineResult(papers=papers)
            delivered.append(result)
            if deliver is not None:
                deliver(result)

        try:
            await self.supervisor.run(channel, work, _write_back)
        except Cancelled as exc:
            log.info("run_superseded", reason=str(exc))
            return PipelineResult(cancelled=True)
        except (FetchExhausted, MalformedDocument) as exc:
            log.error("run_failed", error=str(exc), cause=repr(exc.__cause__))
            return self._finish(PipelineResult(error=f"Failed to fetch papers: {exc}"), deliver)
        except sqlite3.Error as exc:
            log.error("store_read_failed", error=str(exc))
            return self._finish(PipelineResult(error=f"Failed to read stored results: {exc}"), deliver)
        log.info("run_completed", papers=len(delivered[0].papers))
        return delivered[0]

    @staticmethod
    def _finish(result: PipelineResult, deliver: Deliver | None) -> PipelineResult:
        if deliver is not None:
            deliver(result)
        return result

    async def _lookup(self, paper_id: str, token: CancelToken) -> Paper:
        return await self.client.lookup(paper_id, token)

    async def _lookup_with_retry(self, paper_id: str, token: CancelToken) -> Paper:
        return await self.client.lookup(paper_id, token, retry=True)


__all__ = ["Orchestrator", "PipelineResult"]
