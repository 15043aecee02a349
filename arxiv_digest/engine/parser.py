"""Atom feed and listing page parsing helpers."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Iterable

import structlog

from .dedup import LISTING_ANCHOR_SELECTOR, extract_candidates
from .errors import EntryDropped, MalformedDocument
from .records import (
    UNKNOWN_CATEGORY,
    Candidate,
    Paper,
    abs_url,
    canonical_id,
    collapse_whitespace,
)
from .window import DateWindow, to_utc, utc_midnight

ATOM_NS = "http://www.w3.org/2005/Atom"
_NS = {"atom": ATOM_NS}


class DocumentKind(str, Enum):
    """What the parsed document was requested for."""

    SEARCH_RESULT = "search-result"
    SINGLE_LOOKUP = "single-identifier-lookup"


def parse_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    value = raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return to_utc(datetime.fromisoformat(value))
    except ValueError:
        return None


def _children(node: ET.Element, name: str) -> list[ET.Element]:
    # The API answers in the Atom namespace; fixtures and proxies sometimes strip it.
    found = node.findall(f"atom:{name}", _NS)
    if not found:
        found = node.findall(name)
    return found


def _first(node: ET.Element, name: str) -> ET.Element | None:
    found = _children(node, name)
    return found[0] if found else None


def _text(node: ET.Element | None) -> str:
    if node is None:
        return ""
    return collapse_whitespace("".join(node.itertext()))


class Parser:
    """Turn search API and listing responses into normalized records."""

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("arxiv_digest.parser")

    def parse_feed(
        self,
        body: str,
        kind: DocumentKind = DocumentKind.SEARCH_RESULT,
        window: DateWindow | None = None,
    ) -> list[Paper]:
        root = self._parse_document(body)
        apply_window = kind is DocumentKind.SEARCH_RESULT and window is not None
        papers: list[Paper] = []
        dropped = 0
        outside = 0
        entries = _children(root, "entry")
        for index, entry in enumerate(entries):
            try:
                paper = self._extract_entry(entry)
            except EntryDropped as exc:
                dropped += 1
                self.logger.debug(
                    "entry_dropped", index=index, reason=exc.reason, entry_id=exc.entry_id
                )
                continue
            except Exception as exc:  # noqa: BLE001
                dropped += 1
                self.logger.warning("entry_parse_failed", index=index, error=str(exc))
                continue
            if apply_window:
                paper = replace(paper, published=utc_midnight(paper.published))
                if not window.contains(paper.published):
                    outside += 1
                    continue
            papers.append(paper)
        self.logger.info(
            "feed_parsed",
            kind=kind.value,
            entries=len(entries),
            kept=len(papers),
            dropped=dropped,
            outside_window=outside,
        )
        return papers

    def parse_lookup(self, body: str, requested_id: str) -> Paper:
        """Return the single record answering an ``id_list`` lookup."""

        papers = self.parse_feed(body, DocumentKind.SINGLE_LOOKUP)
        if not papers:
            raise EntryDropped("lookup returned no usable entry", requested_id)
        paper = papers[0]
        bare = canonical_id(requested_id) or paper.id
        if bare != paper.id:
            paper = replace(paper, id=bare)
        return paper

    def parse_listing(
        self, html: str, selector: str = LISTING_ANCHOR_SELECTOR
    ) -> list[Candidate]:
        return extract_candidates(html, selector)

    # ------------------------------------------------------------------
    def _parse_document(self, body: str) -> ET.Element:
        if not body or not body.strip():
            raise MalformedDocument("Empty response from search API")
        try:
            return ET.fromstring(body.strip().encode("utf-8"))
        except ET.ParseError as exc:
            raise MalformedDocument(f"Failed to parse search API response: {exc}") from exc

    def _extract_entry(self, entry: ET.Element) -> Paper:
        raw_id = _text(_first(entry, "id"))
        if not raw_id:
            raise EntryDropped("missing id")
        if "/api/errors" in raw_id:
            raise EntryDropped("api error entry", raw_id)
        paper_id = canonical_id(raw_id)
        if not paper_id:
            raise EntryDropped("unresolvable id", raw_id)

        title = _text(_first(entry, "title"))
        if not title:
            raise EntryDropped("missing title", paper_id)

        published_raw = _text(_first(entry, "published"))
        if not published_raw:
            raise EntryDropped("missing published", paper_id)
        published = parse_timestamp(published_raw)
        if published is None:
            raise EntryDropped(f"unparsable published {published_raw!r}", paper_id)

        summary = _text(_first(entry, "summary"))

        category_node = _first(entry, "category")
        category = UNKNOWN_CATEGORY
        if category_node is not None and category_node.get("term"):
            category = category_node.get("term", UNKNOWN_CATEGORY).strip() or UNKNOWN_CATEGORY

        authors = tuple(self._author_names(_children(entry, "author")))

        link = abs_url(paper_id)
        for node in _children(entry, "link"):
            if node.get("type") == "text/html" and node.get("href"):
                link = node.get("href", link)
                break

        return Paper(
            id=paper_id,
            title=title,
            published=published,
            authors=authors,
            summary=summary,
            category=category,
            link=link,
        )

    @staticmethod
    def _author_names(nodes: Iterable[ET.Element]) -> Iterable[str]:
        for node in nodes:
            name = _text(_first(node, "name"))
            if name:
                yield name


__all__ = ["ATOM_NS", "DocumentKind", "Parser", "parse_timestamp"]
