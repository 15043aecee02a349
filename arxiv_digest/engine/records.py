"""Normalized record types produced by the pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urlsplit

ABS_URL = "https://arxiv.org/abs/"
UNKNOWN_CATEGORY = "Unknown"

_VERSION_SUFFIX = re.compile(r"v\d+$")
_OLD_STYLE_ID = re.compile(r"^[a-z][a-z\-]*(\.[A-Z]{2})?/\d{7}")
_NEW_STYLE_ID = re.compile(r"^\d{4}\.\d{4,5}$")
_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(value: str | None) -> str:
    """Replace newlines and whitespace runs with single spaces and trim."""

    if not value:
        return ""
    return _WHITESPACE.sub(" ", value).strip()


def canonical_id(raw: str | None) -> str:
    """Reduce an arXiv id, abs URL or listing href to a version-less id.

    ``http://arxiv.org/abs/2301.00001v2`` -> ``2301.00001``
    ``/papers/2301.00001#community`` -> ``2301.00001``
    ``hep-th/9901001v1`` -> ``hep-th/9901001``
    """

    if not raw:
        return ""
    text = raw.strip()
    if not text:
        return ""
    parts = urlsplit(text)
    path = parts.path if (parts.scheme or text.startswith("/")) else text.split("#", 1)[0].split("?", 1)[0]
    path = path.rstrip("/")
    if "/abs/" in path:
        bare = path.split("/abs/", 1)[1]
    elif _OLD_STYLE_ID.match(path):
        bare = path
    else:
        bare = path.rsplit("/", 1)[-1]
    return _VERSION_SUFFIX.sub("", bare.strip())


def is_arxiv_id(value: str) -> bool:
    """True for version-less ids such as ``2301.00001`` or ``hep-th/9901001``."""

    if _NEW_STYLE_ID.match(value):
        return True
    match = _OLD_STYLE_ID.match(value)
    return match is not None and match.end() == len(value)


def abs_url(paper_id: str) -> str:
    return f"{ABS_URL}{paper_id}"


@dataclass(frozen=True, slots=True)
class Paper:
    """Metadata for one scholarly work.

    ``reason`` and ``relevancy_score`` are only set on records joined with a
    digest result.
    """

    id: str
    title: str
    published: datetime
    authors: tuple[str, ...] = ()
    summary: str = ""
    category: str = UNKNOWN_CATEGORY
    link: str = ""
    reason: str | None = field(default=None, compare=False)
    relevancy_score: float | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.link:
            object.__setattr__(self, "link", abs_url(self.id))

    @property
    def timestamp(self) -> float:
        return self.published.timestamp()

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "summary": self.summary,
            "published": self.published.isoformat(),
            "category": self.category,
            "link": self.link,
        }
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.relevancy_score is not None:
            payload["relevancy_score"] = self.relevancy_score
        return payload


@dataclass(frozen=True, slots=True)
class Candidate:
    """A paper reference scraped from the listing page."""

    display_title: str
    canonical_id: str


@dataclass(frozen=True, slots=True)
class DigestResult:
    """One stored relevance judgment produced by the nightly digest job."""

    arxiv_id: str
    reason: str = ""
    relevancy_score: float = 0.0


def sort_by_published(papers: list[Paper]) -> list[Paper]:
    """Newest first, compared by numeric timestamp."""

    return sorted(papers, key=lambda paper: paper.timestamp, reverse=True)


def unique_by_id(papers: list[Paper]) -> list[Paper]:
    seen: set[str] = set()
    unique: list[Paper] = []
    for paper in papers:
        if paper.id in seen:
            continue
        seen.add(paper.id)
        unique.append(paper)
    return unique


__all__ = [
    "ABS_URL",
    "Candidate",
    "DigestResult",
    "Paper",
    "UNKNOWN_CATEGORY",
    "abs_url",
    "canonical_id",
    "collapse_whitespace",
    "is_arxiv_id",
    "sort_by_published",
    "unique_by_id",
]
