"""Pytest configuration providing shared fixtures and Atom feed builders."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

import httpx
import pytest

from arxiv_digest.config import (
    ConfigLocator,
    ConfigRepository,
    FetchSettings,
    GlobalConfig,
    RetryPolicyConfig,
    RouteConfig,
)
from arxiv_digest.engine import ArxivClient, Fetcher, Parser

ATOM_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<feed xmlns="http://www.w3.org/2005/Atom" '
    'xmlns:arxiv="http://arxiv.org/schemas/atom">\n'
    "<title>ArXiv Query</title>\n"
)


def atom_entry(
    arxiv_id: str | None = "2301.00001v1",
    title: str | None = "A Study\n  of Things",
    published: str | None = "2023-01-02T18:30:00Z",
    summary: str | None = "Line one\nline two.",
    authors: Sequence[str] = ("Ada Lovelace", "Alan Turing"),
    category: str | None = "cs.CL",
    html_link: bool = True,
) -> str:
    parts = ["<entry>"]
    if arxiv_id is not None:
        parts.append(f"<id>http://arxiv.org/abs/{arxiv_id}</id>")
    if published is not None:
        parts.append(f"<published>{published}</published>")
    if title is not None:
        parts.append(f"<title>{title}</title>")
    if summary is not None:
        parts.append(f"<summary>{summary}</summary>")
    for name in authors:
        parts.append(f"<author><name>{name}</name></author>")
    if html_link and arxiv_id is not None:
        parts.append(
            f'<link href="http://arxiv.org/abs/{arxiv_id}" rel="alternate" type="text/html"/>'
        )
    if arxiv_id is not None:
        parts.append(
            f'<link title="pdf" href="http://arxiv.org/pdf/{arxiv_id}" rel="related" type="application/pdf"/>'
        )
    parts.append('<arxiv:primary_category term="cs.XX" scheme="http://arxiv.org/schemas/atom"/>')
    if category is not None:
        parts.append(f'<category term="{category}" scheme="http://arxiv.org/schemas/atom"/>')
    parts.append("</entry>")
    return "".join(parts)


def atom_feed(*entries: str) -> str:
    return ATOM_HEADER + "\n".join(entries) + "\n</feed>"


@pytest.fixture
def feed() -> Callable[..., str]:
    return atom_feed


@pytest.fixture
def entry() -> Callable[..., str]:
    return atom_entry


@pytest.fixture
def direct_settings() -> FetchSettings:
    return FetchSettings(
        routes=[RouteConfig(name="origin", template="")],
        listing_retry=RetryPolicyConfig(attempts=3, base_delay=0.0, multiplier=2.0),
    )


@pytest.fixture
def proxied_settings() -> FetchSettings:
    return FetchSettings(
        routes=[
            RouteConfig(name="alpha", template="https://alpha.test/raw?url={url}"),
            RouteConfig(name="beta", template="https://beta.test/?{url}"),
            RouteConfig(name="gamma", template="https://gamma.test/{url}", quote=False),
        ],
        listing_retry=RetryPolicyConfig(attempts=3, base_delay=0.0, multiplier=2.0),
    )


@pytest.fixture
def make_fetcher() -> Callable[..., Fetcher]:
    def _builder(handler: Callable[[httpx.Request], Any], settings: FetchSettings) -> Fetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return Fetcher(settings, client=client)

    return _builder


@pytest.fixture
def make_client(make_fetcher, direct_settings) -> Callable[..., ArxivClient]:
    def _builder(handler: Callable[[httpx.Request], Any], settings: FetchSettings | None = None) -> ArxivClient:
        return ArxivClient(make_fetcher(handler, settings or direct_settings), Parser())

    return _builder


@pytest.fixture
def sample_global_config(direct_settings: FetchSettings) -> GlobalConfig:
    return GlobalConfig(fetch=direct_settings)


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("ARXIV_DIGEST_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
