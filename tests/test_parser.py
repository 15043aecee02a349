from datetime import date, datetime, timezone

import pytest

from arxiv_digest.engine import DateWindow, DocumentKind, EntryDropped, MalformedDocument, Parser
from arxiv_digest.engine.parser import parse_timestamp

API_ERROR_ENTRY = (
    "<entry><id>http://arxiv.org/api/errors#incorrect_id_format_for_1234</id>"
    "<title>Error</title><published>2023-01-02T00:00:00Z</published>"
    "<summary>incorrect id format for 1234</summary></entry>"
)


def test_parse_feed_normalises_entry(feed, entry):
    papers = Parser().parse_feed(feed(entry()))
    assert len(papers) == 1
    paper = papers[0]
    assert paper.id == "2301.00001"
    assert paper.title == "A Study of Things"
    assert paper.summary == "Line one line two."
    assert paper.authors == ("Ada Lovelace", "Alan Turing")
    assert paper.category == "cs.CL"
    assert paper.link == "http://arxiv.org/abs/2301.00001v1"
    assert paper.published == datetime(2023, 1, 2, 18, 30, tzinfo=timezone.utc)


def test_parse_feed_defaults_category_and_link(feed, entry):
    body = feed(entry(category=None, html_link=False, authors=()))
    paper = Parser().parse_feed(body)[0]
    assert paper.category == "Unknown"
    assert paper.link == "https://arxiv.org/abs/2301.00001"
    assert paper.authors == ()


def test_parse_feed_skips_malformed_entries_between_valid_ones(feed, entry):
    body = feed(
        entry(arxiv_id="2301.00001v1"),
        entry(arxiv_id="2301.00002v1", title=None),
        API_ERROR_ENTRY,
        entry(arxiv_id=None),
        entry(arxiv_id="2301.00003v2", published="not-a-date"),
        entry(arxiv_id="2301.00004v1", published=None),
        entry(arxiv_id="2301.00005v1", published="2023-01-01T09:00:00Z"),
    )
    papers = Parser().parse_feed(body)
    assert [paper.id for paper in papers] == ["2301.00001", "2301.00005"]


def test_parse_feed_accepts_documents_without_namespace():
    body = (
        "<feed><entry><id>http://arxiv.org/abs/2302.00010v1</id>"
        "<title>Plain</title><published>2023-02-01T00:00:00Z</published>"
        "<author><name>Grace Hopper</name></author></entry></feed>"
    )
    paper = Parser().parse_feed(body)[0]
    assert paper.id == "2302.00010"
    assert paper.authors == ("Grace Hopper",)


def test_parse_feed_with_no_entries_is_empty(feed):
    assert Parser().parse_feed(feed()) == []


@pytest.mark.parametrize("body", ["", "   ", "<feed><entry>", "not xml at all"])
def test_parse_feed_rejects_unparseable_documents(body):
    with pytest.raises(MalformedDocument):
        Parser().parse_feed(body)


def test_window_truncates_to_midnight_and_is_inclusive(feed, entry):
    body = feed(
        entry(arxiv_id="2301.00001v1", published="2023-01-01T23:59:59Z"),
        entry(arxiv_id="2301.00002v1", published="2023-01-02T00:00:00Z"),
        entry(arxiv_id="2301.00003v1", published="2023-01-03T23:59:59Z"),
        entry(arxiv_id="2301.00004v1", published="2023-01-04T00:00:00Z"),
    )
    window = DateWindow(start=date(2023, 1, 2), end=date(2023, 1, 3))
    papers = Parser().parse_feed(body, DocumentKind.SEARCH_RESULT, window)
    assert [paper.id for paper in papers] == ["2301.00002", "2301.00003"]
    assert papers[1].published == datetime(2023, 1, 3, tzinfo=timezone.utc)


def test_lookup_documents_ignore_window_and_keep_time(feed, entry):
    window = DateWindow(start=date(2020, 1, 1), end=date(2020, 1, 1))
    papers = Parser().parse_feed(feed(entry()), DocumentKind.SINGLE_LOOKUP, window)
    assert papers[0].published.hour == 18


def test_parse_lookup_uses_requested_identifier(feed, entry):
    parser = Parser()
    body = feed(entry(arxiv_id="2301.00001v3"))
    assert parser.parse_lookup(body, "https://arxiv.org/abs/2301.00001v1").id == "2301.00001"
    assert parser.parse_lookup(body, "2301.99999").id == "2301.99999"


def test_parse_lookup_without_usable_entry_raises(feed):
    with pytest.raises(EntryDropped) as excinfo:
        Parser().parse_lookup(feed(API_ERROR_ENTRY), "1234")
    assert excinfo.value.entry_id == "1234"


def test_parse_timestamp_variants():
    assert parse_timestamp("2023-01-02T18:30:00Z") == datetime(2023, 1, 2, 18, 30, tzinfo=timezone.utc)
    assert parse_timestamp("2023-01-02T20:30:00+02:00") == datetime(2023, 1, 2, 18, 30, tzinfo=timezone.utc)
    assert parse_timestamp("") is None
    assert parse_timestamp("yesterday") is None


def test_parse_listing_collects_unique_candidates():
    html = """
    <html><body>
      <a href="/papers/2405.00001">First paper</a>
      <a href="/papers/2405.00001#community">12 comments</a>
      <a href="/papers/2405.00002v2">Second
         paper</a>
      <a href="/papers/trending">Trending</a>
      <a href="/models/foo">Model</a>
    </body></html>
    """
    candidates = Parser().parse_listing(html)
    assert [(c.canonical_id, c.display_title) for c in candidates] == [
        ("2405.00001", "First paper"),
        ("2405.00002", "Second paper"),
    ]
