"""RSS取得器のテスト"""

import time
from unittest.mock import patch

import feedparser
import pytest

from src.content_monitor import ContentSource, FetchError, SourceKind
from src.content_monitor.fetchers.rss import RSSFetcher, extract_content, strip_html


def test_strip_html():
    assert strip_html("<p>Hello &amp; welcome</p>") == "Hello & welcome"
    assert strip_html("<div>a&nbsp;b &lt;tag&gt; &quot;q&quot; &#39;s&#39;</div>") == "a b <tag> \"q\" 's'"
    assert strip_html("") == ""


def test_strip_html_keeps_line_breaks():
    assert strip_html("<p>one</p>\n<p>two</p>\n") == "one\ntwo"


def test_extract_content_field_order():
    entry = {
        "content:encoded": "",
        "content": [{"value": "<p>Full content</p>"}],
        "description": "Description",
        "summary": "Summary",
    }
    assert extract_content(entry) == "Full content"

    assert extract_content({"description": "<b>Desc</b>", "summary": "Summary"}) == "Desc"
    assert extract_content({"summary": "Summary only"}) == "Summary only"
    assert extract_content({"contentSnippet": "Snippet"}) == "Snippet"
    assert extract_content({}) == ""


def make_feed(entries, status=200, bozo=False):
    feed = feedparser.FeedParserDict()
    feed["status"] = status
    feed["bozo"] = bozo
    feed["bozo_exception"] = Exception("broken") if bozo else None
    feed["feed"] = feedparser.FeedParserDict(title="Example Feed")
    feed["entries"] = [feedparser.FeedParserDict(e) for e in entries]
    return feed


@pytest.fixture
def source():
    return ContentSource(
        id=1, owner="alice", kind=SourceKind.RSS, name="Blog", url="https://example.com/feed"
    )


def test_fetch_entries(source):
    entries = [
        {
            "title": "Post 1",
            "link": "https://example.com/1",
            "summary": "<p>First</p>",
            "author": "Writer",
            "published_parsed": time.struct_time((2025, 1, 2, 3, 4, 5, 3, 2, 0)),
            "tags": [{"term": "python"}],
        },
        {"title": "No link", "summary": "skipped"},
        {"link": "https://example.com/2", "description": "Second"},
    ]
    with patch("src.content_monitor.fetchers.rss.feedparser.parse", return_value=make_feed(entries)):
        candidates = list(RSSFetcher().fetch(source))

    assert [c.locator for c in candidates] == ["https://example.com/1", "https://example.com/2"]
    first = candidates[0]
    assert first.content == "First"
    assert first.metadata["author"] == "Writer"
    assert first.metadata["tags"] == ["python"]
    assert first.published_at.isoformat() == "2025-01-02T03:04:05+00:00"
    assert candidates[1].title == "Untitled"
    assert candidates[1].metadata["author"] == "Unknown"


def test_fetch_prefers_metadata_feed_url():
    source = ContentSource(
        id=1,
        owner="alice",
        kind=SourceKind.RSS,
        name="Blog",
        url="https://example.com",
        metadata={"feed_url": "https://example.com/rss.xml"},
    )
    with patch(
        "src.content_monitor.fetchers.rss.feedparser.parse", return_value=make_feed([])
    ) as mock_parse:
        assert list(RSSFetcher().fetch(source)) == []
    mock_parse.assert_called_once_with("https://example.com/rss.xml")


def test_fetch_http_error(source):
    with patch("src.content_monitor.fetchers.rss.feedparser.parse", return_value=make_feed([], status=404)):
        with pytest.raises(FetchError, match="HTTP 404"):
            list(RSSFetcher().fetch(source))


def test_fetch_unparseable_feed(source):
    with patch("src.content_monitor.fetchers.rss.feedparser.parse", return_value=make_feed([], bozo=True)):
        with pytest.raises(FetchError, match="Failed to parse feed"):
            list(RSSFetcher().fetch(source))


def test_fetch_respects_max_entries(source):
    entries = [{"title": f"P{i}", "link": f"https://example.com/{i}"} for i in range(5)]
    with patch("src.content_monitor.fetchers.rss.feedparser.parse", return_value=make_feed(entries)):
        candidates = list(RSSFetcher(max_entries=3).fetch(source))
    assert len(candidates) == 3
