"""YouTube取得器のテスト"""

from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from src.content_monitor import ChannelIdError, ContentSource, FetchError, SourceKind
from src.content_monitor.fetchers.youtube import (
    YouTubeFetcher,
    YouTubeTranscriptProvider,
    extract_channel_id,
    extract_video_id,
    format_duration,
    parse_duration,
)


@pytest.mark.parametrize(
    "duration,expected",
    [
        ("PT1H2M3S", 3723),
        ("PT4M13S", 253),
        ("PT45S", 45),
        ("PT2H", 7200),
        ("", 0),
        (None, 0),
        ("garbage", 0),
    ],
)
def test_parse_duration(duration, expected):
    assert parse_duration(duration) == expected


def test_format_duration():
    assert format_duration(253) == "4:13"
    assert format_duration(3723) == "1:02:03"
    assert format_duration(0) == "0:00"


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.youtube.com/channel/UCabc123_-x", "UCabc123_-x"),
        ("https://www.youtube.com/c/SomeName", "SomeName"),
        ("https://www.youtube.com/user/olduser", "olduser"),
        ("https://www.youtube.com/@handle", "handle"),
    ],
)
def test_extract_channel_id(url, expected):
    assert extract_channel_id(url) == expected


def test_extract_channel_id_invalid():
    with pytest.raises(ChannelIdError, match="Could not extract channel ID"):
        extract_channel_id("https://example.com/not-youtube")


def test_extract_video_id():
    assert extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_video_id("https://example.com") is None


def make_service():
    """channels → playlistItems → videos の応答を返すモック"""
    service = MagicMock()
    service.channels().list().execute.return_value = {
        "items": [{"contentDetails": {"relatedPlaylists": {"uploads": "UUabc"}}}]
    }
    service.playlistItems().list().execute.return_value = {
        "items": [{"contentDetails": {"videoId": "vid1"}}, {"contentDetails": {"videoId": "vid2"}}]
    }
    service.videos().list().execute.return_value = {
        "items": [
            {
                "id": "vid1",
                "snippet": {
                    "title": "First video",
                    "channelTitle": "Channel",
                    "publishedAt": "2025-01-01T10:00:00Z",
                    "description": "desc",
                    "thumbnails": {"high": {"url": "https://img/1.jpg"}},
                    "tags": ["python"],
                },
                "contentDetails": {"duration": "PT10M"},
            },
            {
                "id": "vid2",
                "snippet": {"title": "Second video", "channelTitle": "Channel"},
                "contentDetails": {"duration": "PT1H"},
            },
        ]
    }
    return service


def test_fetch_builds_candidates():
    source = ContentSource(
        id=1,
        owner="alice",
        kind=SourceKind.YOUTUBE,
        name="Channel",
        url="https://www.youtube.com/channel/UCabc",
    )
    fetcher = YouTubeFetcher(service=make_service())

    candidates = list(fetcher.fetch(source))

    assert [c.locator for c in candidates] == [
        "https://www.youtube.com/watch?v=vid1",
        "https://www.youtube.com/watch?v=vid2",
    ]
    first = candidates[0]
    assert first.title == "First video"
    assert first.content is None
    assert first.metadata["duration"] == 600
    assert first.metadata["author"] == "Channel"
    assert first.metadata["tags"] == ["python"]
    assert first.published_at.year == 2025
    assert candidates[1].metadata["duration"] == 3600


def test_fetch_with_transcript_provider():
    provider = MagicMock()
    provider.get_transcript.return_value = "hello transcript"
    source = ContentSource(
        id=1, owner="alice", kind=SourceKind.YOUTUBE, name="C", url="https://www.youtube.com/@handle"
    )
    fetcher = YouTubeFetcher(service=make_service(), transcript_provider=provider)

    candidates = list(fetcher.fetch(source))

    assert candidates[0].content == "hello transcript"
    provider.get_transcript.assert_any_call("vid1")


def test_fetch_http_error_becomes_fetch_error():
    service = MagicMock()
    service.channels().list().execute.side_effect = HttpError(MagicMock(status=403), b"quota")
    source = ContentSource(
        id=1, owner="alice", kind=SourceKind.YOUTUBE, name="C", url="https://www.youtube.com/channel/UCabc"
    )

    with pytest.raises(FetchError):
        list(YouTubeFetcher(service=service).fetch(source))


@pytest.mark.parametrize(
    "error",
    [TimeoutError("timed out"), OSError("Name or service not known"), KeyError("contentDetails")],
)
def test_fetch_transport_errors_become_fetch_error(error):
    service = MagicMock()
    service.channels().list().execute.side_effect = error
    source = ContentSource(
        id=1, owner="alice", kind=SourceKind.YOUTUBE, name="C", url="https://www.youtube.com/channel/UCabc"
    )

    with pytest.raises(FetchError):
        list(YouTubeFetcher(service=service).fetch(source))


def test_fetch_without_api_key():
    fetcher = YouTubeFetcher()
    source = ContentSource(
        id=1, owner="alice", kind=SourceKind.YOUTUBE, name="C", url="https://www.youtube.com/channel/UCabc"
    )
    assert fetcher.is_configured() is False
    with pytest.raises(FetchError, match="not configured"):
        list(fetcher.fetch(source))


def test_transcript_provider_joins_snippets():
    api = MagicMock()
    api.fetch.return_value = MagicMock(
        snippets=[MagicMock(text="line one"), MagicMock(text=" "), MagicMock(text="line two")]
    )
    provider = YouTubeTranscriptProvider(languages=["en"], api=api)

    assert provider.get_transcript("vid1") == "line one\nline two"
    api.fetch.assert_called_once_with("vid1", languages=("en",))
