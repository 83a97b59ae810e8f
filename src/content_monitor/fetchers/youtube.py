"""
YouTubeチャンネル取得器

関連モジュール:
- src/content_monitor/fetchers/base.py - 基底クラス
- src/content_monitor/summarizer.py - 要約時の文字起こし遅延取得

チャンネルの最新アップロードは YouTube Data API v3 で取得し、
文字起こしは youtube-transcript-api で取得する。
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from youtube_transcript_api import YouTubeTranscriptApi, YouTubeTranscriptApiException

from ..exceptions import ChannelIdError, FetchError
from ..models import CandidateItem, ContentSource, SourceKind
from .base import BaseFetcher

logger = logging.getLogger(__name__)

# 対応するチャンネルURLの形式（上から順に試す）
CHANNEL_URL_PATTERNS = [
    re.compile(r"youtube\.com/channel/([a-zA-Z0-9_-]+)"),
    re.compile(r"youtube\.com/c/([a-zA-Z0-9_-]+)"),
    re.compile(r"youtube\.com/user/([a-zA-Z0-9_-]+)"),
    re.compile(r"youtube\.com/@([a-zA-Z0-9_-]+)"),
]

VIDEO_URL_PATTERN = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([a-zA-Z0-9_-]+)")

DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def extract_channel_id(url: str) -> str:
    """
    チャンネルURLからチャンネル識別子を抽出

    Raises:
        ChannelIdError: いずれの形式にも一致しない場合
    """
    for pattern in CHANNEL_URL_PATTERNS:
        match = pattern.search(url or "")
        if match:
            return match.group(1)
    raise ChannelIdError("Could not extract channel ID from source")


def extract_video_id(url: str) -> Optional[str]:
    """動画URLから動画IDを抽出（一致しない場合はNone）"""
    match = VIDEO_URL_PATTERN.search(url or "")
    return match.group(1) if match else None


def video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def parse_duration(duration: Optional[str]) -> int:
    """
    ISO-8601形式の再生時間（PT4M13S）を秒に変換

    時・分・秒はいずれも省略可能。解析できない場合は0。
    """
    match = DURATION_PATTERN.match(duration or "")
    if not match:
        return 0
    hours, minutes, seconds = (int(group or 0) for group in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def format_duration(seconds: int) -> str:
    """秒を H:MM:SS（1時間未満は M:SS）に整形"""
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


class TranscriptProvider(ABC):
    """文字起こし取得の抽象インターフェース"""

    @abstractmethod
    def get_transcript(self, video_id: str) -> str:
        """文字起こしテキストを返す（存在しない場合は空文字列）"""
        pass


class YouTubeTranscriptProvider(TranscriptProvider):
    """youtube-transcript-api による文字起こし取得"""

    def __init__(self, languages: Sequence[str] = ("ja", "en"), api: Any = None):
        self.languages = tuple(languages)
        self.api = api or YouTubeTranscriptApi()

    def get_transcript(self, video_id: str) -> str:
        try:
            transcript = self.api.fetch(video_id, languages=self.languages)
        except YouTubeTranscriptApiException as e:
            logger.info(f"No transcript for video {video_id}: {e}")
            return ""

        lines: List[str] = []
        for snippet in transcript.snippets:
            text = getattr(snippet, "text", "").strip()
            if text:
                lines.append(text)
        return "\n".join(lines)


class YouTubeFetcher(BaseFetcher):
    """YouTubeチャンネルの最新アップロードを取得する取得器"""

    kind = SourceKind.YOUTUBE

    def __init__(
        self,
        api_key: Optional[str] = None,
        service: Any = None,
        transcript_provider: Optional[TranscriptProvider] = None,
        max_results: int = 10,
    ):
        """
        初期化

        Args:
            api_key: YouTube Data APIキー
            service: 構築済みのAPIクライアント（テスト用に差し替え可能）
            transcript_provider: 取得時に文字起こしも取得する場合に指定
            max_results: 1回の取得で確認する動画数
        """
        self.api_key = api_key
        self.transcript_provider = transcript_provider
        self.max_results = max_results
        self._service = service

    def is_configured(self) -> bool:
        return self._service is not None or bool(self.api_key)

    def _get_service(self) -> Any:
        if self._service is None:
            if not self.api_key:
                raise FetchError("YouTube API key is not configured")
            self._service = build(
                "youtube", "v3", developerKey=self.api_key, cache_discovery=False
            )
        return self._service

    def fetch(self, source: ContentSource) -> Iterator[CandidateItem]:
        channel_ref = source.metadata.get("channel_id") or extract_channel_id(source.url)
        logger.info(f"Fetching videos for channel: {channel_ref}")

        try:
            videos = self._list_recent_videos(channel_ref)
        except FetchError:
            raise
        except HttpError as e:
            raise FetchError(f"YouTube API error: {e}") from e
        except Exception as e:
            # タイムアウト・名前解決失敗・不正な応答も取得失敗として扱う
            raise FetchError(f"Failed to fetch YouTube channel {channel_ref}: {e!r}") from e

        for video in videos:
            yield self._to_candidate(video)

    def _resolve_uploads_playlist(self, channel_ref: str) -> str:
        """チャンネル識別子からアップロード再生リストIDを解決"""
        service = self._get_service()

        if channel_ref.startswith("UC"):
            lookups = [{"id": channel_ref}]
        else:
            # /c/ と /@ はハンドル、/user/ は旧ユーザー名
            lookups = [{"forHandle": f"@{channel_ref}"}, {"forUsername": channel_ref}]

        for lookup in lookups:
            response = service.channels().list(part="contentDetails", **lookup).execute()
            items = response.get("items", [])
            if items:
                return items[0]["contentDetails"]["relatedPlaylists"]["uploads"]

        raise FetchError(f"YouTube channel not found: {channel_ref}")

    def _list_recent_videos(self, channel_ref: str) -> List[Dict[str, Any]]:
        service = self._get_service()
        playlist_id = self._resolve_uploads_playlist(channel_ref)

        playlist = (
            service.playlistItems()
            .list(
                part="snippet,contentDetails",
                playlistId=playlist_id,
                maxResults=self.max_results,
            )
            .execute()
        )
        video_ids = [
            item["contentDetails"]["videoId"] for item in playlist.get("items", [])
        ]
        if not video_ids:
            return []

        details = (
            service.videos()
            .list(part="snippet,contentDetails", id=",".join(video_ids))
            .execute()
        )
        by_id = {video["id"]: video for video in details.get("items", [])}

        videos = []
        for video_id in video_ids:
            video = by_id.get(video_id)
            if video is None:
                continue
            snippet = video.get("snippet", {})
            thumbnails = snippet.get("thumbnails", {})
            videos.append(
                {
                    "id": video_id,
                    "title": snippet.get("title", ""),
                    "description": snippet.get("description", ""),
                    "channel_title": snippet.get("channelTitle", ""),
                    "published_at": snippet.get("publishedAt"),
                    "duration": video.get("contentDetails", {}).get("duration", ""),
                    "thumbnail_url": thumbnails.get("high", {}).get("url"),
                    "tags": snippet.get("tags", []),
                }
            )
        return videos

    def _to_candidate(self, video: Dict[str, Any]) -> CandidateItem:
        published_at = None
        if video.get("published_at"):
            try:
                published_at = datetime.fromisoformat(
                    video["published_at"].replace("Z", "+00:00")
                )
            except ValueError:
                published_at = None

        transcript = None
        if self.transcript_provider is not None:
            transcript = self.transcript_provider.get_transcript(video["id"]) or None

        return CandidateItem(
            locator=video_url(video["id"]),
            title=video.get("title") or "Untitled",
            content=transcript,
            published_at=published_at,
            metadata={
                "author": video.get("channel_title"),
                "published_at": video.get("published_at"),
                "duration": parse_duration(video.get("duration")),
                "thumbnail_url": video.get("thumbnail_url"),
                "description": video.get("description", ""),
                "tags": video.get("tags", []),
                "video_id": video["id"],
            },
        )
