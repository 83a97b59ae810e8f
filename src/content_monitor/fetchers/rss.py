"""
RSS/Atomフィード取得器

関連モジュール:
- src/content_monitor/fetchers/base.py - 基底クラス
- src/content_monitor/pipeline.py - 取り込み処理
"""

import calendar
import logging
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

import feedparser
from bs4 import BeautifulSoup

from ..exceptions import FetchError
from ..models import CandidateItem, ContentSource, SourceKind
from .base import BaseFetcher

logger = logging.getLogger(__name__)

# 本文フィールドの優先順位（最初に空でないものを採用）
CONTENT_FIELDS = [
    "content:encoded",
    "content",
    "description",
    "summary",
    "contentSnippet",
]


def strip_html(html: str) -> str:
    """HTMLタグを除去し、表示テキストのみを返す"""
    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text()
    return text.replace("\xa0", " ").strip()


def _field_text(value: Any) -> str:
    # feedparserのcontentは [{"value": ...}] 形式
    if isinstance(value, list):
        for part in value:
            text = part.get("value") if hasattr(part, "get") else None
            if text:
                return text
        return ""
    return value if isinstance(value, str) else ""


def extract_content(entry: Any) -> str:
    """
    エントリから本文を抽出

    Args:
        entry: feedparserのエントリ（またはdict）

    Returns:
        HTML除去済みの本文（見つからない場合は空文字列）
    """
    for field in CONTENT_FIELDS:
        text = _field_text(entry.get(field))
        if text:
            return strip_html(text)
    return ""


def _parse_entry_time(entry: Any) -> Optional[datetime]:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    return None


class RSSFetcher(BaseFetcher):
    """RSSフィードによる取得器"""

    kind = SourceKind.RSS

    def __init__(self, max_entries: int = 20):
        self.max_entries = max_entries

    def fetch(self, source: ContentSource) -> Iterator[CandidateItem]:
        feed_url = source.metadata.get("feed_url") or source.url
        feed = feedparser.parse(feed_url)

        status = feed.get("status")
        if status and status >= 400:
            raise FetchError(f"Feed request failed ({feed_url}): HTTP {status}")
        if feed.get("bozo") and not feed.entries:
            raise FetchError(
                f"Failed to parse feed ({feed_url}): {feed.get('bozo_exception')}"
            )

        feed_title = feed.feed.get("title", "Unknown Feed")
        logger.info(f"Parsed feed '{feed_title}' with {len(feed.entries)} entries")

        for entry in feed.entries[: self.max_entries]:
            link = entry.get("link")
            if not link:
                continue

            published_at = _parse_entry_time(entry)
            yield CandidateItem(
                locator=link,
                title=entry.get("title") or "Untitled",
                content=extract_content(entry),
                published_at=published_at,
                metadata={
                    "author": entry.get("author") or entry.get("dc_creator") or "Unknown",
                    "published_at": published_at.isoformat() if published_at else None,
                    "tags": [tag.get("term") for tag in entry.get("tags", []) if tag.get("term")],
                    "feed_title": feed_title,
                },
            )
