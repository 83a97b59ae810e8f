"""
外部ドキュメントストアの基底クラス

関連モジュール:
- src/content_monitor/storage/manager.py - 複数ストアへの複製
- src/content_monitor/storage/notion.py - Notion
- src/content_monitor/storage/google_docs.py - Google Docs
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models import ContentItem, Summary


@dataclass(slots=True)
class StoredDocument:
    """ストア側に作成されたドキュメント"""

    external_id: str
    url: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def document_title(summary: Summary, item: Optional[ContentItem]) -> str:
    """ドキュメントタイトル（コンテンツタイトルがなければ要約の先頭）"""
    if item is not None and item.title:
        return item.title[:200]
    return summary.summary[:100] + "..."


def format_summary_text(summary: Summary, item: Optional[ContentItem]) -> str:
    """要約をプレーンテキストに整形"""
    lines: List[str] = []
    if item is not None:
        lines.append(item.title)
        lines.append(f"Source: {item.locator}")
        lines.append("")

    lines.append("Summary")
    lines.append(summary.summary)
    lines.append("")

    if summary.key_points:
        lines.append("Key Points")
        lines.extend(f"• {point}" for point in summary.key_points)
        lines.append("")

    if summary.topics:
        lines.append(f"Topics: {', '.join(summary.topics)}")
    lines.append(f"Sentiment: {summary.sentiment.value}")
    lines.append(f"Confidence: {summary.confidence}%")
    return "\n".join(lines) + "\n"


class DocumentStore(ABC):
    """外部ドキュメントストアの抽象インターフェース"""

    name: str

    @abstractmethod
    def is_configured(self) -> bool:
        """認証情報が揃っているか"""
        pass

    @abstractmethod
    def create_document(
        self, summary: Summary, item: Optional[ContentItem] = None
    ) -> StoredDocument:
        """
        要約をドキュメントとして保存

        Raises:
            ReplicationError: 保存に失敗した場合
        """
        pass
