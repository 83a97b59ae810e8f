"""
Notionストア

要約をNotionデータベースのページとして保存する。
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..exceptions import ReplicationError
from ..models import ContentItem, Summary
from .base import DocumentStore, StoredDocument, document_title

logger = logging.getLogger(__name__)

# Notionのrich_textは1要素2000文字まで
TEXT_LIMIT = 2000


def _rich_text(content: str) -> List[Dict[str, Any]]:
    return [
        {"type": "text", "text": {"content": content[i : i + TEXT_LIMIT]}}
        for i in range(0, len(content), TEXT_LIMIT)
    ] or [{"type": "text", "text": {"content": ""}}]


def _block(block_type: str, content: str) -> Dict[str, Any]:
    return {
        "object": "block",
        "type": block_type,
        block_type: {"rich_text": _rich_text(content)},
    }


class NotionStore(DocumentStore):
    """Notion REST APIによるドキュメントストア"""

    name = "notion"

    def __init__(
        self,
        token: Optional[str] = None,
        database_id: Optional[str] = None,
        timeout: int = 30,
    ):
        self.token = token
        self.database_id = self._format_uuid(database_id) if database_id else None
        self.timeout = timeout
        self.base_url = "https://api.notion.com/v1"
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": "2022-06-28",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _format_uuid(uuid_str: str) -> str:
        if len(uuid_str) == 32 and "-" not in uuid_str:
            return f"{uuid_str[:8]}-{uuid_str[8:12]}-{uuid_str[12:16]}-{uuid_str[16:20]}-{uuid_str[20:]}"
        return uuid_str

    def is_configured(self) -> bool:
        return bool(self.token and self.database_id)

    def _children(self, summary: Summary, item: Optional[ContentItem]) -> List[Dict[str, Any]]:
        blocks = [_block("heading_2", "Summary"), _block("paragraph", summary.summary)]
        if summary.key_points:
            blocks.append(_block("heading_2", "Key Points"))
            blocks.extend(_block("bulleted_list_item", point) for point in summary.key_points)
        if item is not None:
            blocks.append(_block("heading_2", "Source"))
            blocks.append(_block("paragraph", item.locator))
        return blocks

    def create_document(
        self, summary: Summary, item: Optional[ContentItem] = None
    ) -> StoredDocument:
        if not self.is_configured():
            raise ReplicationError("Notion client not configured")

        title = document_title(summary, item)
        properties = {
            "Title": {"title": [{"text": {"content": title}}]},
            "Type": {"select": {"name": item.kind.value if item else "summary"}},
            "Sentiment": {"select": {"name": summary.sentiment.value}},
            "Topics": {
                "multi_select": [{"name": t.replace(",", "")} for t in summary.topics[:10]]
            },
            "Confidence": {"number": summary.confidence},
            "Created": {"date": {"start": summary.created_at.isoformat()}},
        }
        payload = {
            "parent": {"database_id": self.database_id},
            "properties": properties,
            "children": self._children(summary, item),
        }

        try:
            response = requests.post(
                f"{self.base_url}/pages",
                headers=self.headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ReplicationError(f"Failed to create Notion page: {e}") from e

        if response.status_code != 200:
            raise ReplicationError(
                f"Failed to create Notion page: {response.status_code} {response.text}"
            )

        try:
            page = response.json()
            page_id = page["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise ReplicationError(f"Unexpected Notion response: {e!r}") from e

        logger.info(f"Created Notion page: {page.get('url')}")
        return StoredDocument(
            external_id=page_id,
            url=page.get("url"),
            metadata={"page_title": title, "parent_id": self.database_id},
        )
