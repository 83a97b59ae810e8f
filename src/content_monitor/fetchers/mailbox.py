"""
メールマガジン取得器

関連モジュール:
- src/content_monitor/fetchers/base.py - 基底クラス
- src/content_monitor/pipeline.py - 取り込み処理（生メールの直接取り込みを含む）

メールプロバイダは MailProvider インターフェースで差し替え可能。
既定の実装は Gmail API。
"""

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from email import policy
from email.parser import Parser
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Iterator, List, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from ..exceptions import FetchError
from ..models import CandidateItem, ContentSource, SourceKind, utc_now
from .base import BaseFetcher
from .rss import strip_html

logger = logging.getLogger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]


def message_locator(message_id: str) -> str:
    return f"gmail:message:{message_id}"


def parse_mail_date(value: Optional[str]) -> datetime:
    """メールのDateヘッダを解析（失敗時は現在時刻）"""
    if not value:
        return utc_now()
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        pass
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return utc_now()


@dataclass(slots=True)
class MailMessage:
    """取得したメール1通分"""

    message_id: str
    subject: str
    sender: str
    date: datetime
    body: str


def parse_email_content(raw: str) -> MailMessage:
    """
    生のメールテキスト（ヘッダ + 空行 + 本文）を解析

    Args:
        raw: RFC 822形式のメールテキスト

    Returns:
        解析結果（件名・送信者がない場合は既定値）
    """
    message = Parser(policy=policy.default).parsestr(raw)

    body = ""
    part = message.get_body(preferencelist=("plain", "html"))
    if part is not None:
        content = part.get_content()
        body = strip_html(content) if part.get_content_type() == "text/html" else content

    subject = str(message.get("Subject") or "").strip() or "Untitled Newsletter"
    return MailMessage(
        message_id=str(message.get("Message-ID") or "").strip("<> ") or subject,
        subject=subject,
        sender=str(message.get("From") or "").strip() or "Unknown Sender",
        date=parse_mail_date(message.get("Date")),
        body=body.strip(),
    )


class MailProvider(ABC):
    """メールプロバイダの抽象インターフェース"""

    @abstractmethod
    def list_message_ids(self, query: str, max_results: int) -> List[str]:
        """検索クエリに一致するメッセージIDを返す"""
        pass

    @abstractmethod
    def get_message(self, message_id: str) -> MailMessage:
        """メッセージの詳細（件名・送信者・日時・本文）を返す"""
        pass


def _decode_body(data: str) -> str:
    """base64url形式の本文をデコード"""
    return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")


def _extract_body(payload: Dict[str, Any]) -> str:
    """MIMEパートを辿って本文を抽出（text/plain優先）"""
    parts = payload.get("parts", [])

    if not parts:
        data = payload.get("body", {}).get("data", "")
        if not data:
            return ""
        decoded = _decode_body(data)
        if payload.get("mimeType") == "text/html":
            return strip_html(decoded)
        return decoded

    plain_text = ""
    html_text = ""
    for part in parts:
        mime_type = part.get("mimeType", "")
        data = part.get("body", {}).get("data", "")
        if mime_type == "text/plain" and data:
            plain_text = _decode_body(data)
        elif mime_type == "text/html" and data:
            html_text = _decode_body(data)
        elif mime_type.startswith("multipart/"):
            nested = _extract_body(part)
            if nested and not plain_text:
                plain_text = nested

    if plain_text:
        return plain_text
    return strip_html(html_text)


class GmailProvider(MailProvider):
    """Gmail APIによるメールプロバイダ"""

    def __init__(self, token_file: Optional[str] = None, service: Any = None):
        """
        初期化

        Args:
            token_file: 認可済みユーザートークン（JSON）のパス
            service: 構築済みのGmail APIクライアント（テスト用に差し替え可能）
        """
        self.token_file = token_file
        self._service = service

    def is_configured(self) -> bool:
        return self._service is not None or bool(self.token_file)

    def _get_service(self) -> Any:
        if self._service is None:
            if not self.token_file:
                raise FetchError("Gmail token file is not configured")
            creds = Credentials.from_authorized_user_file(self.token_file, GMAIL_SCOPES)
            if creds.expired and creds.refresh_token:
                creds.refresh(Request())
            self._service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        return self._service

    def list_message_ids(self, query: str, max_results: int) -> List[str]:
        response = (
            self._get_service()
            .users()
            .messages()
            .list(userId="me", q=query, maxResults=max_results)
            .execute()
        )
        return [m["id"] for m in response.get("messages", []) if m.get("id")]

    def get_message(self, message_id: str) -> MailMessage:
        msg = (
            self._get_service()
            .users()
            .messages()
            .get(userId="me", id=message_id, format="full")
            .execute()
        )
        payload = msg.get("payload", {})
        headers = {h["name"]: h["value"] for h in payload.get("headers", [])}
        body = _extract_body(payload) or msg.get("snippet", "")

        return MailMessage(
            message_id=message_id,
            subject=headers.get("Subject") or "Newsletter",
            sender=headers.get("From") or "Unknown",
            date=parse_mail_date(headers.get("Date")),
            body=body,
        )


class MailboxFetcher(BaseFetcher):
    """メールボックスからメールマガジンを取得する取得器"""

    kind = SourceKind.NEWSLETTER

    def __init__(
        self,
        provider: MailProvider,
        max_messages: int = 10,
        default_query: str = "newer_than:7d",
    ):
        self.provider = provider
        self.max_messages = max_messages
        self.default_query = default_query

    def is_configured(self) -> bool:
        is_configured = getattr(self.provider, "is_configured", None)
        return is_configured() if callable(is_configured) else True

    def build_query(self, source: ContentSource) -> str:
        """ソースのメタデータから検索クエリを組み立てる"""
        query = source.metadata.get("query") or self.default_query
        sender = source.metadata.get("sender")
        if sender:
            query = f"{query} from:{sender}"
        return query

    def fetch(self, source: ContentSource) -> Iterator[CandidateItem]:
        query = self.build_query(source)
        try:
            message_ids = self.provider.list_message_ids(query, self.max_messages)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(f"Failed to list messages ({query}): {e}") from e

        for message_id in message_ids[: self.max_messages]:
            try:
                message = self.provider.get_message(message_id)
            except Exception:
                # 1通の取得失敗で他のメールは止めない
                logger.warning(f"Failed to fetch message {message_id}", exc_info=True)
                continue

            yield CandidateItem(
                locator=message_locator(message_id),
                title=message.subject,
                content=message.body,
                published_at=message.date,
                metadata={
                    "author": message.sender,
                    "published_at": message.date.isoformat(),
                    "message_id": message_id,
                },
            )
