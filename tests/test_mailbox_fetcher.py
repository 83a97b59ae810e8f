"""メールマガジン取得器のテスト"""

import base64
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.content_monitor import ContentSource, FetchError, SourceKind
from src.content_monitor.fetchers.mailbox import (
    GmailProvider,
    MailboxFetcher,
    MailMessage,
    MailProvider,
    message_locator,
    parse_email_content,
)


class FakeMailProvider(MailProvider):
    """メモリ上のメールボックス"""

    def __init__(self, messages, failing=()):
        self.messages = {m.message_id: m for m in messages}
        self.failing = set(failing)
        self.queries = []

    def list_message_ids(self, query, max_results):
        self.queries.append(query)
        return list(self.messages)[:max_results]

    def get_message(self, message_id):
        if message_id in self.failing:
            raise RuntimeError("boom")
        return self.messages[message_id]


def make_message(message_id: str, subject: str = "Weekly") -> MailMessage:
    return MailMessage(
        message_id=message_id,
        subject=subject,
        sender="news@example.com",
        date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        body=f"body of {message_id}",
    )


@pytest.fixture
def source():
    return ContentSource(
        id=3, owner="alice", kind=SourceKind.NEWSLETTER, name="Inbox", url="gmail:inbox"
    )


def test_fetch_skips_failed_message(source):
    """1通の取得失敗は他のメールに影響しない"""
    provider = FakeMailProvider(
        [make_message("m1"), make_message("m2"), make_message("m3")], failing={"m2"}
    )

    candidates = list(MailboxFetcher(provider).fetch(source))

    assert [c.locator for c in candidates] == [message_locator("m1"), message_locator("m3")]
    assert candidates[0].locator == "gmail:message:m1"
    assert candidates[0].metadata["author"] == "news@example.com"
    assert candidates[0].content == "body of m1"


def test_fetch_list_failure_raises(source):
    provider = MagicMock()
    provider.list_message_ids.side_effect = RuntimeError("auth expired")

    with pytest.raises(FetchError, match="Failed to list messages"):
        list(MailboxFetcher(provider).fetch(source))


def test_build_query_uses_metadata():
    fetcher = MailboxFetcher(FakeMailProvider([]))
    plain = ContentSource(owner="a", kind=SourceKind.NEWSLETTER, name="n", url="gmail:inbox")
    with_sender = ContentSource(
        owner="a",
        kind=SourceKind.NEWSLETTER,
        name="n",
        url="gmail:inbox",
        metadata={"query": "label:news", "sender": "weekly@example.com"},
    )

    assert fetcher.build_query(plain) == "newer_than:7d"
    assert fetcher.build_query(with_sender) == "label:news from:weekly@example.com"


def test_fetch_respects_max_messages(source):
    provider = FakeMailProvider([make_message(f"m{i}") for i in range(15)])
    candidates = list(MailboxFetcher(provider, max_messages=10).fetch(source))
    assert len(candidates) == 10


def test_parse_email_content():
    raw = (
        "From: Weekly <weekly@example.com>\n"
        "Subject: Issue #42\n"
        "Date: Wed, 01 Jan 2025 09:00:00 +0000\n"
        "Message-ID: <abc123@example.com>\n"
        "\n"
        "Hello readers,\nthis week...\n"
    )
    message = parse_email_content(raw)

    assert message.subject == "Issue #42"
    assert message.sender == "Weekly <weekly@example.com>"
    assert message.message_id == "abc123@example.com"
    assert message.date.year == 2025
    assert message.body.startswith("Hello readers,")


def test_parse_email_content_defaults():
    message = parse_email_content("\nJust a body\n")
    assert message.subject == "Untitled Newsletter"
    assert message.sender == "Unknown Sender"
    assert message.body == "Just a body"


def test_gmail_provider_extracts_plain_text():
    body = base64.urlsafe_b64encode("plain body".encode()).decode()
    html = base64.urlsafe_b64encode("<p>html body</p>".encode()).decode()
    service = MagicMock()
    service.users().messages().get().execute.return_value = {
        "payload": {
            "headers": [
                {"name": "Subject", "value": "Digest"},
                {"name": "From", "value": "digest@example.com"},
                {"name": "Date", "value": "Wed, 01 Jan 2025 09:00:00 +0000"},
            ],
            "parts": [
                {"mimeType": "text/html", "body": {"data": html}},
                {"mimeType": "text/plain", "body": {"data": body}},
            ],
        }
    }
    service.users().messages().list().execute.return_value = {"messages": [{"id": "x1"}]}
    provider = GmailProvider(service=service)

    assert provider.list_message_ids("newer_than:7d", 10) == ["x1"]
    message = provider.get_message("x1")
    assert message.subject == "Digest"
    assert message.sender == "digest@example.com"
    assert message.body == "plain body"


def test_gmail_provider_html_only():
    html = base64.urlsafe_b64encode("<p>Only &amp; html</p>".encode()).decode()
    service = MagicMock()
    service.users().messages().get().execute.return_value = {
        "payload": {"mimeType": "text/html", "headers": [], "body": {"data": html}}
    }
    message = GmailProvider(service=service).get_message("x2")
    assert message.body == "Only & html"
    assert message.subject == "Newsletter"
