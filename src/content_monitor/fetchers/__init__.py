"""ソース取得器モジュール"""

from .base import BaseFetcher
from .mailbox import GmailProvider, MailboxFetcher, MailMessage, MailProvider
from .rss import RSSFetcher
from .youtube import TranscriptProvider, YouTubeFetcher, YouTubeTranscriptProvider

__all__ = [
    "BaseFetcher",
    "GmailProvider",
    "MailboxFetcher",
    "MailMessage",
    "MailProvider",
    "RSSFetcher",
    "TranscriptProvider",
    "YouTubeFetcher",
    "YouTubeTranscriptProvider",
]
