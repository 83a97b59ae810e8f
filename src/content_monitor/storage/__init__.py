"""外部ドキュメントストアへの複製"""

from .base import DocumentStore, StoredDocument, format_summary_text
from .google_docs import GoogleDocsStore
from .manager import StorageFanout
from .notion import NotionStore

__all__ = [
    "DocumentStore",
    "StoredDocument",
    "format_summary_text",
    "GoogleDocsStore",
    "NotionStore",
    "StorageFanout",
]
