"""
Google Docsストア

要約をGoogleドキュメントとして作成する。
"""

import logging
from typing import Any, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from ..exceptions import ReplicationError
from ..models import ContentItem, Summary
from .base import DocumentStore, StoredDocument, document_title, format_summary_text

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
DOCS_SCOPES = ["https://www.googleapis.com/auth/documents"]


class GoogleDocsStore(DocumentStore):
    """Google Docs APIによるドキュメントストア"""

    name = "google_docs"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        refresh_token: Optional[str] = None,
        service: Any = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self._service = service

    def is_configured(self) -> bool:
        if self._service is not None:
            return True
        return bool(self.client_id and self.client_secret and self.refresh_token)

    def _get_service(self) -> Any:
        if self._service is None:
            creds = Credentials(
                token=None,
                refresh_token=self.refresh_token,
                client_id=self.client_id,
                client_secret=self.client_secret,
                token_uri=TOKEN_URI,
                scopes=DOCS_SCOPES,
            )
            self._service = build("docs", "v1", credentials=creds, cache_discovery=False)
        return self._service

    def create_document(
        self, summary: Summary, item: Optional[ContentItem] = None
    ) -> StoredDocument:
        if not self.is_configured():
            raise ReplicationError("Google Docs client not configured")

        title = f"Summary - {document_title(summary, item)}"
        try:
            documents = self._get_service().documents()
            created = documents.create(body={"title": title}).execute()
            document_id = created["documentId"]
            documents.batchUpdate(
                documentId=document_id,
                body={
                    "requests": [
                        {
                            "insertText": {
                                "location": {"index": 1},
                                "text": format_summary_text(summary, item),
                            }
                        }
                    ]
                },
            ).execute()
        except HttpError as e:
            raise ReplicationError(f"Failed to create Google Doc: {e}") from e
        except GoogleAuthError as e:
            raise ReplicationError(f"Google Docs authentication failed: {e}") from e
        except (OSError, KeyError) as e:
            raise ReplicationError(f"Failed to create Google Doc: {e!r}") from e

        url = f"https://docs.google.com/document/d/{document_id}/edit"
        logger.info(f"Created Google Doc: {url}")
        return StoredDocument(
            external_id=document_id,
            url=url,
            metadata={"document_title": title},
        )
