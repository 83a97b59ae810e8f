"""
ストレージ複製マネージャー

要約を1つ以上の外部ドキュメントストアに複製し、保存先をStorageLocationとして記録する。
要約自体は変更しない。
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ..exceptions import ContentNotFoundError, ContentMonitorError
from ..models import ProviderResult, ReplicationResult, StorageLocation
from ..repository import ContentRepository
from .base import DocumentStore

logger = logging.getLogger(__name__)


class StorageFanout:
    """要約を複数のドキュメントストアに保存する"""

    def __init__(self, repository: ContentRepository, stores: Iterable[DocumentStore] = ()):
        self.repository = repository
        self.stores: Dict[str, DocumentStore] = {store.name: store for store in stores}

    def available_providers(self) -> List[str]:
        """設定済みのプロバイダ名一覧"""
        return [name for name, store in self.stores.items() if store.is_configured()]

    def replicate(self, summary_id: int, providers: Sequence[str]) -> ReplicationResult:
        """
        要約を指定プロバイダに複製

        Args:
            summary_id: 要約ID
            providers: プロバイダ名（notion, google_docs）

        Returns:
            複製結果（1つでも成功すればsuccess=True）

        Raises:
            ContentNotFoundError: 要約が存在しない
        """
        summary = self.repository.get_summary(summary_id)
        if summary is None:
            raise ContentNotFoundError(f"Summary not found: {summary_id}")
        item = self.repository.get_item(summary.content_item_id)

        results: List[ProviderResult] = []
        for provider in providers:
            store = self.stores.get(provider)
            if store is None:
                results.append(
                    ProviderResult(
                        provider=provider,
                        success=False,
                        error=f"Storage provider '{provider}' not found",
                    )
                )
                continue
            if not store.is_configured():
                results.append(
                    ProviderResult(
                        provider=provider,
                        success=False,
                        error=f"Storage provider '{provider}' is not configured",
                    )
                )
                continue

            existing = self.repository.get_storage_location(summary_id, provider)
            if existing is not None:
                results.append(ProviderResult(provider=provider, success=True, location=existing))
                continue

            try:
                document = store.create_document(summary, item)
            except ContentMonitorError as e:
                logger.error(f"Failed to store summary {summary_id} in {provider}: {e}")
                results.append(ProviderResult(provider=provider, success=False, error=str(e)))
                continue
            except Exception as e:
                # 1つのプロバイダの失敗で残りのプロバイダは止めない
                logger.error(
                    f"Unexpected error storing summary {summary_id} in {provider}: {e}",
                    exc_info=True,
                )
                results.append(
                    ProviderResult(
                        provider=provider, success=False, error=f"{type(e).__name__}: {e}"
                    )
                )
                continue

            location = StorageLocation(
                summary_id=summary_id,
                provider=provider,
                external_id=document.external_id,
                url=document.url,
                metadata=document.metadata,
            )
            location_id = self.repository.add_storage_location(location)
            if location_id is None:
                location = self.repository.get_storage_location(summary_id, provider) or location
            else:
                location = location.model_copy(update={"id": location_id})
            results.append(ProviderResult(provider=provider, success=True, location=location))

        succeeded = [r for r in results if r.success]
        if succeeded:
            logger.info(
                f"Stored summary {summary_id} in {len(succeeded)}/{len(results)} provider(s)"
            )
            return ReplicationResult(summary_id=summary_id, results=results, success=True)

        errors = "; ".join(f"{r.provider}: {r.error}" for r in results) or "no providers given"
        return ReplicationResult(
            summary_id=summary_id,
            results=results,
            success=False,
            error=f"Failed to store in any provider. Errors: {errors}",
        )

    def try_replicate(
        self, summary_id: int, providers: Sequence[str]
    ) -> Optional[ReplicationResult]:
        """複製を試みる（失敗してもログのみ）"""
        try:
            result = self.replicate(summary_id, providers)
        except Exception as e:
            logger.warning(f"Replication of summary {summary_id} failed: {e}")
            return None
        if not result.success:
            logger.warning(f"Replication of summary {summary_id} failed: {result.error}")
        return result
