"""
取得器の基底クラス

各取得器は1回の呼び出しで取得元の「最近の」アイテムのスナップショットを返す。
取得元に到達できない場合は部分結果を返さず FetchError を送出する。
"""

from abc import ABC, abstractmethod
from typing import Iterator

from ..models import CandidateItem, ContentSource, SourceKind


class BaseFetcher(ABC):
    """ソース取得器の抽象基底クラス"""

    kind: SourceKind

    @abstractmethod
    def fetch(self, source: ContentSource) -> Iterator[CandidateItem]:
        """
        候補アイテムを取得

        Args:
            source: 監視対象ソース

        Returns:
            候補アイテムのイテレータ（再利用不可）

        Raises:
            FetchError: 取得元に到達できない・応答が不正な場合
        """
        pass

    def is_configured(self) -> bool:
        """認証情報などが揃っているか"""
        return True
