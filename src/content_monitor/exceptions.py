"""コンテンツ監視パイプラインのカスタム例外定義

取得エラーはサイクル内で集約され、要約・複製のエラーは呼び出し元に返される。
"""


class ContentMonitorError(Exception):
    """コンテンツ監視の基底例外"""

    pass


class FetchError(ContentMonitorError):
    """取得元に到達できない・応答が不正などソース単位のエラー"""

    pass


class ChannelIdError(FetchError):
    """URLからチャンネルIDを抽出できない"""

    pass


class SourceNotFoundError(ContentMonitorError):
    """ソースが存在しない、または無効化されている"""

    pass


class ContentNotFoundError(ContentMonitorError):
    """コンテンツアイテムが存在しない"""

    pass


class MissingContentError(ContentMonitorError):
    """要約対象のテキストがない（本文取得後に再試行可能）"""

    pass


class OracleError(ContentMonitorError):
    """LLMの応答が不正・タイムアウト等"""

    pass


class ReplicationError(ContentMonitorError):
    """外部ドキュメントストアへの保存エラー"""

    pass


class ConfigurationError(ContentMonitorError):
    """設定エラー"""

    pass
