"""
要約オラクル（LLM）

関連モジュール:
- src/content_monitor/ollama_client.py - Ollama API呼び出し
- src/content_monitor/summarizer.py - オラクルの呼び出しと結果の永続化

オラクルはテキストを受け取り、以下の固定フィールドを持つJSONを返す:
summary, keyPoints, topics, sentiment, confidence
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .exceptions import OracleError
from .fetchers.youtube import format_duration
from .models import ContentItem, ContentKind, Sentiment
from .ollama_client import OllamaClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an expert content summarizer. Always answer with a single JSON object."

RESPONSE_FORMAT = """
Please provide:
1. A concise summary (2-3 paragraphs)
2. Key points (3-5 bullet points)
3. Main topics/themes
4. Overall sentiment (positive/negative/neutral)

Format your response as JSON:
{
  "summary": "Your summary here...",
  "keyPoints": ["Point 1", "Point 2", "Point 3"],
  "topics": ["Topic 1", "Topic 2"],
  "sentiment": "positive|negative|neutral",
  "confidence": 85
}
"""


class SummarizationOracle(ABC):
    """要約オラクルの抽象インターフェース"""

    model_name: str = "unknown"

    @abstractmethod
    def summarize(self, item: ContentItem, text: str) -> Dict[str, Any]:
        """
        テキストを要約する

        Args:
            item: 要約対象コンテンツ（タイトル・メタデータをプロンプトに使用）
            text: 切り詰め済みの本文

        Returns:
            オラクルの生の応答（dict）

        Raises:
            OracleError: 呼び出し失敗・タイムアウト・JSON以外の応答
        """
        pass


def build_prompt(item: ContentItem, text: str) -> str:
    """コンテンツ種別ごとの要約プロンプトを構築"""
    author = item.metadata.get("author") or "Unknown"
    published = item.metadata.get("published_at") or "Unknown"

    if item.kind == ContentKind.VIDEO:
        header = (
            "Create a comprehensive summary of this YouTube video.\n\n"
            f"Video Title: {item.title}\n"
            f"Channel: {author}\n"
            f"Duration: {format_duration(item.metadata.get('duration') or 0)}\n"
            f"Transcript: {text}\n"
        )
    elif item.kind == ContentKind.NEWSLETTER:
        header = (
            "Create a comprehensive summary of this newsletter. "
            "Include key insights and any actionable recommendations in the key points.\n\n"
            f"Newsletter Title: {item.title}\n"
            f"Sender: {author}\n"
            f"Date: {published}\n"
            f"Content: {text}\n"
        )
    else:
        header = (
            "Create a comprehensive summary of this article.\n\n"
            f"Article Title: {item.title}\n"
            f"Author: {author}\n"
            f"Published: {published}\n"
            f"Content: {text}\n"
        )
    return header + RESPONSE_FORMAT


def normalize_oracle_response(data: Any) -> Dict[str, Any]:
    """
    オラクルの応答を検証・正規化

    Raises:
        OracleError: 必須フィールドの欠落・型の不一致
    """
    if not isinstance(data, dict):
        raise OracleError("Oracle response is not a JSON object")

    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise OracleError("Oracle response has no summary")

    key_points = data.get("keyPoints") or []
    topics = data.get("topics") or []
    if not isinstance(key_points, list) or not isinstance(topics, list):
        raise OracleError("Oracle response keyPoints/topics must be lists")

    sentiment_raw = str(data.get("sentiment") or "neutral").strip().lower()
    try:
        sentiment = Sentiment(sentiment_raw)
    except ValueError:
        logger.warning(f"Unknown sentiment '{sentiment_raw}', using neutral")
        sentiment = Sentiment.NEUTRAL

    try:
        confidence = int(round(float(data.get("confidence", 0))))
    except (TypeError, ValueError, OverflowError) as e:
        raise OracleError(f"Oracle response confidence is not numeric: {e}") from e

    return {
        "summary": summary.strip(),
        "key_points": [str(point) for point in key_points],
        "topics": [str(topic) for topic in topics],
        "sentiment": sentiment,
        "confidence": max(0, min(100, confidence)),
    }


class OllamaOracle(SummarizationOracle):
    """Ollamaによる要約オラクル"""

    def __init__(self, client: Optional[OllamaClient] = None):
        self.client = client or OllamaClient()
        self.model_name = self.client.model

    def summarize(self, item: ContentItem, text: str) -> Dict[str, Any]:
        prompt = build_prompt(item, text)
        try:
            return self.client.generate(prompt=prompt, system=SYSTEM_PROMPT, return_json=True)
        except ValueError as e:
            raise OracleError(f"Malformed oracle response: {e}") from e
        except Exception as e:
            # タイムアウト・接続エラー・HTTPエラー
            raise OracleError(f"Oracle call failed: {e}") from e
