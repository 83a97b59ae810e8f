"""
要約への問い合わせサービス

保存済みの要約をキーワード検索し、LLM（失敗時はテンプレート）で回答を作る。
質問と回答は問い合わせ履歴として保存し、直近の履歴をLLMへの文脈に含める。
"""

import logging
from typing import List, Optional

from .models import Conversation, QueryAnswer, Summary
from .ollama_client import OllamaClient
from .repository import ContentRepository

logger = logging.getLogger(__name__)

NO_RESULTS_ANSWER = (
    "I don't have any relevant summaries to answer your question. "
    "Try adding some content sources or asking about something else!"
)

ANSWER_SYSTEM_PROMPT = (
    "You answer questions using only the provided content summaries. "
    'Respond with JSON: {"answer": "..."}'
)

# LLMに渡す直近の問い合わせ件数
HISTORY_CONTEXT_TURNS = 3


def calculate_confidence(result_count: int, query: str) -> int:
    """検索件数と質問の語数から信頼度（最大95）を算出"""
    base = min(result_count * 20, 80)
    bonus = min(len(query.split()) * 2, 20)
    return min(base + bonus, 95)


class InteractionService:
    """要約に対する質問応答"""

    def __init__(self, repository: ContentRepository, ollama_client: Optional[OllamaClient] = None):
        self.repository = repository
        self.ollama_client = ollama_client

    def _titles(self, summaries: List[Summary]) -> List[str]:
        titles = []
        for summary in summaries:
            item = self.repository.get_item(summary.content_item_id)
            titles.append(item.title if item else f"Summary {summary.id}")
        return titles

    def _template_answer(self, summaries: List[Summary], titles: List[str]) -> str:
        if not summaries:
            return NO_RESULTS_ANSWER
        return (
            "Based on your content summaries, I found information related to: "
            f"{', '.join(titles)}. Here's what I can tell you: "
            f"{summaries[0].summary[:200]}... "
            "Would you like me to elaborate on any specific aspect?"
        )

    def _llm_answer(
        self,
        query: str,
        summaries: List[Summary],
        titles: List[str],
        history: List[Conversation],
    ) -> Optional[str]:
        context = "\n\n".join(
            f"[{title}]\n{summary.summary}\nKey points: {'; '.join(summary.key_points)}"
            for title, summary in zip(titles, summaries)
        )
        prompt = f"Summaries:\n{context}\n\n"
        if history:
            # 古い順に並べる
            turns = "\n".join(
                f"User: {turn.query}\nAssistant: {turn.response}" for turn in reversed(history)
            )
            prompt += f"Recent conversation:\n{turns}\n\n"
        prompt += f"Question: {query}"
        try:
            response = self.ollama_client.generate(
                prompt=prompt, system=ANSWER_SYSTEM_PROMPT, return_json=True
            )
        except Exception as e:
            logger.warning(f"LLM answer failed, using template: {e}")
            return None

        answer = response.get("answer") if isinstance(response, dict) else None
        if not isinstance(answer, str) or not answer.strip():
            logger.warning("LLM answer missing 'answer' field, using template")
            return None
        return answer.strip()

    def ask(self, owner: str, query: str, limit: int = 5, use_llm: bool = True) -> QueryAnswer:
        """
        質問に回答する

        Args:
            owner: 質問したユーザー（このユーザーの要約のみ検索）
            query: 質問文
            limit: 参照する要約の最大件数
            use_llm: LLMで回答を生成するか

        Returns:
            回答と参照した要約ID（保存した履歴のIDを含む）
        """
        summaries = self.repository.search_summaries(query, owner=owner, limit=limit)
        titles = self._titles(summaries)

        answer = None
        if summaries and use_llm and self.ollama_client is not None:
            history = self.repository.list_conversations(owner, limit=HISTORY_CONTEXT_TURNS)
            answer = self._llm_answer(query, summaries, titles, history)
        if answer is None:
            answer = self._template_answer(summaries, titles)

        summary_ids = [s.id for s in summaries]
        confidence = calculate_confidence(len(summaries), query)
        conversation_id = self.repository.add_conversation(
            Conversation(
                owner=owner,
                query=query,
                response=answer,
                summary_ids=summary_ids,
                confidence=confidence,
            )
        )

        return QueryAnswer(
            query=query,
            answer=answer,
            summary_ids=summary_ids,
            confidence=confidence,
            conversation_id=conversation_id,
        )

    def history(self, owner: str, limit: int = 50) -> List[Conversation]:
        """問い合わせ履歴（新しい順）"""
        return self.repository.list_conversations(owner, limit=limit)

    def clear_history(self, owner: str) -> int:
        """問い合わせ履歴を削除"""
        deleted = self.repository.clear_conversations(owner)
        logger.info(f"Cleared {deleted} conversation(s) for {owner}")
        return deleted
