"""
Ollama APIクライアントモジュール

関連クラス:
  - config.OllamaConfig: Ollama設定を提供
  - oracle.OllamaOracle: 要約生成に使用
  - interaction.InteractionService: 問い合わせ回答に使用

注意: このクライアントは基本的にJSON形式でレスポンスを返します
"""

import json
import logging
from typing import Any, Dict, Optional, Union

import ollama


class OllamaClient:
    """Ollama APIクライアント（JSON形式レスポンスが基本）"""

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "llama3.1:8b",
        temperature: float = 0.3,
        max_tokens: int = 4096,
        timeout: Optional[float] = 120.0,
    ):
        """
        初期化

        Args:
            host: OllamaサーバーのURL
            model: 使用するモデル名
            temperature: 生成温度（0.0-1.0）
            max_tokens: 最大トークン数
            timeout: 1リクエストのタイムアウト（秒）
        """
        self.host = host
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

        # Ollamaクライアントの設定（timeoutはhttpxに渡される）
        self.client = ollama.Client(host=host, timeout=timeout)

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        return_json: bool = True,
    ) -> Union[Dict[str, Any], str]:
        """
        プロンプトから生成（JSON形式がデフォルト）

        Args:
            prompt: 入力プロンプト
            system: システムプロンプト
            return_json: JSON形式でレスポンスを返すか（デフォルト: True）

        Returns:
            JSON形式の辞書オブジェクト（return_json=Trueの場合）
            またはテキスト文字列（return_json=Falseの場合）

        Raises:
            ValueError: JSON形式を要求したのに応答がJSONでない場合
        """
        try:
            response = self.client.generate(
                model=self.model,
                prompt=prompt,
                system=system,
                format="json" if return_json else "",
                options={
                    "temperature": self.temperature,
                    "num_predict": self.max_tokens,
                },
            )
            content = response["response"]
            if return_json:
                return json.loads(content)
            return content

        except json.JSONDecodeError as e:
            self.logger.error(f"JSON decode error: {e}")
            raise ValueError(f"Ollamaからの応答がJSON形式ではありません: {e}")
        except Exception as e:
            self.logger.error(f"Ollama generate error: {e}")
            raise

