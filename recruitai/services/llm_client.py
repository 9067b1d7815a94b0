"""
统一的 OpenAI 客户端封装。

提供并发控制、速率限制、熔断和 JSON 解析；未配置 API Key 时
调用方应通过 is_configured() 判断并走兜底逻辑。
"""
import asyncio
import json
import time
from typing import Dict, List, Any, Optional
from openai import AsyncOpenAI
from threading import Lock
from loguru import logger

from recruitai.core.config import settings
from recruitai.core.optimization import api_optimization

CIRCUIT_NAME = "openai"


class RateLimiter:
    """简单的速率限制器（令牌桶算法），rate 为每分钟请求数。"""

    def __init__(self, rate: int):
        self.rate = rate
        self.tokens = float(rate)
        self.last_update = time.monotonic()
        self._lock = Lock()

    def acquire(self) -> bool:
        with self._lock:
            now = time.monotonic()
            elapsed = now - self.last_update
            self.tokens = min(self.rate, self.tokens + elapsed * (self.rate / 60.0))
            self.last_update = now
            if self.tokens >= 1:
                self.tokens -= 1
                return True
            return False

    async def wait_and_acquire(self):
        while not self.acquire():
            await asyncio.sleep(0.1)


class LLMClient:
    """
    统一的 LLM 客户端，提供并发控制、速率限制和 JSON 解析。
    """

    _instance: Optional["LLMClient"] = None
    _lock = Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if getattr(self, "_initialized", False):
            return

        self.model = settings.openai_model
        self.api_key = settings.openai_api_key
        self.base_url = settings.openai_base_url
        self.temperature = settings.llm_temperature
        self.timeout = settings.llm_timeout

        self._client: Optional[AsyncOpenAI] = None
        self._rate_limiter = RateLimiter(settings.llm_rate_limit)
        self._semaphore = asyncio.Semaphore(settings.llm_max_concurrency)

        self._initialized = True
        if self.is_configured():
            logger.info(
                "LLMClient initialized: model={}, max_concurrency={}, rate_limit={}/min",
                self.model,
                settings.llm_max_concurrency,
                settings.llm_rate_limit,
            )
        else:
            logger.warning("OpenAI API Key 未配置，AI 功能将使用兜底数据")

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    def _parse_json(self, content: str) -> Dict[str, Any]:
        """解析 JSON 响应，兼容 markdown 代码块。"""
        text = content.strip()
        if text.startswith("```json"):
            text = text[7:]
        elif text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("JSON 解析失败: {}\n原始内容: {}", exc, text[:500])
            raise ValueError(f"LLM 返回的结果不是有效的 JSON 格式: {exc}")

    async def _create_completion(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float],
        model: Optional[str],
        json_mode: bool,
    ) -> str:
        kwargs: Dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature if temperature is not None else self.temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self.client.chat.completions.create(**kwargs)
        if not response or not response.choices:
            raise ValueError("LLM 返回空响应")
        content = response.choices[0].message.content
        if content is None:
            raise ValueError("LLM 返回内容为空")
        return content.strip()

    async def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        model: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        """异步发送聊天请求并返回文本响应。"""
        if not self.is_configured():
            raise ValueError("OpenAI API Key 未配置")

        await self._rate_limiter.wait_and_acquire()
        async with self._semaphore:
            try:
                return await api_optimization.call_with_circuit_breaker(
                    CIRCUIT_NAME,
                    lambda: self._create_completion(messages, temperature, model, json_mode),
                )
            except Exception as exc:
                logger.error("LLM 调用失败: {}", exc)
                raise

    async def chat_json(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        """异步发送聊天请求并返回解析后的 JSON。"""
        content = await self.chat(messages, temperature, model, json_mode=True)
        return self._parse_json(content)

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        """异步便捷方法：发送 system + user 消息并返回解析后的 JSON。"""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return await self.chat_json(messages, temperature, model)

    def is_configured(self) -> bool:
        """检查 LLM 是否已正确配置。"""
        return bool(self.api_key) and self.api_key != "your-api-key-here"

    def get_status(self) -> Dict[str, Any]:
        """获取当前 LLM 配置状态。"""
        return {
            "configured": self.is_configured(),
            "model": self.model,
            "base_url": self.base_url,
            "circuit": api_optimization.circuits.state(CIRCUIT_NAME).value,
        }


def get_llm_client() -> LLMClient:
    """获取 LLM 客户端单例"""
    return LLMClient()
