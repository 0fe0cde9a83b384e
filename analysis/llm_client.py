"""
Analysis LLM Client

Module-specific LLM client for document analysis.
Uses BaseLLMClient with analysis-specific configuration and gates every
call on the AI server's cached health.
"""

import asyncio
from typing import Optional

import aiohttp

from core import BaseLLMClient, LLMConfig
from core.errors import ServiceUnavailableError
from health.monitor import ServiceHealthMonitor
from health.schemas import Dependency
from .config import (
    ANALYSIS_AI_URL,
    ANALYSIS_CHAT_PATH,
    ANALYSIS_DEFAULT_MODEL,
    ANALYSIS_TEMPERATURE,
    ANALYSIS_TOP_P,
    ANALYSIS_MAX_TOKENS,
    ANALYSIS_CONNECTION_TIMEOUT,
    ANALYSIS_CONNECTION_POOL_LIMIT,
)
from .prompts import ANALYSIS_SYSTEM_PROMPT

AI_UNAVAILABLE_MESSAGE = "AI server is currently unavailable. Please try again later."


def default_config() -> LLMConfig:
    return LLMConfig(
        base_url=ANALYSIS_AI_URL,
        chat_path=ANALYSIS_CHAT_PATH,
        model=ANALYSIS_DEFAULT_MODEL,
        temperature=ANALYSIS_TEMPERATURE,
        top_p=ANALYSIS_TOP_P,
        max_tokens=ANALYSIS_MAX_TOKENS,
        timeout=ANALYSIS_CONNECTION_TIMEOUT,
        pool_limit=ANALYSIS_CONNECTION_POOL_LIMIT,
        task_name="analyze"
    )


class AnalysisLLMClient:
    """Chat client for per-chunk analysis, gated on AI server health."""

    def __init__(
        self,
        monitor: ServiceHealthMonitor,
        config: Optional[LLMConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.monitor = monitor
        self.config = config or default_config()
        self._client = BaseLLMClient(self.config, session=session)

    @property
    def model(self) -> str:
        return self.config.model

    async def analyze_chunk(
        self,
        prompt: str,
        api_key: str,
        cancel_event: Optional[asyncio.Event] = None
    ) -> str:
        """
        Run one chunk prompt against the chat proxy.

        Raises:
            ServiceUnavailableError: If the AI server is marked down (no request is made)
        """
        if not self.monitor.is_healthy(Dependency.AI_SERVER):
            raise ServiceUnavailableError(Dependency.AI_SERVER.value, AI_UNAVAILABLE_MESSAGE)

        messages = [
            {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        return await self._client.chat(messages, api_key=api_key, cancel_event=cancel_event)

    async def close(self):
        """Close the analysis session. Call this on application shutdown."""
        await self._client.close()

    def get_backend_info(self) -> dict:
        """Get information about the analysis LLM backend configuration."""
        return self._client.get_backend_info()
