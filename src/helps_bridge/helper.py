"""
LLMHelper: one object that wires a provider client, a TranslationHelpsClient
and the tool-execution loop together.

Example
-------
>>> helper = LLMHelper(Provider.OPENAI, "gpt-4o-mini")
>>> result = await helper.chat([{"role": "user", "content": "What does John 3:16 say?"}])
>>> print(result.content)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Self, Sequence

from helps_bridge.client import BaseAsyncLLM, create_llm
from helps_bridge.config import ClientConfig
from helps_bridge.core import TranslationHelpsClient
from helps_bridge.executor import DEFAULT_MAX_ITERATIONS, ExecutionHooks, ToolExecutionLoop
from helps_bridge.provider import Provider
from helps_bridge.types import ChatMessage, ChatResult

__all__ = ["LLMHelper"]


class LLMHelper:
    def __init__(
        self,
        provider: Provider | str | None = None,
        model: str | None = None,
        *,
        llm: Optional[BaseAsyncLLM] = None,
        client: Optional[TranslationHelpsClient] = None,
        config: Optional[ClientConfig] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        api_key: str | None = None,
        logger: Optional[logging.Logger] = None,
        **provider_kwargs: Any,
    ) -> None:
        """
        Args:
            provider: LLM provider, used when ``llm`` is not given.
            model: Model identifier, used when ``llm`` is not given.
            llm: A ready-made provider client.
            client: A ready-made TranslationHelpsClient; built from ``config`` otherwise.
            config: Upstream, filter and default settings for a new client.
            max_iterations: Tool-call rounds allowed per chat.
            api_key: Provider API key; looked up from the environment if omitted.
            logger: Logger shared by every component this helper builds.
            **provider_kwargs: Passed to `create_llm` (timeout, max_retries, base_url).
        """
        if llm is None:
            if provider is None or not model:
                raise TypeError("LLMHelper needs either llm= or both provider and model")
            llm = create_llm(provider, model, api_key=api_key, logger=logger, **provider_kwargs)
        self.llm = llm
        self.client = client or TranslationHelpsClient(config, logger=logger)
        self.loop = ToolExecutionLoop(
            self.llm,
            self.client,
            max_iterations=max_iterations,
            logger=logger,
        )

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        options: dict[str, Any] | None = None,
        *,
        hooks: Optional[ExecutionHooks] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> ChatResult:
        """Chat with tool execution; ``options`` are normalized chat params."""
        return await self.loop.run(messages, params=options, hooks=hooks, cancel=cancel)

    async def aclose(self) -> None:
        await self.llm.aclose()
        await self.client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
