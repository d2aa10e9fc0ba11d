"""
LLM clients with a unified, tool-aware chat() method.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol, Self, Sequence

from anthropic import AsyncAnthropic
from anthropic.types import Message
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from helps_bridge._exceptions import classify_error, config_error
from helps_bridge.adapters import AnthropicRequestAdapter, OpenAIRequestAdapter
from helps_bridge.params import normalize_params
from helps_bridge.provider import Provider, get_api_key
from helps_bridge.types import ChatMessage, ChatResult, Tool


class RequestAdapter(Protocol):
    """Protocol for adapting between generic chat format and provider-specific format."""

    def to_provider(
        self,
        messages: Sequence[ChatMessage],
        tools: Optional[Sequence[Tool]],
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """Convert generic messages, tools and normalized params to a provider request."""
        ...

    def from_provider(self, raw: Any) -> ChatResult:
        """Convert provider response to unified ChatResult."""
        ...


class BaseAsyncLLM(ABC):
    """
    Abstract base class for async-first LLM wrappers.
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    @abstractmethod
    async def _chat_impl(self, request: dict[str, Any]) -> Any:
        """
        Send one provider request and return the raw SDK response.

        Args:
            request: Provider-shaped request built by the adapter (without model).
        """
        ...

    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        """Request adapter for this provider."""
        ...

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        *,
        tools: Optional[Sequence[Tool]] = None,
        params: dict[str, Any] | None = None,
    ) -> ChatResult:
        """
        Send a chat request and return a single ChatResult.

        Raises a PROVIDER `HelpsBridgeError` when the provider call fails or
        its response cannot be read.
        """
        request = self.adapter.to_provider(messages, tools, normalize_params(params))
        self._log(
            f"Sending request to {self.model} "
            f"({len(messages)} messages, {len(tools or ())} tools)"
        )
        try:
            raw = await self._chat_impl(request)
            return self.adapter.from_provider(raw)
        except Exception as exc:
            raise classify_error(exc, self.logger) from exc

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close underlying async HTTP clients to avoid cleanup after the loop closes.
        Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class OpenAILLM(BaseAsyncLLM):
    """
    OpenAI chat-completions client (async-only).

    Use ``OpenAILLM.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(model=model, api_key=api_key, logger=logger, name=name)
        self.api_key = api_key
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = OpenAIRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncOpenAI,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Build an ``OpenAILLM`` around an already-configured ``AsyncOpenAI`` client.
        """
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"OpenAILLM.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(
            self, model=model, api_key=client.api_key or "", logger=logger, name=name
        )
        self.api_key = client.api_key or ""
        self._client = client
        self._adapter = OpenAIRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _chat_impl(self, request: dict[str, Any]) -> ChatCompletion:
        response: ChatCompletion = await self._client.chat.completions.create(
            model=self.model, **request
        )
        return response


class AnthropicLLM(BaseAsyncLLM):
    """
    Anthropic messages client (async-only).

    Use ``AnthropicLLM.from_client`` when you already have an ``AsyncAnthropic`` instance.
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(model=model, api_key=api_key, logger=logger, name=name)
        self.api_key = api_key
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = AnthropicRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncAnthropic,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Wrap an existing ``AsyncAnthropic`` client.
        """
        if not isinstance(client, AsyncAnthropic):
            raise TypeError(
                f"AnthropicLLM.from_client expects AsyncAnthropic; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(
            self, model=model, api_key=client.api_key or "", logger=logger, name=name
        )
        self.api_key = client.api_key or ""
        self._client = client
        self._adapter = AnthropicRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _chat_impl(self, request: dict[str, Any]) -> Message:
        response: Message = await self._client.messages.create(model=self.model, **request)
        return response


# Factory for creating LLM instances

_LLM_REGISTRY: dict[Provider, type[BaseAsyncLLM]] = {
    Provider.OPENAI: OpenAILLM,
    Provider.ANTHROPIC: AnthropicLLM,
}


def create_llm(
    provider: Provider | str,
    model: str,
    *,
    api_key: str | None = None,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: logging.Logger | None = None,
    **provider_kwargs: Any,
) -> BaseAsyncLLM:
    """
    Factory for creating any supported LLM.

    Args:
        provider: Which provider to use (OPENAI or ANTHROPIC).
        model: Model identifier (e.g. "gpt-4o-mini").
        api_key: Overrides automatic lookup; if omitted, pulled from env.
        client: Optional pre-configured SDK client (AsyncOpenAI or AsyncAnthropic).
        logger: Optional custom logger.
        **provider_kwargs: Any extra args to pass through (timeout, max_retries, base_url).
    """
    try:
        llm_cls = _LLM_REGISTRY[Provider(provider)]
    except (KeyError, ValueError):
        raise config_error(f"Unsupported provider: {provider}") from None

    if client is not None:  # use caller-supplied client verbatim
        return llm_cls.from_client(model, client, logger=logger, **provider_kwargs)

    key = api_key or get_api_key(Provider(provider))
    return llm_cls(model=model, api_key=key, logger=logger, **provider_kwargs)
