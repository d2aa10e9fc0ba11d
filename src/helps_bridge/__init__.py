"""
helps-bridge - Translation Helps tools for programs and LLMs.
"""

import logging

from .client import (
    BaseAsyncLLM,
    OpenAILLM,
    AnthropicLLM,
    create_llm,
)
from .core import TranslationHelpsClient
from .helper import LLMHelper
from .executor import ExecutionContext, ExecutionHooks, ToolExecutionLoop
from .catalog import CacheStatus, ToolCatalog
from .config import ClientConfig, FilterConfig, RetryConfig, UpstreamConfig, load_config
from .filters import FilterEngine
from .http import RetryingHTTPInvoker
from .normalizer import normalize
from .router import ToolRouter
from .types import (
    ChatMessage,
    ChatResult,
    FinishReason,
    TextContent,
    Tool,
    ToolCallRequest,
    ToolCallResult,
    Usage,
)
from .provider import Provider, get_api_key
from ._exceptions import ErrorKind, HelpsBridgeError, http_status_for

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "BaseAsyncLLM",
    "OpenAILLM",
    "AnthropicLLM",
    "create_llm",
    "TranslationHelpsClient",
    "LLMHelper",
    "ExecutionContext",
    "ExecutionHooks",
    "ToolExecutionLoop",
    "CacheStatus",
    "ToolCatalog",
    "ClientConfig",
    "FilterConfig",
    "RetryConfig",
    "UpstreamConfig",
    "load_config",
    "FilterEngine",
    "RetryingHTTPInvoker",
    "normalize",
    "ToolRouter",
    "ChatMessage",
    "ChatResult",
    "FinishReason",
    "TextContent",
    "Tool",
    "ToolCallRequest",
    "ToolCallResult",
    "Usage",
    "Provider",
    "get_api_key",
    "ErrorKind",
    "HelpsBridgeError",
    "http_status_for",
]
