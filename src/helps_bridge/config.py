"""
Configuration for helps-bridge.

Every config object validates itself on construction and raises a CONFIG
`HelpsBridgeError` when a value is unusable. `load_config` builds a
`ClientConfig` from the environment (a ``.env`` file is honoured).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Final, Iterable, Optional

import httpx
from dotenv import load_dotenv

from helps_bridge._exceptions import config_error

__all__ = [
    "DEFAULT_UPSTREAM_URL",
    "DEFAULT_RETRYABLE_STATUS_CODES",
    "RetryConfig",
    "UpstreamConfig",
    "FilterConfig",
    "ClientConfig",
    "load_config",
]

DEFAULT_UPSTREAM_URL: Final = "https://translation-helps-mcp.pages.dev/api/mcp"
DEFAULT_RETRYABLE_STATUS_CODES: Final = frozenset({408, 429, 500, 502, 503, 504})
DEFAULT_LANGUAGE: Final = "en"
DEFAULT_ORGANIZATION: Final = "unfoldingWord"


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy for upstream HTTP calls. Delays are in seconds."""

    max_retries: int = 3
    retry_delay: float = 1.0
    backoff: float = 2.0
    retryable_status_codes: frozenset[int] = DEFAULT_RETRYABLE_STATUS_CODES

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise config_error("max_retries must be >= 0")
        if self.retry_delay < 0:
            raise config_error("retry_delay must be >= 0")
        if self.backoff < 1:
            raise config_error("backoff must be >= 1")
        object.__setattr__(self, "retryable_status_codes", frozenset(self.retryable_status_codes))

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before retry number *attempt* (0-based)."""
        return self.retry_delay * self.backoff**attempt


@dataclass(frozen=True)
class UpstreamConfig:
    upstream_url: str = DEFAULT_UPSTREAM_URL
    timeout: float = 30.0
    headers: dict[str, str] = field(default_factory=dict)
    retry: RetryConfig = field(default_factory=RetryConfig)

    def __post_init__(self) -> None:
        try:
            url = httpx.URL(self.upstream_url)
        except (httpx.InvalidURL, TypeError) as exc:
            raise config_error(f"Invalid upstream_url: {self.upstream_url!r}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise config_error(f"upstream_url must be an absolute http(s) URL: {self.upstream_url!r}")
        if self.timeout <= 0:
            raise config_error("timeout must be positive")


def _as_name_set(values: Optional[Iterable[str]]) -> Optional[frozenset[str]]:
    if values is None:
        return None
    if isinstance(values, str):
        raise config_error("Expected a collection of names, got a single string")
    return frozenset(values)


@dataclass(frozen=True)
class FilterConfig:
    """Operator filters.

    Absent or empty ``enabled_tools`` means every tool is enabled.
    """

    enabled_tools: Optional[frozenset[str]] = None
    hidden_params: Optional[frozenset[str]] = None
    filter_book_chapter_notes: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "enabled_tools", _as_name_set(self.enabled_tools))
        object.__setattr__(self, "hidden_params", _as_name_set(self.hidden_params))

    def update(self, **changes: Any) -> "FilterConfig":
        unknown = set(changes) - {"enabled_tools", "hidden_params", "filter_book_chapter_notes"}
        if unknown:
            raise config_error(f"Unknown filter settings: {', '.join(sorted(unknown))}")
        return replace(self, **changes)


@dataclass(frozen=True)
class ClientConfig:
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    language: str = DEFAULT_LANGUAGE
    organization: str = DEFAULT_ORGANIZATION

    def __post_init__(self) -> None:
        if not self.language:
            raise config_error("language must not be empty")
        if not self.organization:
            raise config_error("organization must not be empty")

    @property
    def defaults(self) -> dict[str, str]:
        """Arguments baked into model-generated tool calls."""
        return {"language": self.language, "organization": self.organization}


def _split(value: Optional[str]) -> Optional[frozenset[str]]:
    if value is None:
        return None
    names = {part.strip() for part in value.split(",") if part.strip()}
    return frozenset(names) or None


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config(env: Optional[dict[str, str]] = None) -> ClientConfig:
    """Build a ClientConfig from ``HELPS_*`` environment variables."""
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    try:
        timeout = float(env.get("HELPS_TIMEOUT", "30"))
        max_retries = int(env.get("HELPS_MAX_RETRIES", "3"))
    except ValueError as exc:
        raise config_error(f"Invalid numeric setting: {exc}") from exc

    return ClientConfig(
        upstream=UpstreamConfig(
            upstream_url=env.get("HELPS_UPSTREAM_URL", DEFAULT_UPSTREAM_URL),
            timeout=timeout,
            retry=RetryConfig(max_retries=max_retries),
        ),
        filters=FilterConfig(
            enabled_tools=_split(env.get("HELPS_ENABLED_TOOLS")),
            hidden_params=_split(env.get("HELPS_HIDDEN_PARAMS")),
            filter_book_chapter_notes=_as_bool(env.get("HELPS_FILTER_BOOK_CHAPTER_NOTES", "false")),
        ),
        language=env.get("HELPS_LANGUAGE", DEFAULT_LANGUAGE),
        organization=env.get("HELPS_ORGANIZATION", DEFAULT_ORGANIZATION),
    )
