"""
Error taxonomy for helps-bridge.

A single exception type, `HelpsBridgeError`, carries an `ErrorKind` and the
payload that goes with it. Boundaries branch on ``error.kind`` instead of on
subclass identity.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Final, Optional

import anthropic
import openai

__all__: tuple[str, ...] = (
    "ErrorKind",
    "HelpsBridgeError",
    "classify_error",
    "http_status_for",
    "connection_error",
    "response_error",
    "invalid_upstream_response",
    "tool_not_found",
    "tool_disabled",
    "invalid_arguments",
    "provider_error",
    "max_iterations_error",
    "config_error",
    "cancelled_error",
)


class ErrorKind(StrEnum):
    CONNECTION = "connection"
    RESPONSE = "response"
    INVALID_UPSTREAM_RESPONSE = "invalid_upstream_response"
    TOOL_NOT_FOUND = "tool_not_found"
    TOOL_DISABLED = "tool_disabled"
    INVALID_ARGUMENTS = "invalid_arguments"
    PROVIDER = "provider"
    MAX_ITERATIONS = "max_iterations"
    CONFIG = "config"
    CANCELLED = "cancelled"


class HelpsBridgeError(RuntimeError):
    """Public bridge-level exception.

    Attributes:
        kind: What went wrong.
        status_code: HTTP status for RESPONSE and (when known) PROVIDER errors.
        tool_name: Tool involved in TOOL_* and INVALID_ARGUMENTS errors.
        max_iterations: Exhausted budget for MAX_ITERATIONS errors.
        original_exc: The underlying exception, if any.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        tool_name: Optional[str] = None,
        max_iterations: Optional[int] = None,
        original_exc: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.tool_name = tool_name
        self.max_iterations = max_iterations
        self.original_exc = original_exc
        if original_exc is not None:
            self.__cause__ = original_exc

    @property
    def message(self) -> str:
        return str(self)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value!r}, message={str(self)!r})"


def connection_error(message: str, exc: Optional[BaseException] = None) -> HelpsBridgeError:
    return HelpsBridgeError(ErrorKind.CONNECTION, message, original_exc=exc)


def response_error(status_code: int, message: Optional[str] = None) -> HelpsBridgeError:
    return HelpsBridgeError(
        ErrorKind.RESPONSE,
        message or f"Upstream server returned {status_code}",
        status_code=status_code,
    )


def invalid_upstream_response(message: str, exc: Optional[BaseException] = None) -> HelpsBridgeError:
    return HelpsBridgeError(ErrorKind.INVALID_UPSTREAM_RESPONSE, message, original_exc=exc)


def tool_not_found(name: str) -> HelpsBridgeError:
    return HelpsBridgeError(ErrorKind.TOOL_NOT_FOUND, f"Tool '{name}' not found", tool_name=name)


def tool_disabled(name: str) -> HelpsBridgeError:
    return HelpsBridgeError(ErrorKind.TOOL_DISABLED, f"Tool '{name}' is disabled", tool_name=name)


def invalid_arguments(name: str, missing: list[str]) -> HelpsBridgeError:
    detail = f": missing required field(s) {', '.join(missing)}" if missing else ""
    return HelpsBridgeError(
        ErrorKind.INVALID_ARGUMENTS,
        f"Invalid arguments for tool '{name}'{detail}",
        tool_name=name,
    )


def provider_error(
    message: str,
    *,
    status_code: Optional[int] = None,
    exc: Optional[BaseException] = None,
) -> HelpsBridgeError:
    return HelpsBridgeError(ErrorKind.PROVIDER, message, status_code=status_code, original_exc=exc)


def max_iterations_error(max_iterations: int) -> HelpsBridgeError:
    return HelpsBridgeError(
        ErrorKind.MAX_ITERATIONS,
        f"Maximum tool iterations ({max_iterations}) reached",
        max_iterations=max_iterations,
    )


def config_error(message: str) -> HelpsBridgeError:
    return HelpsBridgeError(ErrorKind.CONFIG, message)


def cancelled_error(message: str = "Operation cancelled by caller") -> HelpsBridgeError:
    return HelpsBridgeError(ErrorKind.CANCELLED, message)


# Status a front-end should answer with for each kind.
_HTTP_STATUS: Final[dict[ErrorKind, int]] = {
    ErrorKind.CONNECTION: 502,
    ErrorKind.RESPONSE: 502,
    ErrorKind.INVALID_UPSTREAM_RESPONSE: 502,
    ErrorKind.TOOL_NOT_FOUND: 404,
    ErrorKind.TOOL_DISABLED: 403,
    ErrorKind.INVALID_ARGUMENTS: 400,
    ErrorKind.PROVIDER: 502,
    ErrorKind.MAX_ITERATIONS: 422,
    ErrorKind.CONFIG: 500,
    ErrorKind.CANCELLED: 499,
}

_unmapped = set(ErrorKind) - set(_HTTP_STATUS)
if _unmapped:  # pragma: no cover - guards future additions to ErrorKind
    raise RuntimeError(f"No HTTP status for error kinds: {sorted(_unmapped)}")


def http_status_for(error: HelpsBridgeError) -> int:
    """Return the HTTP status a front-end should use to report *error*."""
    if error.kind is ErrorKind.PROVIDER and error.status_code:
        # Caller-side problems reported by the provider keep their 4xx.
        if 400 <= error.status_code < 500:
            return error.status_code
    return _HTTP_STATUS[error.kind]


RATE_LIMIT_ERRORS: Final = (openai.RateLimitError, anthropic.RateLimitError)
CONN_ERRORS: Final = (
    openai.APIConnectionError,
    anthropic.APIConnectionError,
    TimeoutError,
    ConnectionError,
)
STATUS_ERRORS: Final = (openai.APIStatusError, anthropic.APIStatusError)
API_ERRORS: Final = (openai.APIError, anthropic.APIError)


def classify_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> HelpsBridgeError:
    """Wrap a provider SDK exception in a PROVIDER error with a concise message."""
    log = logger or logging.getLogger("helps_bridge.exceptions")

    if isinstance(exc, HelpsBridgeError):
        return exc

    status_code = getattr(exc, "status_code", None) if isinstance(exc, STATUS_ERRORS) else None

    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded, please retry later"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem, unable to reach the LLM provider"
    elif isinstance(exc, STATUS_ERRORS):
        msg = f"Provider returned {status_code}"
    elif isinstance(exc, API_ERRORS):
        msg = "Provider reported an internal error"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping provider exception: %s", exc)
    return provider_error(f"{msg}: {exc}", status_code=status_code, exc=exc)
