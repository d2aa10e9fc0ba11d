"""
HTTP invoker with per-attempt timeout and exponential-backoff retries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Self

import httpx

from helps_bridge._cancel import run_cancellable, sleep_cancellable
from helps_bridge._exceptions import (
    ErrorKind,
    HelpsBridgeError,
    connection_error,
    response_error,
)
from helps_bridge.config import RetryConfig

__all__ = ["RetryingHTTPInvoker"]

SleepFn = Callable[[float, Optional[asyncio.Event]], Awaitable[None]]


class RetryingHTTPInvoker:
    """
    Sends ``httpx.Request`` objects and retries transient failures.

    Connection-level failures (including timeouts) are always retried.
    Non-2xx responses are retried only when their status is in
    ``retry.retryable_status_codes``; anything else fails on the spot.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        retry: Optional[RetryConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[SleepFn] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._sleep: SleepFn = sleep or sleep_cancellable

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    def is_retryable(self, error: HelpsBridgeError) -> bool:
        if error.kind is ErrorKind.CONNECTION:
            return True
        if error.kind is ErrorKind.RESPONSE:
            return error.status_code in self.retry.retryable_status_codes
        return False

    async def invoke(
        self,
        request: httpx.Request,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> httpx.Response:
        """Send *request*, retrying per the configured policy."""
        attempt = 0
        while True:
            try:
                response = await run_cancellable(self._attempt(request), cancel)
                if attempt:
                    self._log(f"{request.method} {request.url} succeeded after {attempt} retries")
                return response
            except HelpsBridgeError as exc:
                if not self.is_retryable(exc) or attempt >= self.retry.max_retries:
                    if self.is_retryable(exc):
                        self._log(
                            f"Giving up on {request.method} {request.url} after {attempt} retries: {exc}",
                            logging.ERROR,
                        )
                    raise
                delay = self.retry.delay_for(attempt)
                self._log(
                    f"Attempt {attempt + 1} for {request.method} {request.url} failed ({exc}); "
                    f"retrying in {delay:.2f}s",
                    logging.WARNING,
                )
                await self._sleep(delay, cancel)
                attempt += 1

    async def _attempt(self, request: httpx.Request) -> httpx.Response:
        try:
            response = await asyncio.wait_for(self._client.send(request), timeout=self.timeout)
        except TimeoutError as exc:
            raise connection_error(f"Request timed out after {self.timeout}s", exc) from exc
        except httpx.TimeoutException as exc:
            raise connection_error(f"Request timed out after {self.timeout}s", exc) from exc
        except httpx.TransportError as exc:
            raise connection_error(f"Network error: {exc}", exc) from exc

        if not response.is_success:
            raise response_error(
                response.status_code,
                f"Upstream server returned {response.status_code}: {response.reason_phrase}",
            )
        return response

    def _log(self, message: str, level: int = logging.DEBUG) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """Close the underlying client if this invoker created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
