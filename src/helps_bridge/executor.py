"""
Bounded ask/execute/append loop that lets a model call Translation Helps tools.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from helps_bridge._cancel import raise_if_cancelled, run_cancellable
from helps_bridge._exceptions import (
    ErrorKind,
    HelpsBridgeError,
    config_error,
    max_iterations_error,
)
from helps_bridge.client import BaseAsyncLLM
from helps_bridge.core import TranslationHelpsClient
from helps_bridge.normalizer import join_text
from helps_bridge.types import ChatMessage, ChatResult, Tool, ToolCallRequest, ToolCallResult

__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "ExecutionContext",
    "ExecutionHooks",
    "ToolExecutionLoop",
    "assistant_message",
    "tool_message",
]

DEFAULT_MAX_ITERATIONS = 5


@dataclass(slots=True)
class ExecutionContext:
    """State of one loop invocation, handed to hooks."""

    iteration: int
    max_iterations: int
    messages: list[ChatMessage]
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    tool_results: list[ToolCallResult] = field(default_factory=list)


@dataclass(slots=True)
class ExecutionHooks:
    """
    Observation callbacks. Each may be a plain function or a coroutine function.

    on_tool_calls: before a batch of calls is executed.
    on_tool_result: after each individual result, in completion order.
    on_iteration: after results are appended and the iteration counted.
    """

    on_tool_calls: Optional[Callable[[list[ToolCallRequest], ExecutionContext], Any]] = None
    on_tool_result: Optional[Callable[[ToolCallResult, ExecutionContext], Any]] = None
    on_iteration: Optional[Callable[[ExecutionContext], Any]] = None


def assistant_message(result: ChatResult) -> ChatMessage:
    """Assistant turn carrying the tool calls it requested."""
    message: ChatMessage = {"role": "assistant", "tool_calls": list(result.tool_calls or ())}
    if result.content:
        message["content"] = result.content
    return message


def tool_message(result: ToolCallResult) -> ChatMessage:
    return {
        "role": "tool",
        "tool_call_id": result.id,
        "name": result.name,
        "content": result.content,
        "is_error": result.is_error,
    }


class ToolExecutionLoop:
    """
    Ask the model, run the tool calls it requests, feed the results back.

    Stops when the model answers without tool calls. Raises a MAX_ITERATIONS
    error once ``max_iterations`` rounds of tool calls have been executed.
    A failing tool call becomes an error result for the model to read.
    """

    def __init__(
        self,
        llm: BaseAsyncLLM,
        client: TranslationHelpsClient,
        *,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        if max_iterations < 1:
            raise config_error("max_iterations must be at least 1")
        self.llm = llm
        self.client = client
        self.max_iterations = max_iterations
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    async def run(
        self,
        messages: Sequence[ChatMessage],
        *,
        tools: Optional[Sequence[Tool]] = None,
        params: dict[str, Any] | None = None,
        hooks: Optional[ExecutionHooks] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> ChatResult:
        hooks = hooks or ExecutionHooks()
        conversation = list(messages)
        if tools is None:
            tools = await self.client.list_tools(cancel=cancel)
        context = ExecutionContext(
            iteration=0,
            max_iterations=self.max_iterations,
            messages=conversation,
        )

        while True:
            raise_if_cancelled(cancel)
            result = await run_cancellable(
                self.llm.chat(conversation, tools=tools or None, params=params), cancel
            )
            if not result.tool_calls:
                self._log(f"Finished after {context.iteration} tool iteration(s)")
                return result

            calls = list(result.tool_calls)
            context.tool_calls = calls
            context.tool_results = []
            self._log(
                f"Iteration {context.iteration + 1}: executing {len(calls)} tool call(s): "
                f"{', '.join(call.name for call in calls)}"
            )
            await self._fire("on_tool_calls", hooks.on_tool_calls, calls, context)

            outcomes = await asyncio.gather(
                *(self._execute(call, context, hooks, cancel) for call in calls),
                return_exceptions=True,
            )
            # The whole batch has joined; surface the first cancellation.
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
            raise_if_cancelled(cancel)

            results = list(outcomes)
            context.tool_results = results
            conversation.append(assistant_message(result))
            conversation.extend(tool_message(r) for r in results)
            context.iteration += 1
            await self._fire("on_iteration", hooks.on_iteration, context)

            if context.iteration >= self.max_iterations:
                self._log(f"Maximum tool iterations ({self.max_iterations}) reached", logging.WARNING)
                raise max_iterations_error(self.max_iterations)

    async def _execute(
        self,
        call: ToolCallRequest,
        context: ExecutionContext,
        hooks: ExecutionHooks,
        cancel: Optional[asyncio.Event],
    ) -> ToolCallResult:
        try:
            arguments = self.client.filters.filter_arguments(call.arguments)
            tool = await self.client.catalog.get_tool(call.name, cancel=cancel)
            arguments = self.client.filters.apply_defaults(tool, arguments, self.client.config.defaults)
            content = await self.client.call_tool(call.name, arguments, cancel=cancel)
            result = ToolCallResult(id=call.id, name=call.name, content=join_text(content))
        except HelpsBridgeError as exc:
            if exc.kind is ErrorKind.CANCELLED:
                raise
            result = self._error_result(call, exc)
        except Exception as exc:
            result = self._error_result(call, exc)

        await self._fire("on_tool_result", hooks.on_tool_result, result, context)
        return result

    def _error_result(self, call: ToolCallRequest, exc: Exception) -> ToolCallResult:
        self.logger.error(f"[{self.name}] Error executing tool {call.name}: {exc}")
        return ToolCallResult(id=call.id, name=call.name, content=f"Error: {exc}", is_error=True)

    async def _fire(self, hook_name: str, hook: Optional[Callable[..., Any]], *args: Any) -> None:
        if hook is None:
            return
        try:
            outcome = hook(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            self.logger.warning(f"[{self.name}] Hook {hook_name} raised; ignoring", exc_info=True)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")
