from __future__ import annotations

import argparse
import asyncio
import logging

from helps_bridge import ChatMessage, ExecutionHooks, LLMHelper, Provider, load_config

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


def log_calls(calls, context) -> None:
    for call in calls:
        logger.info("Iteration %d: model wants %s(%s)", context.iteration + 1, call.name, call.arguments)


def log_result(result, context) -> None:
    status = "failed" if result.is_error else "ok"
    logger.info("%s %s: %d chars", result.name, status, len(result.content))


async def ask_with_tools(provider: Provider, model: str, question: str) -> None:
    """
    Let the model answer *question* using the Translation Helps tools.

    1) Fetch the (filtered) tool catalog
    2) Let the model emit tool calls
    3) Execute them upstream and feed the normalized results back
    4) Repeat until the model answers or the iteration budget runs out
    """
    messages: list[ChatMessage] = [
        {"role": "system", "content": "You help Bible translators. Use the tools to cite sources."},
        {"role": "user", "content": question},
    ]
    hooks = ExecutionHooks(on_tool_calls=log_calls, on_tool_result=log_result)

    async with LLMHelper(provider, model, config=load_config()) as helper:
        result = await helper.chat(messages, {"temperature": 0.2}, hooks=hooks)

    logger.info("%s says: %s", provider.value.capitalize(), result.content)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=Provider.OPENAI.value,
    )
    parser.add_argument("--model", default="gpt-4o-mini")
    parser.add_argument("question", nargs="?", default="What do the translation notes say about John 3:16?")
    args = parser.parse_args()

    asyncio.run(ask_with_tools(Provider(args.provider), args.model, args.question))
