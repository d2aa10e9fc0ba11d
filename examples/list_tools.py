import argparse
import asyncio

from helps_bridge import TranslationHelpsClient, load_config
from helps_bridge.normalizer import join_text


async def main(reference: str) -> None:
    async with TranslationHelpsClient(load_config()) as client:
        if not await client.test_connection():
            print("Upstream is unreachable")
            return

        for tool in await client.list_tools():
            print(f"- {tool.name}: {tool.description}")

        content = await client.call_tool("fetch_scripture", {"reference": reference, "language": "en"})
        print()
        print(join_text(content))
        print()
        print(client.get_cache_status())


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("reference", nargs="?", default="John 3:16")
    args = parser.parse_args()

    asyncio.run(main(args.reference))
