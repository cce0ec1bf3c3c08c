"""
Example demonstrating mcpbridge with local and remote MCP providers.

This example shows how to:
1. Start stdio providers and list their tools
2. Connect to a streamable HTTP provider
3. Invoke a tool by name and watch the event channel
"""

import asyncio
import logging
import sys

from mcpbridge import EventType, ProviderConfig, ToolClient, ToolNotFoundError
from mcpbridge.config import BridgeConfig, setup_logging


async def example_stdio_only(settings: BridgeConfig):
    """Example using only local stdio providers."""
    print("\n🔧 Example 1: stdio providers")
    print("=" * 50)

    async with ToolClient(settings) as client:
        await client.initialize([
            ProviderConfig(
                name="memory",
                type="stdio",
                command="npx",
                args=["-y", "@modelcontextprotocol/server-memory@latest"]
            ),
            ProviderConfig(
                name="thinking",
                type="stdio",
                command="npx",
                args=["-y", "@modelcontextprotocol/server-sequential-thinking@latest"]
            )
        ])
        await client.wait_for_discovery()

        print(f"✅ Providers ready: {client.initialized_count()}")
        for tool in client.get_tools():
            print(f"  🔧 {tool.name} ({tool.provider}): {tool.description}")

        try:
            result = await client.invoke("read_graph", {})
            print(f"📦 read_graph -> {result[:200]}")
        except ToolNotFoundError as e:
            print(f"⚠️  {e}")

    print("🧹 Providers shut down")


async def example_http(settings: BridgeConfig, url: str):
    """Example using a remote streamable HTTP provider."""
    print("\n🌐 Example 2: streamable HTTP provider")
    print("=" * 50)

    async with ToolClient(settings) as client:
        count = await client.initialize([
            ProviderConfig(name="remote", type="streamable-http", url=url)
        ])
        if not count:
            print(f"❌ Could not reach {url}")
            return

        provider = client.get_provider("remote")
        print(f"✅ Session: {provider.transport.session_id}")
        for definition in client.get_tool_definitions():
            print(f"  🔧 {definition['name']}: {definition['description']}")

        while not client.events.empty():
            event = client.events.get_nowait()
            if event.type == EventType.TOOLS_DISCOVERED:
                print(f"📣 {event.provider} discovered {len(event.data['tools'])} tool(s)")


async def main():
    settings = BridgeConfig(log_level="INFO")
    setup_logging(settings)

    await example_stdio_only(settings)
    if len(sys.argv) > 1:
        await example_http(settings, sys.argv[1])


if __name__ == "__main__":
    logging.getLogger(__name__).info("Running mcpbridge examples")
    asyncio.run(main())
