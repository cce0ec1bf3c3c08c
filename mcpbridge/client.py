"""
ToolClient: the bridge's upward contract to the conversational engine.

Usage:
    client = ToolClient()
    await client.initialize(load_provider_configs("providers.json"))

    definitions = client.get_tool_definitions()
    result = await client.invoke("read_file", {"path": "README.md"})

    async for event in client.events:
        ...

    await client.shutdown()
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .config import BridgeConfig, ProviderConfig, ProvidersFile, get_config
from .events import EventChannel
from .providers import ProviderInstance, ProviderRegistry
from .tools import ToolCatalog, ToolDescriptor, ToolDispatcher
from .transports import Transport, create_transport


logger = logging.getLogger(__name__)


class ToolClient:
    """Connects an agent to its configured tool providers."""

    def __init__(
        self,
        settings: Optional[BridgeConfig] = None,
        events: Optional[EventChannel] = None,
        transport_factory: Callable[..., Transport] = create_transport,
    ):
        """
        Args:
            settings: Bridge settings; defaults to the global configuration
            events: Event channel; one is created when omitted
            transport_factory: Builds a provider's transport from its config
        """
        self.settings = settings or get_config()
        self.events = events or EventChannel(maxsize=self.settings.event_queue_size)
        self.registry = ProviderRegistry(self.settings, events=self.events, transport_factory=transport_factory)
        self.catalog = ToolCatalog(self.registry)
        self.dispatcher = ToolDispatcher(self.catalog, events=self.events)

    async def initialize(
        self,
        providers: Optional[Union[ProvidersFile, Iterable[ProviderConfig]]] = None,
    ) -> int:
        """
        Initialize all configured providers.

        Args:
            providers: Provider configurations. When omitted they are loaded
                from ``settings.providers_file``.

        Returns:
            int: Number of usable providers
        """
        if providers is None:
            providers = self.settings.load_providers()

        if isinstance(providers, ProvidersFile):
            enabled = providers.enabled and self.settings.enabled
            configs: List[ProviderConfig] = list(providers.servers)
        else:
            enabled = self.settings.enabled
            configs = list(providers)

        if not enabled:
            logger.info("MCP is disabled in configuration")
            return 0

        return await self.registry.initialize(configs)

    async def wait_for_discovery(self) -> None:
        """Wait until background tool discovery has finished for every provider."""
        await self.registry.wait_for_discovery()

    async def shutdown(self) -> None:
        """Shutdown all providers."""
        await self.registry.shutdown()

    def get_tools(self) -> List[ToolDescriptor]:
        """Get all available tools from all initialized providers."""
        return self.catalog.get_tools()

    def get_tool_definitions(self) -> List[Dict[str, Any]]:
        """Get tool definitions in LLM function-calling format."""
        return self.catalog.get_tool_definitions()

    async def invoke(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """Execute a tool call on the appropriate provider and return its result as text."""
        return await self.dispatcher.invoke(tool_name, arguments)

    def initialized_count(self) -> int:
        """Get count of initialized providers."""
        return self.registry.initialized_count()

    def get_provider(self, name: str) -> Optional[ProviderInstance]:
        return self.registry.get_provider(name)

    def get_all_providers(self) -> List[ProviderInstance]:
        return self.registry.get_all_providers()

    async def __aenter__(self) -> "ToolClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
