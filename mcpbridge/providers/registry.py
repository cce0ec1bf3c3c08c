"""
Provider registry: brings configured providers up, tracks readiness, and
shuts them down.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from ..config import BridgeConfig, ProviderConfig, ProviderKind
from ..errors import ProviderInitError
from ..events import EventChannel
from ..transports import Transport, create_transport
from .instance import ProviderInstance, ProviderState


logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Holds the ProviderInstances for one bridge.

    The provider map is mutated only by ``initialize`` and ``shutdown``.
    Iteration order is configuration order, which is also the order tool
    name conflicts are resolved in.
    """

    def __init__(
        self,
        settings: BridgeConfig,
        events: Optional[EventChannel] = None,
        transport_factory: Callable[..., Transport] = create_transport,
    ):
        self.settings = settings
        self.events = events
        self.transport_factory = transport_factory
        self._providers: Dict[str, ProviderInstance] = {}
        self._discovery_tasks: Set[asyncio.Task] = set()

    async def initialize(self, configs: Iterable[ProviderConfig]) -> int:
        """
        Bring up every configured provider independently.

        A provider that fails to initialize is logged and never becomes
        usable; the others are unaffected.

        Args:
            configs: Provider configurations, in registration order

        Returns:
            int: Number of providers that are usable
        """
        instances: List[ProviderInstance] = []
        for config in configs:
            if config.name in self._providers or any(i.name == config.name for i in instances):
                logger.warning(f"Provider '{config.name}' is already registered, skipping duplicate")
                continue
            instances.append(ProviderInstance(
                config, self.settings, events=self.events, transport_factory=self.transport_factory
            ))

        logger.info(f"Initializing {len(instances)} MCP servers: {[i.name for i in instances]}")

        # Failed providers stay registered for diagnostics but are never READY
        await asyncio.gather(*(self._initialize_provider(i) for i in instances))
        for instance in instances:
            self._providers[instance.name] = instance

        logger.info(f"MCP servers initialized. Total servers: {self.initialized_count()}")
        return self.initialized_count()

    async def _initialize_provider(self, instance: ProviderInstance) -> bool:
        try:
            await instance.start()
        except Exception as e:
            error = e if isinstance(e, ProviderInitError) else ProviderInitError(instance.name, str(e))
            logger.error(f"Failed to initialize MCP server \"{instance.name}\": {error}")
            return False

        if instance.config.type == ProviderKind.STDIO:
            # Local processes publish their catalog in the background
            task = asyncio.create_task(instance.discover_tools(), name=f"mcpbridge-discover-{instance.name}")
            self._discovery_tasks.add(task)
            task.add_done_callback(self._discovery_tasks.discard)
        else:
            await instance.discover_tools()
        return True

    async def wait_for_discovery(self) -> None:
        """Wait for background tool discovery to finish."""
        if self._discovery_tasks:
            await asyncio.gather(*list(self._discovery_tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Terminate every provider and discard all state. Safe to call repeatedly."""
        for task in list(self._discovery_tasks):
            task.cancel()
        if self._discovery_tasks:
            await asyncio.gather(*list(self._discovery_tasks), return_exceptions=True)
        self._discovery_tasks.clear()

        providers = list(self._providers.values())
        self._providers.clear()
        if not providers:
            return

        results = await asyncio.gather(*(p.teardown() for p in providers), return_exceptions=True)
        for provider, result in zip(providers, results):
            if isinstance(result, Exception):
                logger.error(f"Error shutting down provider '{provider.name}': {result}")
        logger.info("All MCP servers shut down")

    def initialized_count(self) -> int:
        """Count providers that are usable right now."""
        return sum(1 for p in self._providers.values() if p.initialized)

    def ready_providers(self) -> List[ProviderInstance]:
        """READY providers in registration order."""
        return [p for p in self._providers.values() if p.initialized]

    def get_provider(self, name: str) -> Optional[ProviderInstance]:
        return self._providers.get(name)

    def get_all_providers(self) -> List[ProviderInstance]:
        return list(self._providers.values())

    def states(self) -> Dict[str, ProviderState]:
        """Map of provider name to lifecycle state."""
        return {name: p.state for name, p in self._providers.items()}

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: str) -> bool:
        return name in self._providers
