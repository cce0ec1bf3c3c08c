"""
Runtime state of one configured tool provider.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..config import BridgeConfig, ProviderConfig
from ..events import EventChannel, EventType
from ..tools.descriptor import ToolDescriptor
from ..transports import Transport, create_transport


logger = logging.getLogger(__name__)


class ProviderState(str, Enum):
    """Lifecycle of a provider."""
    UNCONFIGURED = "unconfigured"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"
    EXITED = "exited"
    STOPPED = "stopped"


class ProviderInstance:
    """
    A configured provider, its transport, and its discovered tool catalog.

    Only READY providers take part in catalog merges and dispatch. A READY
    provider leaves service only when its process exits or it is shut down.
    """

    def __init__(
        self,
        config: ProviderConfig,
        settings: BridgeConfig,
        events: Optional[EventChannel] = None,
        transport_factory: Callable[..., Transport] = create_transport,
    ):
        self.config = config
        self.settings = settings
        self.events = events
        self.transport = transport_factory(config, settings, events=events, on_exit=self._handle_exit)
        self.tools: List[ToolDescriptor] = []
        self.state = ProviderState.UNCONFIGURED
        self.error: Optional[str] = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def initialized(self) -> bool:
        return self.state == ProviderState.READY and self.transport.is_alive()

    @property
    def pending_count(self) -> int:
        return self.transport.correlator.pending_count()

    async def start(self) -> None:
        """
        Bring the transport up and mark the provider READY.

        Raises:
            Exception: Whatever the transport raised; the provider is FAILED
        """
        self.state = ProviderState.INITIALIZING
        try:
            await self.transport.initialize()
        except Exception as e:
            self.state = ProviderState.FAILED
            self.error = str(e) or type(e).__name__
            await self.transport.teardown()
            self._emit(EventType.PROVIDER_FAILED, error=self.error)
            raise

        self.state = ProviderState.READY
        logger.info(f"Successfully initialized provider: {self.name}")
        self._emit(EventType.PROVIDER_READY, data={"type": self.config.type.value})

    async def discover_tools(self) -> List[ToolDescriptor]:
        """
        Fetch the provider's catalog with ``tools/list``.

        Failure is logged and leaves the catalog empty; it never changes the
        provider's readiness.
        """
        try:
            response = await self.transport.send_request("tools/list")
        except Exception as e:
            logger.error(f"Failed to discover tools from {self.name}: {e}")
            self.tools = []
            return self.tools

        entries = response.get("tools") if isinstance(response, dict) else None
        if not isinstance(entries, list):
            logger.info(f"No tools found in response from {self.name}")
            self.tools = []
            return self.tools

        tools = []
        for entry in entries:
            try:
                tools.append(ToolDescriptor.from_dict(entry, provider=self.name))
            except ValueError as e:
                logger.warning(f"Skipping tool from {self.name}: {e}")
        self.tools = tools

        logger.info(f"Discovered tools from {self.name}: {[t.name for t in tools]} (total: {len(tools)})")
        self._emit(EventType.TOOLS_DISCOVERED, data={"tools": [t.name for t in tools]})
        return self.tools

    def has_tool(self, tool_name: str) -> bool:
        return any(tool.name == tool_name for tool in self.tools)

    async def call_tool(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        """Send ``tools/call`` and return the provider's result."""
        return await self.transport.send_request("tools/call", {
            "name": tool_name,
            "arguments": arguments or {}
        })

    async def teardown(self) -> None:
        """Stop the transport; pending requests are rejected."""
        await self.transport.teardown()
        if self.state != ProviderState.FAILED:
            self.state = ProviderState.STOPPED

    def _handle_exit(self, code: Optional[int]) -> None:
        if self.state in (ProviderState.STOPPED, ProviderState.FAILED):
            return
        self.state = ProviderState.EXITED
        self._emit(EventType.PROVIDER_EXITED, data={"returncode": code})

    def _emit(self, type: EventType, **kwargs) -> None:
        if self.events is not None:
            self.events.emit(type, provider=self.name, **kwargs)

    def __repr__(self) -> str:
        return f"ProviderInstance(name={self.name!r}, state={self.state.value}, tools={len(self.tools)})"
