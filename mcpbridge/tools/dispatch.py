"""
Routes tool invocations to the provider that owns the tool.
"""

import json
import logging
from typing import Any, Dict, Optional

from ..errors import ToolNotFoundError
from ..events import EventChannel, EventType
from .catalog import ToolCatalog


logger = logging.getLogger(__name__)


class ToolDispatcher:
    """Handles execution of tools called by the conversational engine."""

    def __init__(self, catalog: ToolCatalog, events: Optional[EventChannel] = None):
        self.catalog = catalog
        self.events = events

    async def invoke(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """
        Execute a tool on the provider that owns it.

        Args:
            tool_name: Name of the tool to execute
            arguments: Arguments to pass to the tool

        Returns:
            str: The provider's result serialized as JSON text

        Raises:
            ToolNotFoundError: If no READY provider exposes the tool. Raised
                before any request is sent.
            MCPBridgeError: If the call fails, times out, or the provider
                returns an error.
        """
        provider = self.catalog.find_owner(tool_name)
        if provider is None:
            logger.error(f"Tool not found: {tool_name}")
            raise ToolNotFoundError(tool_name)

        logger.info(f"Executing tool \"{tool_name}\" on server \"{provider.name}\"")
        self._emit(EventType.TOOL_CALL_START, provider.name, tool_name, data={"arguments": arguments or {}})
        try:
            result = await provider.call_tool(tool_name, arguments)
        except Exception as e:
            logger.error(f"Failed to execute tool {tool_name}: {e}")
            self._emit(EventType.TOOL_CALL_ERROR, provider.name, tool_name, error=str(e) or type(e).__name__)
            raise

        self._emit(EventType.TOOL_CALL_END, provider.name, tool_name, data={"result": result})
        return json.dumps(result)

    def _emit(self, type: EventType, provider: str, tool_name: str, **kwargs) -> None:
        if self.events is not None:
            self.events.emit(type, provider=provider, tool_name=tool_name, **kwargs)
