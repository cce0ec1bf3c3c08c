"""
Merged tool catalog across READY providers.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .descriptor import ToolDescriptor

if TYPE_CHECKING:
    from ..providers import ProviderInstance, ProviderRegistry


logger = logging.getLogger(__name__)


class ToolCatalog:
    """
    View over the catalogs of every READY provider.

    Providers are scanned in registration order; when two providers expose
    the same tool name the first one wins.
    """

    def __init__(self, registry: "ProviderRegistry"):
        self.registry = registry
        self._reported_conflicts = set()

    def get_tools(self) -> List[ToolDescriptor]:
        """Get all available tools, without duplicate names."""
        tools: List[ToolDescriptor] = []
        owners: Dict[str, str] = {}
        for provider in self.registry.ready_providers():
            for tool in provider.tools:
                if tool.name in owners:
                    self._report_conflict(tool.name, owners[tool.name], provider.name)
                    continue
                owners[tool.name] = provider.name
                tools.append(tool)
        return tools

    def _report_conflict(self, tool_name: str, winner: str, loser: str) -> None:
        key = (tool_name, loser)
        if key in self._reported_conflicts:
            return
        self._reported_conflicts.add(key)
        logger.warning(f"Tool '{tool_name}' from '{loser}' is shadowed by '{winner}'")

    def get_tool_definitions(self) -> List[Dict[str, Any]]:
        """Get tool definitions in LLM function-calling format."""
        return [tool.get_schema() for tool in self.get_tools()]

    def find_owner(self, tool_name: str) -> Optional["ProviderInstance"]:
        """First READY provider exposing ``tool_name``, if any."""
        for provider in self.registry.ready_providers():
            if provider.has_tool(tool_name):
                return provider
        return None

    def has_tool(self, tool_name: str) -> bool:
        return self.find_owner(tool_name) is not None

    def __len__(self) -> int:
        return len(self.get_tools())
