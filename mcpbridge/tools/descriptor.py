"""
Tool descriptors discovered from providers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ToolDescriptor:
    """A named, schema-described operation exposed by a provider."""

    name: str
    description: str = ""
    input_schema: Optional[Dict[str, Any]] = None
    provider: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, tool_info: Dict[str, Any], provider: Optional[str] = None) -> "ToolDescriptor":
        """
        Normalize one entry of a ``tools/list`` result.

        Args:
            tool_info: Tool metadata from the provider
            provider: Name of the provider that exposes the tool

        Raises:
            ValueError: If the entry has no usable name
        """
        if not isinstance(tool_info, dict) or not isinstance(tool_info.get("name"), str) or not tool_info["name"]:
            raise ValueError(f"Invalid tool entry: {tool_info!r}")
        return cls(
            name=tool_info["name"],
            description=tool_info.get("description") or "",
            input_schema=tool_info.get("inputSchema"),
            provider=provider,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire form, as returned by ``tools/list``."""
        data: Dict[str, Any] = {"name": self.name, "description": self.description}
        if self.input_schema is not None:
            data["inputSchema"] = self.input_schema
        return data

    def get_schema(self) -> Dict[str, Any]:
        """Get the tool definition for LLM function calling."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.input_schema or {"type": "object", "properties": {}}
        }

    def __str__(self) -> str:
        return f"Tool({self.name}): {self.description}"
