from .descriptor import ToolDescriptor
from .catalog import ToolCatalog
from .dispatch import ToolDispatcher

__all__ = ["ToolDescriptor", "ToolCatalog", "ToolDispatcher"]
