"""
mcpbridge - connects a conversational agent to out-of-process tool providers
speaking JSON-RPC over stdio or streamable HTTP.
"""

__version__ = "0.1.0"

from .client import ToolClient
from .config import (
    BridgeConfig,
    ProviderConfig,
    ProviderKind,
    ProvidersFile,
    get_config,
    load_provider_configs,
    reload_config,
    setup_logging
)
from .correlation import PendingRequest, RequestCorrelator
from .errors import (
    MCPBridgeError,
    ProviderHTTPError,
    ProviderInitError,
    ProviderUnavailableError,
    RemoteError,
    RequestTimeoutError,
    ToolNotFoundError,
    TransportParseError
)
from .events import BridgeEvent, EventChannel, EventType
from .providers import ProviderInstance, ProviderRegistry, ProviderState
from .tools import ToolCatalog, ToolDescriptor, ToolDispatcher
from .transports import StdioTransport, StreamableHTTPTransport, Transport, create_transport

__all__ = [
    "ToolClient",
    "BridgeConfig",
    "ProviderConfig",
    "ProviderKind",
    "ProvidersFile",
    "get_config",
    "load_provider_configs",
    "reload_config",
    "setup_logging",
    "PendingRequest",
    "RequestCorrelator",
    "MCPBridgeError",
    "ProviderHTTPError",
    "ProviderInitError",
    "ProviderUnavailableError",
    "RemoteError",
    "RequestTimeoutError",
    "ToolNotFoundError",
    "TransportParseError",
    "BridgeEvent",
    "EventChannel",
    "EventType",
    "ProviderInstance",
    "ProviderRegistry",
    "ProviderState",
    "ToolCatalog",
    "ToolDescriptor",
    "ToolDispatcher",
    "StdioTransport",
    "StreamableHTTPTransport",
    "Transport",
    "create_transport",
]
