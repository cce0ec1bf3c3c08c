"""
Transport bindings for tool providers.
"""

from typing import Callable, Optional

from ..config import BridgeConfig, ProviderConfig, ProviderKind
from ..events import EventChannel
from .base import Transport
from .http import StreamableHTTPTransport
from .stdio import StdioTransport


def create_transport(
    config: ProviderConfig,
    settings: BridgeConfig,
    events: Optional[EventChannel] = None,
    on_exit: Optional[Callable[[Optional[int]], None]] = None,
) -> Transport:
    """
    Build the transport for a provider's kind.

    Both HTTP kinds share one binding: the response content type, not the
    configured kind, decides between a JSON body and an event stream.
    """
    if config.type == ProviderKind.STDIO:
        return StdioTransport(config, settings, events=events, on_exit=on_exit)
    if config.type in (ProviderKind.STREAMABLE_HTTP, ProviderKind.SSE):
        return StreamableHTTPTransport(config, settings, events=events, on_exit=on_exit)
    raise ValueError(f"Unsupported server type: {config.type}")


__all__ = [
    "Transport",
    "StdioTransport",
    "StreamableHTTPTransport",
    "create_transport",
]
