"""
Exception hierarchy for mcpbridge.

Failures at provider-initialization or discovery granularity are caught and
logged by the registry. Failures at invocation granularity propagate to the
caller of ``ToolClient.invoke``.
"""

import json
from typing import Any, Optional


class MCPBridgeError(Exception):
    """Base class for all mcpbridge errors."""


class ProviderInitError(MCPBridgeError):
    """A provider could not be spawned or failed its handshake."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"Failed to initialize provider '{provider}': {message}")


class TransportParseError(MCPBridgeError):
    """A provider emitted output that is not valid JSON-RPC."""


class RequestTimeoutError(MCPBridgeError):
    """No matching response arrived before the request deadline."""

    def __init__(self, provider: str, method: str, timeout: float):
        self.provider = provider
        self.method = method
        self.timeout = timeout
        super().__init__(f"Request timeout for method {method} on '{provider}' after {timeout:g}s")


class RemoteError(MCPBridgeError):
    """The provider answered with a JSON-RPC error object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        self.code = code
        self.data = data
        super().__init__(message)

    @classmethod
    def from_error_object(cls, error: Any) -> "RemoteError":
        """Build from the ``error`` member of a JSON-RPC response."""
        if isinstance(error, dict):
            message = error.get("message")
            if not message:
                message = json.dumps(error)
            return cls(message, code=error.get("code"), data=error.get("data"))
        return cls(str(error))


class ToolNotFoundError(MCPBridgeError):
    """No ready provider exposes a tool with the requested name."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool not found: {tool_name}")


class ProviderHTTPError(MCPBridgeError):
    """An HTTP provider answered a single request with a non-2xx status."""

    def __init__(self, provider: str, status_code: int, reason: str = ""):
        self.provider = provider
        self.status_code = status_code
        self.reason = reason
        detail = f"HTTP {status_code}: {reason}" if reason else f"HTTP {status_code}"
        super().__init__(f"{detail} (provider '{provider}')")


class ProviderUnavailableError(MCPBridgeError):
    """The provider exited or was shut down while a request was pending."""

    def __init__(self, provider: str, reason: str):
        self.provider = provider
        self.reason = reason
        super().__init__(f"Provider '{provider}' is unavailable: {reason}")
