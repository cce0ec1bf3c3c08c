"""
Configuration management for mcpbridge.
Provides centralized settings with environment variable support, plus the
provider configuration models supplied by the process bootstrapper.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class ProviderKind(str, Enum):
    """Transport kinds a provider can be reached through."""
    STDIO = "stdio"
    STREAMABLE_HTTP = "streamable-http"
    SSE = "sse"

    @property
    def is_http(self) -> bool:
        return self in (ProviderKind.STREAMABLE_HTTP, ProviderKind.SSE)


class ProviderConfig(BaseModel):
    """Immutable description of one tool provider."""
    name: str = Field(..., min_length=1, description="Unique provider name")
    type: ProviderKind = Field(..., description="Transport kind")

    # Local process providers
    command: Optional[str] = Field(None, description="Executable to spawn")
    args: List[str] = Field(default_factory=list, description="Command line arguments")
    env: Dict[str, str] = Field(default_factory=dict, description="Environment overlay")

    # Remote HTTP providers
    url: Optional[str] = Field(None, description="Endpoint receiving JSON-RPC POSTs")
    headers: Dict[str, str] = Field(default_factory=dict, description="Static request headers")

    # Owned by the bootstrapper, never executed here
    setup: Optional[str] = Field(None, description="Shell command run once before initialization")

    class Config:
        frozen = True
        json_schema_extra = {
            "examples": [
                {
                    "name": "memory",
                    "type": "stdio",
                    "command": "npx",
                    "args": ["-y", "@modelcontextprotocol/server-memory@latest"]
                },
                {
                    "name": "search",
                    "type": "streamable-http",
                    "url": "https://tools.example.com/mcp",
                    "headers": {"Authorization": "Bearer <token>"}
                }
            ]
        }

    @model_validator(mode="after")
    def _check_kind_fields(self) -> "ProviderConfig":
        if self.type == ProviderKind.STDIO and not self.command:
            raise ValueError(f"stdio provider '{self.name}' requires a command")
        if self.type.is_http and not self.url:
            raise ValueError(f"{self.type.value} provider '{self.name}' requires a url")
        return self


class ProvidersFile(BaseModel):
    """Top-level shape of a providers file."""
    enabled: bool = Field(default=True, description="Master switch for all providers")
    servers: List[ProviderConfig] = Field(default_factory=list, description="Configured providers")

    @field_validator("servers")
    @classmethod
    def _unique_names(cls, servers: List[ProviderConfig]) -> List[ProviderConfig]:
        seen = set()
        for server in servers:
            if server.name in seen:
                raise ValueError(f"Duplicate provider name: {server.name}")
            seen.add(server.name)
        return servers


def load_provider_configs(source: Union[str, Path, Dict[str, Any], List[Any]]) -> ProvidersFile:
    """
    Load provider configurations.

    Args:
        source: Path to a JSON file, or already-decoded data. Either an object
            ``{"enabled": ..., "servers": [...]}`` or a bare list of providers.

    Returns:
        ProvidersFile: Validated provider configuration
    """
    if isinstance(source, (str, Path)):
        with open(source, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    else:
        data = source

    if isinstance(data, list):
        data = {"servers": data}
    return ProvidersFile.model_validate(data)


class BridgeConfig(BaseSettings):
    """mcpbridge settings with environment variable support."""

    enabled: bool = Field(default=True, description="Enable tool providers")
    providers_file: Optional[str] = Field(default=None, description="Path to a providers JSON file")

    # Request deadlines
    metadata_timeout: float = Field(default=10.0, description="Timeout for initialize and tools/list, in seconds")
    tool_call_timeout: float = Field(default=30.0, description="Timeout for tools/call, in seconds")

    # Protocol
    protocol_version: str = Field(default="2025-06-18", description="MCP protocol version sent to HTTP providers")
    client_name: str = Field(default="mcpbridge", description="clientInfo.name sent on initialize")
    client_version: str = Field(default="0.1.0", description="clientInfo.version sent on initialize")

    # Local processes
    shutdown_grace_period: float = Field(default=5.0, description="Seconds between terminate and kill")
    stdout_line_limit: int = Field(default=16 * 1024 * 1024, description="Maximum bytes in one stdout line")
    stderr_buffer_limit: int = Field(default=64 * 1024, description="Bytes of stderr kept for diagnostics")

    # Events
    event_queue_size: int = Field(default=1000, description="Capacity of the event channel")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string"
    )
    debug: bool = Field(default=False, description="Enable debug logging for mcpbridge")

    class Config:
        env_file = ".env"
        env_prefix = "MCPBRIDGE_"
        case_sensitive = False
        extra = "ignore"

    def timeout_for(self, method: str) -> float:
        """Deadline for a JSON-RPC method; tool execution is expected to be slower."""
        if method == "tools/call":
            return self.tool_call_timeout
        return self.metadata_timeout

    def load_providers(self) -> ProvidersFile:
        """Load the configured providers file, or an empty set if none is configured."""
        if not self.providers_file:
            return ProvidersFile(enabled=self.enabled)
        providers = load_provider_configs(self.providers_file)
        if not self.enabled:
            providers = ProvidersFile(enabled=False, servers=providers.servers)
        return providers


# Global configuration instance
_config: Optional[BridgeConfig] = None


def get_config() -> BridgeConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = BridgeConfig()
        setup_logging(_config)
    return _config


def setup_logging(config: BridgeConfig) -> None:
    """Set up logging based on configuration."""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format=config.log_format
    )

    if config.debug:
        logging.getLogger("mcpbridge").setLevel(logging.DEBUG)
    else:
        # Reduce noise from external libraries
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def reload_config() -> BridgeConfig:
    """Reload configuration from environment."""
    global _config
    _config = None
    return get_config()
