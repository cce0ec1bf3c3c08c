"""
Pytest configuration and shared fixtures for mcpbridge tests.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add the project root to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mcpbridge.config import BridgeConfig, ProviderConfig
from mcpbridge.transports.base import Transport


FAKE_SERVER = str(Path(__file__).parent / "fixtures" / "fake_stdio_server.py")


class SpyTransport(Transport):
    """
    In-memory transport that records every request and answers immediately.

    ``tools`` is the catalog returned by ``tools/list``; ``tools/call``
    answers with the provider and tool name so tests can see who was called.
    """

    def __init__(self, *args, tools: Optional[List[Dict[str, Any]]] = None,
                 fail_init: bool = False, fail_list: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.tools = tools or []
        self.fail_init = fail_init
        self.fail_list = fail_list
        self.sent: List[Dict[str, Any]] = []
        self.started = False
        self.torn_down = False

    async def initialize(self) -> None:
        if self.fail_init:
            raise RuntimeError("spawn failed")
        self.started = True

    def is_alive(self) -> bool:
        return self.started and not self._closed

    async def _transmit(self, pending, request):
        self.sent.append(request)
        method = request["method"]
        if method == "tools/list":
            if self.fail_list:
                self.correlator.settle(pending.id, {"error": {"code": -1, "message": "list failed"}})
            else:
                self.correlator.resolve(pending.id, {"tools": self.tools})
        elif method == "tools/call":
            self.correlator.resolve(pending.id, {
                "content": [{"type": "text", "text": f"{self.name}:{request['params']['name']}"}]
            })
        else:
            self.correlator.resolve(pending.id, {})

    async def teardown(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.torn_down = True
        self._reject_pending("shut down")


class SpyTransportFactory:
    """transport_factory that builds SpyTransports and remembers them by provider name."""

    def __init__(self, catalogs: Dict[str, List[str]], fail_init=(), fail_list=()):
        self.catalogs = catalogs
        self.fail_init = set(fail_init)
        self.fail_list = set(fail_list)
        self.created: Dict[str, SpyTransport] = {}

    def __call__(self, config, settings, events=None, on_exit=None) -> SpyTransport:
        tools = [
            {"name": name, "description": f"{name} from {config.name}", "inputSchema": {"type": "object"}}
            for name in self.catalogs.get(config.name, [])
        ]
        transport = SpyTransport(
            config, settings, events=events, on_exit=on_exit, tools=tools,
            fail_init=config.name in self.fail_init,
            fail_list=config.name in self.fail_list,
        )
        self.created[config.name] = transport
        return transport

    def total_sent(self) -> int:
        return sum(len(t.sent) for t in self.created.values())


@pytest.fixture
def settings():
    """Bridge settings with short deadlines, isolated from any .env file."""
    return BridgeConfig(
        _env_file=None,
        metadata_timeout=3.0,
        tool_call_timeout=3.0,
        shutdown_grace_period=1.0,
        event_queue_size=100,
    )


@pytest.fixture
def fake_server_config():
    """Factory for stdio ProviderConfigs running the fake provider."""
    def make(name: str = "fake", tools: Optional[List[str]] = None) -> ProviderConfig:
        env = {"FAKE_TOOLS": ",".join(tools)} if tools else {}
        return ProviderConfig(
            name=name,
            type="stdio",
            command=sys.executable,
            args=["-u", FAKE_SERVER],
            env=env,
        )
    return make


@pytest.fixture
def spy_factory():
    """Factory for SpyTransportFactory instances."""
    def make(catalogs: Dict[str, List[str]], **kwargs) -> SpyTransportFactory:
        return SpyTransportFactory(catalogs, **kwargs)
    return make


def stdio_config(name: str) -> ProviderConfig:
    return ProviderConfig(name=name, type="stdio", command="unused")


@pytest.fixture
def make_stdio_config():
    """Build placeholder stdio configs for spy-backed providers."""
    return stdio_config
