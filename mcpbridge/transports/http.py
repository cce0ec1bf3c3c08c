"""
Streamable HTTP transport: JSON-RPC 2.0 requests as HTTP POSTs, answered
either by a JSON body or by a server-sent event stream.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import httpx
from httpx_sse import EventSource

from ..correlation import PendingRequest
from ..errors import ProviderHTTPError, ProviderInitError, ProviderUnavailableError, TransportParseError
from ..events import EventType
from .base import Transport


logger = logging.getLogger(__name__)

SESSION_HEADER = "Mcp-Session-Id"
PROTOCOL_VERSION_HEADER = "MCP-Protocol-Version"


class StreamableHTTPTransport(Transport):
    """
    One logical MCP session against a remote URL.

    The POST exchange itself correlates request and response: whatever the
    body (or the last event of the stream) contains settles the request that
    was posted. The ``Mcp-Session-Id`` header returned by ``initialize`` is
    echoed on every later request.
    """

    def __init__(self, *args, client: Optional[httpx.AsyncClient] = None, **kwargs):
        """
        Args:
            client: Pre-built HTTP client. When omitted the transport creates
                one on initialize and closes it on teardown.
        """
        super().__init__(*args, **kwargs)
        self._client = client
        self._owns_client = client is None
        self._inflight: Dict[int, asyncio.Task] = {}
        self.session_id: Optional[str] = None
        self.server_info: Optional[Dict[str, Any]] = None
        self.capabilities: Optional[Dict[str, Any]] = None

    @property
    def url(self) -> str:
        return self.config.url

    async def initialize(self) -> None:
        """Open the HTTP client and perform the initialize handshake."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=None)

        logger.info(f"Connecting to HTTP provider '{self.name}' at {self.url}")
        result = await self.send_request("initialize", {
            "protocolVersion": self.settings.protocol_version,
            "capabilities": {},
            "clientInfo": {
                "name": self.settings.client_name,
                "version": self.settings.client_version
            }
        })
        if not result:
            raise ProviderInitError(self.name, "No response from server during initialization")

        if isinstance(result, dict):
            self.server_info = result.get("serverInfo")
            self.capabilities = result.get("capabilities")

    def is_alive(self) -> bool:
        return not self._closed and self._client is not None

    def request_headers(self) -> Dict[str, str]:
        """Headers for the next request, including the session token once known."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
            PROTOCOL_VERSION_HEADER: self.settings.protocol_version,
            **self.config.headers
        }
        if self.session_id:
            headers[SESSION_HEADER] = self.session_id
        return headers

    async def _transmit(self, pending: PendingRequest, request: Dict[str, Any]) -> None:
        task = asyncio.create_task(self._post(pending, request), name=f"mcpbridge-http-{self.name}-{pending.id}")
        self._inflight[pending.id] = task
        task.add_done_callback(lambda _: self._inflight.pop(pending.id, None))

    def _release(self, pending: PendingRequest) -> None:
        task = self._inflight.pop(pending.id, None)
        if task is not None and not task.done():
            task.cancel()

    async def _post(self, pending: PendingRequest, request: Dict[str, Any]) -> None:
        try:
            message = await self._exchange(request)
        except asyncio.CancelledError:
            raise
        except httpx.HTTPError as e:
            logger.error(f"HTTP request failed for '{self.name}': {e}")
            error = ProviderUnavailableError(self.name, str(e) or type(e).__name__)
            error.__cause__ = e
            self.correlator.reject(pending.id, error)
            return
        except Exception as e:
            logger.error(f"HTTP request failed for '{self.name}': {e}")
            self.correlator.reject(pending.id, e)
            return

        if isinstance(message, dict) and ("result" in message or "error" in message):
            self.correlator.settle(pending.id, message)
        else:
            self.correlator.resolve(pending.id, message)

    async def _exchange(self, request: Dict[str, Any]) -> Any:
        async with self._client.stream(
            "POST",
            self.url,
            content=json.dumps(request).encode("utf-8"),
            headers=self.request_headers(),
        ) as response:
            if not response.is_success:
                raise ProviderHTTPError(self.name, response.status_code, response.reason_phrase)

            if request["method"] == "initialize":
                session_id = response.headers.get(SESSION_HEADER)
                if session_id:
                    self.session_id = session_id
                    logger.debug(f"Captured session id for '{self.name}'")

            content_type = response.headers.get("content-type", "")
            if "text/event-stream" in content_type:
                return await self._read_event_stream(response, request)

            body = await response.aread()
            if not body.strip():
                return None
            try:
                return json.loads(body)
            except json.JSONDecodeError as e:
                raise TransportParseError(f"Invalid JSON body from '{self.name}': {e}") from e

    async def _read_event_stream(self, response: httpx.Response, request: Dict[str, Any]) -> Any:
        """Read an SSE body; the last well-formed event is the response."""
        last = None
        async for sse in EventSource(response).aiter_sse():
            if not sse.data:
                continue
            try:
                data = json.loads(sse.data)
            except json.JSONDecodeError:
                logger.debug(f"Failed to parse SSE data from '{self.name}'")
                continue
            if last is not None:
                self._publish_progress(request, last)
            last = data
        return last

    def _publish_progress(self, request: Dict[str, Any], data: Any) -> None:
        if self.events is None or request["method"] != "tools/call":
            return
        self.events.emit(
            EventType.TOOL_CALL_PROGRESS,
            provider=self.name,
            tool_name=request["params"]["name"],
            data=data if isinstance(data, dict) else {"value": data},
        )

    async def teardown(self) -> None:
        """Cancel in-flight requests and close the HTTP client."""
        if self._closed:
            return
        self._closed = True

        for task in list(self._inflight.values()):
            task.cancel()
        self._inflight.clear()
        self._reject_pending("shut down")

        if self._owns_client and self._client is not None:
            await self._client.aclose()
        self._client = None
        self.session_id = None
        logger.info(f"HTTP transport for '{self.name}' closed")
