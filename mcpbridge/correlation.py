"""
Request correlation and timeout engine.

Each provider owns one RequestCorrelator. It hands out strictly increasing
request ids, keeps the map of in-flight requests, and guarantees every
PendingRequest settles exactly once: by a matching response, by its deadline
elapsing, or by the provider going away.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .errors import MCPBridgeError, RemoteError, RequestTimeoutError


logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"


def build_request(request_id: int, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build a JSON-RPC 2.0 request envelope."""
    request: Dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": request_id, "method": method}
    if params is not None:
        request["params"] = params
    return request


def is_response(message: Any) -> bool:
    """True if a decoded message is a JSON-RPC response (has an id and a result or error)."""
    return (
        isinstance(message, dict)
        and message.get("id") is not None
        and ("result" in message or "error" in message)
    )


@dataclass
class PendingRequest:
    """An outbound request awaiting its response."""
    id: int
    method: str
    deadline: float
    future: asyncio.Future
    timer: Optional[asyncio.TimerHandle] = None

    @property
    def settled(self) -> bool:
        return self.future.done()


class RequestCorrelator:
    """Per-provider request id counter and pending-request map."""

    def __init__(self, provider: str, timeout_for: Callable[[str], float]):
        """
        Args:
            provider: Owning provider name, used in errors and logs
            timeout_for: Maps a method name to its deadline in seconds
        """
        self.provider = provider
        self._timeout_for = timeout_for
        self._last_id = 0
        self._pending: Dict[int, PendingRequest] = {}

    @property
    def last_id(self) -> int:
        return self._last_id

    def next_id(self) -> int:
        """Generate the next request id. Ids are never reused."""
        self._last_id += 1
        return self._last_id

    def pending_count(self) -> int:
        return len(self._pending)

    def pending_ids(self) -> List[int]:
        return list(self._pending)

    def register(self, method: str, timeout: Optional[float] = None) -> PendingRequest:
        """
        Allocate an id and register a PendingRequest with its deadline.

        Args:
            method: JSON-RPC method being sent
            timeout: Override the per-method deadline

        Returns:
            PendingRequest: The registered request
        """
        loop = asyncio.get_running_loop()
        request_id = self.next_id()
        timeout = self._timeout_for(method) if timeout is None else timeout
        pending = PendingRequest(
            id=request_id,
            method=method,
            deadline=loop.time() + timeout,
            future=loop.create_future(),
        )
        pending.timer = loop.call_later(timeout, self._expire, request_id, timeout)
        self._pending[request_id] = pending
        return pending

    def resolve(self, request_id: int, result: Any) -> bool:
        pending = self._pop(request_id)
        if pending is None:
            return False
        pending.future.set_result(result)
        return True

    def reject(self, request_id: int, error: BaseException) -> bool:
        pending = self._pop(request_id)
        if pending is None:
            return False
        pending.future.set_exception(error)
        return True

    def settle(self, request_id: int, message: Dict[str, Any]) -> bool:
        """Settle a request from a decoded JSON-RPC response message."""
        if "error" in message and message["error"] is not None:
            return self.reject(request_id, RemoteError.from_error_object(message["error"]))
        return self.resolve(request_id, message.get("result"))

    def dispatch(self, message: Any) -> bool:
        """
        Route an inbound message to its pending request by id.

        Messages that are not responses, or whose id is not pending, are
        ignored.

        Returns:
            bool: True if a pending request was settled
        """
        if not is_response(message):
            return False
        request_id = message["id"]
        if isinstance(request_id, bool) or not isinstance(request_id, int):
            # Some providers echo ids back as strings
            try:
                request_id = int(request_id)
            except (TypeError, ValueError, OverflowError):
                return False
        if request_id not in self._pending:
            logger.debug(f"Dropping response for unknown id {request_id} from '{self.provider}'")
            return False
        return self.settle(request_id, message)

    def reject_all(self, error_factory: Callable[[], MCPBridgeError]) -> int:
        """
        Reject every pending request and clear the map.

        Returns:
            int: Number of requests rejected
        """
        count = 0
        for request_id in list(self._pending):
            if self.reject(request_id, error_factory()):
                count += 1
        return count

    async def wait(self, pending: PendingRequest) -> Any:
        """Wait for a pending request to settle and return its result."""
        try:
            return await pending.future
        except asyncio.CancelledError:
            self._pop(pending.id)
            raise

    def _pop(self, request_id: int) -> Optional[PendingRequest]:
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return None
        if pending.timer is not None:
            pending.timer.cancel()
        if pending.settled:
            return None
        return pending

    def _expire(self, request_id: int, timeout: float) -> None:
        pending = self._pending.get(request_id)
        if pending is None:
            return
        logger.warning(f"Request {request_id} ({pending.method}) to '{self.provider}' timed out after {timeout:g}s")
        self.reject(request_id, RequestTimeoutError(self.provider, pending.method, timeout))
