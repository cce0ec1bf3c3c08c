"""
Base transport interface for tool providers.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from ..config import BridgeConfig, ProviderConfig
from ..correlation import PendingRequest, RequestCorrelator, build_request
from ..errors import ProviderUnavailableError
from ..events import EventChannel


logger = logging.getLogger(__name__)


class Transport(ABC):
    """
    One provider's connection: owns the request correlator and moves JSON-RPC
    messages between it and the provider.
    """

    def __init__(
        self,
        config: ProviderConfig,
        settings: BridgeConfig,
        events: Optional[EventChannel] = None,
        on_exit: Optional[Callable[[Optional[int]], None]] = None,
    ):
        """
        Args:
            config: Provider configuration
            settings: Bridge settings (timeouts, limits, protocol version)
            events: Channel for progress notifications
            on_exit: Called once if the provider goes away on its own
        """
        self.config = config
        self.settings = settings
        self.events = events
        self.on_exit = on_exit
        self.correlator = RequestCorrelator(config.name, settings.timeout_for)
        self._closed = False

    @property
    def name(self) -> str:
        return self.config.name

    @abstractmethod
    async def initialize(self) -> None:
        """Establish the transport (spawn the process or perform the handshake)."""
        raise NotImplementedError

    @abstractmethod
    async def _transmit(self, pending: PendingRequest, request: Dict[str, Any]) -> None:
        """Put one request on the wire. The response settles ``pending``."""
        raise NotImplementedError

    @abstractmethod
    async def teardown(self) -> None:
        """Release the transport and reject anything still pending."""
        raise NotImplementedError

    @abstractmethod
    def is_alive(self) -> bool:
        """Check if the transport can carry requests."""
        raise NotImplementedError

    async def send_request(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Send a JSON-RPC request and wait for its result.

        Args:
            method: JSON-RPC method name
            params: Optional request params
            timeout: Override the per-method deadline

        Returns:
            Any: The ``result`` member of the response

        Raises:
            RemoteError: The provider returned an error object
            RequestTimeoutError: No response before the deadline
            ProviderUnavailableError: The provider is not running
        """
        if self._closed or not self.is_alive():
            raise ProviderUnavailableError(self.name, "not initialized")

        pending = self.correlator.register(method, timeout)
        request = build_request(pending.id, method, params)
        logger.debug(f"-> {self.name} #{pending.id} {method}")
        try:
            await self._transmit(pending, request)
        except Exception as e:
            error = ProviderUnavailableError(self.name, f"write failed: {e}")
            error.__cause__ = e
            self.correlator.reject(pending.id, error)
        try:
            return await self.correlator.wait(pending)
        finally:
            self._release(pending)

    def _release(self, pending: PendingRequest) -> None:
        """Hook run once the caller stops waiting on a request."""

    def _reject_pending(self, reason: str) -> int:
        count = self.correlator.reject_all(lambda: ProviderUnavailableError(self.name, reason))
        if count:
            logger.info(f"Rejected {count} pending request(s) for '{self.name}': {reason}")
        return count
