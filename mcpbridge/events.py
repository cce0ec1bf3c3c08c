"""
Event channel carrying provider lifecycle and tool call notifications to the
hosting conversational engine.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional, Union


logger = logging.getLogger(__name__)


class EventType(str, Enum):
    # Provider lifecycle
    PROVIDER_READY = "PROVIDER_READY"
    PROVIDER_FAILED = "PROVIDER_FAILED"
    PROVIDER_EXITED = "PROVIDER_EXITED"
    TOOLS_DISCOVERED = "TOOLS_DISCOVERED"
    # Tool invocation
    TOOL_CALL_START = "TOOL_CALL_START"
    TOOL_CALL_PROGRESS = "TOOL_CALL_PROGRESS"
    TOOL_CALL_END = "TOOL_CALL_END"
    TOOL_CALL_ERROR = "TOOL_CALL_ERROR"


@dataclass
class BridgeEvent:
    """Represents an event emitted by the bridge."""

    type: Union[EventType, str]
    provider: Optional[str] = None
    tool_name: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        if isinstance(self.type, str):
            try:
                self.type = EventType(self.type)
            except ValueError:
                pass

        if self.type in (EventType.TOOL_CALL_START, EventType.TOOL_CALL_PROGRESS,
                         EventType.TOOL_CALL_END, EventType.TOOL_CALL_ERROR):
            if not self.tool_name:
                raise ValueError(f"tool_name is required for {self.type}")

        if self.type in (EventType.PROVIDER_FAILED, EventType.TOOL_CALL_ERROR) and not self.error:
            raise ValueError(f"error is required for {self.type}")


class EventChannel:
    """
    Bounded, ordered channel of BridgeEvents.

    Publishing never blocks the transport that produced the event: when the
    queue is full the event is dropped and counted.
    """

    def __init__(self, maxsize: int = 1000):
        self._queue: "asyncio.Queue[BridgeEvent]" = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def publish(self, event: BridgeEvent) -> bool:
        """
        Enqueue an event.

        Returns:
            bool: False if the channel was full and the event was dropped
        """
        try:
            self._queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            if self.dropped == 1 or self.dropped % 100 == 0:
                logger.warning(f"Event channel full, dropped {self.dropped} event(s)")
            return False

    def emit(self, type: Union[EventType, str], **kwargs) -> bool:
        """Build and publish an event in one step."""
        return self.publish(BridgeEvent(type=type, **kwargs))

    async def get(self) -> BridgeEvent:
        return await self._queue.get()

    def get_nowait(self) -> BridgeEvent:
        return self._queue.get_nowait()

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()

    def drain(self) -> list:
        """Remove and return every queued event."""
        events = []
        while not self._queue.empty():
            events.append(self._queue.get_nowait())
        return events

    async def __aiter__(self) -> AsyncIterator[BridgeEvent]:
        while True:
            yield await self._queue.get()
