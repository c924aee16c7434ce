import asyncio, logging
from typing import Any, AsyncIterator, Dict, Optional
from .models import StateUpdate

log = logging.getLogger("state")

class DeviceStateCache:
    """Last-known state document per device id. In-memory, never expires."""

    def __init__(self):
        self._states: Dict[str, Any] = {}

    def get(self, device_id: str) -> Optional[Any]:
        return self._states.get(device_id)

    def set(self, device_id: str, state: Any):
        self._states[device_id] = state

    def __contains__(self, device_id: str) -> bool:
        return device_id in self._states

    def __len__(self) -> int:
        return len(self._states)

class UpdateFeed:
    """Single-producer queue of StateUpdates drained by the broadcaster.

    Delivery is at-most-once: publishing to a full feed drops the update
    instead of stalling the telemetry loop.
    """

    def __init__(self, maxsize: int = 100):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize)
        self.dropped = 0

    def publish(self, update: StateUpdate) -> bool:
        try:
            self._queue.put_nowait(update)
        except asyncio.QueueFull:
            self.dropped += 1
            log.warning("Update feed full; dropping update for device %s", update.device_id)
            return False
        return True

    async def get(self) -> StateUpdate:
        return await self._queue.get()

    def qsize(self) -> int:
        return self._queue.qsize()

    async def __aiter__(self) -> AsyncIterator[StateUpdate]:
        while True:
            yield await self._queue.get()
