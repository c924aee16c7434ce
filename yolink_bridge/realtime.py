import asyncio, logging
from typing import Set
import orjson
from starlette.websockets import WebSocket, WebSocketDisconnect
from .models import StateUpdate
from .state import UpdateFeed

log = logging.getLogger("realtime")

class Session:
    """One live WebSocket client with a private bounded outbound queue."""

    def __init__(self, websocket: WebSocket, queue_size: int = 100):
        self.websocket = websocket
        self.queue: asyncio.Queue = asyncio.Queue(queue_size)
        self._closed = asyncio.Event()
        self._client_gone = False

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def offer(self, update: StateUpdate) -> bool:
        if self.closed:
            return False
        try:
            self.queue.put_nowait(update)
        except asyncio.QueueFull:
            return False
        return True

    def close(self):
        self._closed.set()

    async def _write_loop(self):
        while True:
            update = await self.queue.get()
            await self.websocket.send_text(orjson.dumps(update.as_dict()).decode())

    async def _read_loop(self):
        while True:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                self._client_gone = True
                return
            raw = message.get("text") or message.get("bytes")
            if raw is None:
                continue
            # no inbound commands are defined yet; frames are parsed and dropped
            try:
                orjson.loads(raw)
            except orjson.JSONDecodeError as e:
                log.warning("Error parsing WebSocket message: %s", e)

    async def run(self):
        reader = asyncio.create_task(self._read_loop())
        writer = asyncio.create_task(self._write_loop())
        closer = asyncio.create_task(self._closed.wait())
        tasks = (reader, writer, closer)
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            self._closed.set()
            for t in tasks:
                t.cancel()
            results = await asyncio.gather(*tasks, return_exceptions=True)
        for res in results:
            if isinstance(res, WebSocketDisconnect):
                self._client_gone = True
            elif isinstance(res, Exception):
                log.warning("WebSocket session error: %s", res)

    async def release(self):
        self._closed.set()
        if self._client_gone:
            return
        try:
            await self.websocket.close()
        except (RuntimeError, OSError, WebSocketDisconnect) as e:
            log.debug("Closing WebSocket failed: %s", e)

class Broadcaster:
    """Registry of live sessions fed from the shared update feed.

    A session whose queue is full is dropped rather than slowing the feed
    for everyone else.
    """

    def __init__(self, feed: UpdateFeed, queue_size: int = 100):
        self.feed = feed
        self.queue_size = queue_size
        self._sessions: Set[Session] = set()

    def __len__(self) -> int:
        return len(self._sessions)

    def register(self, websocket: WebSocket) -> Session:
        session = Session(websocket, self.queue_size)
        self._sessions.add(session)
        log.info("WebSocket client registered (%d connected)", len(self._sessions))
        return session

    def unregister(self, session: Session):
        if session in self._sessions:
            self._sessions.discard(session)
            log.info("WebSocket client removed (%d connected)", len(self._sessions))

    def broadcast(self, update: StateUpdate):
        for session in list(self._sessions):
            if not session.offer(update):
                log.warning("WebSocket client too slow; closing session")
                self.unregister(session)
                session.close()

    async def serve(self, websocket: WebSocket):
        session = self.register(websocket)
        try:
            await websocket.accept()
            await session.run()
        finally:
            self.unregister(session)
            await session.release()

    async def run(self):
        async for update in self.feed:
            self.broadcast(update)
