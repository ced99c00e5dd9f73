"""WebSocket endpoint the host application attaches to. Route: /ws."""
import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from typing import Deque

from fastapi import APIRouter, FastAPI, WebSocket, WebSocketDisconnect

from ..camera.device_enumerator import DeviceEnumerator
from ..common.enums import HostChannel
from ..common.models import HostMessage
from .host_bridge import CHANNEL_ROUTES

logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING = 8
VIDEO_FRAME_METHOD = CHANNEL_ROUTES[HostChannel.VIDEO_FRAME][1]


class HostConnection:
    """Writes outbound messages to one socket in the order they were sent.

    At most `max_pending` messages wait for the socket. When the backlog is
    full the oldest video frame is dropped first, so camera-ready and landmark
    messages keep their order. Once the socket fails, later messages are dropped.
    """

    def __init__(self, websocket: WebSocket, max_pending: int = DEFAULT_MAX_PENDING, on_closed=None) -> None:
        self._websocket = websocket
        self._max_pending = max(1, int(max_pending))
        self._on_closed = on_closed
        self._pending: Deque[HostMessage] = deque()
        self._wakeup = asyncio.Event()
        self.closed = False
        self.dropped = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def send(self, message: HostMessage) -> None:
        if self.closed:
            return
        if len(self._pending) >= self._max_pending:
            self._make_room(message)
            if len(self._pending) >= self._max_pending:
                return
        self._pending.append(message)
        self._wakeup.set()

    def _make_room(self, incoming: HostMessage) -> None:
        self.dropped += 1
        for queued in self._pending:
            if queued.method == VIDEO_FRAME_METHOD:
                self._pending.remove(queued)
                return
        if incoming.method != VIDEO_FRAME_METHOD:
            self._pending.popleft()

    async def run_writer(self) -> None:
        try:
            while True:
                while not self._pending:
                    self._wakeup.clear()
                    await self._wakeup.wait()
                message = self._pending.popleft()
                try:
                    await self._websocket.send_text(message.to_json())
                except Exception as e:
                    logger.warning("Host connection lost while sending %s: %s", message.method, e)
                    return
        finally:
            self.closed = True
            self._pending.clear()
            if self._on_closed is not None:
                self._on_closed(self.send)


def create_app(controller, enumerator: DeviceEnumerator, max_pending: int = DEFAULT_MAX_PENDING) -> FastAPI:
    bridge = controller.bridge
    router = APIRouter(tags=["ws"])

    @router.websocket("/ws")
    async def ws_endpoint(websocket: WebSocket):
        await websocket.accept()
        connection = HostConnection(websocket, max_pending=max_pending, on_closed=bridge.detach)
        writer = asyncio.create_task(connection.run_writer())
        bridge.attach(connection.send)
        logger.info("Host attached.")
        try:
            try:
                devices = await asyncio.to_thread(enumerator.list_devices)
            except Exception:
                logger.exception("Error listing camera devices.")
            else:
                bridge.notify_device_list(devices)
            while True:
                bridge.handle_command(await websocket.receive_text())
        except WebSocketDisconnect:
            logger.info("Host detached.")
        finally:
            bridge.detach(connection.send)
            writer.cancel()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        controller.shutdown()

    app = FastAPI(title="Pose Stream Bridge", lifespan=lifespan)
    app.include_router(router)
    return app
