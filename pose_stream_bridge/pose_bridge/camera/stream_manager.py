import asyncio
import logging
from typing import Optional
from ..common.errors import DeviceBusy, DeviceNotFound, PermissionDenied
from ..common.models import StreamSession
from .camera_manager import CameraManager, resolve_source

logger = logging.getLogger(__name__)

class StreamManager:
    """Owns the single live camera session of the process.

    Acquiring a new device always stops the previous session's hardware first,
    so two camera locks are never held at the same time.
    """

    def __init__(self, config: dict, camera_factory=CameraManager):
        self.config = config
        self._camera_factory = camera_factory
        self._session: Optional[StreamSession] = None
        self._lock = asyncio.Lock()

    @property
    def session(self) -> Optional[StreamSession]:
        return self._session

    async def acquire(self, device_id: str) -> StreamSession:
        """Opens `device_id` and resolves once it is producing frames.

        Raises PermissionDenied, DeviceNotFound or DeviceBusy. Never retries.
        """
        async with self._lock:
            self.release()

            try:
                camera = await asyncio.to_thread(self._camera_factory, resolve_source(device_id), self.config)
            except PermissionError as e:
                raise PermissionDenied(device_id, str(e)) from e
            except (IOError, ValueError) as e:
                raise DeviceNotFound(device_id, str(e)) from e

            camera.start()
            playing = await asyncio.to_thread(camera.wait_until_playing, self.config.get('start_timeout_s'))
            if not playing:
                reason = camera.failure or "timed out waiting for the first frame"
                camera.stop()
                raise DeviceBusy(device_id, reason)

            width, height = camera.native_size
            self._session = StreamSession(
                device_id=device_id,
                media_handle=camera,
                frame_width=width,
                frame_height=height,
            )
            logger.info("Camera %s streaming at %dx%d.", device_id, width, height)
            return self._session

    def release(self):
        """Stops the active session's hardware. No-op without a session."""
        if self._session is None:
            return
        session, self._session = self._session, None
        session.media_handle.stop()
        logger.info("Camera %s released.", session.device_id)
