import asyncio
import logging
from typing import Optional
from ..camera.frame_sampler import FrameSampler
from ..camera.stream_manager import StreamManager
from ..common.enums import DetectionLoopState
from ..common.errors import AcquisitionError, CapabilityInitError
from ..host.host_bridge import HostBridge
from ..processing.capability_loader import CapabilityLoader
from ..processing.pose_extractor import PoseExtractor
from .detection_loop import DetectionLoop
from .scheduler import Generation, GenerationToken

logger = logging.getLogger(__name__)

class TrackingController:
    """Root owner of the camera session, the detector and the running loop.

    A start command is the only trigger: it supersedes whatever loop is running,
    acquires the requested device while the detector loads, then streams.
    """

    def __init__(
        self,
        stream_manager: StreamManager,
        capability_loader: CapabilityLoader,
        sampler: FrameSampler,
        extractor: PoseExtractor,
        bridge: HostBridge,
        scheduler,
    ):
        self.stream_manager = stream_manager
        self.capability_loader = capability_loader
        self.sampler = sampler
        self.extractor = extractor
        self.bridge = bridge
        self.scheduler = scheduler
        self.state = DetectionLoopState.IDLE
        self._generation = Generation()
        self._loop: Optional[DetectionLoop] = None
        self._start_task: Optional[asyncio.Task] = None
        bridge.set_start_handler(self.start_tracking)

    @property
    def start_task(self) -> Optional[asyncio.Task]:
        return self._start_task

    @property
    def detection_loop(self) -> Optional[DetectionLoop]:
        return self._loop

    @property
    def first_frame_signaled(self) -> bool:
        return self._loop is not None and self._loop.first_frame_signaled

    def start_tracking(self, device_id: str) -> asyncio.Task:
        """Supersedes the running loop and starts a new one on `device_id`."""
        logger.info("Starting pose tracking on device: %s", device_id)
        token = self._supersede()
        self.state = DetectionLoopState.AWAITING_CAPABILITY
        self._start_task = asyncio.ensure_future(self._start(token, device_id))
        self._start_task.add_done_callback(self._collect_start)
        return self._start_task

    @staticmethod
    def _collect_start(task: asyncio.Task):
        if not task.cancelled() and task.exception() is not None:
            logger.error("Start attempt failed.", exc_info=task.exception())

    async def _start(self, token: GenerationToken, device_id: str):
        session, detector = await asyncio.gather(
            self.stream_manager.acquire(device_id),
            self.capability_loader.ensure_ready(),
            return_exceptions=True,
        )
        if not token.is_current:
            logger.debug("Start on %s superseded before streaming.", device_id)
            if session is not None and self.stream_manager.session is session:
                self.stream_manager.release()
            return

        for outcome in (session, detector):
            if isinstance(outcome, (AcquisitionError, CapabilityInitError)):
                logger.error("Could not start tracking on %s: %s", device_id, outcome)
                self._abort()
                return
            if isinstance(outcome, BaseException):
                logger.error("Unexpected failure starting %s", device_id, exc_info=outcome)
                self._abort()
                return

        self._loop = DetectionLoop(
            token, session, detector, self.sampler, self.extractor, self.bridge, self.scheduler
        )
        self.state = DetectionLoopState.STREAMING
        self._loop.start()

    def _supersede(self) -> GenerationToken:
        token = self._generation.advance()
        if self._loop is not None:
            self._loop.stop()
            self._loop = None
        self.stream_manager.release()
        return token

    def _abort(self):
        self.stream_manager.release()
        self.state = DetectionLoopState.IDLE

    def shutdown(self):
        """Stops streaming and releases the camera at process exit."""
        self._supersede()
        self.state = DetectionLoopState.IDLE
