import logging
from typing import Optional
from ..camera.frame_sampler import FrameSampler
from ..common.errors import InferenceError
from ..common.models import SkippedFrame, StreamSession
from ..host.host_bridge import HostBridge
from ..processing.pose_extractor import PoseExtractor
from .scheduler import FrameRequest, GenerationToken

logger = logging.getLogger(__name__)

class DetectionLoop:
    """One streaming loop instance: sample, deliver frame, detect, deliver landmark.

    The loop re-requests a frame after every tick and stops for good once its
    generation token is no longer current. Every host delivery re-checks the
    token, so a superseded loop never reaches the host.
    """

    def __init__(
        self,
        token: GenerationToken,
        session: StreamSession,
        detector,
        sampler: FrameSampler,
        extractor: PoseExtractor,
        bridge: HostBridge,
        scheduler,
    ):
        self._token = token
        self._session = session
        self._detector = detector
        self._sampler = sampler
        self._extractor = extractor
        self._bridge = bridge
        self._scheduler = scheduler
        self._request: Optional[FrameRequest] = None
        self.first_frame_signaled = False

    def start(self):
        self._schedule()

    def stop(self):
        if self._request is not None:
            self._request.cancel()
            self._request = None

    def _schedule(self):
        if self._token.is_current:
            self._request = self._scheduler.request_frame(self._tick)

    async def _tick(self, timestamp: float):
        if not self._token.is_current:
            return
        try:
            await self._run_once()
        except Exception:
            logger.exception("Pose detection error on device %s.", self._session.device_id)
        self._schedule()

    async def _run_once(self):
        frame = self._sampler.sample(self._session)
        if isinstance(frame, SkippedFrame):
            logger.debug("Frame skipped: %s", frame.reason)
            return

        self._bridge.notify_video_frame(self._sampler.to_data_uri(frame))
        if not self.first_frame_signaled:
            self._bridge.notify_camera_ready()
            self.first_frame_signaled = True

        try:
            point = await self._extractor.extract(self._detector, frame)
        except InferenceError as e:
            logger.warning("Skipping tick: %s", e)
            return

        if point is not None and self._token.is_current:
            self._bridge.notify_landmark(point)
