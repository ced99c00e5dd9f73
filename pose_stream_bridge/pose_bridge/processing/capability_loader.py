import asyncio
import logging
from typing import Optional
from ..common.errors import CapabilityInitError
from .pose_detector import PoseDetector, create_mediapipe_detector

logger = logging.getLogger(__name__)

class CapabilityLoader:
    """Initializes the pose detector once per process and caches it.

    A failed initialization is not cached, so calling ensure_ready again retries.
    The detector is never released.
    """

    def __init__(self, config: dict, detector_factory=create_mediapipe_detector):
        self.config = config
        self._detector_factory = detector_factory
        self._detector: Optional[PoseDetector] = None
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._detector is not None

    async def ensure_ready(self) -> PoseDetector:
        if self._detector is not None:
            return self._detector

        async with self._lock:
            if self._detector is None:
                try:
                    self._detector = await asyncio.to_thread(self._detector_factory, self.config)
                except CapabilityInitError:
                    raise
                except Exception as e:
                    raise CapabilityInitError(f"failed to load pose detector: {e}") from e
                logger.info("Pose detector loaded.")
        return self._detector
