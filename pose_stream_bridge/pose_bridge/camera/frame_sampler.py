import cv2
import base64
from typing import Union
from ..common.models import CapturedFrame, SkippedFrame, StreamSession

class FrameSampler:
    """Captures the current frame of a session and encodes it for the host."""

    def __init__(self, config: dict):
        self.config = config
        self._jpeg_quality = int(config.get('jpeg_quality', 92))

    def sample(self, session: StreamSession) -> Union[CapturedFrame, SkippedFrame]:
        """Returns SkippedFrame while the source has nothing buffered yet."""
        frame = session.media_handle.get_frame()
        if frame is None:
            return SkippedFrame()
        return frame

    def to_data_uri(self, frame: CapturedFrame) -> str:
        ok, encoded = cv2.imencode('.jpg', frame.image, [int(cv2.IMWRITE_JPEG_QUALITY), self._jpeg_quality])
        if not ok:
            raise ValueError(f"JPEG encoding failed for a {frame.width}x{frame.height} frame")
        return "data:image/jpeg;base64," + base64.b64encode(encoded.tobytes()).decode('ascii')
