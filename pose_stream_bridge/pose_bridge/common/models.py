import json
import numpy as np
from pydantic import BaseModel, ConfigDict
from typing import Any, List, Optional

class CameraDevice(BaseModel):
    """Immutable snapshot of one enumerable video source."""
    id: str
    label: str

    model_config = ConfigDict(frozen=True)

    def to_host(self) -> dict:
        return {"label": self.label, "deviceId": self.id}

class StreamSession(BaseModel):
    """The single live camera stream owned by the StreamManager."""
    device_id: str
    media_handle: Any
    frame_width: int
    frame_height: int

    model_config = ConfigDict(arbitrary_types_allowed=True)

class CapturedFrame(BaseModel):
    """Pixel snapshot (BGR) valid for one scheduling tick only."""
    image: np.ndarray
    width: int
    height: int
    frame_id: int = 0
    timestamp: float = 0.0

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

class SkippedFrame(BaseModel):
    """Returned instead of a frame while the source is still priming."""
    reason: str = "priming"

class Keypoint(BaseModel):
    """A named landmark in frame-pixel space."""
    name: str
    x: float
    y: float
    score: float

class Pose(BaseModel):
    """Ordered, fixed-size keypoint list produced by one inference call."""
    keypoints: List[Keypoint]

    def get(self, name: str) -> Optional[Keypoint]:
        for keypoint in self.keypoints:
            if keypoint.name == name:
                return keypoint
        return None

class NormalizedPoint(BaseModel):
    """Landmark position relative to the frame size. Not clamped to [0, 1]."""
    x: float
    y: float

    def to_json(self) -> str:
        return json.dumps({"x": self.x, "y": self.y})

class HostMessage(BaseModel):
    """One SendMessage call on the host side: target object, method and string payload."""
    target: str
    method: str
    payload: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps({"target": self.target, "method": self.method, "payload": self.payload})
