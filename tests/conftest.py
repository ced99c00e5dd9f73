"""Shared fakes for the camera, detector, scheduler and host."""

from typing import List, Optional

import numpy as np
import pytest

from pose_bridge.common.models import CapturedFrame, HostMessage, Keypoint, Pose
from pose_bridge.processing.pose_detector import COCO17_LANDMARKS


def make_frame(width: int = 640, height: int = 480, frame_id: int = 1) -> CapturedFrame:
    return CapturedFrame(
        image=np.zeros((height, width, 3), dtype=np.uint8),
        width=width,
        height=height,
        frame_id=frame_id,
    )


def make_pose(**overrides) -> Pose:
    """COCO-17 pose with every keypoint at the origin and score 0, except `overrides`.

    Each override is `name=(x, y, score)`.
    """
    keypoints = []
    for name, _ in COCO17_LANDMARKS:
        x, y, score = overrides.get(name, (0.0, 0.0, 0.0))
        keypoints.append(Keypoint(name=name, x=x, y=y, score=score))
    return Pose(keypoints=keypoints)


class FakeCamera:
    """Media handle returning scripted frames; None means the source is priming."""

    def __init__(self, device_id: str, frames=None, native_size=(640, 480), events=None):
        self.device_id = device_id
        self.frames = list(frames or [])
        self.native_size = native_size
        self.failure = None
        self.stopped = False
        self.events = events if events is not None else []

    def start(self):
        self.events.append(("start", self.device_id))

    def wait_until_playing(self, timeout=None) -> bool:
        return True

    def get_frame(self) -> Optional[CapturedFrame]:
        if not self.frames:
            return make_frame(*self.native_size)
        return self.frames.pop(0)

    def stop(self):
        self.stopped = True
        self.events.append(("stop", self.device_id))


class FakeCameraFactory:
    """Stands in for CameraManager inside StreamManager; records open/stop order."""

    def __init__(self):
        self.events: List[tuple] = []
        self.cameras: List[FakeCamera] = []
        self.frames = {}

    def __call__(self, source, config):
        device_id = str(source)
        self.events.append(("open", device_id))
        camera = FakeCamera(device_id, frames=self.frames.get(device_id), events=self.events)
        self.cameras.append(camera)
        return camera


class FakeDetector:
    """Returns one scripted result per call: a list of poses or an exception."""

    def __init__(self, results=None):
        self.results = list(results or [])
        self.calls = 0

    def estimate_poses(self, image):
        self.calls += 1
        if not self.results:
            return []
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class ManualRequest:
    def __init__(self, callback):
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Frame scheduler driven by the test instead of a refresh clock."""

    def __init__(self):
        self.pending: List[ManualRequest] = []

    def request_frame(self, callback) -> ManualRequest:
        request = ManualRequest(callback)
        self.pending.append(request)
        return request

    async def tick(self):
        """Fires every pending request once, like one display refresh."""
        due, self.pending = self.pending, []
        for request in due:
            if not request.cancelled:
                await request.callback(0.0)


class RecordingHost:
    def __init__(self):
        self.messages: List[HostMessage] = []

    def __call__(self, message: HostMessage):
        self.messages.append(message)

    @property
    def methods(self) -> List[str]:
        return [m.method for m in self.messages]


@pytest.fixture
def host() -> RecordingHost:
    return RecordingHost()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def camera_factory() -> FakeCameraFactory:
    return FakeCameraFactory()
