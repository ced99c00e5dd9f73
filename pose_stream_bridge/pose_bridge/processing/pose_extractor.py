import asyncio
from typing import Optional
from ..common.errors import InferenceError
from ..common.models import CapturedFrame, Keypoint, NormalizedPoint, Pose

DEFAULT_CANDIDATES = ("left_ankle", "right_ankle")
DEFAULT_SCORE_THRESHOLD = 0.3

class PoseExtractor:
    """Turns one frame into at most one normalized target landmark."""

    def __init__(self, config: dict):
        self.config = config
        candidates = tuple(config.get('candidates', DEFAULT_CANDIDATES))
        if len(candidates) != 2:
            raise ValueError(f"expected exactly two candidate keypoints, got {candidates}")
        self._candidates = candidates
        self._threshold = float(config.get('score_threshold', DEFAULT_SCORE_THRESHOLD))

    async def extract(self, detector, frame: CapturedFrame) -> Optional[NormalizedPoint]:
        """Returns None when no candidate is confident enough. Raises InferenceError."""
        try:
            poses = await asyncio.to_thread(detector.estimate_poses, frame.image)
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"pose inference failed: {e}") from e

        if not poses:
            return None
        keypoint = self.select(poses[0])
        if keypoint is None:
            return None
        # Left unclamped: estimates outside the visible frame pass through.
        return NormalizedPoint(x=keypoint.x / frame.width, y=keypoint.y / frame.height)

    def select(self, pose: Pose) -> Optional[Keypoint]:
        """Higher score wins, ties go to the second candidate."""
        first, second = (pose.get(name) for name in self._candidates)
        first_score = first.score if first is not None else 0.0
        second_score = second.score if second is not None else 0.0

        chosen = first if first_score > second_score else second
        if chosen is None or chosen.score <= self._threshold:
            return None
        return chosen
