import cv2
import numpy as np
from typing import List
from ..common.errors import CapabilityInitError, InferenceError
from ..common.models import Keypoint, Pose

# COCO-17 keypoint order mapped onto MediaPipe PoseLandmark indices.
COCO17_LANDMARKS = (
    ("nose", 0),
    ("left_eye", 2),
    ("right_eye", 5),
    ("left_ear", 7),
    ("right_ear", 8),
    ("left_shoulder", 11),
    ("right_shoulder", 12),
    ("left_elbow", 13),
    ("right_elbow", 14),
    ("left_wrist", 15),
    ("right_wrist", 16),
    ("left_hip", 23),
    ("right_hip", 24),
    ("left_knee", 25),
    ("right_knee", 26),
    ("left_ankle", 27),
    ("right_ankle", 28),
)

class PoseDetector:
    """Single-person MediaPipe estimator exposing COCO-17 keypoints in pixel space."""

    def __init__(self, estimator):
        self._estimator = estimator

    def estimate_poses(self, frame: np.ndarray) -> List[Pose]:
        """Runs inference on a BGR frame. Returns zero or one pose."""
        height, width = frame.shape[:2]
        try:
            frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            frame_rgb.flags.writeable = False
            results = self._estimator.process(frame_rgb)
        except Exception as e:
            raise InferenceError(f"pose inference failed: {e}") from e

        if not results.pose_landmarks:
            return []

        landmarks = results.pose_landmarks.landmark
        keypoints = [
            Keypoint(
                name=name,
                x=landmarks[index].x * width,
                y=landmarks[index].y * height,
                score=landmarks[index].visibility,
            )
            for name, index in COCO17_LANDMARKS
        ]
        return [Pose(keypoints=keypoints)]

def create_mediapipe_detector(config: dict) -> PoseDetector:
    """Loads the MediaPipe Pose graph. Blocking; call from a worker thread."""
    try:
        import mediapipe as mp
        mp_pose = mp.solutions.pose
    except (ImportError, AttributeError) as e:
        raise CapabilityInitError(f"MediaPipe Pose is unavailable: {e}") from e

    estimator = mp_pose.Pose(
        static_image_mode=False,
        model_complexity=config['model_complexity'],
        smooth_landmarks=config.get('smooth_landmarks', True),
        enable_segmentation=False,
        min_detection_confidence=config['min_detection_confidence'],
        min_tracking_confidence=config['min_tracking_confidence'],
    )
    return PoseDetector(estimator)
