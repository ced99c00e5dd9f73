import cv2
import time
import logging
import threading
import numpy as np
from collections import deque
from typing import Optional, Tuple, Union
from ..common.models import CapturedFrame

logger = logging.getLogger(__name__)

def resolve_source(device_id: str) -> Union[int, str]:
    """Maps a reported device id back to an OpenCV source (index, path or URL)."""
    device_id = device_id.strip()
    return int(device_id) if device_id.isdigit() else device_id

class CameraManager:
    """Manages non-blocking camera I/O for one device in a separate thread."""

    def __init__(self, source: Union[int, str], config: dict, capture_factory=cv2.VideoCapture):
        self.config = config
        self._source = source
        self._cap = capture_factory(source)
        if not self._cap.isOpened():
            raise IOError(f"Cannot open camera source: {source}")

        resolution = config.get('resolution')
        if resolution:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, resolution[0])
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, resolution[1])
        if config.get('target_fps'):
            self._cap.set(cv2.CAP_PROP_FPS, config['target_fps'])

        self._max_startup_failures = config.get('max_startup_failures', 50)
        self._buffer = deque(maxlen=config.get('buffer_size', 2))
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._update, daemon=True)
        self._playing = threading.Event()
        self._running = False
        self._failure: Optional[str] = None
        self._native_size: Tuple[int, int] = (0, 0)
        self._frame_id = 0
        self._dropped_frames = 0

    def _update(self):
        """The frame-grabbing loop running in a dedicated thread."""
        startup_failures = 0
        while self._running:
            grabbed = self._cap.grab()
            if not grabbed:
                self._dropped_frames += 1
                if not self._playing.is_set():
                    startup_failures += 1
                    if startup_failures >= self._max_startup_failures:
                        self._failure = f"no frames after {startup_failures} attempts"
                        logger.warning("Camera source %s never produced a frame.", self._source)
                        self._playing.set()
                        return
                time.sleep(0.01)
                continue

            ret, frame = self._cap.retrieve()
            if not ret:
                self._dropped_frames += 1
                continue

            timestamp = time.perf_counter()
            with self._lock:
                self._frame_id += 1
                self._native_size = (frame.shape[1], frame.shape[0])
                self._buffer.append((frame, self._frame_id, timestamp))
            self._playing.set()

    def start(self):
        self._running = True
        self._thread.start()

    def stop(self):
        """Stops the reader thread and releases the hardware. Idempotent."""
        self._running = False
        if self._thread.is_alive():
            self._thread.join()
        self._cap.release()
        self._playing.set()
        logger.info("Camera source %s stopped, %d frames dropped.", self._source, self._dropped_frames)

    def wait_until_playing(self, timeout: Optional[float] = None) -> bool:
        """Blocks until the source produced its first frame. False on failure or timeout."""
        if not self._playing.wait(timeout):
            return False
        return self._failure is None and self._running

    def get_frame(self) -> Optional[CapturedFrame]:
        """Returns a copy of the latest frame, or None while nothing is buffered."""
        with self._lock:
            if not self._buffer:
                return None
            frame, frame_id, timestamp = self._buffer[-1]
        return CapturedFrame(
            image=np.copy(frame),
            width=frame.shape[1],
            height=frame.shape[0],
            frame_id=frame_id,
            timestamp=timestamp,
        )

    @property
    def native_size(self) -> Tuple[int, int]:
        with self._lock:
            return self._native_size

    @property
    def failure(self) -> Optional[str]:
        return self._failure

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
