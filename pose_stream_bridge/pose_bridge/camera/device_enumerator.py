import cv2
import logging
from typing import List, Optional
from ..common.models import CameraDevice

logger = logging.getLogger(__name__)

def default_label(device_id: str) -> str:
    return f"Camera {device_id[:4]}"

class DeviceEnumerator:
    """Lists the video sources the host may choose from."""

    def __init__(self, config: dict, capture_factory=cv2.VideoCapture):
        self.config = config
        self._capture_factory = capture_factory

    def list_devices(self) -> List[CameraDevice]:
        sources = self.config.get('sources')
        if sources:
            return [self._device(str(s['id']), s.get('label')) for s in sources]

        devices = []
        for index in range(self.config.get('probe_count', 4)):
            cap = self._capture_factory(index)
            try:
                if cap.isOpened():
                    devices.append(self._device(str(index), None))
            finally:
                cap.release()
        logger.info("Available cameras: %s", [d.label for d in devices])
        return devices

    @staticmethod
    def _device(device_id: str, label: Optional[str]) -> CameraDevice:
        return CameraDevice(id=device_id, label=label or default_label(device_id))
