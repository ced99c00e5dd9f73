import json
import logging
from typing import Any, Callable, Iterable, Optional
from ..common.enums import HostChannel
from ..common.models import CameraDevice, HostMessage, NormalizedPoint

logger = logging.getLogger(__name__)

# Host-side (object, method) pair receiving each channel.
CHANNEL_ROUTES = {
    HostChannel.DEVICE_LIST: ("CameraManager", "OnReceiveCameraList"),
    HostChannel.CAMERA_READY: ("CameraManager", "OnCameraReady"),
    HostChannel.VIDEO_FRAME: ("CameraManager", "OnReceiveVideoFrame"),
    HostChannel.LANDMARK: ("FootCube", "OnReceiveFootPosition"),
}

START_TRACKING_METHOD = "StartPoseTracking"

HostSink = Callable[[HostMessage], None]

class HostBridge:
    """Fire-and-forget messaging to the host application.

    Messages sent while no host is attached are dropped, never queued.
    """

    def __init__(self):
        self._host: Optional[HostSink] = None
        self._start_handler: Optional[Callable[[str], Any]] = None

    @property
    def is_attached(self) -> bool:
        return self._host is not None

    def attach(self, sink: HostSink):
        self._host = sink

    def detach(self, sink: Optional[HostSink] = None):
        if sink is None or sink == self._host:
            self._host = None

    def notify(self, channel: HostChannel, payload: Optional[str] = None):
        host = self._host
        if host is None:
            return
        target, method = CHANNEL_ROUTES[channel]
        host(HostMessage(target=target, method=method, payload=payload))

    def notify_device_list(self, devices: Iterable[CameraDevice]):
        self.notify(HostChannel.DEVICE_LIST, json.dumps([device.to_host() for device in devices]))

    def notify_camera_ready(self):
        self.notify(HostChannel.CAMERA_READY)

    def notify_video_frame(self, data_uri: str):
        self.notify(HostChannel.VIDEO_FRAME, data_uri)

    def notify_landmark(self, point: NormalizedPoint):
        self.notify(HostChannel.LANDMARK, point.to_json())

    def set_start_handler(self, handler: Callable[[str], Any]):
        self._start_handler = handler

    def on_start_tracking(self, device_id: str):
        if self._start_handler is None:
            logger.warning("Start command for %s ignored: no tracking controller.", device_id)
            return None
        return self._start_handler(device_id)

    def handle_command(self, raw: str):
        """Dispatches one inbound host command encoded as JSON."""
        try:
            command = json.loads(raw)
            method = command['method']
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Malformed host command %r: %s", raw, e)
            return None

        if method == START_TRACKING_METHOD:
            device_id = command.get('deviceId')
            if not isinstance(device_id, str):
                logger.warning("Start command without a device id: %r", raw)
                return None
            return self.on_start_tracking(device_id)

        logger.warning("Unknown host command: %s", method)
        return None
