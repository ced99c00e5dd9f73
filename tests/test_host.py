"""Tests for the host bridge message contract and the /ws endpoint."""

import asyncio
import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from pose_bridge.common.enums import HostChannel
from pose_bridge.common.models import CameraDevice, HostMessage, NormalizedPoint
from pose_bridge.host.host_bridge import HostBridge
from pose_bridge.host.server import HostConnection, create_app


class TestHostBridge:
    def test_unattached_messages_are_dropped(self, host):
        bridge = HostBridge()
        bridge.notify_camera_ready()

        bridge.attach(host)

        assert host.messages == []

    def test_channel_routes(self, host):
        bridge = HostBridge()
        bridge.attach(host)

        bridge.notify_device_list([CameraDevice(id="cam-1", label="Front")])
        bridge.notify_camera_ready()
        bridge.notify_video_frame("data:image/jpeg;base64,AA==")
        bridge.notify_landmark(NormalizedPoint(x=0.42, y=0.77))

        assert [(m.target, m.method) for m in host.messages] == [
            ("CameraManager", "OnReceiveCameraList"),
            ("CameraManager", "OnCameraReady"),
            ("CameraManager", "OnReceiveVideoFrame"),
            ("FootCube", "OnReceiveFootPosition"),
        ]
        assert json.loads(host.messages[0].payload) == [{"label": "Front", "deviceId": "cam-1"}]
        assert host.messages[1].payload is None
        assert json.loads(host.messages[3].payload) == {"x": 0.42, "y": 0.77}

    def test_detach_only_current_host(self, host):
        bridge = HostBridge()
        bridge.attach(host)

        bridge.detach(MagicMock())
        assert bridge.is_attached

        bridge.detach(host)
        bridge.notify(HostChannel.CAMERA_READY)
        assert not bridge.is_attached
        assert host.messages == []

    def test_start_command_dispatch(self):
        bridge = HostBridge()
        handler = MagicMock(return_value="task")
        bridge.set_start_handler(handler)

        result = bridge.handle_command(json.dumps({"method": "StartPoseTracking", "deviceId": "cam-2"}))

        assert result == "task"
        handler.assert_called_once_with("cam-2")

    def test_malformed_commands_are_ignored(self):
        bridge = HostBridge()
        handler = MagicMock()
        bridge.set_start_handler(handler)

        for raw in ("not json", "[1, 2]", json.dumps({"deviceId": "0"}),
                    json.dumps({"method": "StartPoseTracking"}),
                    json.dumps({"method": "StopEverything"})):
            assert bridge.handle_command(raw) is None

        handler.assert_not_called()

    def test_host_message_wire_format(self, host):
        bridge = HostBridge()
        bridge.attach(host)
        bridge.notify_camera_ready()

        assert json.loads(host.messages[0].to_json()) == {
            "target": "CameraManager",
            "method": "OnCameraReady",
            "payload": None,
        }


class TestServer:
    def _app(self, devices):
        controller = MagicMock()
        controller.bridge = HostBridge()
        controller.bridge.set_start_handler(controller.start_tracking)
        enumerator = MagicMock()
        enumerator.list_devices.return_value = devices
        return controller, create_app(controller, enumerator)

    def test_attach_sends_device_list(self):
        controller, app = self._app([CameraDevice(id="0", label="Camera 0")])

        with TestClient(app) as client:
            with client.websocket_connect("/ws") as ws:
                message = ws.receive_json()

        assert message["target"] == "CameraManager"
        assert message["method"] == "OnReceiveCameraList"
        assert json.loads(message["payload"]) == [{"label": "Camera 0", "deviceId": "0"}]
        assert not controller.bridge.is_attached
        controller.shutdown.assert_called_once()

    def test_start_command_reaches_controller(self):
        controller, app = self._app([])
        controller.start_tracking.side_effect = lambda device_id: controller.bridge.notify_camera_ready()

        with TestClient(app) as client:
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()
                ws.send_text(json.dumps({"method": "StartPoseTracking", "deviceId": "1"}))
                assert ws.receive_json()["method"] == "OnCameraReady"

        controller.start_tracking.assert_called_once_with("1")


def frame_message(index) -> HostMessage:
    return HostMessage(target="CameraManager", method="OnReceiveVideoFrame", payload=str(index))


class StalledSocket:
    """Accepts the first send and never completes it."""

    def __init__(self):
        self.sent = []
        self._never = asyncio.Event()

    async def send_text(self, text):
        self.sent.append(text)
        await self._never.wait()


class RecordingSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_text(self, text):
        if self.fail:
            raise ConnectionResetError("peer gone")
        self.sent.append(json.loads(text))


class TestHostConnection:
    @pytest.mark.asyncio
    async def test_stalled_socket_keeps_backlog_bounded(self):
        socket = StalledSocket()
        connection = HostConnection(socket, max_pending=8)
        writer = asyncio.create_task(connection.run_writer())

        for index in range(5000):
            connection.send(frame_message(index))
        await asyncio.sleep(0)
        for index in range(5000, 5100):
            connection.send(frame_message(index))

        assert connection.pending <= 8
        assert len(socket.sent) == 1
        writer.cancel()

    @pytest.mark.asyncio
    async def test_full_backlog_drops_oldest_frames_first(self):
        bridge = HostBridge()
        socket = RecordingSocket()
        connection = HostConnection(socket, max_pending=4)
        bridge.attach(connection.send)

        bridge.notify_video_frame("0")
        bridge.notify_camera_ready()
        bridge.notify_video_frame("1")
        bridge.notify_landmark(NormalizedPoint(x=0.5, y=0.5))
        bridge.notify_video_frame("2")
        bridge.notify_video_frame("3")
        assert connection.dropped == 2

        writer = asyncio.create_task(connection.run_writer())
        for _ in range(5):
            await asyncio.sleep(0)
        writer.cancel()

        assert [(m["method"], m["payload"]) for m in socket.sent] == [
            ("OnCameraReady", None),
            ("OnReceiveFootPosition", json.dumps({"x": 0.5, "y": 0.5})),
            ("OnReceiveVideoFrame", "2"),
            ("OnReceiveVideoFrame", "3"),
        ]

    @pytest.mark.asyncio
    async def test_failed_socket_detaches_and_drops(self):
        bridge = HostBridge()
        connection = HostConnection(RecordingSocket(fail=True), on_closed=bridge.detach)
        bridge.attach(connection.send)

        bridge.notify_camera_ready()
        await connection.run_writer()

        assert connection.closed
        assert not bridge.is_attached
        connection.send(frame_message(1))
        assert connection.pending == 0
