class PoseBridgeError(Exception):
    """Base class for every failure raised by the bridge components."""


class AcquisitionError(PoseBridgeError):
    """The camera stream for a device could not be acquired."""

    def __init__(self, device_id: str, message: str):
        super().__init__(f"{device_id}: {message}")
        self.device_id = device_id


class PermissionDenied(AcquisitionError):
    pass


class DeviceNotFound(AcquisitionError):
    pass


class DeviceBusy(AcquisitionError):
    pass


class CapabilityInitError(PoseBridgeError):
    """The pose detector could not be prepared. Retry by calling ensure_ready again."""


class InferenceError(PoseBridgeError):
    """The pose detector failed on a single frame."""
