from enum import Enum

class DetectionLoopState(str, Enum):
    """Defines the lifecycle state of the tracking controller."""
    IDLE = "IDLE"
    AWAITING_CAPABILITY = "AWAITING_CAPABILITY"
    STREAMING = "STREAMING"

class HostChannel(str, Enum):
    """Outbound message channels understood by the host application."""
    DEVICE_LIST = "device_list"
    CAMERA_READY = "camera_ready"
    VIDEO_FRAME = "video_frame"
    LANDMARK = "landmark"

class LogLevel(str, Enum):
    """Defines logging levels accepted in the configuration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
