"""
Camera module for Screen Distance Monitor
Handles camera enumeration and live frame capture
"""

from .source import (
    FrameSource,
    CameraError,
    PermissionDeniedError,
    DeviceUnavailableError
)
from .streamer import CameraStreamer
from .devices import CameraDevice, list_cameras, probe_camera

__all__ = [
    'FrameSource',
    'CameraError',
    'PermissionDeniedError',
    'DeviceUnavailableError',
    'CameraStreamer',
    'CameraDevice',
    'list_cameras',
    'probe_camera'
]
