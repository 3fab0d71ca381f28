"""
Frame source interface and camera errors
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np


class CameraError(Exception):
    """A camera could not be acquired or was lost."""


class PermissionDeniedError(CameraError):
    """The process is not allowed to open the camera."""


class DeviceUnavailableError(CameraError):
    """No usable camera at the requested index."""


class FrameSource(ABC):
    """
    A live stream of frames.

    open() acquires the hardware, close() releases it. close() must be
    idempotent and must not return before the device is released.
    """

    @abstractmethod
    def open(self) -> None:
        """
        Acquire the device and start delivering frames.

        Raises:
            PermissionDeniedError: access to the device was refused
            DeviceUnavailableError: the device does not exist or is busy
        """

    @abstractmethod
    def close(self) -> None:
        """Stop delivering frames and release the device."""

    @abstractmethod
    def read(self) -> Optional[np.ndarray]:
        """Latest frame, or None if none has arrived yet."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the device is currently held."""
