"""
Camera enumeration for Screen Distance Monitor
"""

from dataclasses import dataclass
from typing import List, Optional

import cv2

from ..utils.logger import get_logger
from .streamer import capture_backend


@dataclass
class CameraDevice:
    """
    A camera that answered a probe.

    Attributes:
        index: OpenCV camera index
        name: Display name
        width: Default frame width
        height: Default frame height
    """
    index: int
    name: str
    width: int = 0
    height: int = 0

    def __str__(self) -> str:
        if self.width and self.height:
            return f"{self.name} ({self.width}x{self.height})"
        return self.name


def probe_camera(index: int) -> Optional[CameraDevice]:
    """
    Check whether a camera exists at an index and delivers frames.

    Args:
        index: Device index to probe

    Returns:
        CameraDevice if found, None otherwise
    """
    logger = get_logger("CameraDevices")
    cap = None
    try:
        cap = cv2.VideoCapture(index, capture_backend())
        if not cap.isOpened():
            return None

        ret, _ = cap.read()
        if not ret:
            return None

        return CameraDevice(
            index=index,
            name=f"Camera {index}",
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        )
    except cv2.error as e:
        logger.debug(f"Error probing camera {index}: {e}")
        return None
    finally:
        if cap is not None:
            cap.release()


def list_cameras(max_devices: int = 5) -> List[CameraDevice]:
    """
    Scan device indices 0..max_devices-1 for working cameras.

    Args:
        max_devices: Number of indices to probe

    Returns:
        Cameras found, in index order
    """
    logger = get_logger("CameraDevices")
    logger.info("Scanning for cameras...")

    devices = []
    for index in range(max_devices):
        device = probe_camera(index)
        if device:
            devices.append(device)
            logger.info(f"Found camera: {device}")

    logger.info(f"Total cameras found: {len(devices)}")
    return devices
