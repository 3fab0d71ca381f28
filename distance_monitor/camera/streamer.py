"""
Camera streaming module for Screen Distance Monitor
Handles real-time video capture and frame delivery
"""

import os
import sys
import time
from threading import Event, Lock, Thread
from typing import Optional, Tuple

import cv2
import numpy as np

from ..utils.logger import get_logger
from .source import DeviceUnavailableError, FrameSource, PermissionDeniedError


def capture_backend() -> int:
    """OpenCV capture backend for the current platform."""
    if sys.platform.startswith("win"):
        # DirectShow opens faster and reports better names on Windows
        return cv2.CAP_DSHOW
    return cv2.CAP_ANY


class CameraStreamer(FrameSource):
    """
    Streams frames from a local camera.

    A reader thread pulls frames from cv2.VideoCapture and keeps only the
    newest one; read() hands out a copy of it.
    """

    def __init__(
        self,
        index: int = 0,
        resolution: Tuple[int, int] = (1280, 720),
        fps: int = 30
    ):
        """
        Initialize camera streamer.

        Args:
            index: OpenCV camera index
            resolution: Desired resolution (width, height)
            fps: Desired frames per second
        """
        self.logger = get_logger("CameraStreamer")

        self.index = index
        self._resolution = resolution
        self._target_fps = fps

        self._capture: Optional[cv2.VideoCapture] = None
        self._capture_thread: Optional[Thread] = None
        self._stop_event = Event()
        self._frame_lock = Lock()
        self._current_frame: Optional[np.ndarray] = None

        # Statistics
        self._actual_fps: float = 0.0
        self._last_fps_time: float = 0.0
        self._fps_frame_count: int = 0

    def _check_permission(self) -> None:
        # Only Linux exposes cameras as device nodes we can check up front
        device_path = f"/dev/video{self.index}"
        if sys.platform.startswith("linux") and os.path.exists(device_path):
            if not os.access(device_path, os.R_OK):
                raise PermissionDeniedError(f"No read permission on {device_path}")

    def open(self) -> None:
        if self.is_open:
            self.logger.warning("Camera already open")
            return

        self._check_permission()
        self.logger.info(f"Opening camera {self.index}")

        try:
            capture = cv2.VideoCapture(self.index, capture_backend())
        except cv2.error as e:
            raise DeviceUnavailableError(f"Camera {self.index}: {e}") from e

        if not capture.isOpened():
            capture.release()
            raise DeviceUnavailableError(f"Failed to open camera {self.index}")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self._resolution[0])
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self._resolution[1])
        capture.set(cv2.CAP_PROP_FPS, self._target_fps)
        # Keep latency low
        capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        actual_width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        actual_fps = capture.get(cv2.CAP_PROP_FPS)
        self.logger.info(
            f"Connected: {actual_width}x{actual_height} @ {actual_fps:.1f}fps"
        )

        self._capture = capture
        self._stop_event.clear()
        self._fps_frame_count = 0
        self._last_fps_time = time.time()

        self._capture_thread = Thread(
            target=self._capture_loop,
            daemon=True,
            name="CameraCapture"
        )
        self._capture_thread.start()

    def close(self) -> None:
        if self._capture is None and self._capture_thread is None:
            return

        self._stop_event.set()
        if self._capture_thread:
            self._capture_thread.join(timeout=2.0)
            self._capture_thread = None

        if self._capture is not None:
            self._capture.release()
            self._capture = None

        with self._frame_lock:
            self._current_frame = None
        self._actual_fps = 0.0
        self.logger.info(f"Camera {self.index} released")

    def _capture_loop(self) -> None:
        """Reader loop running in its own thread."""
        frame_interval = 1.0 / self._target_fps if self._target_fps > 0 else 0.0
        last_frame_time = time.time()

        while not self._stop_event.is_set():
            capture = self._capture
            if capture is None or not capture.isOpened():
                self.logger.error("Capture device lost")
                with self._frame_lock:
                    self._current_frame = None
                break

            ret, frame = capture.read()
            if not ret:
                self.logger.debug("Failed to read frame")
                time.sleep(0.01)
                continue

            current_time = time.time()
            with self._frame_lock:
                self._current_frame = frame

            self._fps_frame_count += 1

            elapsed = current_time - self._last_fps_time
            if elapsed >= 1.0:
                self._actual_fps = self._fps_frame_count / elapsed
                self._fps_frame_count = 0
                self._last_fps_time = current_time

            elapsed_since_last = current_time - last_frame_time
            if elapsed_since_last < frame_interval:
                time.sleep(frame_interval - elapsed_since_last)
            last_frame_time = time.time()

    def set_capture_format(self, resolution: Tuple[int, int], fps: int) -> None:
        """Resolution and frame rate requested on the next open()."""
        self._resolution = tuple(resolution)
        self._target_fps = fps

    def read(self) -> Optional[np.ndarray]:
        with self._frame_lock:
            if self._current_frame is not None:
                return self._current_frame.copy()
        return None

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    @property
    def fps(self) -> float:
        """Measured capture FPS."""
        return self._actual_fps

    @property
    def resolution(self) -> Tuple[int, int]:
        if self._capture is not None and self._capture.isOpened():
            width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH))
            height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
            return (width, height)
        return self._resolution
