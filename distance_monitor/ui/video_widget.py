"""
Video display widget for Screen Distance Monitor
Renders annotated frames in PyQt5
"""

import cv2
import numpy as np
from PyQt5.QtCore import QSize, Qt
from PyQt5.QtGui import QColor, QFont, QImage, QPainter, QPixmap
from PyQt5.QtWidgets import QLabel, QSizePolicy, QVBoxLayout, QWidget


class VideoWidget(QWidget):
    """
    Widget for displaying video frames.

    Frames are scaled to fit with their aspect ratio kept. A placeholder is
    shown while no camera is open.
    """

    PLACEHOLDER_TEXT = "Camera Closed\n\nClick 'Open Camera' to start"

    def __init__(self, parent=None):
        super().__init__(parent)

        self._current_frame: np.ndarray = None
        self._fps_text: str = ""
        self._status_text: str = ""

        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self._video_label = QLabel()
        self._video_label.setAlignment(Qt.AlignCenter)
        self._video_label.setMinimumSize(320, 240)
        self._video_label.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self._video_label.setStyleSheet("""
            QLabel {
                background-color: #1a1a1a;
                border: 1px solid #333;
                border-radius: 4px;
            }
        """)
        layout.addWidget(self._video_label)

        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self._show_placeholder(self.PLACEHOLDER_TEXT)

    def _show_placeholder(self, text: str) -> None:
        width = max(self._video_label.width(), 640)
        height = max(self._video_label.height(), 480)

        placeholder = QPixmap(width, height)
        placeholder.fill(QColor(26, 26, 26))

        painter = QPainter(placeholder)
        painter.setRenderHint(QPainter.Antialiasing)
        painter.setPen(QColor(128, 128, 128))
        painter.setFont(QFont("Arial", 16))
        painter.drawText(placeholder.rect(), Qt.AlignCenter, text)
        painter.end()

        self._video_label.setPixmap(placeholder)

    def update_frame(self, frame: np.ndarray) -> None:
        """
        Show a frame.

        Args:
            frame: OpenCV frame (BGR format), boxes already drawn
        """
        if frame is None:
            return

        self._current_frame = frame

        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        height, width, channels = rgb_frame.shape
        q_image = QImage(
            rgb_frame.data,
            width,
            height,
            channels * width,
            QImage.Format_RGB888
        )
        # QImage does not own rgb_frame's buffer; copy before it goes away
        pixmap = QPixmap.fromImage(q_image.copy())

        if self._fps_text:
            pixmap = self._draw_fps(pixmap)

        self._video_label.setPixmap(pixmap.scaled(
            self._video_label.size(),
            Qt.KeepAspectRatio,
            Qt.SmoothTransformation
        ))

    def _draw_fps(self, pixmap: QPixmap) -> QPixmap:
        result = QPixmap(pixmap)
        painter = QPainter(result)
        painter.setRenderHint(QPainter.Antialiasing)
        painter.setFont(QFont("Consolas", 10))
        painter.setPen(QColor(0, 255, 0))
        painter.drawText(10, 20, self._fps_text)
        painter.end()
        return result

    def set_fps(self, fps: float = None) -> None:
        """Set the FPS shown in the top-left corner; None hides it."""
        self._fps_text = f"FPS: {fps:.1f}" if fps is not None else ""

    def show_waiting(self, text: str) -> None:
        """Show a message instead of video, e.g. while the model loads."""
        if self._current_frame is None:
            self._status_text = text
            self._show_placeholder(text)

    def clear(self) -> None:
        """Clear the video display and show the placeholder."""
        self._current_frame = None
        self._fps_text = ""
        self._status_text = ""
        self._show_placeholder(self.PLACEHOLDER_TEXT)

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        if self._current_frame is None:
            self._show_placeholder(self._status_text or self.PLACEHOLDER_TEXT)

    def sizeHint(self) -> QSize:
        return QSize(640, 480)

    def minimumSizeHint(self) -> QSize:
        return QSize(320, 240)
