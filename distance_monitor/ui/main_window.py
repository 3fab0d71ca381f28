"""
Main window for Screen Distance Monitor
"""

from typing import List

import numpy as np
from PyQt5.QtCore import Qt, QTimer
from PyQt5.QtGui import QCloseEvent, QKeySequence
from PyQt5.QtWidgets import (
    QApplication, QHBoxLayout, QLabel, QMainWindow, QMessageBox,
    QShortcut, QSplitter, QStatusBar, QVBoxLayout, QWidget
)

from ..camera.devices import list_cameras
from ..camera.streamer import CameraStreamer
from ..detection.detector import Detection, ModelLoadError, create_detector
from ..detection.loop import DetectionLoop, LoopState
from ..detection.overlay import draw_detections
from ..utils.config import get_config
from ..utils.logger import get_logger
from .controls import ControlPanel, InfoPanel, SettingsDialog
from .scheduling import ModelLoadWorker, QtScheduler
from .video_widget import VideoWidget


class MainWindow(QMainWindow):
    """
    Main application window.

    Wires the camera, the detector and the detection loop to the widgets,
    and acts as the loop's presentation sink.
    """

    STATE_TEXT = {
        LoopState.IDLE: "Camera closed",
        LoopState.INITIALIZING: "Loading model...",
        LoopState.RUNNING: "Detecting",
    }

    def __init__(self):
        super().__init__()

        self.logger = get_logger("MainWindow")
        self.config = get_config()

        self._streamer = CameraStreamer(
            index=self.config.camera_index,
            resolution=self.config.default_resolution,
            fps=self.config.default_fps
        )
        self._loop: DetectionLoop = None

        self._setup_window()
        self._setup_ui()
        self._setup_shortcuts()
        self._setup_loop()
        self._setup_timers()
        self._connect_signals()

        self._refresh_devices()

        self.logger.info("Main window ready")

    def _setup_window(self) -> None:
        self.setWindowTitle("Screen Distance Monitor")

        width, height = self.config.window_size
        self.resize(width, height)

        screen = QApplication.primaryScreen().geometry()
        self.move((screen.width() - width) // 2, (screen.height() - height) // 2)
        self.setMinimumSize(800, 560)

        self._apply_dark_theme()

    def _apply_dark_theme(self) -> None:
        self.setStyleSheet("""
            QMainWindow {
                background-color: #2b2b2b;
            }
            QWidget {
                background-color: #2b2b2b;
                color: #ffffff;
            }
            QGroupBox {
                border: 1px solid #555;
                border-radius: 4px;
                margin-top: 10px;
                padding-top: 10px;
                font-weight: bold;
            }
            QGroupBox::title {
                subcontrol-origin: margin;
                left: 10px;
                padding: 0 5px;
            }
            QComboBox, QLineEdit, QSpinBox, QDoubleSpinBox {
                background-color: #3c3c3c;
                border: 1px solid #555;
                border-radius: 4px;
                padding: 5px;
                min-height: 22px;
            }
            QPushButton {
                background-color: #3c3c3c;
                border: 1px solid #555;
                border-radius: 4px;
                padding: 8px 16px;
            }
            QPushButton:hover {
                background-color: #4a4a4a;
            }
            QPushButton:disabled {
                background-color: #2a2a2a;
                color: #666;
            }
            QStatusBar {
                background-color: #1e1e1e;
                color: #aaa;
            }
            QSplitter::handle {
                background-color: #3c3c3c;
            }
        """)

    def _setup_ui(self) -> None:
        central_widget = QWidget()
        self.setCentralWidget(central_widget)

        main_layout = QHBoxLayout(central_widget)
        main_layout.setContentsMargins(10, 10, 10, 10)

        splitter = QSplitter(Qt.Horizontal)

        self._video_widget = VideoWidget()
        splitter.addWidget(self._video_widget)

        right_panel = QWidget()
        right_layout = QVBoxLayout(right_panel)
        right_layout.setContentsMargins(0, 0, 0, 0)

        self._control_panel = ControlPanel(reference_size=self.config.reference_size)
        right_layout.addWidget(self._control_panel)

        self._info_panel = InfoPanel()
        right_layout.addWidget(self._info_panel)
        right_layout.addStretch()

        splitter.addWidget(right_panel)
        splitter.setSizes([750, 300])
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 0)

        main_layout.addWidget(splitter)

        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)

        self._status_state = QLabel("")
        self._status_fps = QLabel("")
        self._status_bar.addWidget(self._status_state)
        self._status_bar.addPermanentWidget(self._status_fps)

    def _setup_shortcuts(self) -> None:
        QShortcut(QKeySequence("O"), self, self._open_camera)
        QShortcut(QKeySequence("C"), self, self._close_camera)
        QShortcut(QKeySequence("Q"), self, self.close)

    def _setup_loop(self) -> None:
        try:
            detector = create_detector(
                model_name=self.config.model_name,
                confidence_threshold=self.config.confidence_threshold,
                use_opencv_fallback=self.config.get("use_opencv_fallback", True)
            )
        except ModelLoadError as e:
            self.logger.error(f"No detection backend: {e}")
            self._control_panel.setEnabled(False)
            QMessageBox.critical(self, "Detection Unavailable", str(e))
            return

        self._model_loader = ModelLoadWorker(detector, self)
        self._loop = DetectionLoop.create(
            self.config,
            frame_source=self._streamer,
            detector=detector,
            presenter=self,
            scheduler=QtScheduler(self),
            model_loader=self._model_loader
        )
        self._loop.set_reference_size(self._control_panel.reference_size_text())

    def _setup_timers(self) -> None:
        self._status_timer = QTimer(self)
        self._status_timer.timeout.connect(self._update_status)
        self._status_timer.start(500)

    def _connect_signals(self) -> None:
        self._control_panel.open_clicked.connect(self._open_camera)
        self._control_panel.close_clicked.connect(self._close_camera)
        self._control_panel.refresh_clicked.connect(self._refresh_devices)
        self._control_panel.camera_selected.connect(self._on_camera_selected)
        self._control_panel.settings_clicked.connect(self._show_settings)
        self._control_panel.reference_size_changed.connect(self._on_reference_size_changed)

    # ----- Presentation sink -----

    def show_person_info(self, text: str) -> None:
        self._info_panel.set_person_info(text)

    def show_distance_info(self, text: str) -> None:
        self._info_panel.set_distance_info(text)

    def show_alert(self, text: str) -> None:
        self._info_panel.set_alert(text)

    def show_frame(self, frame: np.ndarray, detections: List[Detection]) -> None:
        if self.config.get("show_fps", True):
            self._video_widget.set_fps(self._streamer.fps)
        self._video_widget.update_frame(draw_detections(frame, detections))

    def clear(self) -> None:
        self._info_panel.clear()
        self._video_widget.clear()

    def show_error(self, title: str, message: str) -> None:
        self._status_bar.showMessage(message.splitlines()[0], 5000)
        QMessageBox.warning(self, title, message)

    # ----- Actions -----

    def _refresh_devices(self) -> None:
        self._status_bar.showMessage("Scanning for cameras...", 2000)
        QApplication.processEvents()

        devices = list_cameras()
        self._control_panel.update_devices(devices, self._streamer.index)

        if devices:
            self._status_bar.showMessage(f"Found {len(devices)} camera(s)", 3000)
        else:
            self._status_bar.showMessage("No cameras found", 3000)

    def _on_camera_selected(self, index: int) -> None:
        if self._streamer.is_open:
            return
        self._streamer.index = index
        self.config.set("camera_index", index)
        self.logger.info(f"Selected camera {index}")

    def _on_reference_size_changed(self, text: str) -> None:
        if self._loop is not None:
            self._loop.set_reference_size(text)

    def _open_camera(self) -> None:
        if self._loop is None:
            return
        if self._loop.open_camera():
            self._control_panel.set_camera_open(True)
            if self._loop.state is LoopState.INITIALIZING:
                self._video_widget.show_waiting("Loading detection model...")
            self._update_status()

    def _close_camera(self) -> None:
        if self._loop is None:
            return
        self._loop.close_camera()
        self._control_panel.set_camera_open(False)
        self._update_status()

    def _update_status(self) -> None:
        if self._loop is None:
            self._status_state.setText("Detection unavailable")
            return

        self._status_state.setText(self.STATE_TEXT[self._loop.state])
        if self._loop.state is LoopState.IDLE:
            self._status_fps.setText("")
        elif self._loop.state is LoopState.RUNNING:
            self._status_fps.setText(
                f"{self._streamer.fps:.1f} FPS | {self._loop.inference_time * 1000:.0f} ms inference"
            )
        else:
            self._status_fps.setText(f"{self._streamer.fps:.1f} FPS")

    def _show_settings(self) -> None:
        dialog = SettingsDialog(self)
        dialog.settings_changed.connect(self._on_settings_changed)
        dialog.exec_()

    def _on_settings_changed(self, settings: dict) -> None:
        if self._loop is not None:
            self._loop.apply_settings(self.config)
        self._streamer.set_capture_format(self.config.default_resolution, self.config.default_fps)
        self.logger.info("Settings updated")

    def closeEvent(self, event: QCloseEvent) -> None:
        if self._loop is not None:
            self._loop.teardown()
        else:
            self._streamer.close()

        self.config.set("window_size", [self.width(), self.height()])

        self.logger.info("Application closed")
        event.accept()
