"""
Control panel, info panel and settings dialog for Screen Distance Monitor
"""

from typing import List

from PyQt5.QtCore import QLocale, pyqtSignal
from PyQt5.QtGui import QDoubleValidator, QFont
from PyQt5.QtWidgets import (
    QComboBox, QDialog, QDialogButtonBox, QDoubleSpinBox, QFormLayout,
    QGroupBox, QHBoxLayout, QLabel, QLineEdit, QPushButton, QSpinBox,
    QTabWidget, QVBoxLayout, QWidget
)

from ..camera.devices import CameraDevice
from ..detection.detector import UltralyticsDetector
from ..utils.config import get_config
from ..utils.logger import get_logger


class ControlPanel(QWidget):
    """
    Camera selection, open/close buttons and the reference size input.
    """

    # Signals
    camera_selected = pyqtSignal(int)  # Camera index
    open_clicked = pyqtSignal()
    close_clicked = pyqtSignal()
    refresh_clicked = pyqtSignal()
    settings_clicked = pyqtSignal()
    reference_size_changed = pyqtSignal(str)  # Raw text, parsed by the loop

    def __init__(self, reference_size: float = 72.0, parent=None):
        super().__init__(parent)
        self.logger = get_logger("ControlPanel")

        self._setup_ui(reference_size)
        self._connect_signals()

    def _setup_ui(self, reference_size: float) -> None:
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(10, 10, 10, 10)
        main_layout.setSpacing(10)

        # ===== Camera Selection =====
        device_group = QGroupBox("Camera")
        device_layout = QHBoxLayout(device_group)

        self._device_combo = QComboBox()
        self._device_combo.setMinimumWidth(180)
        self._device_combo.setPlaceholderText("Default camera")
        device_layout.addWidget(self._device_combo, 1)

        self._refresh_btn = QPushButton("Refresh")
        self._refresh_btn.setFixedWidth(80)
        self._refresh_btn.setToolTip("Scan for connected cameras")
        device_layout.addWidget(self._refresh_btn)

        main_layout.addWidget(device_group)

        # ===== Open / Close =====
        controls_group = QGroupBox("Controls")
        controls_layout = QHBoxLayout(controls_group)

        self._open_btn = QPushButton("Open Camera")
        self._open_btn.setMinimumHeight(40)
        self._open_btn.setStyleSheet("""
            QPushButton {
                background-color: #28a745;
                color: white;
                border: none;
                border-radius: 4px;
                font-weight: bold;
            }
            QPushButton:hover {
                background-color: #218838;
            }
            QPushButton:disabled {
                background-color: #6c757d;
            }
        """)
        controls_layout.addWidget(self._open_btn)

        self._close_btn = QPushButton("Close Camera")
        self._close_btn.setMinimumHeight(40)
        self._close_btn.setEnabled(False)
        self._close_btn.setStyleSheet("""
            QPushButton {
                background-color: #dc3545;
                color: white;
                border: none;
                border-radius: 4px;
                font-weight: bold;
            }
            QPushButton:hover {
                background-color: #c82333;
            }
            QPushButton:disabled {
                background-color: #6c757d;
            }
        """)
        controls_layout.addWidget(self._close_btn)

        main_layout.addWidget(controls_group)

        # ===== Reference Size =====
        size_group = QGroupBox("Screen Size")
        size_layout = QFormLayout(size_group)

        self._size_edit = QLineEdit(f"{reference_size:g}")
        validator = QDoubleValidator(0.0, 10000.0, 2, self._size_edit)
        # Decimal point regardless of the system locale, to match parse_reference_size
        locale = QLocale.c()
        locale.setNumberOptions(QLocale.OmitGroupSeparator | QLocale.RejectGroupSeparator)
        validator.setLocale(locale)
        validator.setNotation(QDoubleValidator.StandardNotation)
        self._size_edit.setValidator(validator)
        self._size_edit.setToolTip("Reference size in inches used for the distance estimate")
        size_layout.addRow("Size (inches):", self._size_edit)

        main_layout.addWidget(size_group)

        self._settings_btn = QPushButton("Settings")
        self._settings_btn.setMinimumHeight(35)
        main_layout.addWidget(self._settings_btn)

        main_layout.addStretch()

    def _connect_signals(self) -> None:
        self._device_combo.currentIndexChanged.connect(self._on_device_changed)
        self._open_btn.clicked.connect(self.open_clicked.emit)
        self._close_btn.clicked.connect(self.close_clicked.emit)
        self._refresh_btn.clicked.connect(self.refresh_clicked.emit)
        self._settings_btn.clicked.connect(self.settings_clicked.emit)
        self._size_edit.textChanged.connect(self.reference_size_changed.emit)

    def _on_device_changed(self, index: int) -> None:
        if index >= 0:
            self.camera_selected.emit(self._device_combo.itemData(index))

    def update_devices(self, devices: List[CameraDevice], selected_index: int = 0) -> None:
        """
        Replace the camera list.

        Args:
            devices: Cameras found by the last scan
            selected_index: Camera index to preselect if present
        """
        self._device_combo.blockSignals(True)
        self._device_combo.clear()
        for device in devices:
            self._device_combo.addItem(str(device), device.index)
            if device.index == selected_index:
                self._device_combo.setCurrentIndex(self._device_combo.count() - 1)
        self._device_combo.blockSignals(False)

        self.logger.info(f"Camera list updated: {len(devices)} camera(s)")

    def reference_size_text(self) -> str:
        return self._size_edit.text()

    def set_camera_open(self, is_open: bool) -> None:
        """Enable the controls that make sense for the camera state."""
        self._open_btn.setEnabled(not is_open)
        self._close_btn.setEnabled(is_open)
        self._device_combo.setEnabled(not is_open)
        self._refresh_btn.setEnabled(not is_open)


class InfoPanel(QWidget):
    """The person, distance and alert text fields."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(10, 0, 10, 10)

        group = QGroupBox("Detection")
        group_layout = QVBoxLayout(group)

        self._person_label = QLabel("")
        self._person_label.setWordWrap(True)
        group_layout.addWidget(self._person_label)

        self._distance_label = QLabel("")
        self._distance_label.setWordWrap(True)
        group_layout.addWidget(self._distance_label)

        self._alert_label = QLabel("")
        self._alert_label.setWordWrap(True)
        self._alert_label.setFont(QFont("Arial", 11, QFont.Bold))
        self._alert_label.setStyleSheet("color: #ff5555;")
        group_layout.addWidget(self._alert_label)

        layout.addWidget(group)

    def set_person_info(self, text: str) -> None:
        self._person_label.setText(text)

    def set_distance_info(self, text: str) -> None:
        self._distance_label.setText(text)

    def set_alert(self, text: str) -> None:
        self._alert_label.setText(text)

    def clear(self) -> None:
        self._person_label.clear()
        self._distance_label.clear()
        self._alert_label.clear()


class SettingsDialog(QDialog):
    """
    Settings dialog for the model, the distance policy and video capture.
    """

    settings_changed = pyqtSignal(dict)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.logger = get_logger("SettingsDialog")
        self.config = get_config()

        self.setWindowTitle("Settings")
        self.setMinimumSize(380, 320)
        self.setModal(True)

        self._setup_ui()
        self._load_settings()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        tabs = QTabWidget()

        # ===== Detection Tab =====
        detection_tab = QWidget()
        detection_layout = QFormLayout(detection_tab)

        self._model_combo = QComboBox()
        for name in UltralyticsDetector.AVAILABLE_MODELS:
            self._model_combo.addItem(name, name)
        self._model_combo.setToolTip("Takes effect after restarting the application")
        detection_layout.addRow("YOLO model:", self._model_combo)

        self._confidence_spin = QDoubleSpinBox()
        self._confidence_spin.setRange(0.05, 0.95)
        self._confidence_spin.setSingleStep(0.05)
        detection_layout.addRow("Min confidence:", self._confidence_spin)

        self._retry_spin = QSpinBox()
        self._retry_spin.setRange(100, 10000)
        self._retry_spin.setSingleStep(100)
        self._retry_spin.setSuffix(" ms")
        detection_layout.addRow("Model retry interval:", self._retry_spin)

        tabs.addTab(detection_tab, "Detection")

        # ===== Distance Tab =====
        distance_tab = QWidget()
        distance_layout = QFormLayout(distance_tab)

        self._known_size_spin = QDoubleSpinBox()
        self._known_size_spin.setRange(1.0, 200.0)
        self._known_size_spin.setSuffix(" in")
        self._known_size_spin.setToolTip("Assumed height of a person")
        distance_layout.addRow("Person size:", self._known_size_spin)

        self._angle_spin = QDoubleSpinBox()
        self._angle_spin.setRange(5.0, 85.0)
        self._angle_spin.setSuffix(" °")
        self._angle_spin.setToolTip("Half of the assumed field of view")
        distance_layout.addRow("View half angle:", self._angle_spin)

        self._fraction_spin = QDoubleSpinBox()
        self._fraction_spin.setRange(0.05, 5.0)
        self._fraction_spin.setSingleStep(0.05)
        distance_layout.addRow("Safe fraction:", self._fraction_spin)

        tabs.addTab(distance_tab, "Distance")

        # ===== Video Tab =====
        video_tab = QWidget()
        video_layout = QFormLayout(video_tab)

        self._resolution_combo = QComboBox()
        self._resolution_combo.addItem("480p (640x480)", (640, 480))
        self._resolution_combo.addItem("720p (1280x720)", (1280, 720))
        self._resolution_combo.addItem("1080p (1920x1080)", (1920, 1080))
        video_layout.addRow("Resolution:", self._resolution_combo)

        self._fps_spin = QSpinBox()
        self._fps_spin.setRange(5, 60)
        self._fps_spin.setSuffix(" fps")
        video_layout.addRow("Frame rate:", self._fps_spin)

        tabs.addTab(video_tab, "Video")

        layout.addWidget(tabs)

        button_box = QDialogButtonBox(
            QDialogButtonBox.Ok | QDialogButtonBox.Cancel | QDialogButtonBox.RestoreDefaults
        )
        button_box.accepted.connect(self._save_and_close)
        button_box.rejected.connect(self.reject)
        button_box.button(QDialogButtonBox.RestoreDefaults).clicked.connect(self._restore_defaults)
        layout.addWidget(button_box)

    def _load_values(self, values: dict) -> None:
        index = self._model_combo.findData(values["model_name"])
        self._model_combo.setCurrentIndex(max(0, index))
        self._confidence_spin.setValue(float(values["confidence_threshold"]))
        self._retry_spin.setValue(int(values["retry_interval_ms"]))
        self._known_size_spin.setValue(float(values["known_size"]))
        self._angle_spin.setValue(float(values["view_half_angle"]))
        self._fraction_spin.setValue(float(values["safe_fraction"]))

        resolution = tuple(values["default_resolution"])
        for i in range(self._resolution_combo.count()):
            if self._resolution_combo.itemData(i) == resolution:
                self._resolution_combo.setCurrentIndex(i)
                break
        self._fps_spin.setValue(int(values["default_fps"]))

    def _load_settings(self) -> None:
        self._load_values({key: self.config.get(key) for key in self.config.DEFAULT_CONFIG})

    def _restore_defaults(self) -> None:
        self._load_values(self.config.DEFAULT_CONFIG)

    def _get_settings(self) -> dict:
        return {
            "model_name": self._model_combo.currentData(),
            "confidence_threshold": round(self._confidence_spin.value(), 2),
            "retry_interval_ms": self._retry_spin.value(),
            "known_size": self._known_size_spin.value(),
            "view_half_angle": self._angle_spin.value(),
            "safe_fraction": round(self._fraction_spin.value(), 2),
            "default_resolution": list(self._resolution_combo.currentData()),
            "default_fps": self._fps_spin.value()
        }

    def _save_and_close(self) -> None:
        settings = self._get_settings()
        self.config.update(settings)
        self.settings_changed.emit(settings)
        self.logger.info("Settings saved")
        self.accept()
