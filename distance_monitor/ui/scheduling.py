"""
Qt glue for the detection loop: timers and background model loading
"""

from threading import Thread
from typing import Callable, Optional

from PyQt5.QtCore import QObject, QTimer, pyqtSignal

from ..detection.detector import ModelLoadError, ObjectDetector
from ..utils.logger import get_logger


class QtScheduler:
    """Schedules callbacks on the GUI thread with single-shot QTimers."""

    def __init__(self, parent: Optional[QObject] = None):
        self._parent = parent

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> QTimer:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.timeout.connect(callback)
        timer.timeout.connect(timer.deleteLater)
        timer.start(max(0, int(delay_ms)))
        return timer

    def cancel(self, handle: QTimer) -> None:
        try:
            handle.stop()
            handle.deleteLater()
        except RuntimeError:
            # The timer fired and Qt already deleted it
            pass


class ModelLoadWorker(QObject):
    """
    Loads a detector on a worker thread.

    Completion is reported through Qt signals, so the callbacks passed to
    start() run on the GUI thread.
    """

    loaded = pyqtSignal()
    failed = pyqtSignal(object)

    def __init__(self, detector: ObjectDetector, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.logger = get_logger("ModelLoadWorker")
        self._detector = detector
        self._thread: Optional[Thread] = None
        self._on_loaded: Optional[Callable[[], None]] = None
        self._on_failed: Optional[Callable[[Exception], None]] = None

        self.loaded.connect(self._handle_loaded)
        self.failed.connect(self._handle_failed)

    def start(
        self,
        on_loaded: Callable[[], None],
        on_failed: Callable[[Exception], None]
    ) -> None:
        if self.is_running:
            self.logger.debug("Model load already in progress")
            return

        self._on_loaded = on_loaded
        self._on_failed = on_failed
        self._thread = Thread(target=self._run, daemon=True, name="ModelLoader")
        self._thread.start()

    def _run(self) -> None:
        try:
            self._detector.load()
        except ModelLoadError as e:
            self.failed.emit(e)
            return
        except Exception as e:
            self.logger.exception("Unexpected error while loading the model")
            self.failed.emit(ModelLoadError(str(e)))
            return
        self.loaded.emit()

    def _handle_loaded(self) -> None:
        if self._on_loaded:
            self._on_loaded()

    def _handle_failed(self, error: Exception) -> None:
        if self._on_failed:
            self._on_failed(error)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
