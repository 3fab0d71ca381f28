"""
Detection loop for Screen Distance Monitor

Owns one viewing session: the camera, the model and the three text fields.
Each cycle runs the detector on the newest frame, looks for the target
class, estimates its distance, raises or clears the "too close" alert,
redraws the boxes and schedules the next cycle.

States:
    IDLE          camera closed
    INITIALIZING  camera open, model still loading (cycles poll and retry)
    RUNNING       camera open, model ready, frames being processed

At most one cycle is ever pending, and every cycle checks the session
first so nothing runs against a closed camera.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

import numpy as np

from ..camera.source import CameraError, FrameSource
from ..utils.logger import get_logger
from .detector import Detection, DetectionError, ObjectDetector, find_first
from .distance import DistanceEstimator, parse_reference_size


ALERT_TEXT = "Alert: You are too close! Maintain a safe distance."


class LoopState(Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"


@dataclass
class SessionState:
    """Mutable state of one viewing session."""
    camera_active: bool = False
    model_ready: bool = False
    reference_size: float = 0.0
    last_alert_active: bool = False
    model_loading: bool = False
    model_load_failures: int = 0
    missing_frames: int = 0
    frames_processed: int = 0


@dataclass
class CycleResult:
    """
    Outcome of one processed frame.

    Attributes:
        detections: Everything the detector reported, any class
        person: First detection of the target class, if any
        distance: Estimated distance, None when unknown or no person
        safe_distance: Safe distance for the current reference size
        alert: Whether the person is closer than the safe distance
    """
    detections: List[Detection] = field(default_factory=list)
    person: Optional[Detection] = None
    distance: Optional[float] = None
    safe_distance: int = 0
    alert: bool = False


class Scheduler(Protocol):
    """Runs a callback once after a delay on the loop's thread."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class ModelLoader(Protocol):
    """Loads the detector in the background and reports back on the loop's thread."""

    def start(
        self,
        on_loaded: Callable[[], None],
        on_failed: Callable[[Exception], None]
    ) -> None:
        ...


class PresentationSink(Protocol):
    """Where the loop writes its text fields and annotated frames."""

    def show_person_info(self, text: str) -> None:
        ...

    def show_distance_info(self, text: str) -> None:
        ...

    def show_alert(self, text: str) -> None:
        ...

    def show_frame(self, frame: np.ndarray, detections: List[Detection]) -> None:
        ...

    def clear(self) -> None:
        ...

    def show_error(self, title: str, message: str) -> None:
        ...


def format_person_info(person: Detection) -> str:
    return f"Person Detected with confidence: {person.confidence}"


def format_distance_info(distance: Optional[float]) -> str:
    if distance is None:
        return "Estimated Distance: unknown"
    return f"Estimated Distance: {round(distance)} inches"


class DetectionLoop:
    """
    Per-frame detection and distance warning loop.

    The loop never blocks on the model: loading happens through the
    ModelLoader, and while it is in progress cycles only poll.
    """

    def __init__(
        self,
        frame_source: FrameSource,
        detector: ObjectDetector,
        presenter: PresentationSink,
        scheduler: Scheduler,
        model_loader: ModelLoader,
        estimator: Optional[DistanceEstimator] = None,
        reference_size: float = 72.0,
        target_label: str = "person",
        retry_interval_ms: int = 1000,
        frame_interval_ms: int = 16,
        max_model_load_attempts: int = 5,
        max_missing_frames: int = 180
    ):
        """
        Create a session in the IDLE state.

        Args:
            frame_source: Camera to read frames from
            detector: Detection model (may not be loaded yet)
            presenter: Display sink for text fields and frames
            scheduler: Timer used to schedule cycles
            model_loader: Background loader for the detector
            estimator: Distance heuristic (defaults to the stock constants)
            reference_size: Initial reference size in inches
            target_label: Class whose distance is estimated
            retry_interval_ms: Poll delay while the model is loading
            frame_interval_ms: Delay between processed frames
            max_model_load_attempts: Failed loads before the error is shown
            max_missing_frames: Consecutive empty reads before the camera
                is reported as lost
        """
        self.logger = get_logger("DetectionLoop")

        self._frame_source = frame_source
        self._detector = detector
        self._presenter = presenter
        self._scheduler = scheduler
        self._model_loader = model_loader

        self.estimator = estimator or DistanceEstimator()
        self.target_label = target_label
        self.retry_interval_ms = retry_interval_ms
        self.frame_interval_ms = frame_interval_ms
        self.max_model_load_attempts = max_model_load_attempts
        self.max_missing_frames = max_missing_frames

        self.session = SessionState(
            model_ready=detector.is_loaded,
            reference_size=parse_reference_size(reference_size)
        )
        self._pending: Any = None
        self._finished = False

    @classmethod
    def create(
        cls,
        config,
        frame_source: FrameSource,
        detector: ObjectDetector,
        presenter: PresentationSink,
        scheduler: Scheduler,
        model_loader: ModelLoader
    ) -> "DetectionLoop":
        """Create a session with its policy taken from a Config instance."""
        return cls(
            frame_source,
            detector,
            presenter,
            scheduler,
            model_loader,
            estimator=DistanceEstimator.from_config(config),
            reference_size=config.reference_size,
            target_label=config.target_label,
            retry_interval_ms=config.retry_interval_ms,
            frame_interval_ms=config.frame_interval_ms,
            max_model_load_attempts=config.max_model_load_attempts,
            max_missing_frames=config.max_missing_frames
        )

    @property
    def state(self) -> LoopState:
        if not self.session.camera_active:
            return LoopState.IDLE
        if not self.session.model_ready:
            return LoopState.INITIALIZING
        return LoopState.RUNNING

    @property
    def has_pending_cycle(self) -> bool:
        return self._pending is not None

    # ----- Camera lifecycle -----

    def open_camera(self) -> bool:
        """
        Open the camera and start cycling.

        Returns:
            True if the camera is open afterwards
        """
        if self._finished:
            self.logger.warning("Session has been torn down; ignoring open request")
            return False

        if self.session.camera_active:
            self.logger.warning("Camera already open")
            return True

        try:
            self._frame_source.open()
        except CameraError as e:
            self.logger.error(f"Could not open camera: {e}")
            self._presenter.show_error("Camera Error", f"Could not open the camera:\n{e}")
            return False

        self.session.camera_active = True
        self.session.missing_frames = 0
        self.logger.info("Camera opened")

        self._ensure_model_loading()
        self._schedule(0)
        return True

    def close_camera(self) -> None:
        """Stop cycling, release the camera and clear the display."""
        previous = self.state
        self.session.camera_active = False
        self._cancel_pending()

        self._frame_source.close()
        self._set_alert(False)
        self._presenter.clear()

        if previous is not LoopState.IDLE:
            self.logger.info(f"Camera closed (was {previous.value})")

    def teardown(self) -> None:
        """Close the camera for good; later open requests are rejected."""
        self.close_camera()
        self._finished = True
        self.logger.info("Session torn down")

    # ----- Inputs -----

    def set_reference_size(self, value: Any) -> float:
        """
        Update the reference size used by the next cycle.

        Args:
            value: Raw input (number or string)

        Returns:
            The parsed value, 0.0 when the input is not a number
        """
        self.session.reference_size = parse_reference_size(value)
        self.logger.debug(f"Reference size set to {self.session.reference_size}")
        return self.session.reference_size

    def apply_estimator(self, estimator: DistanceEstimator) -> None:
        self.estimator = estimator
        self.logger.info(f"Distance policy updated: {estimator}")

    def apply_settings(self, config) -> None:
        """Apply edited settings to the running session (takes effect next cycle)."""
        self.apply_estimator(DistanceEstimator.from_config(config))
        self.retry_interval_ms = config.retry_interval_ms
        self._detector.confidence_threshold = config.confidence_threshold
        self.logger.info(f"Confidence threshold set to {config.confidence_threshold:.2f}")

    @property
    def inference_time(self) -> float:
        """Duration of the detector's last inference, in seconds."""
        return self._detector.inference_time

    # ----- Model loading -----

    def _ensure_model_loading(self) -> None:
        if self.session.model_ready or self.session.model_loading:
            return
        self.session.model_loading = True
        self.logger.info("Loading detection model...")
        self._model_loader.start(self.on_model_loaded, self.on_model_load_failed)

    def on_model_loaded(self) -> None:
        """Called by the model loader once the detector is usable."""
        self.session.model_loading = False
        self.session.model_ready = True
        self.session.model_load_failures = 0
        self.logger.info("Detection model ready")

        if self.session.camera_active:
            # Skip the rest of the polling delay
            self._schedule(0)

    def on_model_load_failed(self, error: Exception) -> None:
        """Called by the model loader when loading failed; the next poll retries."""
        self.session.model_loading = False
        self.session.model_load_failures += 1
        failures = self.session.model_load_failures
        self.logger.error(f"Error loading the detection model (attempt {failures}): {error}")

        if failures == self.max_model_load_attempts:
            self._presenter.show_error(
                "Model Error",
                f"The detection model failed to load {failures} times:\n{error}\n\n"
                "Still retrying in the background."
            )

    # ----- Cycle -----

    def _schedule(self, delay_ms: int) -> None:
        self._cancel_pending()
        self._pending = self._scheduler.call_later(delay_ms, self.run_cycle)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._pending = None

    def run_cycle(self) -> Optional[CycleResult]:
        """
        Run one cycle.

        Returns:
            The CycleResult of a processed frame, or None when the cycle only
            polled, skipped the frame or found the session closed
        """
        self._cancel_pending()

        if not self.session.camera_active:
            return None

        if not self.session.model_ready:
            self.logger.warning(
                f"Model not loaded yet, retrying in {self.retry_interval_ms} ms"
            )
            self._ensure_model_loading()
            self._schedule(self.retry_interval_ms)
            return None

        frame = self._frame_source.read()
        if frame is None:
            self._on_missing_frame()
            self._schedule(self.frame_interval_ms)
            return None
        self.session.missing_frames = 0

        try:
            detections = self._detector.detect(frame)
        except DetectionError as e:
            self.logger.warning(f"Detection failed, skipping frame: {e}")
            self._schedule(self.frame_interval_ms)
            return None

        if not self.session.camera_active:
            self.logger.debug("Camera closed during detection; discarding result")
            return None

        result = self.process_detections(frame, detections)
        self._schedule(self.frame_interval_ms)
        return result

    def _on_missing_frame(self) -> None:
        self.session.missing_frames += 1
        if self.session.missing_frames == self.max_missing_frames:
            self.logger.error(f"No frame from the camera for {self.max_missing_frames} cycles")
            self._presenter.show_error(
                "Camera Error",
                "The camera stopped delivering frames.\n\n"
                "Check that it is still connected, then close and reopen it."
            )

    def process_detections(self, frame: np.ndarray, detections: List[Detection]) -> CycleResult:
        """
        Update the display from one frame's detections.

        Text fields are updated before the boxes are redrawn.
        """
        result = CycleResult(detections=list(detections))
        result.person = find_first(detections, self.target_label)

        if result.person is not None:
            reference_size = self.session.reference_size
            result.distance = self.estimator.estimate_distance(result.person.width, reference_size)
            result.safe_distance = self.estimator.calculate_safe_distance(reference_size)
            result.alert = self.estimator.is_too_close(result.distance, reference_size)

            self._presenter.show_person_info(format_person_info(result.person))
            self._presenter.show_distance_info(format_distance_info(result.distance))
            self._presenter.show_alert(ALERT_TEXT if result.alert else "")
        else:
            self._presenter.show_person_info("")
            self._presenter.show_distance_info("")
            self._presenter.show_alert("")

        self._set_alert(result.alert)
        self._presenter.show_frame(frame, result.detections)
        self.session.frames_processed += 1

        if detections:
            self.logger.debug(f"Detections: {[d.to_dict() for d in detections]}")
        return result

    def _set_alert(self, active: bool) -> None:
        if active == self.session.last_alert_active:
            return
        self.session.last_alert_active = active
        if active:
            self.logger.warning("Too close to the screen")
        else:
            self.logger.info("Back at a safe distance")
