from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np
import pytest

from distance_monitor.camera.source import FrameSource
from distance_monitor.detection.detector import Detection, ObjectDetector
from distance_monitor.detection.loop import DetectionLoop


@dataclass
class ScheduledCall:
    delay_ms: int
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False


class FakeScheduler:
    def __init__(self) -> None:
        self.calls: List[ScheduledCall] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(delay_ms, callback)
        self.calls.append(call)
        return call

    def cancel(self, handle: ScheduledCall) -> None:
        handle.cancelled = True

    @property
    def pending(self) -> List[ScheduledCall]:
        return [c for c in self.calls if not c.cancelled and not c.fired]

    def fire_next(self):
        pending = self.pending
        assert pending, "nothing scheduled"
        call = pending[0]
        call.fired = True
        return call.callback()


class FakeFrameSource(FrameSource):
    def __init__(self, frame: Optional[np.ndarray] = None, open_error: Exception = None) -> None:
        self.frame = frame if frame is not None else np.zeros((240, 320, 3), dtype=np.uint8)
        self.open_error = open_error
        self.open_calls = 0
        self.close_calls = 0
        self.tracks_active = False

    def open(self) -> None:
        self.open_calls += 1
        if self.open_error is not None:
            raise self.open_error
        self.tracks_active = True

    def close(self) -> None:
        self.close_calls += 1
        self.tracks_active = False

    def read(self) -> Optional[np.ndarray]:
        if not self.tracks_active:
            return None
        return self.frame

    @property
    def is_open(self) -> bool:
        return self.tracks_active


class FakeDetector(ObjectDetector):
    def __init__(self, loaded: bool = True) -> None:
        super().__init__()
        self._is_loaded = loaded
        self.results: List[Detection] = []
        self.error: Optional[Exception] = None
        self.on_detect: Optional[Callable[[], None]] = None
        self.calls = 0

    def load(self) -> None:
        self._is_loaded = True

    def _infer(self, frame: np.ndarray) -> List[Detection]:
        self.calls += 1
        if self.on_detect is not None:
            self.on_detect()
        if self.error is not None:
            raise self.error
        return list(self.results)


class FakeModelLoader:
    def __init__(self) -> None:
        self.starts = 0
        self._on_loaded = None
        self._on_failed = None

    def start(self, on_loaded, on_failed) -> None:
        self.starts += 1
        self._on_loaded = on_loaded
        self._on_failed = on_failed

    def complete(self) -> None:
        self._on_loaded()

    def fail(self, error: Exception) -> None:
        self._on_failed(error)


class FakePresenter:
    def __init__(self) -> None:
        self.person_info = ""
        self.distance_info = ""
        self.alert = ""
        self.frames = []
        self.errors = []
        self.clears = 0
        self.events = []

    def show_person_info(self, text: str) -> None:
        self.events.append("person")
        self.person_info = text

    def show_distance_info(self, text: str) -> None:
        self.events.append("distance")
        self.distance_info = text

    def show_alert(self, text: str) -> None:
        self.events.append("alert")
        self.alert = text

    def show_frame(self, frame, detections) -> None:
        self.events.append("frame")
        self.frames.append(list(detections))

    def clear(self) -> None:
        self.events.append("clear")
        self.clears += 1
        self.person_info = ""
        self.distance_info = ""
        self.alert = ""
        self.frames.clear()

    def show_error(self, title: str, message: str) -> None:
        self.errors.append((title, message))

    @property
    def fields(self):
        return (self.person_info, self.distance_info, self.alert)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def frame_source() -> FakeFrameSource:
    return FakeFrameSource()


@pytest.fixture
def detector() -> FakeDetector:
    return FakeDetector(loaded=True)


@pytest.fixture
def model_loader() -> FakeModelLoader:
    return FakeModelLoader()


@pytest.fixture
def presenter() -> FakePresenter:
    return FakePresenter()


@pytest.fixture
def make_loop(frame_source, detector, presenter, scheduler, model_loader):
    def _make(**kwargs) -> DetectionLoop:
        return DetectionLoop(
            kwargs.pop("frame_source", frame_source),
            kwargs.pop("detector", detector),
            presenter,
            scheduler,
            model_loader,
            **kwargs
        )
    return _make
