import logging

import pytest

from distance_monitor.camera.source import DeviceUnavailableError, PermissionDeniedError
from distance_monitor.detection.detector import Detection, DetectionError, ModelLoadError
from distance_monitor.detection.loop import ALERT_TEXT, DetectionLoop, LoopState
from distance_monitor.utils.config import Config

from conftest import FakeDetector, FakeFrameSource


def person(width, confidence=0.9, x=10, y=20):
    return Detection("person", confidence, (x, y, width, 200))


def test_open_camera_moves_to_running_and_schedules_first_cycle(make_loop, frame_source, scheduler):
    loop = make_loop()
    assert loop.state is LoopState.IDLE

    assert loop.open_camera() is True
    assert loop.state is LoopState.RUNNING
    assert frame_source.tracks_active
    assert [c.delay_ms for c in scheduler.pending] == [0]


def test_open_camera_twice_keeps_one_pending_cycle(make_loop, frame_source, scheduler):
    loop = make_loop()
    loop.open_camera()
    assert loop.open_camera() is True

    assert frame_source.open_calls == 1
    assert len(scheduler.pending) == 1


def test_person_at_reference_width_reads_known_size(make_loop, detector, presenter, scheduler):
    detector.results = [person(width=300, confidence=0.874)]
    loop = make_loop(reference_size=72)
    loop.open_camera()

    result = scheduler.fire_next()

    assert result.distance == pytest.approx(300)
    assert result.safe_distance == 94
    assert result.alert is False
    assert presenter.person_info == "Person Detected with confidence: 0.874"
    assert presenter.distance_info == "Estimated Distance: 300 inches"
    assert presenter.alert == ""
    assert [c.delay_ms for c in scheduler.pending] == [16]


def test_too_close_raises_alert(make_loop, detector, presenter, scheduler):
    detector.results = [person(width=20)]
    loop = make_loop(reference_size=40)
    loop.open_camera()

    result = scheduler.fire_next()

    # 20 * 72 / 40 = 36, below the safe distance of 52 for a 40 inch screen
    assert result.distance == pytest.approx(36)
    assert result.safe_distance == 52
    assert result.alert is True
    assert presenter.alert == ALERT_TEXT
    assert loop.session.last_alert_active is True


def test_alert_clears_once_person_moves_back(make_loop, detector, presenter, scheduler):
    detector.results = [person(width=20)]
    loop = make_loop(reference_size=40)
    loop.open_camera()
    scheduler.fire_next()
    assert presenter.alert == ALERT_TEXT

    detector.results = [person(width=100)]
    scheduler.fire_next()

    assert presenter.alert == ""
    assert loop.session.last_alert_active is False


def test_only_first_person_is_measured(make_loop, detector, presenter, scheduler):
    detector.results = [
        Detection("cup", 0.8, (0, 0, 10, 10)),
        person(width=300, confidence=0.6),
        person(width=20, confidence=0.99),
    ]
    loop = make_loop(reference_size=72)
    loop.open_camera()

    result = scheduler.fire_next()

    assert result.person.confidence == 0.6
    assert presenter.distance_info == "Estimated Distance: 300 inches"
    assert presenter.frames[-1] == detector.results


def test_no_person_clears_fields_but_draws_other_boxes(make_loop, detector, presenter, scheduler):
    others = [Detection("cat", 0.7, (5, 5, 50, 50)), Detection("cup", 0.6, (60, 60, 20, 20))]
    detector.results = others
    loop = make_loop()
    loop.open_camera()
    presenter.person_info = "stale"

    result = scheduler.fire_next()

    assert result.person is None
    assert result.alert is False
    assert presenter.fields == ("", "", "")
    assert presenter.frames[-1] == others


def test_text_fields_are_updated_before_boxes_are_drawn(make_loop, detector, presenter, scheduler):
    detector.results = [person(width=100)]
    loop = make_loop()
    loop.open_camera()
    presenter.events.clear()

    scheduler.fire_next()

    assert presenter.events == ["person", "distance", "alert", "frame"]


def test_invalid_reference_size_reports_unknown_distance(make_loop, detector, presenter, scheduler):
    detector.results = [person(width=100)]
    loop = make_loop()
    loop.open_camera()
    assert loop.set_reference_size("") == 0.0

    result = scheduler.fire_next()

    assert result.distance is None
    assert result.safe_distance == 0
    assert result.alert is False
    assert presenter.distance_info == "Estimated Distance: unknown"
    assert presenter.alert == ""


def test_reference_size_change_applies_to_next_cycle(make_loop, detector, presenter, scheduler):
    detector.results = [person(width=100)]
    loop = make_loop(reference_size=72)
    loop.open_camera()
    scheduler.fire_next()
    assert presenter.distance_info == "Estimated Distance: 100 inches"

    loop.set_reference_size("36")
    scheduler.fire_next()

    assert presenter.distance_info == "Estimated Distance: 200 inches"


def test_cycles_poll_while_model_is_loading(make_loop, model_loader, scheduler, caplog):
    detector = FakeDetector(loaded=False)
    loop = make_loop(detector=detector)

    loop.open_camera()
    assert loop.state is LoopState.INITIALIZING
    assert model_loader.starts == 1

    with caplog.at_level(logging.WARNING):
        scheduler.fire_next()
        scheduler.fire_next()

    assert detector.calls == 0
    assert model_loader.starts == 1
    assert [c.delay_ms for c in scheduler.pending] == [1000]
    assert "Model not loaded yet" in caplog.text


def test_model_ready_skips_the_rest_of_the_poll_delay(make_loop, model_loader, presenter, scheduler):
    detector = FakeDetector(loaded=False)
    detector.results = [person(width=100)]
    loop = make_loop(detector=detector)
    loop.open_camera()
    scheduler.fire_next()
    assert [c.delay_ms for c in scheduler.pending] == [1000]

    detector.load()
    model_loader.complete()

    assert loop.state is LoopState.RUNNING
    assert [c.delay_ms for c in scheduler.pending] == [0]
    result = scheduler.fire_next()
    assert result is not None
    assert detector.calls == 1


def test_model_loaded_while_idle_does_not_schedule(make_loop, model_loader, scheduler):
    loop = make_loop(detector=FakeDetector(loaded=False))
    loop.open_camera()
    loop.close_camera()

    model_loader.complete()

    assert loop.session.model_ready is True
    assert scheduler.pending == []


def test_model_load_error_is_shown_once(make_loop, model_loader, presenter, scheduler):
    loop = make_loop(detector=FakeDetector(loaded=False), max_model_load_attempts=3)
    loop.open_camera()

    for _ in range(5):
        model_loader.fail(ModelLoadError("weights missing"))
        scheduler.fire_next()

    assert model_loader.starts == 6
    assert loop.session.model_load_failures == 5
    assert len(presenter.errors) == 1
    assert presenter.errors[0][0] == "Model Error"
    assert loop.state is LoopState.INITIALIZING


def test_detection_error_skips_the_frame(make_loop, detector, presenter, scheduler, caplog):
    detector.error = RuntimeError("boom")
    loop = make_loop()
    loop.open_camera()

    with caplog.at_level(logging.WARNING):
        result = scheduler.fire_next()

    assert result is None
    assert presenter.frames == []
    assert [c.delay_ms for c in scheduler.pending] == [16]
    assert "Detection failed" in caplog.text

    detector.error = None
    detector.results = [person(width=100)]
    assert scheduler.fire_next() is not None


def test_missing_frame_reschedules_without_detecting(make_loop, detector, frame_source, scheduler):
    loop = make_loop()
    loop.open_camera()
    frame_source.frame = None
    frame_source.read = lambda: None

    assert scheduler.fire_next() is None
    assert detector.calls == 0
    assert [c.delay_ms for c in scheduler.pending] == [16]


def test_close_clears_fields_and_releases_camera(make_loop, detector, frame_source, presenter, scheduler):
    detector.results = [person(width=20)]
    loop = make_loop(reference_size=40)
    loop.open_camera()
    scheduler.fire_next()
    assert presenter.alert == ALERT_TEXT

    loop.close_camera()

    assert loop.state is LoopState.IDLE
    assert presenter.fields == ("", "", "")
    assert not frame_source.tracks_active
    assert scheduler.pending == []
    assert not loop.has_pending_cycle
    assert loop.session.last_alert_active is False


def test_close_while_loading_stops_polling(make_loop, frame_source, presenter, scheduler):
    loop = make_loop(detector=FakeDetector(loaded=False))
    loop.open_camera()
    scheduler.fire_next()

    loop.close_camera()

    assert presenter.fields == ("", "", "")
    assert not frame_source.tracks_active
    assert scheduler.pending == []


def test_close_when_idle_still_clears(make_loop, presenter, frame_source):
    loop = make_loop()
    presenter.person_info = "left over"

    loop.close_camera()

    assert presenter.clears == 1
    assert presenter.fields == ("", "", "")
    assert loop.state is LoopState.IDLE


def test_result_arriving_after_close_is_discarded(make_loop, detector, presenter, scheduler):
    loop = make_loop()
    detector.results = [person(width=20)]
    detector.on_detect = loop.close_camera
    loop.open_camera()

    assert scheduler.fire_next() is None

    assert presenter.fields == ("", "", "")
    assert presenter.frames == []
    assert scheduler.pending == []


def test_stale_cycle_after_close_does_nothing(make_loop, detector, scheduler):
    loop = make_loop()
    loop.open_camera()
    stale = scheduler.pending[0]
    loop.close_camera()

    assert stale.callback() is None
    assert detector.calls == 0
    assert scheduler.pending == []


@pytest.mark.parametrize("error", [
    PermissionDeniedError("access denied"),
    DeviceUnavailableError("no camera"),
])
def test_camera_error_is_reported_and_session_stays_idle(make_loop, presenter, model_loader, scheduler, error):
    source = FakeFrameSource(open_error=error)
    loop = make_loop(frame_source=source, detector=FakeDetector(loaded=False))

    assert loop.open_camera() is False

    assert loop.state is LoopState.IDLE
    assert presenter.errors[0][0] == "Camera Error"
    assert str(error) in presenter.errors[0][1]
    assert model_loader.starts == 0
    assert scheduler.pending == []


def test_reopen_after_close(make_loop, detector, frame_source, presenter, scheduler):
    detector.results = [person(width=100)]
    loop = make_loop()
    loop.open_camera()
    scheduler.fire_next()
    loop.close_camera()

    assert loop.open_camera() is True
    assert frame_source.open_calls == 2
    scheduler.fire_next()
    assert presenter.distance_info == "Estimated Distance: 100 inches"


def test_teardown_rejects_later_open(make_loop, frame_source, scheduler):
    loop = make_loop()
    loop.open_camera()

    loop.teardown()

    assert loop.open_camera() is False
    assert frame_source.open_calls == 1
    assert scheduler.pending == []


def test_create_takes_policy_from_config(tmp_path, frame_source, detector, presenter, scheduler, model_loader):
    config = Config(str(tmp_path / "config.json"))
    config.update({"reference_size": 40.0, "retry_interval_ms": 250, "max_model_load_attempts": 2})

    loop = DetectionLoop.create(config, frame_source, detector, presenter, scheduler, model_loader)

    assert loop.session.reference_size == 40.0
    assert loop.retry_interval_ms == 250
    assert loop.max_model_load_attempts == 2
    assert loop.estimator.calculate_safe_distance(40) == 52


def test_apply_settings_reaches_the_live_detector(tmp_path, make_loop, detector):
    config = Config(str(tmp_path / "config.json"))
    loop = make_loop()
    config.update({
        "confidence_threshold": 0.3,
        "retry_interval_ms": 400,
        "safe_fraction": 1.0,
        "view_half_angle": 45.0,
    })

    loop.apply_settings(config)

    assert detector.confidence_threshold == 0.3
    assert loop.retry_interval_ms == 400
    assert loop.estimator.calculate_safe_distance(40) == 40


def test_inference_time_comes_from_the_detector(make_loop, detector, scheduler):
    detector.results = [person(width=100)]
    loop = make_loop()
    loop.open_camera()
    scheduler.fire_next()

    assert loop.inference_time == detector.inference_time
    assert loop.inference_time >= 0


def test_lost_camera_is_reported_once(make_loop, frame_source, presenter, scheduler, caplog):
    loop = make_loop(max_missing_frames=3)
    loop.open_camera()
    frame_source.frame = None

    with caplog.at_level(logging.ERROR):
        for _ in range(6):
            scheduler.fire_next()

    assert presenter.errors == [presenter.errors[0]]
    assert presenter.errors[0][0] == "Camera Error"
    assert "No frame from the camera" in caplog.text
    assert [c.delay_ms for c in scheduler.pending] == [16]


def test_missing_frame_count_resets_when_frames_return(make_loop, detector, frame_source, presenter, scheduler):
    detector.results = [person(width=100)]
    loop = make_loop(max_missing_frames=3)
    loop.open_camera()
    frame = frame_source.frame

    frame_source.frame = None
    scheduler.fire_next()
    scheduler.fire_next()
    frame_source.frame = frame
    assert scheduler.fire_next() is not None
    frame_source.frame = None
    scheduler.fire_next()
    scheduler.fire_next()

    assert presenter.errors == []
    assert loop.session.missing_frames == 2
