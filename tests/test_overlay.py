import numpy as np

from distance_monitor.detection.detector import Detection
from distance_monitor.detection.overlay import (
    BOX_COLOR,
    draw_detections,
    format_label,
    label_origin,
)


def test_format_label_rounds_to_whole_percent():
    assert format_label(Detection("person", 0.874)) == "person 87%"
    assert format_label(Detection("cup", 0.5)) == "cup 50%"
    assert format_label(Detection("cat", 1.0)) == "cat 100%"


def test_label_sits_above_box():
    assert label_origin(Detection("person", 0.9, (30, 50, 10, 10))) == (30, 45)


def test_label_clamped_near_top_edge():
    assert label_origin(Detection("person", 0.9, (30, 4, 10, 10))) == (30, 10)
    assert label_origin(Detection("person", 0.9, (30, 10, 10, 10))) == (30, 10)


def test_draw_detections_returns_annotated_copy():
    frame = np.zeros((200, 200, 3), dtype=np.uint8)
    detections = [
        Detection("person", 0.9, (10, 20, 100, 150)),
        Detection("cup", 0.6, (120, 120, 40, 40)),
    ]

    output = draw_detections(frame, detections)

    assert output is not frame
    assert not frame.any()
    # top edge of each box
    assert tuple(output[20, 60]) == BOX_COLOR
    assert tuple(output[120, 140]) == BOX_COLOR


def test_draw_without_detections_leaves_frame_unchanged():
    frame = np.full((50, 50, 3), 7, dtype=np.uint8)
    output = draw_detections(frame, [])
    assert np.array_equal(output, frame)


def test_draw_on_missing_frame():
    assert draw_detections(None, [Detection("person", 0.9)]) is None
