"""
Bounding box overlay drawn onto video frames
"""

from typing import List, Tuple

import cv2
import numpy as np

from .detector import Detection


BOX_COLOR: Tuple[int, int, int] = (0, 0, 255)  # Red (BGR)
BOX_THICKNESS = 2
FONT = cv2.FONT_HERSHEY_SIMPLEX
FONT_SCALE = 0.5


def format_label(detection: Detection) -> str:
    """Label text for a box, e.g. 'person 87%'."""
    return f"{detection.label} {round(detection.confidence * 100)}%"


def label_origin(detection: Detection) -> Tuple[int, int]:
    """
    Text origin for a box label.

    The label sits 5px above the box, or at y=10 when the box is too close
    to the top edge for that.
    """
    x, y = int(detection.x), int(detection.y)
    return (x, y - 5 if y > 10 else 10)


def draw_detections(
    frame: np.ndarray,
    detections: List[Detection],
    color: Tuple[int, int, int] = BOX_COLOR
) -> np.ndarray:
    """
    Draw every detection on a copy of the frame.

    Args:
        frame: Input frame (BGR)
        detections: Detections for this frame, any class
        color: Box and text color (BGR)

    Returns:
        New frame with boxes and labels drawn
    """
    if frame is None:
        return frame

    output = frame.copy()
    for det in detections:
        x, y, w, h = (int(v) for v in det.bbox)
        cv2.rectangle(output, (x, y), (x + w, y + h), color, BOX_THICKNESS)
        cv2.putText(
            output, format_label(det),
            label_origin(det),
            FONT, FONT_SCALE, color, 1, cv2.LINE_AA
        )
    return output
