"""
Detection module for Screen Distance Monitor
Object detection, the distance heuristic and the per-frame detection loop

Supports two backends:
- ultralytics (YOLOv8) - requires torch
- OpenCV DNN (YOLOv4-tiny) - fallback, no torch required
"""

from .detector import (
    Detection,
    ObjectDetector,
    UltralyticsDetector,
    OpenCVDetector,
    ModelLoadError,
    DetectionError,
    create_detector,
    find_first
)
from .distance import (
    DistanceEstimator,
    estimate_distance,
    calculate_safe_distance,
    parse_reference_size
)
from .overlay import draw_detections, format_label
from .loop import DetectionLoop, LoopState, SessionState, CycleResult, ALERT_TEXT

__all__ = [
    'Detection',
    'ObjectDetector',
    'UltralyticsDetector',
    'OpenCVDetector',
    'ModelLoadError',
    'DetectionError',
    'create_detector',
    'find_first',
    'DistanceEstimator',
    'estimate_distance',
    'calculate_safe_distance',
    'parse_reference_size',
    'draw_detections',
    'format_label',
    'DetectionLoop',
    'LoopState',
    'SessionState',
    'CycleResult',
    'ALERT_TEXT'
]
