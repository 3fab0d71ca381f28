"""
Object detection backends for Screen Distance Monitor

The detection model is treated as a black box: load it once, then feed it
frames and get back labelled, scored boxes.

Supports:
- YOLOv8 via ultralytics (primary, requires torch)
- YOLOv4-tiny via OpenCV DNN (fallback, no torch required)
"""

import time
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np

from ..utils.logger import get_logger


class ModelLoadError(Exception):
    """The detection model could not be loaded."""


class DetectionError(Exception):
    """A detection call failed for one frame."""


@dataclass(frozen=True)
class Detection:
    """
    A single labelled detection in one frame.

    Attributes:
        label: Class name, e.g. "person"
        confidence: Detection score in [0, 1]
        bbox: Bounding box (x, y, width, height) in frame pixels
    """
    label: str
    confidence: float
    bbox: Tuple[float, float, float, float] = (0, 0, 0, 0)

    @property
    def x(self) -> float:
        return self.bbox[0]

    @property
    def y(self) -> float:
        return self.bbox[1]

    @property
    def width(self) -> float:
        return self.bbox[2]

    @property
    def height(self) -> float:
        return self.bbox[3]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "label": self.label,
            "confidence": round(self.confidence, 3),
            "bbox": [round(v, 1) for v in self.bbox],
        }

    def __str__(self) -> str:
        return f"{self.label}({self.confidence:.2f} @ {self.x:.0f},{self.y:.0f} {self.width:.0f}x{self.height:.0f})"


def find_first(detections: List[Detection], label: str) -> Optional[Detection]:
    """Return the first detection with the given label, in detector order."""
    for detection in detections:
        if detection.label == label:
            return detection
    return None


class ObjectDetector(ABC):
    """
    Interface of a pretrained detection model.

    load() is called once, possibly from a worker thread; detect() is then
    called once per frame.
    """

    def __init__(self, confidence_threshold: float = 0.5):
        # Read on every detect(), so changing it applies to the next frame
        self.confidence_threshold = confidence_threshold
        self._is_loaded = False
        self._inference_time: float = 0.0

    @abstractmethod
    def load(self) -> None:
        """
        Load the model.

        Raises:
            ModelLoadError: if the model cannot be loaded
        """

    @abstractmethod
    def _infer(self, frame: np.ndarray) -> List[Detection]:
        """Run the model on one frame."""

    def detect(self, frame: np.ndarray) -> List[Detection]:
        """
        Detect objects in a frame.

        Args:
            frame: Input frame (BGR format)

        Returns:
            Detections in the order the model reports them

        Raises:
            DetectionError: if the model is not loaded or inference fails
        """
        if not self._is_loaded:
            raise DetectionError("Model is not loaded")
        if frame is None:
            return []

        start_time = time.time()
        try:
            detections = self._infer(frame)
        except DetectionError:
            raise
        except Exception as e:
            raise DetectionError(f"Inference failed: {e}") from e
        self._inference_time = time.time() - start_time
        return detections

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    @property
    def inference_time(self) -> float:
        """Get last inference time in seconds."""
        return self._inference_time


class UltralyticsDetector(ObjectDetector):
    """
    Object detection using YOLOv8 via ultralytics.
    Requires torch and ultralytics packages.
    """

    # Available YOLO models (from smallest to largest)
    AVAILABLE_MODELS = {
        'yolov8n': 'yolov8n.pt',      # Nano - fastest
        'yolov8s': 'yolov8s.pt',      # Small
        'yolov8m': 'yolov8m.pt',      # Medium
        'yolov8l': 'yolov8l.pt',      # Large
        'yolov8x': 'yolov8x.pt',      # Extra large - most accurate
    }

    def __init__(
        self,
        model_name: str = 'yolov8n',
        confidence_threshold: float = 0.5,
        device: str = 'auto'
    ):
        """
        Initialize the ultralytics detector.

        Args:
            model_name: YOLO model to use ('yolov8n', 'yolov8s', etc.)
            confidence_threshold: Minimum confidence for detections
            device: Device to run on ('cpu', 'cuda', 'auto')
        """
        super().__init__(confidence_threshold)
        self.logger = get_logger("UltralyticsDetector")
        self.model_name = model_name
        self.device = device
        self._model = None

    def load(self) -> None:
        try:
            from ultralytics import YOLO
        except ImportError as e:
            raise ModelLoadError(
                "ultralytics not installed. Install with: pip install ultralytics"
            ) from e

        model_file = self.AVAILABLE_MODELS.get(self.model_name, 'yolov8n.pt')
        self.logger.info(f"Loading YOLO model: {model_file}")

        try:
            self._model = YOLO(model_file)
            if self.device == 'auto':
                import torch
                self.device = 'cuda' if torch.cuda.is_available() else 'cpu'
        except Exception as e:
            raise ModelLoadError(f"Failed to load {model_file}: {e}") from e

        self._is_loaded = True
        self.logger.info(f"Model loaded on device: {self.device}")

    def _infer(self, frame: np.ndarray) -> List[Detection]:
        results = self._model(
            frame,
            conf=self.confidence_threshold,
            device=self.device,
            verbose=False
        )

        detections = []
        for result in results:
            boxes = result.boxes
            if boxes is None:
                continue

            names = result.names
            for box in boxes:
                x1, y1, x2, y2 = box.xyxy[0].tolist()
                class_id = int(box.cls[0])
                detections.append(Detection(
                    label=names.get(class_id, str(class_id)),
                    confidence=float(box.conf[0]),
                    bbox=(x1, y1, x2 - x1, y2 - y1)
                ))
        return detections


class OpenCVDetector(ObjectDetector):
    """
    Object detection using OpenCV DNN with YOLOv4-tiny.
    This is a fallback when PyTorch/ultralytics is not available.
    """

    YOLO_WEIGHTS_URL = "https://github.com/AlexeyAB/darknet/releases/download/yolov4/yolov4-tiny.weights"
    YOLO_CFG_URL = "https://raw.githubusercontent.com/AlexeyAB/darknet/master/cfg/yolov4-tiny.cfg"
    COCO_NAMES_URL = "https://raw.githubusercontent.com/pjreddie/darknet/master/data/coco.names"

    INPUT_SIZE = (416, 416)

    def __init__(
        self,
        confidence_threshold: float = 0.5,
        nms_threshold: float = 0.4,
        model_dir: Optional[Path] = None
    ):
        """
        Initialize the OpenCV DNN detector.

        Args:
            confidence_threshold: Minimum confidence for detections
            nms_threshold: Non-maximum suppression threshold
            model_dir: Where model files are cached (downloaded if missing)
        """
        super().__init__(confidence_threshold)
        self.logger = get_logger("OpenCVDetector")
        self.nms_threshold = nms_threshold
        self._model_dir = Path(model_dir) if model_dir else Path(__file__).parent / "models"

        self._net = None
        self._classes: List[str] = []
        self._output_layers: List[str] = []

    def _ensure_file(self, url: str, filepath: Path) -> None:
        if filepath.exists():
            return
        self.logger.info(f"Downloading {filepath.name}...")
        # Only a finished download may appear under the final name
        part_path = filepath.with_suffix(filepath.suffix + ".part")
        try:
            urllib.request.urlretrieve(url, str(part_path))
            part_path.replace(filepath)
        except Exception as e:
            part_path.unlink(missing_ok=True)
            raise ModelLoadError(f"Failed to download {url}: {e}") from e
        self.logger.info(f"Downloaded {filepath.name}")

    def load(self) -> None:
        self._model_dir.mkdir(parents=True, exist_ok=True)
        weights_path = self._model_dir / "yolov4-tiny.weights"
        cfg_path = self._model_dir / "yolov4-tiny.cfg"
        names_path = self._model_dir / "coco.names"

        self._ensure_file(self.YOLO_WEIGHTS_URL, weights_path)
        self._ensure_file(self.YOLO_CFG_URL, cfg_path)
        self._ensure_file(self.COCO_NAMES_URL, names_path)

        try:
            with open(names_path, 'r', encoding='utf-8') as f:
                self._classes = [line.strip() for line in f if line.strip()]

            self.logger.info("Loading YOLO model with OpenCV DNN...")
            self._net = cv2.dnn.readNetFromDarknet(str(cfg_path), str(weights_path))

            if cv2.cuda.getCudaEnabledDeviceCount() > 0:
                self._net.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
                self._net.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
                self.logger.info("Using CUDA backend")
            else:
                self._net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
                self._net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)
                self.logger.info("Using CPU backend")

            layer_names = self._net.getLayerNames()
            self._output_layers = [
                layer_names[i - 1] for i in np.array(self._net.getUnconnectedOutLayers()).flatten()
            ]
        except (cv2.error, OSError) as e:
            raise ModelLoadError(f"Failed to load YOLOv4-tiny: {e}") from e

        self._is_loaded = True
        self.logger.info("YOLO model loaded successfully (OpenCV DNN)")

    def _infer(self, frame: np.ndarray) -> List[Detection]:
        height, width = frame.shape[:2]

        blob = cv2.dnn.blobFromImage(
            frame, 1 / 255.0, self.INPUT_SIZE,
            swapRB=True, crop=False
        )
        self._net.setInput(blob)
        outputs = self._net.forward(self._output_layers)

        boxes = []
        confidences = []
        class_ids = []

        for output in outputs:
            for row in output:
                scores = row[5:]
                class_id = int(np.argmax(scores))
                confidence = float(scores[class_id])
                if confidence <= self.confidence_threshold:
                    continue

                center_x = row[0] * width
                center_y = row[1] * height
                w = row[2] * width
                h = row[3] * height

                boxes.append([int(center_x - w / 2), int(center_y - h / 2), int(w), int(h)])
                confidences.append(confidence)
                class_ids.append(class_id)

        indices = cv2.dnn.NMSBoxes(
            boxes, confidences,
            self.confidence_threshold,
            self.nms_threshold
        )

        detections = []
        for i in np.array(indices).flatten():
            x, y, w, h = boxes[i]
            class_id = class_ids[i]
            label = self._classes[class_id] if class_id < len(self._classes) else str(class_id)
            detections.append(Detection(
                label=label,
                confidence=confidences[i],
                bbox=(x, y, w, h)
            ))
        return detections


def create_detector(
    model_name: str = 'yolov8n',
    confidence_threshold: float = 0.5,
    use_opencv_fallback: bool = True
) -> ObjectDetector:
    """
    Create the best available object detector.

    Tries ultralytics (YOLOv8) first, falls back to OpenCV DNN (YOLOv4-tiny).
    The returned detector is not loaded yet.

    Args:
        model_name: YOLO model name (for ultralytics)
        confidence_threshold: Detection confidence threshold
        use_opencv_fallback: Whether to use OpenCV DNN as fallback

    Returns:
        ObjectDetector instance
    """
    logger = get_logger("create_detector")

    try:
        import torch  # noqa: F401
        from ultralytics import YOLO  # noqa: F401

        logger.info("Using ultralytics (YOLOv8) backend")
        return UltralyticsDetector(
            model_name=model_name,
            confidence_threshold=confidence_threshold
        )
    except ImportError:
        logger.warning("ultralytics or torch not available")

    if use_opencv_fallback:
        logger.info("Falling back to OpenCV DNN (YOLOv4-tiny) backend")
        return OpenCVDetector(confidence_threshold=confidence_threshold)

    raise ModelLoadError("No object detection backend available")
