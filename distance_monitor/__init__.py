"""
Screen Distance Monitor

Webcam viewer that detects people with a pretrained YOLO model and warns
when the user sits too close to the screen.
"""

__version__ = "1.0.0"
