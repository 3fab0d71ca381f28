"""
UI module for Screen Distance Monitor
Contains all user interface components
"""

from .video_widget import VideoWidget
from .controls import ControlPanel, InfoPanel, SettingsDialog
from .scheduling import QtScheduler, ModelLoadWorker
from .main_window import MainWindow

__all__ = [
    'VideoWidget',
    'ControlPanel',
    'InfoPanel',
    'SettingsDialog',
    'QtScheduler',
    'ModelLoadWorker',
    'MainWindow'
]
