#!/usr/bin/env python3
"""
Screen Distance Monitor - Main Entry Point

A desktop webcam viewer that detects objects with a pretrained YOLO model,
estimates how far the user sits from the screen and warns when they are
too close.

Usage:
    python main.py
"""

import sys

from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import QApplication

from distance_monitor.ui.main_window import MainWindow
from distance_monitor.utils.config import init_config
from distance_monitor.utils.logger import setup_logger


def main():
    """Main entry point for the application."""

    logger = setup_logger()
    logger.info("=" * 50)
    logger.info("Screen Distance Monitor starting...")
    logger.info("=" * 50)

    config = init_config()
    logger.info(f"Configuration loaded from: {config.config_path}")

    # High DPI scaling must be set before the QApplication exists
    QApplication.setAttribute(Qt.AA_EnableHighDpiScaling, True)
    QApplication.setAttribute(Qt.AA_UseHighDpiPixmaps, True)

    app = QApplication(sys.argv)
    app.setApplicationName("Screen Distance Monitor")
    app.setApplicationVersion("1.0.0")
    app.setOrganizationName("DistanceMonitor")
    app.setStyle("Fusion")

    window = MainWindow()
    window.show()

    logger.info("Application window displayed")

    exit_code = app.exec_()

    logger.info(f"Application exited with code: {exit_code}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
