import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt5.QtGui import QValidator
from PyQt5.QtWidgets import QApplication

from distance_monitor.detection.distance import parse_reference_size
from distance_monitor.ui.controls import ControlPanel, InfoPanel


@pytest.fixture(scope="module")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


def validate(panel, text):
    state, _, _ = panel._size_edit.validator().validate(text, len(text))
    return state


def test_size_input_uses_decimal_point(qapp):
    panel = ControlPanel(reference_size=72.0)

    assert panel._size_edit.validator().locale().name() == "C"
    assert validate(panel, "72.5") == QValidator.Acceptable
    assert parse_reference_size("72.5") == 72.5


def test_size_input_rejects_decimal_comma(qapp):
    panel = ControlPanel(reference_size=72.0)

    assert validate(panel, "72,5") != QValidator.Acceptable


def test_size_input_starts_with_configured_value(qapp):
    panel = ControlPanel(reference_size=40.0)

    assert panel.reference_size_text() == "40"


def test_info_panel_clear(qapp):
    panel = InfoPanel()
    panel.set_person_info("Person Detected with confidence: 0.9")
    panel.set_alert("Alert")

    panel.clear()

    assert panel._person_label.text() == ""
    assert panel._alert_label.text() == ""
