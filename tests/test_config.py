import json

from distance_monitor.utils import config as config_module
from distance_monitor.utils.config import Config


def test_missing_file_is_created_with_defaults(tmp_path):
    path = tmp_path / "config.json"

    config = Config(str(path))

    assert path.exists()
    assert json.loads(path.read_text()) == Config.DEFAULT_CONFIG
    assert config.reference_size == 72.0
    assert config.retry_interval_ms == 1000
    assert config.default_resolution == (1280, 720)


def test_saved_values_merge_over_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"reference_size": 40, "camera_index": 2}))

    config = Config(str(path))

    assert config.reference_size == 40.0
    assert config.camera_index == 2
    assert config.known_size == 72.0
    assert config.target_label == "person"


def test_corrupt_file_falls_back_to_defaults(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    config = Config(str(path))

    assert config.get("reference_size") == 72.0
    assert "Could not load config file" in caplog.text


def test_non_object_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2, 3]")

    config = Config(str(path))

    assert config.frame_interval_ms == 16


def test_set_and_update_persist(tmp_path):
    path = tmp_path / "config.json"
    config = Config(str(path))

    config.set("camera_index", 1)
    config.update({"confidence_threshold": 0.3, "window_size": [800, 600]})

    reloaded = Config(str(path))
    assert reloaded.camera_index == 1
    assert reloaded.confidence_threshold == 0.3
    assert reloaded.window_size == (800, 600)


def test_set_without_save_is_not_persisted(tmp_path):
    path = tmp_path / "config.json"
    config = Config(str(path))

    config.set("camera_index", 3, save=False)

    assert config.camera_index == 3
    assert Config(str(path)).camera_index == 0


def test_reset_to_defaults(tmp_path):
    config = Config(str(tmp_path / "config.json"))
    config.update({"safe_fraction": 0.5})

    config.reset_to_defaults()

    assert config.safe_fraction == 0.75


def test_init_config_replaces_global(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "_global_config", None)

    config = config_module.init_config(str(tmp_path / "config.json"))

    assert config_module.get_config() is config
