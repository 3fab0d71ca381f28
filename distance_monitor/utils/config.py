"""
Configuration management module for Screen Distance Monitor
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from .logger import get_logger


class Config:
    """
    Manages application configuration settings.
    Loads and saves settings to a JSON configuration file.
    """

    DEFAULT_CONFIG = {
        # Distance heuristic
        "known_size": 72.0,             # assumed person height, inches
        "view_half_angle": 30.0,        # degrees, 60 degree field of view
        "safe_fraction": 0.75,
        "reference_size": 72.0,         # initial value of the reference input, inches
        "target_label": "person",
        # Detection loop
        "retry_interval_ms": 1000,
        "frame_interval_ms": 16,
        "max_model_load_attempts": 5,
        "max_missing_frames": 180,      # about 3 s of empty reads at 16 ms
        # Model
        "model_name": "yolov8n",
        "confidence_threshold": 0.5,
        "use_opencv_fallback": True,
        # Camera
        "camera_index": 0,
        "default_resolution": [1280, 720],
        "default_fps": 30,
        # Window
        "window_size": [1100, 720],
        "show_fps": True,
    }

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, uses default path.
        """
        self.logger = get_logger("Config")

        if config_path is None:
            app_dir = Path(__file__).parent.parent.parent
            config_path = app_dir / "config.json"

        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file or create with defaults."""
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    loaded_config = json.load(f)
                if not isinstance(loaded_config, dict):
                    raise ValueError("top-level JSON value is not an object")
                # Merge with defaults to ensure all keys exist
                self._config = {**self.DEFAULT_CONFIG, **loaded_config}
            except (json.JSONDecodeError, ValueError, IOError) as e:
                self.logger.warning(f"Could not load config file {self.config_path}: {e}")
                self._config = self.DEFAULT_CONFIG.copy()
        else:
            self._config = self.DEFAULT_CONFIG.copy()
            self._save_config()

    def _save_config(self) -> None:
        """Save current configuration to file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self._config, f, indent=4, ensure_ascii=False)
        except IOError as e:
            self.logger.warning(f"Could not save config file {self.config_path}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any, save: bool = True) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key
            value: Value to set
            save: Whether to save to file immediately
        """
        self._config[key] = value
        if save:
            self._save_config()

    def update(self, settings: Dict[str, Any], save: bool = True) -> None:
        """
        Update multiple configuration values.

        Args:
            settings: Dictionary of settings to update
            save: Whether to save to file immediately
        """
        self._config.update(settings)
        if save:
            self._save_config()

    def reset_to_defaults(self) -> None:
        """Reset all settings to default values."""
        self._config = self.DEFAULT_CONFIG.copy()
        self._save_config()

    @property
    def known_size(self) -> float:
        """Assumed real-world size of the target class, in inches."""
        return float(self.get("known_size", 72.0))

    @property
    def view_half_angle(self) -> float:
        """Half angle of view used for the safe distance, in degrees."""
        return float(self.get("view_half_angle", 30.0))

    @property
    def safe_fraction(self) -> float:
        return float(self.get("safe_fraction", 0.75))

    @property
    def reference_size(self) -> float:
        return float(self.get("reference_size", 72.0))

    @property
    def target_label(self) -> str:
        return self.get("target_label", "person")

    @property
    def retry_interval_ms(self) -> int:
        """Delay before a cycle retries while the model is loading."""
        return int(self.get("retry_interval_ms", 1000))

    @property
    def frame_interval_ms(self) -> int:
        return int(self.get("frame_interval_ms", 16))

    @property
    def max_model_load_attempts(self) -> int:
        return int(self.get("max_model_load_attempts", 5))

    @property
    def max_missing_frames(self) -> int:
        """Consecutive cycles without a frame before the camera is reported lost."""
        return int(self.get("max_missing_frames", 180))

    @property
    def model_name(self) -> str:
        return self.get("model_name", "yolov8n")

    @property
    def confidence_threshold(self) -> float:
        return float(self.get("confidence_threshold", 0.5))

    @property
    def camera_index(self) -> int:
        return int(self.get("camera_index", 0))

    @property
    def default_resolution(self) -> tuple:
        """Get default resolution as tuple (width, height)."""
        return tuple(self.get("default_resolution", [1280, 720]))

    @property
    def default_fps(self) -> int:
        return int(self.get("default_fps", 30))

    @property
    def window_size(self) -> tuple:
        """Get window size as tuple (width, height)."""
        return tuple(self.get("window_size", [1100, 720]))

    def __repr__(self) -> str:
        return f"Config({self.config_path})"


# Global configuration instance
_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = Config()
    return _global_config


def init_config(config_path: Optional[str] = None) -> Config:
    """
    Initialize the global configuration with a specific path.

    Args:
        config_path: Path to configuration file

    Returns:
        Config instance
    """
    global _global_config
    _global_config = Config(config_path)
    return _global_config
