"""
Utility modules for Screen Distance Monitor
"""

from .config import Config, get_config, init_config
from .logger import setup_logger, get_logger

__all__ = ['Config', 'get_config', 'init_config', 'setup_logger', 'get_logger']
