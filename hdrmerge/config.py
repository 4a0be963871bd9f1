"""
Global configuration module.

Provides CONFIG and CONFIG_FILE
"""

import pathlib
import sys

from .utils.logging_setup import get_app_data_dir


def default_config_file() -> pathlib.Path:
    """config.json next to a frozen executable, otherwise in the per-user app data directory."""
    if getattr(sys, "frozen", False):
        return pathlib.Path(sys.executable).parent / "config.json"
    return get_app_data_dir() / "config.json"


CONFIG_FILE = default_config_file()

CONFIG = {}


def init(config_file: pathlib.Path = None) -> dict:
    """Load config.json (or `config_file`) into CONFIG.

    Returns:
        dict: The loaded configuration
    """
    global CONFIG_FILE
    from .utils.get_config import get_config

    if config_file is not None:
        CONFIG_FILE = pathlib.Path(config_file)
    CONFIG.clear()
    CONFIG.update(get_config(CONFIG_FILE))
    return CONFIG
