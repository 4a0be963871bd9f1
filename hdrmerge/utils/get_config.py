from .read_json import read_json
from .get_default_config import get_default_config

import json
import logging
import pathlib

logger = logging.getLogger(__name__)


def get_config(cf: pathlib.Path) -> dict:
    """Load configuration from a JSON file, creating it if it doesn't exist.

    Args:
        cf: Path to the configuration file

    Returns:
        dict: Configuration dictionary
    """
    default_config = get_default_config()

    if not cf.exists() or cf.stat().st_size == 0:
        # Config doesn't exist or is empty - create with defaults
        cf.parent.mkdir(parents=True, exist_ok=True)
        with cf.open("w") as f:
            json.dump(default_config, f, indent=4, sort_keys=True)
        config = default_config.copy()
        config["exe_paths"] = default_config["exe_paths"].copy()
        config["merge_settings"] = default_config["merge_settings"].copy()
    else:
        config = read_json(cf)
        # Merge with defaults to ensure all keys exist
        for key, value in default_config.items():
            if key not in config:
                config[key] = value
            elif isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    if sub_key not in config[key]:
                        config[key][sub_key] = sub_value

    # Optional exe paths can be missing, the related features are disabled
    exe_paths = config.get("exe_paths", {})
    config["_optional_exes_available"] = {}
    for key, path in exe_paths.items():
        if path and pathlib.Path(path).exists():
            config["_optional_exes_available"][key] = True
        else:
            config["_optional_exes_available"][key] = False
            logger.debug(
                "%s is not available (%s). Related features will be disabled.",
                key,
                path + " not found" if path else "path not configured",
            )

    return config
