import sys


def get_default_config() -> dict:
    """Get default configuration with OS-specific paths."""
    if sys.platform.startswith("win"):
        default_exe_paths = {
            "exiftool_exe": "C:\\Program Files\\ExifTool\\exiftool.exe",
        }
    else:
        default_exe_paths = {
            "exiftool_exe": "/usr/bin/exiftool",
        }

    return {
        "exe_paths": default_exe_paths,
        "merge_settings": {
            "align": True,
            "crop": True,
            "batch_gap": 2.0,
            "with_singles": False,
            "bps": 16,
            "feather_radius": 3,
            "preview_size": "full",
            "output_pattern": "",
            "mask_pattern": "",
            "custom_white_level": None,
        },
        "raw_extensions": [".dng", ".cr2", ".cr3", ".nef", ".arw", ".raf", ".orf", ".rw2", ".pef"],
        "notify_on_completion": False,
        "log_dir": "",
    }
