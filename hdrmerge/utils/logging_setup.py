"""Configures application-wide logging."""

import logging
import logging.handlers
import os
from pathlib import Path

# Handlers installed by the last setup_logging call
_HANDLERS = []


def get_app_data_dir() -> Path:
    """Returns the application data directory."""
    app_data = os.getenv("APPDATA")
    if app_data:
        return Path(app_data) / "hdrmerge"
    return Path.home() / ".hdrmerge"


def setup_logging(verbosity: int = 0, log_dir: str = ""):
    """Sets up console logging plus a rotating log file.

    Calling it again replaces the handlers of the previous call.

    Args:
        verbosity: 0 for progress only, 1 for verbose, 2 for debug output
        log_dir: Directory for the log file, defaults to the app data directory
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in _HANDLERS:
        root_logger.removeHandler(handler)
        handler.close()
    _HANDLERS.clear()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(message)s"))
    console.setLevel(logging.DEBUG if verbosity > 0 else logging.INFO)
    root_logger.addHandler(console)
    _HANDLERS.append(console)

    log_path = Path(log_dir) if log_dir else get_app_data_dir() / "logs"
    try:
        log_path.mkdir(parents=True, exist_ok=True)
    except OSError as ex:
        logging.getLogger(__name__).warning("Cannot create log directory %s: %s", log_path, ex)
    else:
        handler = logging.handlers.RotatingFileHandler(
            log_path / "hdrmerge.log", maxBytes=10*1024*1024, backupCount=5
        )
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
        handler.setLevel(logging.DEBUG)
        root_logger.addHandler(handler)
        _HANDLERS.append(handler)

    # -v shows our own details, -vv also shows the libraries
    logging.getLogger("hdrmerge").setLevel(logging.DEBUG if verbosity > 0 else logging.INFO)
    third_party = logging.DEBUG if verbosity > 1 else logging.WARNING
    logging.getLogger("exifread").setLevel(third_party)
    logging.getLogger("PIL").setLevel(third_party)
