import logging
import pathlib
from datetime import datetime
from fractions import Fraction

import exifread

from ..models import CaptureInterval

logger = logging.getLogger(__name__)

DATE_TAGS = ("EXIF DateTimeOriginal", "EXIF DateTimeDigitized", "Image DateTime")


def _parse_ratio(tag) -> float:
    return float(Fraction(str(tag)))


def get_exif(filepath: pathlib.Path) -> dict:
    """Read capture time and shutter duration from a file's EXIF data.

    Missing tags are reported as None.
    """
    with pathlib.Path(filepath).open("rb") as f:
        tags = exifread.process_file(f, details=False)

    timestamp = None
    for key in DATE_TAGS:
        if key in tags:
            try:
                timestamp = datetime.strptime(str(tags[key]).strip(), "%Y:%m:%d %H:%M:%S")
            except ValueError:
                continue
            break

    if timestamp is not None and "EXIF SubSecTimeOriginal" in tags:
        sub_sec = str(tags["EXIF SubSecTimeOriginal"]).strip()
        if sub_sec.isdigit():
            timestamp = timestamp.replace(microsecond=int(sub_sec.ljust(6, "0")[:6]))

    try:
        shutter_speed = _parse_ratio(tags["EXIF ExposureTime"])
    except (KeyError, ValueError, ZeroDivisionError):
        shutter_speed = None

    return {"timestamp": timestamp, "shutter_speed": shutter_speed}


def get_capture_interval(filepath: pathlib.Path):
    """Estimated exposure window of a file, or None if it has no capture time."""
    try:
        exif = get_exif(filepath)
    except OSError as ex:
        logger.debug("Cannot read EXIF data from %s: %s", filepath, ex)
        return None
    if exif["timestamp"] is None:
        return None
    return CaptureInterval.from_capture(exif["timestamp"], exif["shutter_speed"] or 0.0)
