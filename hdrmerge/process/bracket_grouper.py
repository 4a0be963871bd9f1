"""
Bracket Grouper Module

Collects raw files from the command line and splits an unsorted batch into
bracketed sets by comparing capture times.
"""

import logging
import pathlib

from ..models import LoadOptions

logger = logging.getLogger(__name__)


def collect_input_files(paths, raw_extensions: list) -> list:
    """
    Expand directories into the raw files they contain.

    Files given explicitly are kept as they are, in order. Extensions are
    matched case-insensitively.

    Args:
        paths: Files and folders given by the user
        raw_extensions: Extensions (with leading dot) treated as raw files

    Returns:
        list: File names as strings
    """
    extensions = {ext.lower() for ext in raw_extensions}
    files = []
    for path in paths:
        path = pathlib.Path(path)
        if path.is_dir():
            found = sorted(f for f in path.iterdir() if f.is_file() and f.suffix.lower() in extensions)
            if not found:
                logger.warning("Warning: No raw files found in %s", path)
            files.extend(str(f) for f in found)
        else:
            files.append(str(path))
    return files


def group_brackets(file_names, gap: float, interval_fn) -> list:
    """
    Split files into bracketed sets.

    Files without a capture time are put in a set of their own first. The
    rest are sorted by capture interval, and a new set starts whenever the
    distance to the previous file's interval is larger than `gap` seconds.

    Args:
        file_names: Unsorted file names
        gap: Maximum distance in seconds between two images of the same set
        interval_fn: Callable returning a CaptureInterval, or None, per file

    Returns:
        list: Lists of file names
    """
    result = []
    date_names = []
    for name in file_names:
        interval = interval_fn(name)
        if interval is not None:
            date_names.append((interval, name))
        else:
            # We cannot get time information, process it alone
            result.append([name])
    date_names.sort()

    last_interval = None
    for interval, name in date_names:
        if last_interval is None or last_interval.difference(interval) > gap:
            result.append([])
        result[-1].append(name)
        last_interval = interval
    return result


def get_bracketed_sets(options: LoadOptions, interval_fn, log_callback=None) -> list:
    """Group `options.file_names` and return one LoadOptions per bracketed set."""
    sets = [options.with_files(names) for names in group_brackets(options.file_names, options.batch_gap, interval_fn)]
    for set_num, set_options in enumerate(sets):
        message = "Set %d: %s" % (set_num, " ".join(set_options.file_names))
        if log_callback:
            log_callback(message)
        else:
            logger.info(message)
    return sets
