import logging
import pathlib
import subprocess
from datetime import datetime

logger = logging.getLogger(__name__)


def run_subprocess_with_prefix(
    cmd: list, set_id: int, label: str, out_folder: pathlib.Path = None
):
    """Run a subprocess and save output to a timestamped log file.

    Without `out_folder` the output only goes to the debug log.
    """
    result = subprocess.run(cmd, capture_output=True, text=True)

    if out_folder is not None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_filename = "set_%03d_%s_%s.log" % (set_id, label, timestamp)
        log_path = pathlib.Path(out_folder) / "logs" / log_filename
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "w") as log_file:
            log_file.write("STDOUT:\n")
            log_file.write(result.stdout)
            log_file.write("\nSTDERR:\n")
            log_file.write(result.stderr)
    else:
        logger.debug("%s [%03d]: %s%s", label, set_id, result.stdout, result.stderr)

    if result.returncode != 0:
        raise subprocess.CalledProcessError(result.returncode, cmd, result.stdout, result.stderr)
    return result
