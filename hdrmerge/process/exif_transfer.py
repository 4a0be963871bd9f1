"""
EXIF Transfer Module

Copies XMP, IPTC and EXIF metadata from a source raw file to a merged output
using exiftool. Thumbnails and embedded previews of the source are never
copied; camera identification, authorship and DNG opcode tags always are.
"""

import logging
import pathlib
import subprocess

from .run_subprocess_with_prefix import run_subprocess_with_prefix

logger = logging.getLogger(__name__)

# Tags that always overwrite the destination
INCLUDE_TAGS = [
    "Make",
    "Model",
    "Artist",
    "Copyright",
    "DNGPrivateData",
    "OpcodeList1",
    "OpcodeList2",
    "OpcodeList3",
]

# Embedded previews and thumbnails of the various makers
PREVIEW_TAGS = [
    "PreviewImageStart",
    "PreviewImageLength",
    "PreviewImage",
    "ThumbnailOffset",
    "ThumbnailLength",
    "ThumbnailImage",
    "JpgFromRaw",
    "OtherImage",
]

# Groups describing the source image layout rather than the scene
EXCLUDE_GROUPS = ["IFD0", "IFD1", "SubIFD", "SubIFD1", "SubIFD2", "XMP-tiff"]


class ExifTransfer:
    """Runs exiftool to move metadata between files."""

    def __init__(self, exiftool_exe: str, log_folder: pathlib.Path = None):
        self.exiftool_exe = exiftool_exe
        self.log_folder = log_folder

    def build_include_command(self, src: str, dst: str) -> list:
        cmd = [self.exiftool_exe, "-overwrite_original", "-tagsFromFile", src]
        cmd += ["-%s" % tag for tag in INCLUDE_TAGS]
        cmd.append(dst)
        return cmd

    def build_copy_command(self, src: str, dst: str) -> list:
        """Copy everything else, without replacing tags the output already has."""
        cmd = [
            self.exiftool_exe,
            "-overwrite_original",
            "-wm",
            "cg",
            "-tagsFromFile",
            src,
            "-xmp:all",
            "-iptc:all",
            "-exif:all",
            "-makernotes:all",
        ]
        cmd += ["--%s" % tag for tag in PREVIEW_TAGS]
        cmd += ["--%s:all" % group for group in EXCLUDE_GROUPS]
        cmd.append(dst)
        return cmd

    def build_primary_image_command(self, dst: str) -> list:
        """Mark the main image as the primary one when no donor metadata exists."""
        return [self.exiftool_exe, "-overwrite_original", "-SubIFD:SubfileType#=0", dst]

    def transfer(self, src, dst, set_id: int = 0) -> bool:
        """
        Copy metadata from `src` to `dst`.

        Returns:
            bool: True if the source metadata was copied
        """
        src, dst = str(src), str(dst)
        try:
            if not src or not pathlib.Path(src).exists():
                raise FileNotFoundError(src)
            run_subprocess_with_prefix(self.build_include_command(src, dst), set_id, "exiftool", self.log_folder)
            run_subprocess_with_prefix(self.build_copy_command(src, dst), set_id, "exiftool", self.log_folder)
            return True
        except (OSError, subprocess.CalledProcessError) as ex:
            logger.warning("Cannot copy metadata from %s: %s", src, ex)

        try:
            run_subprocess_with_prefix(self.build_primary_image_command(dst), set_id, "exiftool", self.log_folder)
        except (OSError, subprocess.CalledProcessError) as ex:
            logger.warning("Cannot write metadata to %s: %s", dst, ex)
        return False
