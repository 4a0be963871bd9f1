"""
Encoder Module

Writes merged rasters, their previews and exposure masks to disk:
- TiffEncoder: Persists the composed raw raster with OpenCV
- write_mask_image: Saves the exposure mask as an indexed PNG with Pillow
"""

import logging
import pathlib

import cv2
import numpy as np
from PIL import Image

from ..models import RawParameters

logger = logging.getLogger(__name__)


class TiffEncoder:
    """Writes the composed raster as a single channel TIFF plus a JPEG preview."""

    extension = ".tif"

    def __init__(self, preview_quality: int = 90):
        self.preview_quality = preview_quality

    @staticmethod
    def preview_path(file_name) -> pathlib.Path:
        path = pathlib.Path(file_name)
        return path.with_name(path.stem + "_preview.jpg")

    def encode(self, raster: np.ndarray, params: RawParameters, bps: int) -> np.ndarray:
        """Normalise a raw-scale raster to the white level and convert it to the output depth.

        16 bits are stored as clipped integers, 24 and 32 bits as float32.
        """
        span = float(max(params.max - params.black, 1))
        normalized = (raster.astype(np.float32) - params.black) / span
        if bps == 16:
            return (np.clip(normalized, 0.0, 1.0) * 65535.0 + 0.5).astype(np.uint16)
        return np.maximum(normalized, 0.0).astype(np.float32)

    def write(self, raster: np.ndarray, params: RawParameters, file_name, bps: int = 16, preview=None) -> pathlib.Path:
        path = pathlib.Path(file_name)
        path.parent.mkdir(parents=True, exist_ok=True)

        if not cv2.imwrite(path.as_posix(), self.encode(raster, params, bps)):
            raise RuntimeError("Cannot write output image to %s" % path)

        if preview is not None:
            preview_file = self.preview_path(path)
            bgr = cv2.cvtColor(preview, cv2.COLOR_RGB2BGR)
            if not cv2.imwrite(preview_file.as_posix(), bgr, [cv2.IMWRITE_JPEG_QUALITY, self.preview_quality]):
                logger.warning("Cannot write preview to %s", preview_file)
        return path


def build_mask_palette(stack_size: int) -> list:
    """
    Palette for a mask of `stack_size` exposures.

    Entries 0 .. stack_size - 2 are evenly spaced grays, the last entry is
    white and belongs to the brightest exposure.
    """
    num_colors = stack_size - 1
    palette = []
    for c in range(num_colors):
        gray = (256 * c) // num_colors
        palette.append((gray, gray, gray))
    palette.append((255, 255, 255))
    return palette


def write_mask_image(mask: np.ndarray, stack_size: int, file_name) -> bool:
    """Save the mask as an indexed image whose pixel values are exposure indexes."""
    logger.debug("Saving mask to %s", file_name)
    mask = np.ascontiguousarray(mask, dtype=np.uint8)
    height, width = mask.shape
    image = Image.frombytes("P", (width, height), mask.tobytes())
    image.putpalette([v for color in build_mask_palette(stack_size) for v in color])
    try:
        image.save(str(file_name))
    except (OSError, ValueError) as ex:
        logger.warning("Cannot save mask image to %s: %s", file_name, ex)
        return False
    return True
