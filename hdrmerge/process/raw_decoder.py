"""
Raw Decoder Module

Decodes raw exposures with LibRaw (through rawpy) and re-renders merged raw
buffers into RGB previews.
"""

import logging
import pathlib

import numpy as np
import rawpy

from ..constants import MAX_FRAMES, PREVIEW_SATURATION
from ..errors import DecodeError
from ..models import RawImage, RawParameters
from ..utils.get_exif import get_capture_interval

logger = logging.getLogger(__name__)


class RawDecoder:
    """Reads raw files and their capture metadata."""

    def open(self, file_name: str) -> bool:
        """Check that LibRaw can open the file."""
        try:
            with rawpy.imread(str(file_name)):
                return True
        except (rawpy.LibRawError, OSError) as ex:
            logger.debug("LibRaw cannot open %s: %s", file_name, ex)
            return False

    def probe_frame_count(self, file_name: str) -> int:
        """Number of raw frames in the file, 0 if it cannot be opened.

        Frames are counted by selecting them one after another until LibRaw
        reports a nonexistent image. Counting stops one past MAX_FRAMES.
        """
        count = 0
        for frame in range(MAX_FRAMES + 1):
            try:
                with rawpy.imread(str(file_name), shot_select=frame):
                    count += 1
            except rawpy.LibRawRequestForNonexistentImageError:
                break
            except (rawpy.LibRawError, OSError) as ex:
                logger.debug("LibRaw cannot open frame %d of %s: %s", frame, file_name, ex)
                break
        return count

    def capture_interval(self, file_name: str):
        return get_capture_interval(pathlib.Path(file_name))

    def decode(self, file_name: str, frame: int = 0):
        """
        Decode one frame of a raw file.

        Args:
            file_name: Raw file to decode
            frame: Frame index inside multi-frame files

        Returns:
            tuple: (RawImage, RawParameters)

        Raises:
            DecodeError: If the file cannot be opened or unpacked
        """
        kwargs = {"shot_select": frame} if frame else {}
        try:
            with rawpy.imread(str(file_name), **kwargs) as raw:
                if raw.raw_type != rawpy.RawType.Flat:
                    raise DecodeError("Unsupported raw layout in %s" % file_name)
                params = self._read_parameters(raw, str(file_name))
                image = RawImage(
                    file_name=str(file_name),
                    data=np.array(raw.raw_image_visible, dtype=np.uint16),
                    colors=np.array(raw.raw_colors_visible, dtype=np.uint8),
                )
        except (rawpy.LibRawError, OSError) as ex:
            raise DecodeError("LibRaw failed to decode %s: %s" % (file_name, ex)) from ex

        interval = self.capture_interval(file_name)
        if interval is not None:
            params.timestamp = interval.end
            params.shutter = (interval.end - interval.start).total_seconds()
        return image, params

    @staticmethod
    def _read_parameters(raw, file_name: str) -> RawParameters:
        sizes = raw.sizes
        blacks = [int(b) for b in raw.black_level_per_channel]
        black = min(blacks) if blacks else 0
        pattern = raw.raw_pattern
        color_desc = raw.color_desc
        return RawParameters(
            file_name=file_name,
            width=sizes.width,
            height=sizes.height,
            raw_width=sizes.raw_width,
            raw_height=sizes.raw_height,
            top_margin=sizes.top_margin,
            left_margin=sizes.left_margin,
            black=black,
            cblack=[b - black for b in blacks],
            max=int(raw.white_level),
            cam_mul=[float(m) for m in raw.camera_whitebalance],
            color_matrix=np.asarray(raw.color_matrix).tolist(),
            raw_pattern=tuple(tuple(int(c) for c in row) for row in pattern) if pattern is not None else (),
            color_desc=color_desc.decode() if isinstance(color_desc, bytes) else str(color_desc),
            flip=sizes.flip,
        )

    def render_preview(self, raw_buffer: np.ndarray, params: RawParameters, exp_shift: float, half_size: bool):
        """
        Interpolate a rescaled raw buffer into an RGB preview.

        The buffer replaces the visible raw area of the source file before
        LibRaw demosaics it.

        Returns:
            numpy.ndarray: 8-bit RGB image, or None if LibRaw cannot render it
        """
        try:
            with rawpy.imread(params.file_name) as raw:
                visible = raw.raw_image_visible
                h = min(raw_buffer.shape[0], visible.shape[0])
                w = min(raw_buffer.shape[1], visible.shape[1])
                visible[:h, :w] = raw_buffer[:h, :w]
                rgb = raw.postprocess(
                    user_sat=PREVIEW_SATURATION,
                    user_black=0,
                    highlight_mode=rawpy.HighlightMode.Blend,
                    demosaic_algorithm=rawpy.DemosaicAlgorithm.AHD,
                    median_filter_passes=0,
                    user_wb=list(params.cam_mul),
                    user_flip=0,
                    exp_shift=float(np.clip(exp_shift, 0.25, 8.0)),
                    exp_preserve_highlights=1.0,
                    half_size=half_size,
                    output_bps=8,
                )
        except (rawpy.LibRawError, OSError) as ex:
            logger.warning("Cannot render preview from %s: %s", params.file_name, ex)
            return None

        # The result may be some pixels bigger than the original
        divisor = 2 if half_size else 1
        return rgb[:params.height // divisor, :params.width // divisor]
