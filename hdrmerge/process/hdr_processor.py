"""
HDR Processor Module

Contains core processing logic for HDR raw merging:
- load: Build an exposure stack from the raw files of one bracketed set
- save: Compose the stack, render its preview and write the result
- write_mask_image: Export the exposure mask of a merged set
"""

import copy
import logging
import pathlib

import numpy as np

from ..constants import MAX_FRAMES, PREVIEW_SATURATION
from ..errors import DecodeError, FailureKind, LoadError
from ..models import LoadOptions, MergeSet, RawParameters, SaveOptions
from .encoder import TiffEncoder, write_mask_image
from .exposure_stack import ExposureStack
from .filename_template import build_output_file_name, ensure_extension, replace_arguments
from .raw_decoder import RawDecoder

logger = logging.getLogger(__name__)


def rescale_raw_buffer(raster: np.ndarray, colors: np.ndarray, params: RawParameters) -> np.ndarray:
    """
    Map a composed raw raster onto the 0..65535 range expected by the preview render.

    Each sample has its CFA colour's black level removed and is scaled so
    that the white level lands on the preview saturation.
    """
    scale = PREVIEW_SATURATION / float(params.max - params.black)
    values = (raster - params.black_at(colors)) * scale
    return np.clip(values, 0, PREVIEW_SATURATION).astype(np.uint16)


class HDRProcessor:
    """Handles loading and saving of bracketed raw sets."""

    def __init__(
        self,
        decoder=None,
        stack_factory=ExposureStack,
        encoder=None,
        mask_writer=write_mask_image,
        exif_transfer=None,
        progress_callback=None,
        log_callback=None,
    ):
        """
        Initialize the HDR processor.

        Args:
            decoder: Raw decoder, a RawDecoder by default
            stack_factory: Callable returning an empty exposure stack
            encoder: Output writer, a TiffEncoder by default
            mask_writer: Callable (mask, stack_size, file_name) saving a mask
            exif_transfer: Optional ExifTransfer copying metadata to outputs
            progress_callback: Optional callback (percent, message, arg)
            log_callback: Optional callback for log messages
        """
        self.decoder = decoder or RawDecoder()
        self.stack_factory = stack_factory
        self.encoder = encoder or TiffEncoder()
        self.mask_writer = mask_writer
        self.exif_transfer = exif_transfer
        self.progress_callback = progress_callback
        self.log_callback = log_callback

    def _log(self, message):
        """Send log message to callback or the module logger."""
        if self.log_callback:
            self.log_callback(message)
        else:
            logger.info(message)

    def _advance(self, percent: int, message: str = None, arg: str = None):
        if self.progress_callback:
            self.progress_callback(percent, message, arg)

    def _add_image(self, merge_set: MergeSet, reference, index: int, name: str, frame: int):
        """Decode one exposure and insert it, keeping parameters aligned with the stack."""
        try:
            image, params = self.decoder.decode(name, frame)
        except DecodeError as ex:
            logger.debug("%s", ex)
            raise LoadError(index, FailureKind.NOT_FOUND, name) from ex

        if reference is not None and not params.is_same_format(reference):
            raise LoadError(index, FailureKind.FORMAT_MISMATCH, name)

        pos = merge_set.stack.add_image(image)
        merge_set.raw_parameters.insert(pos, params)
        return params

    def load(self, options: LoadOptions) -> MergeSet:
        """
        Load the raw files of one set and prepare the stack for composition.

        A single input file is probed for frames; multi-frame files (Fuji EXR,
        Pentax HDR, ...) are merged frame by frame.

        Returns:
            MergeSet: Stack and raw parameters, ordered from darkest to brightest

        Raises:
            LoadError: If a file cannot be decoded, does not match the format
                of the first image, or a single file has no usable frames.
                Nothing of the set is kept.
        """
        file_names = [str(name) for name in options.file_names]
        if not file_names:
            raise ValueError("No input files given")

        if len(file_names) == 1:
            name = file_names[0]
            frame_count = self.decoder.probe_frame_count(name)
            logger.debug("Number of frames: %d", frame_count)
            if not 0 < frame_count <= MAX_FRAMES:
                raise LoadError(0, FailureKind.NO_FRAMES, name)
            sources = [(name, frame) for frame in range(frame_count)]
        else:
            sources = [(name, 0) for name in file_names]

        merge_set = MergeSet(stack=self.stack_factory())
        step = 100 // (len(sources) + 1)
        p = 0
        reference = None
        try:
            for index, (name, frame) in enumerate(sources):
                self._advance(p, "Loading %s", name)
                p += step
                params = self._add_image(merge_set, reference, index, name, frame)
                if reference is None:
                    reference = params
        except LoadError:
            merge_set.clear()
            raise

        self._advance(p, "Processing stack")
        self._process_stack(merge_set, reference, options)
        self._advance(100, "Done loading!")
        return merge_set

    def _process_stack(self, merge_set: MergeSet, params: RawParameters, options: LoadOptions):
        stack = merge_set.stack
        stack.set_flip(params.flip)
        if options.use_custom_wl:
            # Use custom white level, but only if it's not greater than the decoder's
            params.max = min(params.max, options.custom_wl)
        stack.calculate_saturation_level(params, options.use_custom_wl)
        if options.align and params.can_align():
            stack.align()
            if options.crop:
                stack.crop()
        stack.compute_response_functions()
        stack.generate_mask()

    def output_file_name(self, merge_set: MergeSet, pattern: str = "") -> str:
        """Resolve `pattern` for a loaded set, or build the default output name."""
        extension = self.encoder.extension
        if not pattern:
            return build_output_file_name(merge_set.file_names, extension)
        return ensure_extension(replace_arguments(pattern, merge_set.file_names), extension)

    def render_preview(self, composed: np.ndarray, colors: np.ndarray, params: RawParameters, exp_shift: float, half_size: bool):
        raw_buffer = rescale_raw_buffer(composed, colors, params)
        return self.decoder.render_preview(raw_buffer, params, exp_shift, half_size)

    def save(self, merge_set: MergeSet, options: SaveOptions, set_id: int = 0) -> pathlib.Path:
        """
        Compose a loaded set and write it to `options.file_name`.

        Also writes the mask when `options.save_mask` is set; the mask name may
        reference the output with %of and %od.
        """
        stack = merge_set.stack
        cropped = " cropped" if stack.is_cropped() else ""
        self._log(
            "Writing %s, %d-bit, %dx%d%s"
            % (options.file_name, options.bps, stack.width, stack.height, cropped)
        )

        self._advance(0, "Rendering image")
        params = copy.deepcopy(merge_set.raw_parameters[-1])
        params.width = stack.width
        params.height = stack.height
        brightest = stack.get_image(stack.size() - 1)
        params.adjust_white(brightest)
        composed = stack.compose(params, options.feather_radius)

        self._advance(33, "Rendering preview")
        preview = None
        if options.preview_size > 0:
            preview = self.render_preview(
                composed, brightest.colors, params, stack.get_max_exposure(), options.preview_size <= 1
            )

        self._advance(66, "Writing output")
        output = self.encoder.write(composed, params, options.file_name, options.bps, preview)
        self._advance(100, "Done writing!")

        if self.exif_transfer is not None:
            self.exif_transfer.transfer(sorted(merge_set.file_names)[0], options.file_name, set_id)

        if options.save_mask:
            name = replace_arguments(options.mask_file_name, merge_set.file_names, options.file_name)
            self.write_mask_image(merge_set, name)
        return output

    def write_mask_image(self, merge_set: MergeSet, mask_file) -> bool:
        stack = merge_set.stack
        return self.mask_writer(stack.get_mask(), stack.size(), mask_file)
