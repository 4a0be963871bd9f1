"""
Exposure Stack Module

Holds the decoded exposures of one bracket set ordered from darkest to
brightest, and provides the whole-stack operations of the merge:
- alignment with OpenCV's AlignMTB
- cropping to the area covered by every exposure
- relative exposure (response) estimation
- mask generation and composition
"""

import bisect
import logging

import cv2
import numpy as np

from ..models import RawImage, RawParameters

logger = logging.getLogger(__name__)

# Fraction of the white level above which a sample counts as saturated
SATURATION_MARGIN = 0.99


class ExposureStack:
    """Ordered exposures of one bracket set, darkest first."""

    def __init__(self):
        self.images = []
        self._keys = []
        self.flip = 0
        self.saturation_threshold = 0
        self.exposures = []
        self.offsets = []
        self.mask = None
        self.cropped = False

    def add_image(self, image: RawImage) -> int:
        """Insert an image in brightness order and return its position."""
        key = image.brightness
        pos = bisect.bisect_right(self._keys, key)
        self._keys.insert(pos, key)
        self.images.insert(pos, image)
        return pos

    def size(self) -> int:
        return len(self.images)

    def clear(self):
        self.images.clear()
        self._keys.clear()
        self.exposures = []
        self.offsets = []
        self.mask = None
        self.cropped = False

    def get_image(self, i: int) -> RawImage:
        return self.images[i]

    @property
    def width(self) -> int:
        return self.images[0].width if self.images else 0

    @property
    def height(self) -> int:
        return self.images[0].height if self.images else 0

    def set_flip(self, flip: int):
        self.flip = flip

    def is_cropped(self) -> bool:
        return self.cropped

    def calculate_saturation_level(self, params: RawParameters, use_custom_wl: bool = False):
        """Pick the sample value above which pixels are treated as clipped."""
        if use_custom_wl or not self.images:
            white = params.max
        else:
            white = min(params.max, self.images[-1].max_value) or params.max
        self.saturation_threshold = int(params.black + (white - params.black) * SATURATION_MARGIN)
        logger.debug("Using saturation threshold %d", self.saturation_threshold)

    def _preview_8bit(self, image: RawImage) -> np.ndarray:
        scale = 255.0 / max(self.saturation_threshold, 1)
        return np.clip(image.data * scale, 0, 255).astype(np.uint8)

    def align(self):
        """Shift every exposure onto the middle one using median threshold bitmaps."""
        if len(self.images) < 2:
            return
        align_mtb = cv2.createAlignMTB()
        reference = len(self.images) // 2
        ref_8bit = self._preview_8bit(self.images[reference])
        self.offsets = [(0, 0)] * len(self.images)
        for i, image in enumerate(self.images):
            if i == reference:
                continue
            dx, dy = align_mtb.calculateShift(ref_8bit, self._preview_8bit(image))
            # Even shifts keep the CFA pattern in place
            dx, dy = int(round(dx / 2.0)) * 2, int(round(dy / 2.0)) * 2
            if dx or dy:
                logger.debug("Image %d displaced by (%d, %d)", i, dx, dy)
                image.data = np.roll(image.data, (dy, dx), axis=(0, 1))
            self.offsets[i] = (dx, dy)

    def crop(self):
        """Crop all exposures to the area that every aligned exposure covers."""
        offsets = self.offsets
        if not offsets or not self.images:
            return
        left = max(max(dx for dx, _ in offsets), 0)
        top = max(max(dy for _, dy in offsets), 0)
        right = self.width + min(min(dx for dx, _ in offsets), 0)
        bottom = self.height + min(min(dy for _, dy in offsets), 0)
        if (left, top, right, bottom) == (0, 0, self.width, self.height):
            return
        for image in self.images:
            image.data = image.data[top:bottom, left:right]
            image.colors = image.colors[top:bottom, left:right]
        self.cropped = True
        logger.debug("Cropped to %dx%d", self.width, self.height)

    def compute_response_functions(self):
        """Estimate each exposure's brightness relative to the darkest one."""
        self.exposures = [1.0]
        for darker, brighter in zip(self.images, self.images[1:]):
            usable = (brighter.data < self.saturation_threshold) & (darker.data > 0)
            a = darker.data[usable].astype(np.float64)
            b = brighter.data[usable].astype(np.float64)
            ratio = float(np.dot(a, b) / np.dot(a, a)) if a.size and np.dot(a, a) > 0 else 1.0
            self.exposures.append(self.exposures[-1] * max(ratio, 1.0))

    def get_max_exposure(self) -> float:
        return self.exposures[-1] / self.exposures[0] if self.exposures else 1.0

    def generate_mask(self):
        """For each pixel, the brightest exposure that is not saturated there."""
        self.mask = np.zeros((self.height, self.width), dtype=np.uint8)
        for i, image in enumerate(self.images):
            self.mask[image.data < self.saturation_threshold] = i

    def get_mask(self) -> np.ndarray:
        return self.mask

    def compose(self, params: RawParameters, feather_radius: int) -> np.ndarray:
        """
        Blend the exposures into one raw-scale float image.

        Every exposure is scaled to the brightest one; mask transitions are
        softened with a Gaussian blur of `feather_radius` pixels.
        """
        if self.mask is None:
            self.generate_mask()
        if not self.exposures:
            self.compute_response_functions()
        top_exposure = self.exposures[-1]
        result = np.zeros((self.height, self.width), dtype=np.float32)
        total = np.zeros_like(result)
        for i, image in enumerate(self.images):
            weight = (self.mask == i).astype(np.float32)
            if feather_radius > 0:
                weight = cv2.GaussianBlur(weight, (0, 0), feather_radius)
            black = params.black_at(image.colors)
            linear = (image.data.astype(np.float32) - black) * (top_exposure / self.exposures[i]) + black
            result += weight * linear
            total += weight
        np.divide(result, total, out=result, where=total > 0)
        return result
