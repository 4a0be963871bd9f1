"""Shared fakes for the raw decoder and the output encoder."""

import copy
from pathlib import Path

import numpy as np
import pytest

from hdrmerge.errors import DecodeError
from hdrmerge.models import RawImage, RawParameters

BAYER = ((0, 1), (3, 2))


def make_raw(name, level, shape=(4, 6), raw_pattern=BAYER, white=4095, black=0, **params):
    """A uniform exposure with `level` in every sample."""
    height, width = shape
    rows = len(raw_pattern) or 1
    cols = len(raw_pattern[0]) if raw_pattern else 1
    pattern = np.array(raw_pattern or ((0,),), dtype=np.uint8)
    colors = np.tile(pattern, (height // rows + 1, width // cols + 1))[:height, :width]
    image = RawImage(file_name=name, data=np.full(shape, level, dtype=np.uint16), colors=colors)
    fields = dict(
        file_name=name,
        width=width,
        height=height,
        raw_width=width + 8,
        raw_height=height + 4,
        top_margin=2,
        left_margin=4,
        black=black,
        max=white,
        raw_pattern=raw_pattern,
        color_desc="RGBG",
    )
    fields.update(params)
    return image, RawParameters(**fields)


class FakeDecoder:
    """Serves prepared exposures by file name, or by (file name, frame)."""

    def __init__(self, images=None, frame_counts=None, intervals=None):
        self.images = images or {}
        self.frame_counts = frame_counts or {}
        self.intervals = intervals or {}
        self.decoded = []
        self.previews = []

    def add(self, name, level, **kwargs):
        self.images[name] = make_raw(name, level, **kwargs)

    def open(self, file_name):
        return file_name in self.images

    def probe_frame_count(self, file_name):
        return self.frame_counts.get(file_name, 1 if file_name in self.images else 0)

    def capture_interval(self, file_name):
        return self.intervals.get(file_name)

    def decode(self, file_name, frame=0):
        self.decoded.append((file_name, frame))
        entry = self.images.get((file_name, frame)) or self.images.get(file_name)
        if entry is None:
            raise DecodeError("cannot decode %s" % file_name)
        return copy.deepcopy(entry)

    def render_preview(self, raw_buffer, params, exp_shift, half_size):
        self.previews.append((raw_buffer, exp_shift, half_size))
        return np.zeros((2, 2, 3), dtype=np.uint8)


class FakeEncoder:
    """Records writes instead of touching the disk."""

    extension = ".tif"

    def __init__(self, error=None):
        self.writes = []
        self.error = error

    def write(self, raster, params, file_name, bps=16, preview=None):
        if self.error is not None:
            raise self.error
        self.writes.append({
            "raster": raster,
            "params": params,
            "file_name": file_name,
            "bps": bps,
            "preview": preview,
        })
        return Path(file_name)


@pytest.fixture
def decoder():
    return FakeDecoder()


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture
def fake_encoder_class():
    return FakeEncoder
