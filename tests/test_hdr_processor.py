"""Tests for loading and saving bracketed sets."""

from unittest.mock import MagicMock

import numpy as np
import pytest

from hdrmerge.errors import FailureKind, LoadError
from hdrmerge.models import LoadOptions, SaveOptions
from hdrmerge.process.exposure_stack import ExposureStack
from hdrmerge.process.hdr_processor import HDRProcessor, rescale_raw_buffer

from conftest import make_raw

XTRANS = tuple(tuple((r + c) % 3 for c in range(6)) for r in range(6))


class RecordingStack(ExposureStack):
    """ExposureStack that records the whole-stack operations applied to it."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def set_flip(self, flip):
        self.calls.append("flip")
        super().set_flip(flip)

    def calculate_saturation_level(self, params, use_custom_wl=False):
        self.calls.append("saturation")
        super().calculate_saturation_level(params, use_custom_wl)

    def align(self):
        self.calls.append("align")

    def crop(self):
        self.calls.append("crop")
        super().crop()

    def compute_response_functions(self):
        self.calls.append("response")
        super().compute_response_functions()

    def generate_mask(self):
        self.calls.append("mask")
        super().generate_mask()


@pytest.fixture
def stacks():
    return []


@pytest.fixture
def processor(decoder, encoder, stacks):
    def factory():
        stacks.append(RecordingStack())
        return stacks[-1]

    return HDRProcessor(decoder=decoder, stack_factory=factory, encoder=encoder)


def test_stack_and_parameters_stay_aligned(processor, decoder):
    decoder.add("/a/IMG_002.CR2", 2000)
    decoder.add("/a/IMG_001.CR2", 500)
    decoder.add("/a/IMG_003.CR2", 3500)
    decoder.add("/a/IMG_004.CR2", 1000)

    merge_set = processor.load(LoadOptions(file_names=["/a/IMG_002.CR2", "/a/IMG_001.CR2", "/a/IMG_003.CR2", "/a/IMG_004.CR2"]))

    assert merge_set.size() == merge_set.stack.size() == 4
    for i, params in enumerate(merge_set.raw_parameters):
        assert params.file_name == merge_set.stack.get_image(i).file_name
    assert merge_set.file_names == ["/a/IMG_001.CR2", "/a/IMG_004.CR2", "/a/IMG_002.CR2", "/a/IMG_003.CR2"]


def test_format_mismatch_rolls_back(processor, decoder, stacks):
    decoder.add("A.CR2", 500)
    decoder.add("B.CR2", 1000)
    decoder.add("C.CR2", 2000, raw_width=1000)

    with pytest.raises(LoadError) as info:
        processor.load(LoadOptions(file_names=["A.CR2", "B.CR2", "C.CR2"]))

    assert info.value.index == 2
    assert info.value.kind is FailureKind.FORMAT_MISMATCH
    assert str(info.value) == "Error loading C.CR2, it has a different format."
    assert stacks[0].size() == 0


def test_missing_file_is_not_found(processor, decoder, stacks):
    decoder.add("A.CR2", 500)

    with pytest.raises(LoadError) as info:
        processor.load(LoadOptions(file_names=["A.CR2", "missing.CR2", "A.CR2"]))

    assert info.value.index == 1
    assert info.value.kind is FailureKind.NOT_FOUND
    assert str(info.value) == "Error loading missing.CR2, file not found."
    assert stacks[0].size() == 0
    assert decoder.decoded == [("A.CR2", 0), ("missing.CR2", 0)]


def test_load_without_files(processor):
    with pytest.raises(ValueError):
        processor.load(LoadOptions())


@pytest.mark.parametrize("frames", [0, 5])
def test_unsupported_frame_count(processor, decoder, frames):
    decoder.add("EXR.RAF", 500)
    decoder.frame_counts["EXR.RAF"] = frames

    with pytest.raises(LoadError) as info:
        processor.load(LoadOptions(file_names=["EXR.RAF"]))

    assert info.value.kind is FailureKind.NO_FRAMES
    assert info.value.index == 0
    assert decoder.decoded == []


def test_multi_frame_file(processor, decoder):
    for frame, level in enumerate([3000, 300, 1200]):
        decoder.images[("HDR.PEF", frame)] = make_raw("HDR.PEF", level)
    decoder.frame_counts["HDR.PEF"] = 3

    merge_set = processor.load(LoadOptions(file_names=["HDR.PEF"], align=False))

    assert decoder.decoded == [("HDR.PEF", 0), ("HDR.PEF", 1), ("HDR.PEF", 2)]
    assert [merge_set.stack.get_image(i).max_value for i in range(3)] == [300, 1200, 3000]


def test_single_frame_file(processor, decoder):
    decoder.add("one.DNG", 800)
    merge_set = processor.load(LoadOptions(file_names=["one.DNG"]))
    assert merge_set.size() == 1
    assert decoder.decoded == [("one.DNG", 0)]


@pytest.mark.parametrize("custom, expected", [(3000, 3000), (5000, 4095)])
def test_custom_white_level_only_lowers(processor, decoder, custom, expected):
    decoder.add("A.CR2", 500)
    decoder.add("B.CR2", 1000)

    options = LoadOptions(file_names=["A.CR2", "B.CR2"], use_custom_wl=True, custom_wl=custom)
    merge_set = processor.load(options)

    assert merge_set.raw_parameters[0].max == expected


def test_stack_operation_order(processor, decoder, stacks):
    decoder.add("A.CR2", 500)
    decoder.add("B.CR2", 1000)

    processor.load(LoadOptions(file_names=["A.CR2", "B.CR2"]))

    assert stacks[0].calls == ["flip", "saturation", "align", "crop", "response", "mask"]


def test_no_crop_without_alignment(processor, decoder, stacks):
    decoder.add("A.CR2", 500)
    decoder.add("B.CR2", 1000)

    processor.load(LoadOptions(file_names=["A.CR2", "B.CR2"], align=False))

    assert stacks[0].calls == ["flip", "saturation", "response", "mask"]


def test_non_bayer_layout_is_not_aligned(processor, decoder, stacks):
    decoder.add("A.RAF", 500, shape=(6, 6), raw_pattern=XTRANS)
    decoder.add("B.RAF", 1000, shape=(6, 6), raw_pattern=XTRANS)

    processor.load(LoadOptions(file_names=["A.RAF", "B.RAF"]))

    assert "align" not in stacks[0].calls


def test_load_progress(decoder, encoder):
    decoder.add("a", 100)
    decoder.add("b", 200)
    decoder.add("c", 300)
    progress = []
    processor = HDRProcessor(
        decoder=decoder,
        encoder=encoder,
        progress_callback=lambda *args: progress.append(args),
    )

    processor.load(LoadOptions(file_names=["a", "b", "c"], align=False))

    assert progress == [
        (0, "Loading %s", "a"),
        (25, "Loading %s", "b"),
        (50, "Loading %s", "c"),
        (75, "Processing stack", None),
        (100, "Done loading!", None),
    ]


@pytest.fixture
def loaded(decoder, encoder):
    decoder.add("/a/IMG_002.CR2", 2000)
    decoder.add("/a/IMG_001.CR2", 500)
    progress = []
    mask_writer = MagicMock(return_value=True)
    exif_transfer = MagicMock()
    processor = HDRProcessor(
        decoder=decoder,
        encoder=encoder,
        mask_writer=mask_writer,
        exif_transfer=exif_transfer,
        progress_callback=lambda *args: progress.append(args),
    )
    options = LoadOptions(
        file_names=["/a/IMG_002.CR2", "/a/IMG_001.CR2"], align=False, use_custom_wl=True, custom_wl=4000
    )
    merge_set = processor.load(options)
    progress.clear()
    return processor, merge_set, progress


def test_save_writes_composed_image(loaded, encoder):
    processor, merge_set, progress = loaded

    processor.save(merge_set, SaveOptions(file_name="/out/merged.tif", preview_size=0), set_id=4)

    assert len(encoder.writes) == 1
    write = encoder.writes[0]
    assert write["file_name"] == "/out/merged.tif"
    assert write["bps"] == 16
    assert write["preview"] is None
    assert np.allclose(write["raster"], 2000)
    assert progress == [
        (0, "Rendering image", None),
        (33, "Rendering preview", None),
        (66, "Writing output", None),
        (100, "Done writing!", None),
    ]
    processor.exif_transfer.transfer.assert_called_once_with("/a/IMG_001.CR2", "/out/merged.tif", 4)
    processor.mask_writer.assert_not_called()


def test_save_uses_brightest_parameters(loaded, encoder):
    processor, merge_set, _ = loaded

    processor.save(merge_set, SaveOptions(file_name="/out/merged.tif", preview_size=0))

    params = encoder.writes[0]["params"]
    assert params.file_name == "/a/IMG_002.CR2"
    # White level lowered to the brightest sample, on a copy only
    assert params.max == 2000
    assert merge_set.raw_parameters[-1].max == 4000


@pytest.mark.parametrize("size, half", [(1, True), (2, False)])
def test_save_renders_preview(loaded, decoder, encoder, size, half):
    processor, merge_set, _ = loaded

    processor.save(merge_set, SaveOptions(file_name="/out/merged.tif", preview_size=size))

    assert len(decoder.previews) == 1
    raw_buffer, exp_shift, half_size = decoder.previews[0]
    assert half_size is half
    assert exp_shift == pytest.approx(4.0)
    assert raw_buffer.dtype == np.uint16
    assert encoder.writes[0]["preview"] is not None


def test_save_mask_resolves_output_tokens(loaded):
    processor, merge_set, _ = loaded

    options = SaveOptions(
        file_name="/out/merged.tif",
        preview_size=0,
        mask_file_name="%od/%iF[0]_mask.png",
        save_mask=True,
    )
    processor.save(merge_set, options)

    mask, size, name = processor.mask_writer.call_args[0]
    assert name == "/out/IMG_001_mask.png"
    assert size == 2
    assert mask.shape == (4, 6)


def test_output_file_name(loaded):
    processor, merge_set, _ = loaded
    assert processor.output_file_name(merge_set) == "/a/IMG_001-002.tif"
    assert processor.output_file_name(merge_set, "%id[0]/hdr_%in[0]") == "/a/hdr_001.tif"
    assert processor.output_file_name(merge_set, "/x/out.tif") == "/x/out.tif"


def test_rescale_raw_buffer():
    _, params = make_raw("a", 0, black=100, white=1100, cblack=[0, 50, 0, 0])
    raster = np.array([[100.0, 600.0], [1200.0, 2000.0]], dtype=np.float32)
    colors = np.array([[0, 1], [0, 0]], dtype=np.uint8)

    result = rescale_raw_buffer(raster, colors, params)

    assert result.dtype == np.uint16
    assert result[0, 0] == 0
    assert result[0, 1] == int(450 * 65.535)
    assert result[1, 0] == 65535
    assert result[1, 1] == 65535
