"""Core data types shared by the loading, grouping and saving stages."""

import dataclasses
from datetime import datetime, timedelta
from typing import Any, List, Optional, Tuple

import numpy as np

from .constants import PREVIEW_SIZES
from .errors import FailureKind


@dataclasses.dataclass
class RawParameters:
    """Metadata decoded from one raw exposure."""

    file_name: str
    width: int = 0
    height: int = 0
    raw_width: int = 0
    raw_height: int = 0
    top_margin: int = 0
    left_margin: int = 0
    black: int = 0
    # Per CFA colour black offsets, added on top of `black`
    cblack: List[int] = dataclasses.field(default_factory=lambda: [0, 0, 0, 0])
    max: int = 0
    cam_mul: List[float] = dataclasses.field(default_factory=lambda: [1.0, 1.0, 1.0, 1.0])
    color_matrix: List[List[float]] = dataclasses.field(default_factory=list)
    raw_pattern: Tuple[Tuple[int, ...], ...] = ()
    color_desc: str = ""
    flip: int = 0
    timestamp: Optional[datetime] = None
    shutter: float = 0.0

    def format_signature(self) -> tuple:
        """Sensor geometry and CFA layout. Two images merge only if these match."""
        return (
            self.raw_width,
            self.raw_height,
            self.width,
            self.height,
            self.top_margin,
            self.left_margin,
            self.raw_pattern,
            self.color_desc,
        )

    def is_same_format(self, other: "RawParameters") -> bool:
        return self.format_signature() == other.format_signature()

    def can_align(self) -> bool:
        """Only 2x2 Bayer layouts survive the even-pixel shifts used for alignment."""
        return len(self.raw_pattern) == 2 and all(len(row) == 2 for row in self.raw_pattern)

    def black_at(self, colors: np.ndarray) -> np.ndarray:
        """Per-pixel black level for a map of CFA colour indexes."""
        cblack = np.asarray(self.cblack, dtype=np.float32)
        return self.black + cblack[np.clip(colors, 0, len(cblack) - 1)]

    def adjust_white(self, image: "RawImage"):
        """Lower the white level to the brightest sample of `image` when the decoder overestimates it."""
        brightest = image.max_value
        if self.black < brightest < self.max:
            self.max = brightest


@dataclasses.dataclass
class RawImage:
    """Visible raw samples of one exposure together with its CFA colour map."""

    file_name: str
    data: np.ndarray
    colors: np.ndarray

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def max_value(self) -> int:
        return int(self.data.max()) if self.data.size else 0

    @property
    def brightness(self) -> float:
        return float(self.data.mean()) if self.data.size else 0.0


@dataclasses.dataclass(order=True, frozen=True)
class CaptureInterval:
    """Estimated time window during which an exposure was taken."""

    start: datetime
    end: datetime

    @classmethod
    def from_capture(cls, timestamp: datetime, shutter: float) -> "CaptureInterval":
        """The timestamp marks the end of the exposure."""
        return cls(start=timestamp - timedelta(seconds=shutter), end=timestamp)

    def difference(self, other: "CaptureInterval") -> float:
        """Seconds between two intervals, 0 if they overlap."""
        if self.end < other.start:
            return (other.start - self.end).total_seconds()
        if other.end < self.start:
            return (self.start - other.end).total_seconds()
        return 0.0


@dataclasses.dataclass
class LoadOptions:
    """Options controlling how one bracket set is loaded."""

    file_names: List[str] = dataclasses.field(default_factory=list)
    align: bool = True
    crop: bool = True
    use_custom_wl: bool = False
    custom_wl: int = 16383
    batch: bool = False
    batch_gap: float = 2.0
    with_singles: bool = False

    def with_files(self, file_names: List[str]) -> "LoadOptions":
        return dataclasses.replace(self, file_names=list(file_names))


@dataclasses.dataclass
class SaveOptions:
    """Options controlling how a merged set is written."""

    file_name: str = ""
    bps: int = 16
    feather_radius: int = 3
    preview_size: int = PREVIEW_SIZES["full"]
    mask_file_name: str = ""
    save_mask: bool = False


@dataclasses.dataclass
class MergeSet:
    """
    Per-set pipeline state: the exposure stack and its index-aligned raw parameters.

    raw_parameters[i] always describes the same photograph as stack.get_image(i).
    """

    stack: Any
    raw_parameters: List[RawParameters] = dataclasses.field(default_factory=list)

    def size(self) -> int:
        return len(self.raw_parameters)

    @property
    def file_names(self) -> List[str]:
        return [p.file_name for p in self.raw_parameters]

    def clear(self):
        self.stack.clear()
        self.raw_parameters.clear()


@dataclasses.dataclass
class SetOutcome:
    """Result of processing one bracket set in a batch."""

    file_names: List[str]
    output_file: Optional[str] = None
    failed_index: Optional[int] = None
    failure: Optional[FailureKind] = None
    error: str = ""
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.skipped or (not self.error and self.failure is None)
