"""
Error types raised while loading and merging bracket sets.
"""

import enum


class FailureKind(enum.Enum):
    """Why an image could not be added to a stack."""

    NOT_FOUND = "file not found"
    FORMAT_MISMATCH = "it has a different format"
    NO_FRAMES = "no frames found"


class DecodeError(RuntimeError):
    """Raised by a decoder when a raw file cannot be opened or unpacked."""


class LoadError(RuntimeError):
    """
    Raised when a bracket set cannot be loaded.

    Attributes:
        index: Position of the offending image (file index, or frame index
            for a multi-frame file)
        kind: FailureKind describing the failure
        file_name: Name of the offending file
    """

    def __init__(self, index: int, kind: FailureKind, file_name: str = ""):
        self.index = index
        self.kind = kind
        self.file_name = file_name
        super().__init__("Error loading %s, %s." % (file_name, kind.value))
