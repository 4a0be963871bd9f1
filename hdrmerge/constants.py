VERSION = "0.2.0"

# Multi-frame raw files (Fuji EXR, Pentax HDR, ...) carry at most this many frames
MAX_FRAMES = 4

VALID_BPS = (16, 24, 32)

PREVIEW_SIZES = {"none": 0, "half": 1, "full": 2}

# Saturation used when rescaling the composed raw buffer for the preview render
PREVIEW_SATURATION = 65535

DEFAULT_PATTERN_SINGLE = "%id[-1]/%iF[0]"
DEFAULT_PATTERN_MULTI = "%id[-1]/%iF[0]-%in[-1]"
