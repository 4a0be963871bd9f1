"""
HDR Merge

Merges bracketed raw exposures into a single high dynamic range image.
"""

from .constants import VERSION

__version__ = VERSION
