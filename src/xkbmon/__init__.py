"""xkbmon - keyboard layout monitor printing short layout labels."""

__version__ = "0.1.0"

from .label import SHORT_LABEL_CAPACITY, ShortLabel, build_short_label
from .tracker import MAX_GROUPS, LayoutTracker
from .utf8 import DecodeStatus, Utf8Decoding, decode_utf8

__all__ = [
    "DecodeStatus",
    "LayoutTracker",
    "MAX_GROUPS",
    "SHORT_LABEL_CAPACITY",
    "ShortLabel",
    "Utf8Decoding",
    "build_short_label",
    "decode_utf8",
]
