"""
Bitrate presets and transcode options.
"""

from .models import (
    ConversionPreset,
    InvalidBitrateError,
    TranscodeOptions,
    build_transcode_args,
    describe_options,
    normalize_bitrate,
)
from .registry import BUILTIN_PRESETS, PresetRegistry

__all__ = [
    "ConversionPreset",
    "InvalidBitrateError",
    "TranscodeOptions",
    "build_transcode_args",
    "describe_options",
    "normalize_bitrate",
    "BUILTIN_PRESETS",
    "PresetRegistry",
]
