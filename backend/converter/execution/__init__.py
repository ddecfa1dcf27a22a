"""
Execution layer: engine contract, FFmpeg engine, log parsing and progress.

Leaf-first:
- timecode: HH:MM:SS.ff → seconds
- signals: one stderr line → structured signals
- progress: signals → clamped completion ratio
- base / ffmpeg: the engine collaborator and its FFmpeg implementation
"""

from .errors import (
    ConverterError,
    MalformedTimeCode,
    EngineLoadTimeout,
    EngineLoadError,
    EngineError,
    CleanupFailure,
)
from .timecode import parse_timecode
from .signals import (
    DurationFound,
    PositionUpdate,
    RateUpdate,
    Signal,
    extract_signals,
)
from .progress import (
    ProgressSample,
    ProgressEstimator,
)
from .base import (
    EngineHandle,
    EngineLoader,
)
from .ffmpeg import FFmpegHandle, FFmpegLoader, find_ffmpeg

__all__ = [
    # Errors
    "ConverterError",
    "MalformedTimeCode",
    "EngineLoadTimeout",
    "EngineLoadError",
    "EngineError",
    "CleanupFailure",
    # Parsing
    "parse_timecode",
    "DurationFound",
    "PositionUpdate",
    "RateUpdate",
    "Signal",
    "extract_signals",
    # Progress
    "ProgressSample",
    "ProgressEstimator",
    # Engine contract
    "EngineHandle",
    "EngineLoader",
    # FFmpeg
    "FFmpegHandle",
    "FFmpegLoader",
    "find_ffmpeg",
]
