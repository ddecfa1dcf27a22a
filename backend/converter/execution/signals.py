"""
Structured signals extracted from FFmpeg stderr.

FFmpeg writes free-form diagnostics to stderr. Two kinds of line matter:

    Duration: 00:02:00.00, start: 0.000000, bitrate: 1205 kb/s
    frame=  100 fps= 25 q=28.0 size=  512kB time=00:01:00.00 bitrate= 69.9kbits/s speed=2.0x

Each marker is matched independently, anywhere in the line, so one line
may yield several signals. A marker whose value fails to parse is dropped
on its own; the rest of the line (and the stream) carries on.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from .errors import MalformedTimeCode
from .timecode import parse_timecode

logger = logging.getLogger(__name__)


# Duration announcement from the input probe
DURATION_PATTERN = re.compile(r"Duration:\s*(\d{2}:\d{2}:\d{2}\.\d+)")

# Current encode position
TIME_PATTERN = re.compile(r"time=\s*(\d{2}:\d{2}:\d{2}\.\d+)")

# Encoding speed in frames per second
FPS_PATTERN = re.compile(r"fps=\s*(\d+(?:\.\d+)?)")

# Realtime multiplier, e.g. speed=2.1x
SPEED_PATTERN = re.compile(r"speed=\s*(\d+\.?\d*x)")


@dataclass(frozen=True)
class DurationFound:
    """Total media duration announced by the engine."""

    seconds: float


@dataclass(frozen=True)
class PositionUpdate:
    """Current encode position within the media."""

    seconds: float


@dataclass(frozen=True)
class RateUpdate:
    """
    Throughput report. Either field may be absent.

    fps: frames encoded per second
    speed: realtime multiplier token, e.g. "2.0x"
    """

    fps: Optional[float] = None
    speed: Optional[str] = None


Signal = Union[DurationFound, PositionUpdate, RateUpdate]


def _timecode_marker(pattern: re.Pattern, line: str) -> Optional[float]:
    match = pattern.search(line)
    if not match:
        return None
    try:
        return parse_timecode(match.group(1))
    except MalformedTimeCode as e:
        logger.debug(f"Ignoring unparseable marker in log line: {e}")
        return None


def _fps_marker(line: str) -> Optional[float]:
    match = FPS_PATTERN.search(line)
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        logger.debug(f"Ignoring unparseable fps value: {match.group(1)!r}")
        return None


def extract_signals(line: str) -> List[Signal]:
    """
    Extract every recognised signal from one log line.

    Args:
        line: Single line of engine diagnostic output

    Returns:
        Signals in a fixed order (duration, position, rate). Empty when
        nothing in the line is recognised.
    """
    signals: List[Signal] = []

    duration = _timecode_marker(DURATION_PATTERN, line)
    if duration is not None:
        signals.append(DurationFound(duration))

    position = _timecode_marker(TIME_PATTERN, line)
    if position is not None:
        signals.append(PositionUpdate(position))

    fps = _fps_marker(line)
    speed_match = SPEED_PATTERN.search(line)
    speed = speed_match.group(1) if speed_match else None
    if fps is not None or speed is not None:
        signals.append(RateUpdate(fps=fps, speed=speed))

    return signals
