"""
FFmpeg time-code parsing.

FFmpeg reports both the media duration and the encode position as
HH:MM:SS.ff, e.g. `Duration: 00:02:00.00` and `time=00:01:00.00`.
"""

import re

from .errors import MalformedTimeCode


# Two-digit hours/minutes/seconds plus a fractional part
TIMECODE_PATTERN = re.compile(r"^(\d{2}):(\d{2}):(\d{2}\.\d+)$")


def parse_timecode(text: str) -> float:
    """
    Convert an HH:MM:SS.ff string to seconds.

    Args:
        text: Time code, e.g. "00:01:30.50"

    Returns:
        Duration in seconds, e.g. 90.5

    Raises:
        MalformedTimeCode: If text does not match HH:MM:SS.ff
    """
    if not isinstance(text, str):
        raise MalformedTimeCode(repr(text))

    match = TIMECODE_PATTERN.match(text.strip())
    if not match:
        raise MalformedTimeCode(text)

    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = float(match.group(3))

    return hours * 3600 + minutes * 60 + seconds
