"""
Conversion presets and per-run transcode options.

All models use Pydantic for validation.
"""

import re
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator


# Plain number (kbps), or number with k / M suffix
BITRATE_PATTERN = re.compile(r"^(\d+)([kKmM]?)$")


class InvalidBitrateError(ValueError):
    """Raised when a bitrate value cannot be turned into an FFmpeg -b:v argument."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(
            f"Invalid bitrate: {value!r}. Use kbps as a number (e.g. 8000) "
            f"or an FFmpeg rate such as 8000k or 8M."
        )


def normalize_bitrate(value: Union[str, int]) -> str:
    """
    Normalise a user-supplied bitrate to an FFmpeg rate string.

    A bare number is taken as kbps, matching the custom bitrate field.

    Examples:
        "8000"  → "8000k"
        8000    → "8000k"
        "8000K" → "8000k"
        "8m"    → "8M"

    Raises:
        InvalidBitrateError: If the value is empty, zero or not numeric
    """
    if isinstance(value, bool):
        raise InvalidBitrateError(value)

    text = str(value).strip()
    match = BITRATE_PATTERN.match(text)
    if not match:
        raise InvalidBitrateError(value)

    amount, unit = match.group(1), match.group(2)
    if int(amount) == 0:
        raise InvalidBitrateError(value)

    if unit in ("m", "M"):
        return f"{int(amount)}M"
    return f"{int(amount)}k"


class ConversionPreset(BaseModel):
    """A named target bitrate offered to the operator."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    bitrate: str
    description: str = ""

    @field_validator("bitrate")
    @classmethod
    def _validate_bitrate(cls, value: str) -> str:
        return normalize_bitrate(value)


class TranscodeOptions(BaseModel):
    """
    Options for a single run.

    These become the engine argument list via build_transcode_args().
    """

    model_config = ConfigDict(extra="forbid")

    bitrate: str
    audio_codec: str = "copy"

    @field_validator("bitrate", mode="before")
    @classmethod
    def _validate_bitrate(cls, value: Union[str, int]) -> str:
        return normalize_bitrate(value)

    @field_validator("audio_codec")
    @classmethod
    def _validate_audio_codec(cls, value: str) -> str:
        value = value.strip()
        if not value or value.startswith("-"):
            raise ValueError(f"Invalid audio codec: {value!r}")
        return value


def build_transcode_args(
    input_name: str,
    output_name: str,
    options: TranscodeOptions,
) -> List[str]:
    """
    Build the engine argument list for one run.

    Returns:
        ["-i", input, "-b:v", bitrate, "-c:a", audio_codec, output]
    """
    return [
        "-i", input_name,
        "-b:v", options.bitrate,
        "-c:a", options.audio_codec,
        output_name,
    ]


def describe_options(options: Optional[TranscodeOptions]) -> str:
    """Short human-readable summary for logs."""
    if options is None:
        return "no options"
    return f"bitrate={options.bitrate}, audio={options.audio_codec}"
