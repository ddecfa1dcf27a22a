"""
ConverterSettings: process-wide configuration.

Settings are frozen once constructed. Environment variables (prefixed
CONVERTER_) override defaults when built with ConverterSettings.from_env().

    CONVERTER_FFMPEG_PATH       explicit ffmpeg binary
    CONVERTER_POLL_INTERVAL_MS  readiness poll spacing
    CONVERTER_MAX_ATTEMPTS      readiness poll budget
    CONVERTER_INPUT_NAME        working-storage input file name
    CONVERTER_OUTPUT_NAME       working-storage output file name
    CONVERTER_DEFAULT_BITRATE   bitrate used when a run does not specify one
    CONVERTER_AUDIO_CODEC       audio codec argument (default: copy)
    CONVERTER_WORKDIR           parent directory for engine working storage
"""

import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional


ENV_PREFIX = "CONVERTER_"

# Integer-valued fields (parsed from the environment)
_INT_FIELDS = frozenset({"poll_interval_ms", "max_attempts"})


@dataclass(frozen=True)
class ConverterSettings:
    """
    Complete, immutable converter configuration.

    poll_interval_ms / max_attempts bound the readiness wait:
    the default budget is 300 checks, 100ms apart (~30s).
    """

    ffmpeg_path: Optional[str] = None
    poll_interval_ms: int = 100
    max_attempts: int = 300
    input_name: str = "input.mp4"
    output_name: str = "output.mp4"
    default_bitrate: str = "6000k"
    audio_codec: str = "copy"
    workdir_root: Optional[str] = None

    def __post_init__(self):
        if self.poll_interval_ms < 0:
            raise ValueError(f"poll_interval_ms must be >= 0, got {self.poll_interval_ms}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.input_name == self.output_name:
            raise ValueError("input_name and output_name must differ")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ConverterSettings":
        """
        Deserialize from dictionary.

        Unknown keys are ignored so older payloads keep loading.
        """
        if not data:
            return DEFAULT_SETTINGS
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ConverterSettings":
        """
        Build settings from CONVERTER_* environment variables.

        Raises:
            ValueError: If an integer variable does not parse
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        for f in fields(cls):
            env_name = f"{ENV_PREFIX}{f.name.upper()}"
            if f.name == "workdir_root":
                env_name = f"{ENV_PREFIX}WORKDIR"

            raw = environ.get(env_name)
            if raw is None or raw == "":
                continue

            if f.name in _INT_FIELDS:
                try:
                    values[f.name] = int(raw)
                except ValueError:
                    raise ValueError(f"{env_name} must be an integer, got {raw!r}") from None
            else:
                values[f.name] = raw

        return cls(**values)


DEFAULT_SETTINGS = ConverterSettings()
