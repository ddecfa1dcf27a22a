"""
Preset registry.

Holds the built-in bitrate presets and resolves what a caller passes to
start() (bitrate string, preset id, or full options) into TranscodeOptions.
"""

import logging
from typing import Dict, List, Optional, Union

from ..settings import ConverterSettings, DEFAULT_SETTINGS
from .models import ConversionPreset, TranscodeOptions, normalize_bitrate

logger = logging.getLogger(__name__)


BUILTIN_PRESETS: List[ConversionPreset] = [
    ConversionPreset(
        id="netflix_hd",
        name="Netflix HD (1080p)",
        bitrate="6000k",
        description="Good for high-quality streaming.",
    ),
    ConversionPreset(
        id="netflix_4k",
        name="Netflix 4K (2160p)",
        bitrate="16000k",
        description="For ultra-high definition content.",
    ),
    ConversionPreset(
        id="web_720p",
        name="Web Standard (720p)",
        bitrate="2500k",
        description="Balanced quality for web embedding.",
    ),
]


OptionsInput = Union[TranscodeOptions, str, int, None]


class PresetRegistry:
    """
    In-memory preset lookup.

    Presets are keyed by id; insertion order is preserved for display.
    """

    def __init__(self, presets: Optional[List[ConversionPreset]] = None):
        self._presets: Dict[str, ConversionPreset] = {}
        for preset in BUILTIN_PRESETS if presets is None else presets:
            self.add_preset(preset)

    def add_preset(self, preset: ConversionPreset) -> None:
        """
        Register a preset.

        Raises:
            ValueError: If a preset with the same id already exists
        """
        if preset.id in self._presets:
            raise ValueError(f"Preset '{preset.id}' already registered")
        self._presets[preset.id] = preset

    def get_preset(self, preset_id: str) -> Optional[ConversionPreset]:
        return self._presets.get(preset_id)

    def list_presets(self) -> List[ConversionPreset]:
        return list(self._presets.values())

    def resolve_options(
        self,
        value: OptionsInput,
        settings: Optional[ConverterSettings] = None,
    ) -> TranscodeOptions:
        """
        Turn start() input into TranscodeOptions.

        Accepts:
        - TranscodeOptions: used as-is
        - preset id: the preset's bitrate
        - bitrate string or int: normalised (bare numbers are kbps)
        - None: the configured default bitrate

        Raises:
            InvalidBitrateError: If a bitrate cannot be normalised
        """
        settings = settings or DEFAULT_SETTINGS

        if isinstance(value, TranscodeOptions):
            return value

        if value is None:
            bitrate: Union[str, int] = settings.default_bitrate
        elif isinstance(value, str) and value in self._presets:
            preset = self._presets[value]
            logger.debug(f"Using preset '{preset.id}' ({preset.bitrate})")
            bitrate = preset.bitrate
        else:
            bitrate = value

        # Raises InvalidBitrateError itself, before pydantic can wrap it
        return TranscodeOptions(
            bitrate=normalize_bitrate(bitrate),
            audio_codec=settings.audio_codec,
        )
