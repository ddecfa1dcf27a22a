"""
Progress estimation for a running transcode.

Two independent sources feed the estimate:
- Coarse ratio reported by the engine while it bootstraps
- Position / duration derived from the diagnostic log during a run

The orchestrator decides which source applies based on job state; the
estimator never mixes them on its own.

Usage:
    estimator = ProgressEstimator()
    estimator.reset()
    for line in ffmpeg_stderr:
        estimator.apply_line(line)
        update_ui(estimator.snapshot())
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .signals import DurationFound, PositionUpdate, RateUpdate, Signal, extract_signals


# Speed token shown before the engine reports one
IDLE_SPEED = "0x"


def clamp_ratio(value: float) -> float:
    """Clamp a ratio to [0, 1]."""
    return max(0.0, min(1.0, value))


class ProgressSample(BaseModel):
    """Read-only progress snapshot handed to subscribers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Completion fraction (0.0 - 1.0)
    ratio: float = Field(default=0.0, ge=0.0, le=1.0)

    # Encoding speed in frames per second
    fps: float = Field(default=0.0, ge=0.0)

    # Realtime multiplier, e.g. "2.1x"
    speed: str = IDLE_SPEED

    @property
    def percent(self) -> int:
        """Whole-number percentage for display."""
        return int(round(self.ratio * 100))


class ProgressEstimator:
    """
    Accumulates signals into a clamped completion ratio.

    Ratio is clamped to [0, 1] but not forced monotonic: FFmpeg can
    report a position that stalls or jumps back slightly.
    """

    def __init__(self):
        self.duration: Optional[float] = None
        self._ratio = 0.0
        self._fps = 0.0
        self._speed = IDLE_SPEED

    def reset(self) -> None:
        """Clear all state to initial values."""
        self.duration = None
        self._ratio = 0.0
        self._fps = 0.0
        self._speed = IDLE_SPEED

    def apply_coarse(self, ratio: float) -> None:
        """
        Apply the engine's coarse bootstrap ratio.

        Independent of duration. Only meaningful while the engine loads.
        """
        self._ratio = clamp_ratio(float(ratio))

    def apply_signal(self, signal: Signal) -> None:
        """
        Fold one extracted signal into the estimate.

        - DurationFound: last write wins
        - PositionUpdate: ignored until a positive duration is known
        - RateUpdate: only present fields are updated
        """
        if isinstance(signal, DurationFound):
            self.duration = signal.seconds

        elif isinstance(signal, PositionUpdate):
            if self.duration is not None and self.duration > 0:
                self._ratio = clamp_ratio(signal.seconds / self.duration)

        elif isinstance(signal, RateUpdate):
            if signal.fps is not None:
                self._fps = max(0.0, signal.fps)
            if signal.speed is not None:
                self._speed = signal.speed

    def apply_line(self, line: str) -> List[Signal]:
        """
        Extract signals from a log line and apply each in order.

        Returns:
            The signals that were applied (empty if the line carried none)
        """
        signals = extract_signals(line)
        for signal in signals:
            self.apply_signal(signal)
        return signals

    def snapshot(self) -> ProgressSample:
        """Get current progress."""
        return ProgressSample(ratio=self._ratio, fps=self._fps, speed=self._speed)
