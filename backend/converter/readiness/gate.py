"""
Engine readiness gate.

Waits for the engine to appear without polling forever. Each check is a
pure existence probe; the gate sleeps between checks and gives up with
EngineLoadTimeout once the attempt budget is spent.

Cancellation:
- gate.cancel() stops any further probes
- cancelling the awaiting task stops the sleep immediately
Either way no recurring work is left scheduled.
"""

import asyncio
import logging
from typing import Callable, Generic, Optional, TypeVar

from ..execution.errors import EngineLoadTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GateCancelled(Exception):
    """Raised by wait() when the gate was cancelled before the engine appeared."""

    pass


class EngineReadinessGate(Generic[T]):
    """
    Bounded poll for an engine capability.

    The probe returns the capability (any truthy value) when the engine
    is present, and None / False otherwise. A probe that raises counts
    as a miss.
    """

    def __init__(
        self,
        probe: Callable[[], Optional[T]],
        poll_interval_ms: int = 100,
        max_attempts: int = 300,
    ):
        """
        Args:
            probe: Side-effect-free existence check
            poll_interval_ms: Spacing between checks
            max_attempts: Number of checks before giving up
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if poll_interval_ms < 0:
            raise ValueError(f"poll_interval_ms must be >= 0, got {poll_interval_ms}")

        self.probe = probe
        self.poll_interval_ms = poll_interval_ms
        self.max_attempts = max_attempts
        self.attempts = 0
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop scheduling further checks."""
        self._cancelled = True

    def _check(self) -> Optional[T]:
        self.attempts += 1
        try:
            return self.probe()
        except Exception as e:
            logger.debug(f"[Readiness] Probe {self.attempts} raised, treating as miss: {e}")
            return None

    async def wait(self) -> T:
        """
        Poll until the engine appears.

        Returns:
            The first truthy probe result

        Raises:
            EngineLoadTimeout: After max_attempts misses
            GateCancelled: If cancel() was called while waiting
        """
        interval = self.poll_interval_ms / 1000.0

        while self.attempts < self.max_attempts:
            if self._cancelled:
                raise GateCancelled("Readiness wait cancelled")

            result = self._check()
            if result:
                logger.info(f"[Readiness] Engine available after {self.attempts} check(s)")
                return result

            if self.attempts < self.max_attempts:
                await asyncio.sleep(interval)

        logger.error(f"[Readiness] Engine not available after {self.attempts} checks")
        raise EngineLoadTimeout(self.attempts, self.poll_interval_ms)


async def await_engine(
    probe: Callable[[], Optional[T]],
    poll_interval_ms: int = 100,
    max_attempts: int = 300,
) -> T:
    """
    Wait for an engine capability to appear.

    Convenience wrapper around EngineReadinessGate.wait().
    """
    gate = EngineReadinessGate(probe, poll_interval_ms, max_attempts)
    return await gate.wait()
