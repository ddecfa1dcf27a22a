"""
Engine collaborator contract.

The transcode engine is a black box behind two interfaces:
- EngineLoader: discovers and initialises the engine once
- EngineHandle: the capability the loader grants, used for every run

Run lifecycle against a handle, in order:
    write_input → invoke → read_output → remove (input and output, always)

Design rules:
- The orchestrator holds at most one handle
- A handle is never re-created in place; a failed load needs a full reload
- Callbacks are push-based and delivered in arrival order
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional


LogCallback = Callable[[str], None]
ProgressCallback = Callable[[float], None]


class EngineHandle(ABC):
    """
    Capability granted by a successful engine load.

    Owns a small private working storage namespace. Only one run uses it
    at a time; the orchestrator enforces that.
    """

    def __init__(self):
        self._log_callback: Optional[LogCallback] = None
        self._progress_callback: Optional[ProgressCallback] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable engine name for logs and UI."""
        pass

    def register_log_callback(self, callback: Optional[LogCallback]) -> None:
        """Register the receiver for diagnostic lines (replaces any previous one)."""
        self._log_callback = callback

    def register_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        """Register the receiver for coarse fractional progress."""
        self._progress_callback = callback

    def emit_log(self, line: str) -> None:
        """Deliver one diagnostic line to the registered callback."""
        if self._log_callback is not None:
            self._log_callback(line)

    def emit_progress(self, ratio: float) -> None:
        """Deliver a coarse progress ratio to the registered callback."""
        if self._progress_callback is not None:
            self._progress_callback(ratio)

    @abstractmethod
    def write_input(self, name: str, data: bytes) -> None:
        """
        Write a file into working storage.

        Args:
            name: Bare file name within working storage
            data: File contents
        """
        pass

    @abstractmethod
    async def invoke(self, args: List[str]) -> None:
        """
        Run the engine with the given argument list.

        Diagnostic output is pushed through emit_log() while running.

        Raises:
            EngineError: If the invocation fails
        """
        pass

    @abstractmethod
    def read_output(self, name: str) -> bytes:
        """
        Read a file produced by the engine.

        Raises:
            EngineError: If the file was not produced
        """
        pass

    @abstractmethod
    def remove(self, name: str) -> None:
        """
        Delete a file from working storage.

        Missing files are not an error.
        """
        pass

    def release(self) -> None:
        """Tear down working storage. Default: nothing to release."""
        pass


class EngineLoader(ABC):
    """
    Discovers and initialises an engine.

    probe_available() is polled by the readiness gate; load() is called
    exactly once after the probe succeeds.
    """

    @abstractmethod
    def probe_available(self) -> bool:
        """
        Non-blocking existence check.

        Must be idempotent and side-effect free.
        """
        pass

    @abstractmethod
    async def load(self, on_progress: Optional[ProgressCallback] = None) -> EngineHandle:
        """
        Initialise the engine.

        Args:
            on_progress: Optional receiver for coarse bootstrap ratio (0.0 - 1.0)

        Returns:
            The engine handle

        Raises:
            EngineLoadError: If initialisation fails
        """
        pass
