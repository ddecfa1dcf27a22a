"""
Execution-specific errors.

Parsing-layer errors (MalformedTimeCode) are contained where they occur.
Engine-layer errors surface to the orchestrator, which turns them into a
terminal FAILED state with the captured log attached.
"""

from typing import List, Optional


class ConverterError(Exception):
    """Base exception for all converter failures."""

    pass


class MalformedTimeCode(ConverterError, ValueError):
    """
    A time-code string does not have the HH:MM:SS.ff shape.

    Only ever raised by parse_timecode(). The log extractor catches it
    and drops the marker instead of aborting the stream.
    """

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Malformed time code: {text!r} (expected HH:MM:SS.ff)")


class EngineLoadTimeout(ConverterError):
    """
    The engine never became available within the polling budget.

    Fatal for the session. Recovery requires a full reload of the host.
    """

    def __init__(self, attempts: int, poll_interval_ms: int):
        self.attempts = attempts
        self.poll_interval_ms = poll_interval_ms
        super().__init__(
            f"Engine did not become available after {attempts} checks "
            f"({poll_interval_ms}ms apart)"
        )


class EngineLoadError(ConverterError):
    """
    The engine was found but could not be initialised.

    Examples:
    - Binary exists but is not executable
    - `ffmpeg -version` exits non-zero
    - Working storage could not be created
    """

    pass


class EngineError(ConverterError):
    """
    An engine invocation failed.

    Raised when:
    - FFmpeg exits with a non-zero code (e.g. unsupported input)
    - The process could not be spawned
    - The expected output was not produced
    """

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        stderr_tail: Optional[List[str]] = None,
    ):
        self.exit_code = exit_code
        self.stderr_tail = list(stderr_tail or [])
        if exit_code is not None:
            message = f"{message} (exit code: {exit_code})"
        super().__init__(message)


class CleanupFailure(ConverterError):
    """
    Releasing a file from engine working storage failed.

    Logged, never re-raised. Does not change job state.
    """

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Failed to remove '{name}' from working storage: {reason}")
