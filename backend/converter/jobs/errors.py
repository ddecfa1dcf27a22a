"""
Job-specific error types.

All errors inherit from JobError for easy catching.
Errors are explicit and provide actionable messages.
"""

from ..execution.errors import ConverterError


class JobError(ConverterError):
    """Base exception for all job-related failures."""

    pass


class InvalidStateTransitionError(JobError):
    """Raised when attempting an illegal state transition."""

    def __init__(self, current_state: str, target_state: str, reason: str = ""):
        self.current_state = current_state
        self.target_state = target_state
        message = f"Invalid job state transition: {current_state} -> {target_state}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class JobAlreadyRunningError(InvalidStateTransitionError):
    """Raised when start() is called while a run is in progress."""

    def __init__(self):
        super().__init__("running", "running", "a conversion is already in progress")


class EngineNotLoadedError(JobError):
    """
    Raised when an operation needs the engine but no handle was ever granted.

    The engine cannot be re-created in place; reload the host to retry.
    """

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Cannot {operation}: the conversion engine is not loaded. Reload to retry."
        )
