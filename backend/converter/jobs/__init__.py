"""
Converter job: state machine, failure records and the orchestrator.
"""

from .errors import (
    EngineNotLoadedError,
    InvalidStateTransitionError,
    JobAlreadyRunningError,
    JobError,
)
from .models import FailureKind, JobFailure, JobSnapshot, JobState
from .orchestrator import JobOrchestrator
from .state import can_transition, validate_transition

__all__ = [
    "EngineNotLoadedError",
    "InvalidStateTransitionError",
    "JobAlreadyRunningError",
    "JobError",
    "FailureKind",
    "JobFailure",
    "JobSnapshot",
    "JobState",
    "JobOrchestrator",
    "can_transition",
    "validate_transition",
]
