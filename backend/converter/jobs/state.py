"""
State transition validation for the converter job.

Lifecycle:
    AWAITING_ENGINE → READY → RUNNING → SUCCEEDED | FAILED
    AWAITING_ENGINE → FAILED (engine never appeared / failed to load)
    SUCCEEDED | FAILED → READY (reset)

No state is terminal: both outcomes accept a reset back to READY.
Whether a reset from FAILED is possible also depends on an engine handle
being present; the orchestrator checks that separately.
"""

from typing import Set, Tuple

from .errors import InvalidStateTransitionError, JobAlreadyRunningError
from .models import JobState


_JOB_TRANSITIONS: Set[Tuple[JobState, JobState]] = {
    # Engine bootstrap
    (JobState.AWAITING_ENGINE, JobState.READY),
    (JobState.AWAITING_ENGINE, JobState.FAILED),

    # Run
    (JobState.READY, JobState.RUNNING),
    (JobState.RUNNING, JobState.SUCCEEDED),
    (JobState.RUNNING, JobState.FAILED),

    # Reset
    (JobState.SUCCEEDED, JobState.READY),
    (JobState.FAILED, JobState.READY),
}


def can_transition(from_state: JobState, to_state: JobState) -> bool:
    """
    Check if a job state transition is legal.

    READY → READY is allowed (reset on an idle job is a no-op).
    RUNNING → RUNNING is not: that would be a second concurrent run.
    """
    if from_state == to_state:
        return from_state == JobState.READY
    return (from_state, to_state) in _JOB_TRANSITIONS


def validate_transition(from_state: JobState, to_state: JobState) -> None:
    """
    Validate a job state transition, raising an exception if illegal.

    Raises:
        JobAlreadyRunningError: On RUNNING → RUNNING
        InvalidStateTransitionError: On any other illegal transition
    """
    if from_state == JobState.RUNNING and to_state == JobState.RUNNING:
        raise JobAlreadyRunningError()
    if not can_transition(from_state, to_state):
        raise InvalidStateTransitionError(from_state.value, to_state.value)
