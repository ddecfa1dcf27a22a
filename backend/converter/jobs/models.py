"""
Job state and failure models.

A converter session has exactly one job slot. JobState tracks it; the
transition rules live in state.py.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..execution.progress import ProgressSample


class JobState(str, Enum):
    """
    Job lifecycle state.

    Exactly one value at a time, owned by the orchestrator.
    """

    AWAITING_ENGINE = "awaiting_engine"  # Engine not yet available / loading
    READY = "ready"  # Engine loaded, waiting for start()
    RUNNING = "running"  # Engine invocation in flight
    SUCCEEDED = "succeeded"  # Output captured
    FAILED = "failed"  # Engine load or run failed


class FailureKind(str, Enum):
    """What went wrong, for UI messaging."""

    ENGINE_LOAD_TIMEOUT = "engine_load_timeout"
    ENGINE_LOAD_ERROR = "engine_load_error"
    TRANSCODE_FAILURE = "transcode_failure"


class JobFailure(BaseModel):
    """
    Structured error recorded on entering FAILED.

    logs is the full captured log sequence at the time of failure.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: FailureKind
    message: str
    logs: List[str] = Field(default_factory=list)
    occurred_at: datetime = Field(default_factory=datetime.now)

    @property
    def recoverable(self) -> bool:
        """Transcode failures recover with reset(); load failures need a reload."""
        return self.kind == FailureKind.TRANSCODE_FAILURE


class JobSnapshot(BaseModel):
    """Point-in-time view of the job for the presentation layer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    state: JobState
    progress: ProgressSample
    load_progress: float = Field(default=0.0, ge=0.0, le=1.0)
    log_count: int = 0
    output_size: Optional[int] = None
    error: Optional[JobFailure] = None
