"""
Job orchestrator: engine bootstrap, run sequencing and progress routing.

Manages the single job slot of a converter session:
- Waits for the engine through the readiness gate, then loads it
- Sequences one run at a time: write input → invoke → read output
- Routes every engine log line through the signal extractor into the
  progress estimator, and retains it verbatim for display
- Records failures with the captured log attached
- Releases working storage on every exit path

Concurrency: everything runs on one asyncio loop. Engine callbacks are
delivered on that loop, in order, while invoke() is awaited. Working
storage reads and writes run in the default executor. The state change
to RUNNING happens before the first await, so a second start() can
never observe READY while a run is in flight.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from ..execution.base import EngineHandle, EngineLoader
from ..execution.errors import (
    CleanupFailure,
    EngineError,
    EngineLoadError,
    EngineLoadTimeout,
)
from ..execution.progress import ProgressEstimator, ProgressSample, clamp_ratio
from ..presets.models import TranscodeOptions, build_transcode_args, describe_options
from ..presets.registry import OptionsInput, PresetRegistry
from ..readiness.gate import EngineReadinessGate, GateCancelled
from ..settings import ConverterSettings, DEFAULT_SETTINGS
from .errors import EngineNotLoadedError
from .models import FailureKind, JobFailure, JobSnapshot, JobState
from .state import validate_transition

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, memoryview, str, Path]

LOAD_FAILURE_MESSAGE = (
    "Failed to load the conversion engine. Check that FFmpeg is installed and "
    "executable, then reload.\n\nError: {error}"
)


class _Subscribers:
    """Ordered list of callbacks. A failing callback is logged and skipped."""

    def __init__(self, kind: str):
        self.kind = kind
        self._callbacks: List[Callable] = []

    def add(self, callback: Callable) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def notify(self, value) -> None:
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception:
                logger.exception(f"{self.kind} subscriber {callback!r} failed")


class JobOrchestrator:
    """
    Converter job state machine.

    Initial state is AWAITING_ENGINE. Call initialize() (or
    initialize_in_background()) once, then start() / reset() as the
    operator drives the UI.
    """

    def __init__(
        self,
        loader: EngineLoader,
        settings: Optional[ConverterSettings] = None,
        preset_registry: Optional[PresetRegistry] = None,
    ):
        """
        Args:
            loader: Engine loader (FFmpegLoader in production)
            settings: Converter settings (defaults if omitted)
            preset_registry: Preset lookup for start() (built-ins if omitted)
        """
        self.loader = loader
        self.settings = settings or DEFAULT_SETTINGS
        self.preset_registry = preset_registry or PresetRegistry()

        self._state = JobState.AWAITING_ENGINE
        self._handle: Optional[EngineHandle] = None
        self._estimator = ProgressEstimator()
        self._load_progress = 0.0
        self._logs: List[str] = []
        self._output: Optional[bytes] = None
        self._error: Optional[JobFailure] = None
        self._options: Optional[TranscodeOptions] = None
        self._source_name: Optional[str] = None

        self._gate: Optional[EngineReadinessGate] = None
        self._init_task: Optional[asyncio.Task] = None
        self._run_task: Optional[asyncio.Task] = None
        self._closed = False

        self._state_subscribers = _Subscribers("state")
        self._progress_subscribers = _Subscribers("progress")
        self._log_subscribers = _Subscribers("log")

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def progress(self) -> ProgressSample:
        return self._estimator.snapshot()

    @property
    def load_progress(self) -> float:
        """Coarse engine bootstrap ratio (0.0 - 1.0)."""
        return self._load_progress

    @property
    def logs(self) -> Tuple[str, ...]:
        """Log lines of the current run, in arrival order."""
        return tuple(self._logs)

    @property
    def output(self) -> Optional[bytes]:
        """Transcoded bytes, only while SUCCEEDED."""
        return self._output

    @property
    def error(self) -> Optional[JobFailure]:
        """Recorded failure, only while FAILED."""
        return self._error

    @property
    def options(self) -> Optional[TranscodeOptions]:
        """Options of the current / last run."""
        return self._options

    @property
    def source_name(self) -> Optional[str]:
        """File name of the current / last source, if known."""
        return self._source_name

    @property
    def engine_loaded(self) -> bool:
        return self._handle is not None

    @property
    def run_task(self) -> Optional[asyncio.Task]:
        return self._run_task

    def snapshot(self) -> JobSnapshot:
        """Point-in-time view for the presentation layer."""
        return JobSnapshot(
            state=self._state,
            progress=self._estimator.snapshot(),
            load_progress=self._load_progress,
            log_count=len(self._logs),
            output_size=len(self._output) if self._output is not None else None,
            error=self._error,
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe_state(self, callback: Callable[[JobState], None]) -> Callable[[], None]:
        """Receive every state change. Returns an unsubscribe callable."""
        return self._state_subscribers.add(callback)

    def subscribe_progress(self, callback: Callable[[ProgressSample], None]) -> Callable[[], None]:
        """Receive a ProgressSample whenever progress changes."""
        return self._progress_subscribers.add(callback)

    def subscribe_logs(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Receive each log line as it arrives."""
        return self._log_subscribers.add(callback)

    # ------------------------------------------------------------------
    # Engine bootstrap
    # ------------------------------------------------------------------

    async def initialize(self) -> JobState:
        """
        Wait for the engine, load it, and enter READY.

        Gate timeout and load errors end in FAILED; they are recorded,
        not raised. Safe to call more than once: later calls return the
        current state without probing again.

        Returns:
            The resulting state (READY or FAILED)
        """
        if self._closed or self._state != JobState.AWAITING_ENGINE or self._gate is not None:
            return self._state

        self._gate = EngineReadinessGate(
            self.loader.probe_available,
            poll_interval_ms=self.settings.poll_interval_ms,
            max_attempts=self.settings.max_attempts,
        )
        logger.info(
            f"[LIFECYCLE] Waiting for engine "
            f"(every {self.settings.poll_interval_ms}ms, max {self.settings.max_attempts} checks)"
        )

        try:
            await self._gate.wait()
            handle = await self.loader.load(on_progress=self._on_coarse_progress)
        except GateCancelled:
            logger.info("[LIFECYCLE] Engine wait cancelled")
            return self._state
        except EngineLoadTimeout as e:
            self._fail(FailureKind.ENGINE_LOAD_TIMEOUT, str(e))
            return self._state
        except EngineLoadError as e:
            message = LOAD_FAILURE_MESSAGE.format(error=e)
            logger.error(f"[LIFECYCLE] Engine load failed: {e}")
            self._append_log(f"Error: {message}")
            self._fail(FailureKind.ENGINE_LOAD_ERROR, message)
            return self._state

        if self._closed:
            handle.release()
            return self._state

        self._handle = handle
        handle.register_log_callback(self._on_log_line)
        handle.register_progress_callback(self._on_coarse_progress)

        self._load_progress = 1.0
        self._estimator.reset()
        self._transition(JobState.READY)
        logger.info(f"[LIFECYCLE] Engine '{handle.name}' ready")
        return self._state

    def initialize_in_background(self) -> asyncio.Task:
        """Schedule initialize() on the running loop and return its task."""
        if self._init_task is None:
            self._init_task = asyncio.get_running_loop().create_task(self.initialize())
        return self._init_task

    def _on_coarse_progress(self, ratio: float) -> None:
        # Coarse ratio only describes bootstrap; during a run the log wins
        if self._state != JobState.AWAITING_ENGINE:
            return
        self._load_progress = clamp_ratio(float(ratio))
        self._estimator.apply_coarse(ratio)
        self._progress_subscribers.notify(self._estimator.snapshot())

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def submit(
        self,
        source: Source,
        options: OptionsInput = None,
        source_name: Optional[str] = None,
    ) -> asyncio.Task:
        """
        Begin a run and return the task that completes it.

        Validation and the READY → RUNNING transition happen synchronously,
        so a rejected start raises here rather than inside the task.

        Args:
            source: Input bytes, or a path to read them from
            options: Bitrate string, preset id, TranscodeOptions, or None
                for the configured default bitrate
            source_name: Original file name, for naming the download.
                Defaults to the path name when source is a path.

        Raises:
            JobAlreadyRunningError: If a run is already in progress
            InvalidStateTransitionError: If the job is not READY
            EngineNotLoadedError: If no engine handle was ever granted
            InvalidBitrateError: If the bitrate cannot be normalised
        """
        validate_transition(self._state, JobState.RUNNING)
        if self._handle is None:
            raise EngineNotLoadedError("start a conversion")

        resolved = self.preset_registry.resolve_options(options, self.settings)

        self._options = resolved
        if source_name is None and isinstance(source, (str, Path)):
            source_name = Path(source).name
        self._source_name = source_name
        self._estimator.reset()
        self._logs.clear()
        self._output = None
        self._error = None
        self._transition(JobState.RUNNING)
        self._progress_subscribers.notify(self._estimator.snapshot())

        logger.info(f"[LIFECYCLE] Run started ({describe_options(resolved)})")
        self._run_task = asyncio.get_running_loop().create_task(
            self._run(self._handle, source, resolved)
        )
        return self._run_task

    async def start(
        self,
        source: Source,
        options: OptionsInput = None,
        source_name: Optional[str] = None,
    ) -> JobState:
        """
        Run one conversion to completion.

        Returns:
            The terminal state (SUCCEEDED or FAILED)

        Raises:
            Same as submit()
        """
        await self.submit(source, options, source_name)
        return self._state

    async def _run(self, handle: EngineHandle, source: Source, options: TranscodeOptions) -> None:
        input_name = self.settings.input_name
        output_name = self.settings.output_name
        output: Optional[bytes] = None
        failure: Optional[str] = None

        try:
            loop = asyncio.get_running_loop()
            data = await self._read_source(source)
            await loop.run_in_executor(None, handle.write_input, input_name, data)
            await handle.invoke(build_transcode_args(input_name, output_name, options))
            output = await loop.run_in_executor(None, handle.read_output, output_name)
        except asyncio.CancelledError:
            self._release_run_files(handle, input_name, output_name)
            self._fail_run("Conversion cancelled")
            raise
        except EngineError as e:
            logger.error(f"[LIFECYCLE] Engine failed: {e}")
            failure = str(e)
        except Exception as e:
            logger.exception(f"[LIFECYCLE] Unexpected error during run: {e}")
            failure = str(e)

        self._release_run_files(handle, input_name, output_name)

        if failure is not None:
            self._fail_run(failure)
            return

        self._output = output
        self._transition(JobState.SUCCEEDED)
        logger.info(f"[LIFECYCLE] Run succeeded ({len(output)} bytes)")

    async def _read_source(self, source: Source) -> bytes:
        if isinstance(source, (bytes, bytearray, memoryview)):
            return bytes(source)
        path = Path(source)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, path.read_bytes)

    def _release_run_files(self, handle: EngineHandle, *names: str) -> None:
        """Remove run files from working storage. Failures are logged only."""
        for name in names:
            try:
                handle.remove(name)
            except Exception as e:
                failure = CleanupFailure(name, str(e))
                logger.warning(f"[Cleanup] {failure}")

    def _fail_run(self, reason: str) -> None:
        message = f"Conversion failed. {reason}"
        self._append_log(f"Error: {message}")
        self._fail(FailureKind.TRANSCODE_FAILURE, message)

    # ------------------------------------------------------------------
    # Reset / teardown
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """
        Return to READY, discarding output, progress and logs.

        Allowed from SUCCEEDED, FAILED and READY (no-op transition).

        Raises:
            EngineNotLoadedError: If the engine never loaded (reload required)
            InvalidStateTransitionError: If a run is in progress
        """
        if self._handle is None:
            raise EngineNotLoadedError("reset")
        validate_transition(self._state, JobState.READY)

        self._output = None
        self._error = None
        self._options = None
        self._source_name = None
        self._logs.clear()
        self._estimator.reset()

        if self._state != JobState.READY:
            self._transition(JobState.READY)
        self._progress_subscribers.notify(self._estimator.snapshot())

    async def close(self) -> None:
        """
        Tear the orchestrator down.

        Stops a pending readiness wait, cancels an in-flight run and
        releases the engine's working storage.
        """
        self._closed = True

        if self._gate is not None:
            self._gate.cancel()

        for task in (self._init_task, self._run_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        if self._handle is not None:
            self._handle.register_log_callback(None)
            self._handle.register_progress_callback(None)
            self._handle.release()
            self._handle = None

        logger.info("[LIFECYCLE] Orchestrator closed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_log_line(self, line: str) -> None:
        self._append_log(line)
        if self._state != JobState.RUNNING:
            return
        if self._estimator.apply_line(line):
            self._progress_subscribers.notify(self._estimator.snapshot())

    def _append_log(self, line: str) -> None:
        self._logs.append(line)
        self._log_subscribers.notify(line)

    def _fail(self, kind: FailureKind, message: str) -> None:
        self._error = JobFailure(kind=kind, message=message, logs=list(self._logs))
        self._transition(JobState.FAILED)

    def _transition(self, to_state: JobState) -> None:
        validate_transition(self._state, to_state)
        old_state = self._state
        self._state = to_state
        logger.info(f"[LIFECYCLE] Job transitioned: {old_state.value} -> {to_state.value}")
        self._state_subscribers.notify(to_state)
