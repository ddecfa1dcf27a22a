"""
FFmpeg engine.

Real transcoding via an asyncio subprocess.

Design rules:
- One subprocess per run, working directory = the handle's private storage
- stderr is streamed line by line to the log callback as it arrives
- FFmpeg rewrites its progress line with '\\r', so both '\\r' and '\\n' end a line
- Non-zero exit code = EngineError carrying the last stderr lines
- Persist the full command string in the log for audit
"""

import asyncio
import codecs
import logging
import os
import re
import shutil
import subprocess
import tempfile
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional

from ..settings import ConverterSettings, DEFAULT_SETTINGS
from .base import EngineHandle, EngineLoader, ProgressCallback
from .errors import EngineError, EngineLoadError

logger = logging.getLogger(__name__)


# Common install locations checked after PATH
COMMON_FFMPEG_PATHS = [
    "/usr/local/bin/ffmpeg",
    "/usr/bin/ffmpeg",
    "/opt/homebrew/bin/ffmpeg",
]

# Line terminators in FFmpeg stderr
LINE_SPLIT_PATTERN = re.compile(r"[\r\n]")

# Lines of stderr kept for failure reports
STDERR_TAIL_LINES = 20

# Seconds allowed for `ffmpeg -version` during load
VERSION_CHECK_TIMEOUT = 10

READ_CHUNK_SIZE = 4096


def find_ffmpeg(explicit_path: Optional[str] = None) -> Optional[str]:
    """
    Find the ffmpeg binary.

    Order: explicit path, PATH lookup, common install locations.

    Returns:
        Absolute path to ffmpeg, or None if not found
    """
    if explicit_path:
        if os.path.isfile(explicit_path) and os.access(explicit_path, os.X_OK):
            return explicit_path
        return None

    ffmpeg_path = shutil.which("ffmpeg")
    if ffmpeg_path:
        return ffmpeg_path

    for path in COMMON_FFMPEG_PATHS:
        if os.path.isfile(path) and os.access(path, os.X_OK):
            return path

    return None


class FFmpegHandle(EngineHandle):
    """
    Handle to a loaded FFmpeg binary plus its private working directory.
    """

    def __init__(self, ffmpeg_path: str, workdir: Path, version: str = ""):
        super().__init__()
        self.ffmpeg_path = ffmpeg_path
        self.workdir = workdir
        self.version = version

    @property
    def name(self) -> str:
        return "FFmpeg"

    def _resolve(self, name: str) -> Path:
        """Map a storage name to a path, refusing anything outside workdir."""
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise ValueError(f"Invalid working storage name: {name!r}")
        return self.workdir / name

    def write_input(self, name: str, data: bytes) -> None:
        path = self._resolve(name)
        path.write_bytes(data)
        logger.debug(f"[FFmpeg] Wrote {len(data)} bytes to {path}")

    def read_output(self, name: str) -> bytes:
        path = self._resolve(name)
        if not path.is_file():
            raise EngineError(f"Output file was not created: {name}")
        return path.read_bytes()

    def remove(self, name: str) -> None:
        self._resolve(name).unlink(missing_ok=True)

    def release(self) -> None:
        """Delete the working directory and everything in it."""
        try:
            shutil.rmtree(self.workdir)
            logger.info(f"[FFmpeg] Released working storage {self.workdir}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[FFmpeg] Failed to release working storage {self.workdir}: {e}")

    def build_command(self, args: List[str]) -> List[str]:
        """Prefix engine arguments with the binary and fixed flags."""
        # -y to overwrite output, -hide_banner keeps Duration/progress lines only
        return [self.ffmpeg_path, "-hide_banner", "-y", *args]

    async def invoke(self, args: List[str]) -> None:
        cmd = self.build_command(args)
        logger.info(f"[FFmpeg] Executing: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                cwd=str(self.workdir),
            )
        except OSError as e:
            raise EngineError(f"Failed to start FFmpeg: {e}") from e

        logger.info(f"[FFmpeg] Started PID {process.pid}")
        tail: Deque[str] = deque(maxlen=STDERR_TAIL_LINES)

        try:
            await self._pump_stderr(process.stderr, tail)
            exit_code = await process.wait()
        except asyncio.CancelledError:
            logger.warning(f"[FFmpeg] Run cancelled, killing PID {process.pid}")
            try:
                process.kill()
            except ProcessLookupError:
                pass  # Process already dead
            await process.wait()
            raise

        logger.info(f"[FFmpeg] PID {process.pid} exited with code {exit_code}")

        if exit_code != 0:
            raise EngineError("FFmpeg failed", exit_code=exit_code, stderr_tail=list(tail))

    async def _pump_stderr(self, stream: asyncio.StreamReader, tail: Deque[str]) -> None:
        """Read stderr until EOF, emitting each complete line in order."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""

        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            pending += decoder.decode(chunk)
            parts = LINE_SPLIT_PATTERN.split(pending)
            pending = parts.pop()
            for part in parts:
                self._deliver(part, tail)

        pending += decoder.decode(b"", final=True)
        for part in LINE_SPLIT_PATTERN.split(pending):
            self._deliver(part, tail)

    def _deliver(self, raw: str, tail: Deque[str]) -> None:
        line = raw.strip()
        if not line:
            return
        tail.append(line)
        self.emit_log(line)


class FFmpegLoader(EngineLoader):
    """
    Locates and initialises FFmpeg.

    Coarse load progress: 0.0 (started), 0.5 (binary verified),
    1.0 (working storage ready).
    """

    def __init__(self, settings: Optional[ConverterSettings] = None):
        self.settings = settings or DEFAULT_SETTINGS

    def probe_available(self) -> bool:
        return find_ffmpeg(self.settings.ffmpeg_path) is not None

    async def load(self, on_progress: Optional[ProgressCallback] = None) -> FFmpegHandle:
        def report(ratio: float) -> None:
            if on_progress is not None:
                on_progress(ratio)

        report(0.0)

        ffmpeg_path = find_ffmpeg(self.settings.ffmpeg_path)
        if not ffmpeg_path:
            raise EngineLoadError(
                "FFmpeg not found. Install FFmpeg (brew install ffmpeg / apt install ffmpeg) "
                "or set CONVERTER_FFMPEG_PATH."
            )

        version = await self._check_version(ffmpeg_path)
        logger.info(f"[FFmpeg] Found {ffmpeg_path}: {version[:60]}")
        report(0.5)

        try:
            workdir = Path(tempfile.mkdtemp(prefix="converter_", dir=self.settings.workdir_root))
        except OSError as e:
            raise EngineLoadError(f"Could not create working storage: {e}") from e

        logger.info(f"[FFmpeg] Working storage at {workdir}")
        report(1.0)

        return FFmpegHandle(ffmpeg_path, workdir, version=version)

    async def _check_version(self, ffmpeg_path: str) -> str:
        """Run `ffmpeg -version` and return its first line."""
        try:
            process = await asyncio.create_subprocess_exec(
                ffmpeg_path,
                "-version",
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise EngineLoadError(f"Failed to execute {ffmpeg_path}: {e}") from e

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=VERSION_CHECK_TIMEOUT)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise EngineLoadError(f"{ffmpeg_path} -version timed out") from None
        except asyncio.CancelledError:
            logger.warning(f"[FFmpeg] Version check cancelled, killing PID {process.pid}")
            try:
                process.kill()
            except ProcessLookupError:
                pass  # Process already dead
            await process.wait()
            raise

        if process.returncode != 0:
            raise EngineLoadError(f"{ffmpeg_path} -version exited with code {process.returncode}")

        text = stdout.decode("utf-8", errors="replace")
        return text.split("\n")[0] if text else "version unknown"
