"""
Pytest configuration for the converter test suite.

Provides an in-memory engine (FakeLoader / FakeHandle) so orchestrator
and route tests run without FFmpeg.
"""

import asyncio
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add backend to Python path for test imports
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from converter.execution import EngineError, EngineHandle, EngineLoader, EngineLoadError
from converter.settings import ConverterSettings


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "e2e: marks tests as end-to-end (requires FFmpeg)"
    )


# Typical FFmpeg stderr for a 2 minute input, in arrival order
SAMPLE_LOG = [
    "Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'input.mp4':",
    "  Duration: 00:02:00.00, start: 0.000000, bitrate: 1205 kb/s",
    "frame=  750 fps= 25 q=28.0 size=  512kB time=00:00:30.00 bitrate= 139.8kbits/s speed=1.0x",
    "frame= 1500 fps= 25 q=28.0 size= 1024kB time=00:01:00.00 bitrate= 139.8kbits/s speed=2.0x",
    "frame= 3000 fps= 30 q=28.0 size= 2048kB time=00:02:00.00 bitrate= 139.8kbits/s speed=2.1x",
]


class FakeHandle(EngineHandle):
    """
    In-memory engine handle.

    invoke() replays `log_lines` through emit_log, then either fails with
    `fail_with` or writes `output` under the output name in the args.
    write_error makes write_input() store a partial file and then raise.
    """

    def __init__(
        self,
        log_lines: Optional[List[str]] = None,
        output: bytes = b"converted",
        fail_with: Optional[Exception] = None,
        remove_error: Optional[Exception] = None,
        write_error: Optional[Exception] = None,
    ):
        super().__init__()
        self.log_lines = list(SAMPLE_LOG if log_lines is None else log_lines)
        self.output = output
        self.fail_with = fail_with
        self.remove_error = remove_error
        self.write_error = write_error

        self.files: Dict[str, bytes] = {}
        self.invocations: List[List[str]] = []
        self.removed: List[str] = []
        self.released = False
        self.write_threads: List[int] = []
        self.read_threads: List[int] = []
        self.block: Optional[asyncio.Event] = None

    @property
    def name(self) -> str:
        return "FakeEngine"

    def write_input(self, name: str, data: bytes) -> None:
        self.write_threads.append(threading.get_ident())
        if self.write_error is not None:
            # Partial write, then the failure
            self.files[name] = data[:2]
            raise self.write_error
        self.files[name] = data

    async def invoke(self, args: List[str]) -> None:
        self.invocations.append(list(args))
        for line in self.log_lines:
            self.emit_log(line)
            await asyncio.sleep(0)
        if self.block is not None:
            await self.block.wait()
        if self.fail_with is not None:
            raise self.fail_with
        self.files[args[-1]] = self.output

    def read_output(self, name: str) -> bytes:
        self.read_threads.append(threading.get_ident())
        if name not in self.files:
            raise EngineError(f"Output file was not created: {name}")
        return self.files[name]

    def remove(self, name: str) -> None:
        self.removed.append(name)
        if self.remove_error is not None:
            raise self.remove_error
        self.files.pop(name, None)

    def release(self) -> None:
        self.released = True


class FakeLoader(EngineLoader):
    """
    Loader for FakeHandle.

    available_after: probe returns False this many times before True
    (None = never available).
    """

    def __init__(
        self,
        handle: Optional[FakeHandle] = None,
        available_after: Optional[int] = 0,
        load_error: Optional[str] = None,
    ):
        self.handle = handle or FakeHandle()
        self.available_after = available_after
        self.load_error = load_error
        self.probes = 0
        self.loads = 0

    def probe_available(self) -> bool:
        self.probes += 1
        if self.available_after is None:
            return False
        return self.probes > self.available_after

    async def load(self, on_progress=None) -> FakeHandle:
        self.loads += 1
        if on_progress is not None:
            on_progress(0.0)
            on_progress(0.5)
        if self.load_error is not None:
            raise EngineLoadError(self.load_error)
        if on_progress is not None:
            on_progress(1.0)
        return self.handle


@pytest.fixture
def fast_settings():
    """Settings with a tight readiness budget."""
    return ConverterSettings(poll_interval_ms=1, max_attempts=3)


@pytest.fixture
def fake_handle():
    return FakeHandle()


@pytest.fixture
def fake_loader(fake_handle):
    return FakeLoader(handle=fake_handle)
