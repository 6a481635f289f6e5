import asyncio
import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("CONTENT_SOURCE_MODE", "simulated")
os.environ.setdefault("SMOOTHING_WINDOW", "5")
os.environ.setdefault("LOW_FOCUS_THRESHOLD", "40")
os.environ.setdefault("SUGGESTION_COOLDOWN_S", "60")
os.environ.setdefault("RUNTIME_LOG_MAX_ENTRIES", "500")

from attune.content_source import SimulatedContentSource
from attune.deps import content_source, hub, runtime_logs, sessions
from attune.errors import SourceFetchError


def _run(coro):
    try:
        asyncio.run(coro)
    except RuntimeError:
        loop = asyncio.new_event_loop()
        try:
            loop.run_until_complete(coro)
        finally:
            loop.close()


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingContentSource(SimulatedContentSource):
    mode = "failing"

    def __init__(self) -> None:
        super().__init__()
        self.fail = True

    async def fetch(self, content_format, document):
        self.calls.append((content_format, document.document_id))
        if self.fail:
            raise SourceFetchError("processing service unavailable", format=content_format.value)
        return {"format": content_format.value, "document_id": document.document_id}


class GatedContentSource(SimulatedContentSource):
    """Blocks every fetch until ``release`` is called."""

    mode = "gated"

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.started = asyncio.Event()

    async def fetch(self, content_format, document):
        self.calls.append((content_format, document.document_id))
        self.started.set()
        await self.gate.wait()
        return {"format": content_format.value, "document_id": document.document_id}

    def release(self) -> None:
        self.gate.set()

    def hold(self) -> None:
        """Block fetches again and wait for the next one to start."""
        self.gate.clear()
        self.started.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def source():
    return SimulatedContentSource()


@pytest.fixture
def failing_source():
    return FailingContentSource()


@pytest.fixture(autouse=True)
def reset_runtime_state():
    _run(sessions.reset())
    hub._clients.clear()
    runtime_logs.clear()
    if isinstance(content_source, SimulatedContentSource):
        content_source.calls.clear()
