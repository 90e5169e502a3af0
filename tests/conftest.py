"""Pytest fixtures for the chat gateway."""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# Settings are read once at import time, so the environment is fixed here,
# before any application module is imported.
os.environ["OPENAI_API_KEY"] = "sk-test"
os.environ["OPENAI_ASSISTANT_ID"] = "asst_test"
os.environ["STORE_BACKEND"] = "memory"
os.environ["WORKER_ENABLED"] = "false"
os.environ["RATE_LIMIT_REQUESTS"] = "5"
os.environ["RATE_LIMIT_WINDOW_SECS"] = "60"
os.environ["DEBUG"] = "false"
os.environ.pop("DEXTOOLS_API_KEY", None)
os.environ.pop("RATE_LIMIT_STORAGE_URI", None)


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    from services.job_store import MemoryJobStore

    return MemoryJobStore(result_ttl=300, processing_ttl=60, queued_ttl=600, clock=clock)


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from core.rate_limiter import limiter
    from main import app

    with TestClient(app) as test_client:
        limiter.reset()
        yield test_client


def make_run(status: str, run_id: str = "run_1", error_message=None):
    last_error = SimpleNamespace(message=error_message) if error_message else None
    return SimpleNamespace(id=run_id, status=status, last_error=last_error)


def make_message(text: str, role: str = "assistant", block_type: str = "text"):
    block = SimpleNamespace(type=block_type, text=SimpleNamespace(value=text))
    return SimpleNamespace(role=role, content=[block])


def make_openai_client(*, initial_status="queued", statuses=("completed",), messages=None):
    """
    MagicMock shaped like AsyncOpenAI's beta.threads surface.

    `statuses` are returned by successive runs.retrieve calls; the last one
    repeats once the sequence is exhausted.
    """
    client = MagicMock()
    threads = client.beta.threads
    threads.create = AsyncMock(return_value=SimpleNamespace(id="thread_new"))
    threads.messages.create = AsyncMock()
    threads.runs.create = AsyncMock(return_value=make_run(initial_status))

    sequence = list(statuses)

    async def _retrieve(run_id, thread_id):
        status = sequence.pop(0) if len(sequence) > 1 else sequence[0]
        return make_run(status, run_id=run_id)

    threads.runs.retrieve = AsyncMock(side_effect=_retrieve)
    if messages is None:
        messages = [make_message("Hello from the assistant")]
    threads.messages.list = AsyncMock(return_value=SimpleNamespace(data=messages))
    return client
