from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from core.config import settings
from core.errors import StorageUnavailable
from schemas.job_models import ChatJob, ChatResult, JobState
from services.job_store import MemoryJobStore, RedisJobStore, build_job_store


def _job(request_id: str, message: str = "hello") -> ChatJob:
    return ChatJob(request_id=request_id, message=message, enqueued_at_ms=0)


def _pipeline_client(execute_result=None, execute_error=None):
    """Redis client mock whose pipeline() works as an async context manager."""
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=execute_result, side_effect=execute_error)
    pipe.__aenter__.return_value = pipe
    pipe.__aexit__.return_value = False
    client = MagicMock()
    client.pipeline = MagicMock(return_value=pipe)
    return client, pipe


class TestMemoryJobStore:

    @pytest.mark.asyncio
    async def test_dequeue_empty_returns_none(self, memory_store):
        assert await memory_store.dequeue() is None

    @pytest.mark.asyncio
    async def test_fifo_order(self, memory_store):
        for request_id in ("a", "b", "c"):
            await memory_store.enqueue(_job(request_id))

        popped = [(await memory_store.dequeue()).request_id for _ in range(3)]

        assert popped == ["a", "b", "c"]
        assert await memory_store.queue_length() == 0

    @pytest.mark.asyncio
    async def test_state_moves_from_queued_to_processing_to_result(self, memory_store):
        await memory_store.enqueue(_job("a"))
        assert await memory_store.get_state("a") == JobState.QUEUED

        await memory_store.dequeue()
        await memory_store.mark_processing("a")
        assert await memory_store.get_state("a") == JobState.PROCESSING

        written = await memory_store.complete("a", ChatResult.success("hi", "thread_1"))

        assert written is True
        assert await memory_store.get_state("a") is None
        result = await memory_store.get_result("a")
        assert result.payload() == {"response": "hi", "conversationToken": "thread_1"}

    @pytest.mark.asyncio
    async def test_result_is_never_overwritten(self, memory_store):
        await memory_store.complete("a", ChatResult.success("first", "thread_1"))
        written = await memory_store.complete("a", ChatResult.failure("second"))

        assert written is False
        assert (await memory_store.get_result("a")).response == "first"

    @pytest.mark.asyncio
    async def test_result_expires(self, memory_store, clock):
        await memory_store.complete("a", ChatResult.success("hi", "thread_1"))

        clock.advance(299)
        assert await memory_store.get_result("a") is not None

        clock.advance(1)
        assert await memory_store.get_result("a") is None

    @pytest.mark.asyncio
    async def test_processing_marker_self_heals(self, memory_store, clock):
        await memory_store.mark_processing("a")

        clock.advance(60)

        assert await memory_store.get_state("a") is None

    @pytest.mark.asyncio
    async def test_malformed_entry_is_dropped(self, memory_store):
        memory_store._queue.append("not json")

        assert await memory_store.dequeue() is None

    @pytest.mark.asyncio
    async def test_conversation_token_survives_the_queue(self, memory_store):
        await memory_store.enqueue(
            ChatJob(request_id="a", message="hi", conversation_token="thread_9", enqueued_at_ms=1)
        )

        job = await memory_store.dequeue()

        assert job.conversation_token == "thread_9"


class TestRedisJobStore:

    @pytest.mark.asyncio
    async def test_dequeue_decodes_job(self):
        client = MagicMock()
        client.lpop = AsyncMock(return_value=_job("a", "hey").model_dump_json())
        store = RedisJobStore(client, prefix="test")

        job = await store.dequeue()

        client.lpop.assert_awaited_once_with("test:queue")
        assert job.request_id == "a"
        assert job.message == "hey"

    @pytest.mark.asyncio
    async def test_connection_errors_become_storage_unavailable(self):
        client = MagicMock()
        client.lpop = AsyncMock(side_effect=RedisConnectionError("refused"))
        client.get = AsyncMock(side_effect=RedisConnectionError("refused"))
        store = RedisJobStore(client)

        with pytest.raises(StorageUnavailable):
            await store.dequeue()
        with pytest.raises(StorageUnavailable):
            await store.get_result("a")

    @pytest.mark.asyncio
    async def test_processing_marker_uses_safety_expiry(self):
        client = MagicMock()
        client.set = AsyncMock(return_value=True)
        store = RedisJobStore(client, prefix="chat", processing_ttl=45)

        await store.mark_processing("a")

        client.set.assert_awaited_once_with("chat:state:a", JobState.PROCESSING, ex=45)

    @pytest.mark.asyncio
    async def test_unreadable_result_is_reported_as_failure(self):
        client = MagicMock()
        client.get = AsyncMock(return_value="{broken")
        store = RedisJobStore(client)

        result = await store.get_result("a")

        assert result.failed

    @pytest.mark.asyncio
    async def test_enqueue_sets_state_and_pushes_in_one_transaction(self):
        client, pipe = _pipeline_client(execute_result=[True, 1])
        store = RedisJobStore(client, prefix="chat", queued_ttl=600)
        job = _job("a")

        await store.enqueue(job)

        client.pipeline.assert_called_once_with(transaction=True)
        pipe.set.assert_called_once_with("chat:state:a", JobState.QUEUED, ex=600)
        pipe.rpush.assert_called_once_with("chat:queue", job.model_dump_json())
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_complete_writes_once_and_clears_marker_atomically(self):
        client, pipe = _pipeline_client(execute_result=[True, 1])
        store = RedisJobStore(client, prefix="chat", result_ttl=300)
        result = ChatResult.success("hi", "thread_1")

        written = await store.complete("a", result)

        assert written is True
        client.pipeline.assert_called_once_with(transaction=True)
        pipe.set.assert_called_once_with(
            "chat:result:a", result.model_dump_json(exclude_none=True), ex=300, nx=True
        )
        pipe.delete.assert_called_once_with("chat:state:a")

    @pytest.mark.asyncio
    async def test_complete_reports_existing_result(self):
        # SET NX answers None when the key is already there
        client, pipe = _pipeline_client(execute_result=[None, 1])
        store = RedisJobStore(client)

        assert await store.complete("a", ChatResult.failure("late")) is False
        pipe.delete.assert_called_once_with("chat:state:a")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [RedisConnectionError("refused"), RedisTimeoutError("slow")])
    async def test_transaction_errors_become_storage_unavailable(self, error):
        client, _ = _pipeline_client(execute_error=error)
        store = RedisJobStore(client)

        with pytest.raises(StorageUnavailable):
            await store.enqueue(_job("a"))
        with pytest.raises(StorageUnavailable):
            await store.complete("a", ChatResult.success("hi", "thread_1"))

    @pytest.mark.asyncio
    async def test_close_releases_the_injected_client(self):
        client = MagicMock()
        client.aclose = AsyncMock()
        store = RedisJobStore(client)

        await store.close()

        client.aclose.assert_awaited_once_with(close_connection_pool=True)


def test_build_job_store_follows_configuration():
    assert settings.STORE_BACKEND == "memory"
    assert isinstance(build_job_store(settings), MemoryJobStore)

