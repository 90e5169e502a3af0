# services/job_store.py
"""
Work Queue and Result Store

Storage layout (Redis backend):
- Queue:  {prefix}:queue            -> list of ChatJob JSON, RPUSH / LPOP
- State:  {prefix}:state:{id}       -> "queued" | "processing" (with expiry)
- Result: {prefix}:result:{id}      -> ChatResult JSON (with expiry, written once)

A request id owns a single state key, so it can never carry more than one
processing marker. The result is written and the state key removed in one
transaction; pollers always see either the marker or the result.

Both backends expose the same coroutine API. The memory backend is for tests
and single-process development; selection happens once, from settings.
"""

import json
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional, Protocol, Tuple

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from core.config import Settings
from core.errors import StorageUnavailable
from core.logger import logger
from core.redis_client import get_redis
from schemas.job_models import ChatJob, ChatResult, JobState


class JobStore(Protocol):
    """Interface shared by the storage backends."""

    async def enqueue(self, job: ChatJob) -> None: ...

    async def dequeue(self) -> Optional[ChatJob]: ...

    async def mark_processing(self, request_id: str) -> None: ...

    async def complete(self, request_id: str, result: ChatResult) -> bool: ...

    async def get_result(self, request_id: str) -> Optional[ChatResult]: ...

    async def get_state(self, request_id: str) -> Optional[str]: ...

    async def queue_length(self) -> int: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


def _decode_job(raw: str) -> Optional[ChatJob]:
    try:
        return ChatJob.model_validate_json(raw)
    except ValidationError as e:
        logger.error(f"Dropping malformed queue entry: {e}")
        return None


# ============================================================================
# REDIS BACKEND
# ============================================================================

class RedisJobStore:
    """
    Redis-backed store shared by every server instance.

    Each operation maps onto atomic Redis primitives (RPUSH, LPOP, SET EX,
    SET NX, MULTI/EXEC) so no extra locking is needed across workers.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        prefix: str = "chat",
        result_ttl: int = 3600,
        processing_ttl: int = 60,
        queued_ttl: int = 3600,
    ):
        self.redis = client
        self.prefix = prefix
        self.result_ttl = result_ttl
        self.processing_ttl = processing_ttl
        self.queued_ttl = queued_ttl
        self.queue_key = f"{prefix}:queue"

    def _state_key(self, request_id: str) -> str:
        return f"{self.prefix}:state:{request_id}"

    def _result_key(self, request_id: str) -> str:
        return f"{self.prefix}:result:{request_id}"

    async def enqueue(self, job: ChatJob) -> None:
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.set(self._state_key(job.request_id), JobState.QUEUED, ex=self.queued_ttl)
                pipe.rpush(self.queue_key, job.model_dump_json())
                await pipe.execute()
        except RedisError as e:
            raise StorageUnavailable(f"Failed to enqueue job: {e}") from e

    async def dequeue(self) -> Optional[ChatJob]:
        try:
            raw = await self.redis.lpop(self.queue_key)
        except RedisError as e:
            raise StorageUnavailable(f"Failed to dequeue job: {e}") from e
        if raw is None:
            return None
        return _decode_job(raw)

    async def mark_processing(self, request_id: str) -> None:
        try:
            await self.redis.set(
                self._state_key(request_id),
                JobState.PROCESSING,
                ex=self.processing_ttl
            )
        except RedisError as e:
            raise StorageUnavailable(f"Failed to set processing marker: {e}") from e

    async def complete(self, request_id: str, result: ChatResult) -> bool:
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.set(
                    self._result_key(request_id),
                    result.model_dump_json(exclude_none=True),
                    ex=self.result_ttl,
                    nx=True
                )
                pipe.delete(self._state_key(request_id))
                written, _ = await pipe.execute()
        except RedisError as e:
            raise StorageUnavailable(f"Failed to write result: {e}") from e
        return bool(written)

    async def get_result(self, request_id: str) -> Optional[ChatResult]:
        try:
            raw = await self.redis.get(self._result_key(request_id))
        except RedisError as e:
            raise StorageUnavailable(f"Failed to read result: {e}") from e
        if raw is None:
            return None
        try:
            return ChatResult.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(
                f"Stored result is unreadable: {e}",
                extra={"request_id": request_id}
            )
            return ChatResult.failure("Stored result is unreadable")

    async def get_state(self, request_id: str) -> Optional[str]:
        try:
            return await self.redis.get(self._state_key(request_id))
        except RedisError as e:
            raise StorageUnavailable(f"Failed to read job state: {e}") from e

    async def queue_length(self) -> int:
        try:
            return int(await self.redis.llen(self.queue_key))
        except RedisError as e:
            raise StorageUnavailable(f"Failed to read queue length: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            raise StorageUnavailable(f"Redis is unreachable: {e}") from e

    async def close(self) -> None:
        """Release the client this store was built with, pool included."""
        try:
            await self.redis.aclose(close_connection_pool=True)
        except RedisError as e:
            raise StorageUnavailable(f"Failed to close Redis client: {e}") from e


# ============================================================================
# IN-MEMORY BACKEND
# ============================================================================

class MemoryJobStore:
    """
    Process-local store with the same semantics as RedisJobStore.

    Expiry is evaluated lazily against `clock`, which tests can replace
    to move time forward.
    """

    def __init__(
        self,
        *,
        result_ttl: int = 3600,
        processing_ttl: int = 60,
        queued_ttl: int = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.result_ttl = result_ttl
        self.processing_ttl = processing_ttl
        self.queued_ttl = queued_ttl
        self.clock = clock
        self._queue: Deque[str] = deque()
        self._states: Dict[str, Tuple[str, float]] = {}
        self._results: Dict[str, Tuple[str, float]] = {}

    def _live(self, table: Dict[str, Tuple[str, float]], key: str) -> Optional[str]:
        entry = table.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            del table[key]
            return None
        return value

    async def enqueue(self, job: ChatJob) -> None:
        self._states[job.request_id] = (JobState.QUEUED, self.clock() + self.queued_ttl)
        self._queue.append(job.model_dump_json())

    async def dequeue(self) -> Optional[ChatJob]:
        if not self._queue:
            return None
        return _decode_job(self._queue.popleft())

    async def mark_processing(self, request_id: str) -> None:
        self._states[request_id] = (JobState.PROCESSING, self.clock() + self.processing_ttl)

    async def complete(self, request_id: str, result: ChatResult) -> bool:
        written = False
        if self._live(self._results, request_id) is None:
            self._results[request_id] = (
                result.model_dump_json(exclude_none=True),
                self.clock() + self.result_ttl
            )
            written = True
        self._states.pop(request_id, None)
        return written

    async def get_result(self, request_id: str) -> Optional[ChatResult]:
        raw = self._live(self._results, request_id)
        if raw is None:
            return None
        return ChatResult.model_validate_json(raw)

    async def get_state(self, request_id: str) -> Optional[str]:
        return self._live(self._states, request_id)

    async def queue_length(self) -> int:
        return len(self._queue)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._queue.clear()
        self._states.clear()
        self._results.clear()


def build_job_store(config: Settings) -> JobStore:
    """
    Select the storage backend from configuration.
    """
    ttl_kwargs = {
        "result_ttl": config.RESULT_TTL_SECS,
        "processing_ttl": config.PROCESSING_MARKER_TTL_SECS,
        "queued_ttl": config.QUEUED_MARKER_TTL_SECS,
    }
    if config.STORE_BACKEND == "memory":
        logger.info("Using in-memory job store")
        return MemoryJobStore(**ttl_kwargs)

    logger.info(
        "Using Redis job store",
        extra={"host": config.REDIS_HOST, "prefix": config.CHAT_KEY_PREFIX}
    )
    return RedisJobStore(get_redis(), prefix=config.CHAT_KEY_PREFIX, **ttl_kwargs)
