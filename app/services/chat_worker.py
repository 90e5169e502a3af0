# services/chat_worker.py
"""
Chat Worker

Single background consumer of the work queue. Per job:

    Dequeued -> ProcessingMarkerSet -> AssistantInvoked
             -> Completed | Failed -> ResultWritten (marker cleared)

The processing marker is refreshed before every assistant call and status
poll, so it outlives a slow run and only lapses once the worker is gone.

Delivery is at-most-once: if the process dies after a job is popped and
before its result is written, the job is gone. The processing marker then
expires and pollers get `not_found`.
"""

import asyncio
import time
from functools import partial
from typing import Optional

from core.config import settings
from core.errors import StorageUnavailable, UpstreamFailure
from core.logger import logger
from schemas.job_models import ChatJob, ChatResult
from services.assistant_service import AssistantService
from services.job_store import JobStore
from utils.log_response import log_job_outcome

GENERIC_FAILURE_MESSAGE = "Failed to process your message"


class ChatWorker:
    """
    Long-running queue consumer whose lifecycle belongs to the host process
    (FastAPI lifespan or scripts/run_worker.py).
    """

    def __init__(
        self,
        store: JobStore,
        assistant: AssistantService,
        *,
        idle_sleep: float = 1.0,
        reschedule_delay: float = 1.0,
        shutdown_grace: float = 5.0,
    ):
        self.store = store
        self.assistant = assistant
        self.idle_sleep = idle_sleep
        self.reschedule_delay = reschedule_delay
        self.shutdown_grace = shutdown_grace
        self._stopping = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, store: JobStore) -> "ChatWorker":
        return cls(
            store,
            AssistantService.from_settings(),
            idle_sleep=settings.WORKER_IDLE_SLEEP_SECS,
            reschedule_delay=settings.WORKER_RESCHEDULE_DELAY_SECS,
            shutdown_grace=settings.WORKER_SHUTDOWN_GRACE_SECS,
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self.run(), name="chat-worker")
        logger.info("Chat worker started")

    async def stop(self) -> None:
        """Ask the loop to finish; cancel it if the current job outlives the grace period."""
        if self._task is None:
            return
        self._stopping.set()
        try:
            await asyncio.wait_for(self._task, timeout=self.shutdown_grace)
        except asyncio.TimeoutError:
            logger.warning("Chat worker did not stop within grace period; job in flight is dropped")
        self._task = None
        logger.info("Chat worker stopped")

    async def run(self) -> None:
        while not self._stopping.is_set():
            try:
                handled = await self.process_next()
            except StorageUnavailable as e:
                logger.error(f"Job store unavailable, retrying later: {e}")
                handled = True
            except Exception:
                logger.exception("Unexpected error in chat worker loop")
                handled = True

            await self._pause(self.reschedule_delay if handled else self.idle_sleep)

    async def _pause(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def process_next(self) -> bool:
        """
        Process at most one job.

        Returns:
            bool: True if a job was dequeued, False if the queue was empty
        """
        job = await self.store.dequeue()
        if job is None:
            return False

        await self.process_job(job)
        return True

    async def _refresh_marker(self, request_id: str) -> None:
        """(Re)set the processing marker; its expiry restarts on every call."""
        try:
            await self.store.mark_processing(request_id)
        except StorageUnavailable as e:
            # Carry on; the result write is what pollers wait for.
            logger.warning(f"Could not set processing marker for {request_id}: {e}")

    async def process_job(self, job: ChatJob) -> ChatResult:
        started = time.monotonic()

        await self._refresh_marker(job.request_id)

        try:
            reply = await self.assistant.reply(
                job.message,
                job.conversation_token,
                heartbeat=partial(self._refresh_marker, job.request_id),
            )
            result = ChatResult.success(reply.text, reply.conversation_token)
        except UpstreamFailure as e:
            result = ChatResult.failure(str(e))
        except Exception:
            logger.exception(f"Chat job {job.request_id} failed")
            result = ChatResult.failure(GENERIC_FAILURE_MESSAGE)

        try:
            written = await self.store.complete(job.request_id, result)
        except StorageUnavailable as e:
            logger.error(f"Result for {job.request_id} could not be stored; job is lost: {e}")
            raise

        if not written:
            logger.warning(f"Result for {job.request_id} already existed; kept the first one")

        return log_job_outcome(
            request_id=job.request_id,
            message=job.message,
            result=result,
            duration_ms=int((time.monotonic() - started) * 1000),
            conversation_token=job.conversation_token,
        )
