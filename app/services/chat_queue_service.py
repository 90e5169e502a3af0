# services/chat_queue_service.py
"""
Chat intake and result polling.

Intake never waits on the assistant: it stores the job and hands back a
request id. Polling is a stateless read of the job store.
"""

import time
from typing import Any, Dict, Tuple
from uuid import uuid4

from core.logger import logger
from schemas.job_models import ChatJob, JobState
from schemas.request_models import ChatRequest
from services.job_store import JobStore


class ChatQueueService:

    def __init__(self, store: JobStore):
        self.store = store

    async def submit(self, request: ChatRequest) -> str:
        """
        Enqueue a chat job.

        Returns:
            str: server-generated request id

        Raises:
            StorageUnavailable: if the job could not be stored
        """
        request_id = uuid4().hex
        job = ChatJob(
            request_id=request_id,
            message=request.message,
            conversation_token=request.conversationToken,
            enqueued_at_ms=int(time.time() * 1000),
        )
        await self.store.enqueue(job)

        logger.info(
            f"Chat job queued: request_id={request_id}, "
            f"continuing={bool(request.conversationToken)}"
        )
        return request_id

    async def get_status(self, request_id: str) -> Tuple[str, Dict[str, Any]]:
        """
        Report where a request is.

        Returns:
            (state, payload) where state is "done", "queued", "processing"
            or "not_found", and payload is the JSON body for the client
        """
        result = await self.store.get_result(request_id)
        if result is not None:
            return "done", result.payload()

        state = await self.store.get_state(request_id)
        if state in JobState.ACTIVE:
            return state, {"status": state}

        return JobState.NOT_FOUND, {"status": JobState.NOT_FOUND}
