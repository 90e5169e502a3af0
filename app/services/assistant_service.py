# services/assistant_service.py
"""
Assistant Service

Runs one user message through the OpenAI Assistants API: thread, message,
run, then fixed-interval polling of the run status until it completes, fails
or the attempt budget runs out.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from core.config import settings
from core.errors import UpstreamFailure, UpstreamTimeout
from core.logger import logger


Heartbeat = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class AssistantReply:
    text: str
    conversation_token: str


class AssistantService:
    """Handles assistant runs with bounded status polling."""

    FAILED_STATUSES = frozenset({"failed", "cancelled", "expired", "incomplete"})

    def __init__(
        self,
        client: Any,
        assistant_id: str,
        poll_interval: float = 1.0,
        max_attempts: int = 30,
    ):
        self.client = client
        self.assistant_id = assistant_id
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(cls) -> "AssistantService":
        from integrations.openai_client import get_openai_client

        return cls(
            client=get_openai_client(),
            assistant_id=settings.OPENAI_ASSISTANT_ID,
            poll_interval=settings.ASSISTANT_POLL_INTERVAL_SECS,
            max_attempts=settings.ASSISTANT_MAX_POLL_ATTEMPTS,
        )

    async def reply(
        self,
        message: str,
        conversation_token: Optional[str] = None,
        heartbeat: Optional[Heartbeat] = None
    ) -> AssistantReply:
        """
        Send `message` and wait for the assistant's answer.

        Args:
            message: User text
            conversation_token: Thread id from an earlier reply, if continuing
            heartbeat: Awaited after every upstream call and before every
                status poll, so the caller can show the job is still alive

        Returns:
            AssistantReply with the answer text and the thread id to reuse

        Raises:
            UpstreamFailure: run ended in a failure status or returned no text
            UpstreamTimeout: run still pending after max_attempts polls
        """
        threads = self.client.beta.threads

        if conversation_token:
            thread_id = conversation_token
        else:
            thread = await threads.create()
            thread_id = thread.id
            await self._beat(heartbeat)

        await threads.messages.create(thread_id=thread_id, role="user", content=message)
        await self._beat(heartbeat)
        run = await threads.runs.create(thread_id=thread_id, assistant_id=self.assistant_id)

        logger.info(f"Assistant run started: thread={thread_id} run={run.id}")

        await self._wait_for_run(thread_id, run, heartbeat)
        await self._beat(heartbeat)
        text = await self._latest_assistant_text(thread_id)
        return AssistantReply(text=text, conversation_token=thread_id)

    @staticmethod
    async def _beat(heartbeat: Optional[Heartbeat]) -> None:
        if heartbeat is not None:
            await heartbeat()

    async def _wait_for_run(self, thread_id: str, run: Any, heartbeat: Optional[Heartbeat] = None) -> Any:
        attempts = 0
        while run.status != "completed":
            if run.status in self.FAILED_STATUSES:
                raise UpstreamFailure(f"Assistant run {run.status}: {self._error_detail(run)}")
            if attempts >= self.max_attempts:
                logger.warning(
                    f"Assistant run timed out: thread={thread_id} run={run.id} "
                    f"status={run.status} attempts={attempts}"
                )
                raise UpstreamTimeout("Assistant did not respond in time")

            await self._beat(heartbeat)
            await asyncio.sleep(self.poll_interval)
            run = await self.client.beta.threads.runs.retrieve(run.id, thread_id=thread_id)
            attempts += 1

        return run

    @staticmethod
    def _error_detail(run: Any) -> str:
        last_error = getattr(run, "last_error", None)
        if last_error is not None and getattr(last_error, "message", None):
            return last_error.message
        return "no error detail provided"

    async def _latest_assistant_text(self, thread_id: str) -> str:
        page = await self.client.beta.threads.messages.list(thread_id=thread_id, order="desc")

        latest = next((msg for msg in page.data if msg.role == "assistant"), None)
        if latest is None or not latest.content:
            raise UpstreamFailure("No response from assistant")

        block = latest.content[0]
        if block.type != "text":
            raise UpstreamFailure("Unexpected response type from assistant")

        return block.text.value
