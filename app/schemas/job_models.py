# app/schemas/job_models.py
from pydantic import BaseModel, model_validator
from typing import Any, Dict, Optional


class ChatJob(BaseModel):
    """A pending chat request as it sits in the work queue."""
    request_id: str
    message: str
    conversation_token: Optional[str] = None
    enqueued_at_ms: int
    version: int = 1


class ChatResult(BaseModel):
    """
    Terminal outcome of a job. Exactly one of `response` or `error` is set;
    `conversationToken` accompanies a successful response.
    """
    response: Optional[str] = None
    conversationToken: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _one_outcome(self) -> "ChatResult":
        if (self.response is None) == (self.error is None):
            raise ValueError("ChatResult needs exactly one of response or error")
        return self

    @classmethod
    def success(cls, text: str, conversation_token: str) -> "ChatResult":
        return cls(response=text, conversationToken=conversation_token)

    @classmethod
    def failure(cls, message: str) -> "ChatResult":
        return cls(error=message)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class JobState:
    QUEUED = "queued"
    PROCESSING = "processing"
    NOT_FOUND = "not_found"

    ACTIVE = frozenset({QUEUED, PROCESSING})
