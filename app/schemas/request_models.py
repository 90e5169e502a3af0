# schemas/request_models.py
from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Optional


class ChatRequest(BaseModel):
    """
    Request model for POST /chat
    """
    message: str = Field(..., description="User message for the assistant")
    conversationToken: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("conversationToken", "threadId"),
        description="Opaque token from a previous response to continue that conversation"
    )

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("message must not be empty")
        return value

    @field_validator("conversationToken")
    @classmethod
    def _blank_token_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "message": "what is Universal OS",
                "conversationToken": "thread_abc123"
            }
        }


class ChatAccepted(BaseModel):
    """Response for an accepted chat request"""
    requestId: str = Field(..., description="Identifier to poll GET /chat with")


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    message: str
    store_backend: str
    store_status: Optional[str] = None
    queue_depth: Optional[int] = None
    worker_status: Optional[str] = None
