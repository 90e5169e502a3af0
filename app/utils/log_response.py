import json
from datetime import datetime, timezone
from typing import Optional

from core.logger import logger
from schemas.job_models import ChatResult


def log_job_outcome(
    request_id: str,
    message: str,
    result: ChatResult,
    duration_ms: int,
    conversation_token: Optional[str] = None
) -> ChatResult:
    """
    Structured log line for a finished chat job.
    """
    log_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": "chat_job_completed",
        "request_id": request_id,
        "conversation_token": result.conversationToken or conversation_token,
        "duration_ms": duration_ms,
        "message": message[:500],  # Truncate long messages
    }

    if result.failed:
        log_data["event"] = "chat_job_failed"
        log_data["error"] = result.error
        logger.warning(json.dumps(log_data))
    else:
        log_data["response_preview"] = result.response[:500]
        log_data["response_length"] = len(result.response)
        logger.info(json.dumps(log_data))

    return result
