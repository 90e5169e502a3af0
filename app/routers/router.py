# routers/router.py
"""
FastAPI Router for the queued chat service
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from core.config import settings
from core.errors import StorageUnavailable
from core.logger import logger
from core.rate_limiter import limit_param, limiter
from schemas.job_models import JobState
from schemas.request_models import ChatAccepted, ChatRequest, HealthResponse
from services.chat_queue_service import ChatQueueService


# ============================================================================
# ROUTER CONFIGURATION
# ============================================================================

router = APIRouter(
    prefix=settings.API_PREFIX,
    tags=["Chat"],
    responses={
        400: {"description": "Invalid request"},
        429: {"description": "Too Many Requests"},
        500: {"description": "Internal Server Error"}
    }
)


def get_chat_service(request: Request) -> ChatQueueService:
    return request.app.state.chat_service


# ============================================================================
# HEALTH CHECK ENDPOINTS
# ============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Service Health Check",
    description="Validates job store connectivity and worker state"
)
async def check_health(request: Request) -> HealthResponse:
    """
    Health check for the chat pipeline.

    Checks:
    - Job store reachability and queue depth
    - Background worker state
    """
    health_status = HealthResponse(
        status="healthy",
        message="Universal OS chat gateway is operational",
        store_backend=settings.STORE_BACKEND
    )

    store = request.app.state.job_store
    try:
        await store.ping()
        health_status.store_status = "connected"
        health_status.queue_depth = await store.queue_length()
    except StorageUnavailable as e:
        logger.error(f"Job store health check failed: {e}")
        health_status.store_status = f"error: {str(e)[:100]}"
        health_status.status = "degraded"

    worker = getattr(request.app.state, "chat_worker", None)
    if worker is None:
        health_status.worker_status = "disabled"
    else:
        health_status.worker_status = "running" if worker.running else "stopped"
        if not worker.running:
            health_status.status = "degraded"

    return health_status


# ============================================================================
# CHAT ENDPOINTS
# ============================================================================

@router.post(
    "/chat",
    response_model=ChatAccepted,
    status_code=status.HTTP_200_OK,
    summary="Queue a chat message",
    description="Queues the message for the assistant and returns a request id to poll"
)
@limiter.limit(limit_param)
async def submit_chat(
    request: Request,
    body: ChatRequest,
    service: ChatQueueService = Depends(get_chat_service)
) -> ChatAccepted:
    """
    Accept a chat message without waiting for the assistant.

    The rate limit is checked before this body runs, so a rejected request
    never reaches the queue. Poll GET /chat?requestId=... for the outcome.
    """
    request_id = await service.submit(body)
    return ChatAccepted(requestId=request_id)


@router.get(
    "/chat",
    summary="Poll a chat request",
    description="Returns queued/processing, the final result, or not_found"
)
async def poll_chat(
    requestId: Optional[str] = Query(None, description="Id returned by POST /chat"),
    service: ChatQueueService = Depends(get_chat_service)
) -> JSONResponse:
    """
    Read-only status lookup, safe to call repeatedly.

    Responses:
    - {"status": "queued" | "processing"} while the job is pending
    - {"response": ..., "conversationToken": ...} or {"error": ...} once finished
    - {"status": "not_found"} (404) for unknown or expired ids
    """
    if not requestId or not requestId.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "requestId is required"}
        )

    state, payload = await service.get_status(requestId.strip())

    if state == JobState.NOT_FOUND:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=payload)
    return JSONResponse(status_code=status.HTTP_200_OK, content=payload)
