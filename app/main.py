import time
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from routers.router import router
from routers.dex_router import router as dex_router
from core.errors import StorageUnavailable
from core.lifespan import lifespan
from core.config import settings
from core.logger import logger
from core.rate_limiter import limiter

# CORS configuration
if settings.ENABLE_CORS:
    origins = [
        origin for origin in (settings.FRONTEND_ENDPOINT, settings.BACKEND_ENDPOINT) if origin
    ]
else:
    origins = ["*"]

# Initialize FastAPI app
app = FastAPI(
    title="Universal OS Chat Gateway",
    description="""
    Queued assistant chat and token market data for the Universal OS terminal.

    ## Chat

    **POST /api/chat** - queue a message, returns `{requestId}` immediately
    (rate limited per client IP)

    **GET /api/chat?requestId=** - poll until the response is ready:
    - `{status: "queued" | "processing"}` while pending
    - `{response, conversationToken}` or `{error}` when finished
    - `{status: "not_found"}` (404) for unknown or expired ids

    ## Market data

    **GET /api/trust**, **GET /api/dexscreener**, **GET /api/dexscreener/history**,
    **GET /api/price-history**
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())[1:]) or "body"
        details.append(f"{field}: {err.get('msg')}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "; ".join(details) or "Invalid request"}
    )


@app.exception_handler(StorageUnavailable)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
    logger.error(f"Storage unavailable on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Chat service storage is unavailable"}
    )


# The rate limiter talks to Redis directly; its failures reject the request.
@app.exception_handler(RedisError)
async def redis_error_handler(request: Request, exc: RedisError):
    logger.error(f"Rate limiter storage error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Rate limiter is unavailable"}
    )


# Request/Response logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    log_data = {
        "method": request.method,
        "path": request.url.path,
        "status_code": response.status_code,
        "duration_ms": int(duration * 1000),
        "client": request.client.host if request.client else "unknown"
    }

    # Only log non-health-check requests
    if not request.url.path.endswith("/health"):
        logger.info(f"Request: {log_data}")

    return response

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=bool(origins),
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Include routers
app.include_router(router)
app.include_router(dex_router)

# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    return {
        "service": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "running",
        "documentation": "/docs"
    }
