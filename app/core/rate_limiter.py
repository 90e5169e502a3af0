from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from .config import settings


def client_identifier(request: Request) -> str:
    """
    Rate-limit key: the originating client IP.

    Behind a proxy the first X-Forwarded-For hop is the client. Requests
    without any address share the configured default bucket.
    """
    if settings.TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client is None:
        return settings.RATE_LIMIT_DEFAULT_CLIENT
    return get_remote_address(request) or settings.RATE_LIMIT_DEFAULT_CLIENT


# Storage errors propagate (fail closed); no per-instance in-memory fallback.
limiter = Limiter(
    key_func=client_identifier,
    storage_uri=settings.RATE_LIMIT_STORAGE,
    strategy=settings.RATE_LIMIT_STRATEGY,
    swallow_errors=False,
    in_memory_fallback_enabled=False,
)
limit_param = settings.RATE_LIMIT
