# core/errors.py
"""
Error taxonomy for the chat gateway.

Input validation and rate limiting are rejected at intake by FastAPI
(RequestValidationError) and slowapi (RateLimitExceeded). The types below
cover the failures that happen behind the intake boundary.
"""


class ChatGatewayError(Exception):
    """Base class for service errors."""


class StorageUnavailable(ChatGatewayError):
    """The queue/result backing store could not be reached."""


class UpstreamFailure(ChatGatewayError):
    """An external provider reported a failure or returned an unusable payload."""


class UpstreamTimeout(UpstreamFailure):
    """The assistant run did not finish within the polling budget."""


class DexDataUnavailable(UpstreamFailure):
    """The DEX data API could not be reached or answered with an error."""
