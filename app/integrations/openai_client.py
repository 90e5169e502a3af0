# integrations/openai_client.py
"""
Centralized OpenAI client factory.
Credentials come from settings only; a missing key fails settings validation at startup.
"""
from openai import AsyncOpenAI

from core.config import settings
from core.logger import logger


def get_openai_client() -> AsyncOpenAI:
    """Get an async OpenAI client configured from settings."""
    try:
        client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_TIMEOUT_SECS,
            max_retries=settings.OPENAI_MAX_RETRIES,
        )
        logger.info("OpenAI client initialized")
        return client
    except Exception as e:
        logger.error(f"Failed to initialize OpenAI client: {str(e)}")
        raise
