# app/core/logger.py
import logging
from core.config import settings

LOG_LEVEL = logging.DEBUG if settings.DEBUG else logging.INFO
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger("uos-chat-logger")
logger.setLevel(LOG_LEVEL)
logger.propagate = False

# uvicorn --reload re-imports this module; attach the console handler once
if not logger.handlers:
    _console = logging.StreamHandler()
    _console.setLevel(LOG_LEVEL)
    _console.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    logger.addHandler(_console)

# httpx logs every DexScreener/OpenAI request at INFO; the worker polls often
for _noisy in ("httpx", "openai"):
    logging.getLogger(_noisy).setLevel(logging.DEBUG if settings.DEBUG else logging.WARNING)
