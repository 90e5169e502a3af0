from contextlib import asynccontextmanager

from fastapi import FastAPI

from core.config import settings
from core.logger import logger
from integrations.dexscreener_client import DexScreenerClient
from integrations.dextools_client import DexToolsClient
from services.chat_queue_service import ChatQueueService
from services.chat_worker import ChatWorker
from services.job_store import build_job_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Owns every long-lived resource: job store, HTTP clients and the
    background chat worker. Startup fails if the job store is unreachable.
    """
    store = build_job_store(settings)
    await store.ping()
    logger.info(f"Job store ready (backend={settings.STORE_BACKEND})")

    app.state.job_store = store
    app.state.chat_service = ChatQueueService(store)
    app.state.dexscreener = DexScreenerClient()
    app.state.dextools = DexToolsClient()
    app.state.chat_worker = None

    if settings.WORKER_ENABLED:
        worker = ChatWorker.from_settings(store)
        worker.start()
        app.state.chat_worker = worker
    else:
        logger.info("In-process chat worker disabled; run scripts/run_worker.py separately")

    logger.info("Lifespan startup: Ready to serve requests.")
    try:
        yield
    finally:
        if app.state.chat_worker is not None:
            await app.state.chat_worker.stop()
        await app.state.dexscreener.close()
        await app.state.dextools.close()
        await store.close()
        logger.info("Lifespan shutdown.")
