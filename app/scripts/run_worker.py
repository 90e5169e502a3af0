#!/usr/bin/env python3
"""
Standalone chat worker.

Consumes the shared Redis queue without serving HTTP. Run API instances with
WORKER_ENABLED=false and scale these separately:

    cd app && python -m scripts.run_worker
"""
import asyncio
import signal

from core.config import settings
from core.logger import logger
from services.chat_worker import ChatWorker
from services.job_store import build_job_store


async def main() -> None:
    store = build_job_store(settings)
    await store.ping()

    worker = ChatWorker.from_settings(store)
    stop_requested = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_requested.set)

    worker.start()
    logger.info(f"Standalone chat worker running (backend={settings.STORE_BACKEND})")
    try:
        await stop_requested.wait()
    finally:
        await worker.stop()
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
