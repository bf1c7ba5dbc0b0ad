#!/usr/bin/env python3
"""
Chat Server

A poll-based multi-room chat server.
"""

import asyncio
import logging
import sys
from concurrent.futures import ThreadPoolExecutor

from .config import Settings
from .content_filter import ContentFilter
from .service import ChatService
from .store import ChatStore
from .websocket_server import WebSocketServer

logger = logging.getLogger(__name__)


async def run_server(settings: Settings, stop_event: asyncio.Event = None):
    """
    Run the chat server until cancelled or until stop_event is set.

    Args:
        settings: Server configuration
        stop_event: Optional event that shuts the server down when set
    """
    store = ChatStore.from_settings(settings)
    store.initialize()

    executor = ThreadPoolExecutor(
        max_workers=settings.store_workers, thread_name_prefix="store"
    )
    service = ChatService(
        store,
        settings=settings,
        content_filter=ContentFilter(settings.banned_words),
        executor=executor,
    )
    ws_server = WebSocketServer(service, settings.host, settings.port)
    await ws_server.start()

    logger.info(
        f"Chat server ready on ws://{settings.host}:{ws_server.port} "
        f"({settings.storage_backend} storage)"
    )

    try:
        await (stop_event or asyncio.Event()).wait()
    except asyncio.CancelledError:
        logger.info("Server shutdown requested")
    finally:
        await ws_server.stop()
        executor.shutdown(wait=True)
        store.shutdown()
        logger.info("Chat server stopped")


def main():
    """Main entry point for the chat server."""
    try:
        settings = Settings.from_env()
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info(f"Starting chat server on {settings.host}:{settings.port}")

    try:
        asyncio.run(run_server(settings))
    except KeyboardInterrupt:
        logger.info("Shutting down chat server...")
        sys.exit(0)


if __name__ == "__main__":
    main()
