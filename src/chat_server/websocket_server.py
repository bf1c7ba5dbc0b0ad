"""
WebSocket Server for the Chat Service

Accepts WebSocket connections from clients and hands every incoming
message to the ChatService.
"""

import logging
from typing import Optional, Set

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from .service import ChatService

logger = logging.getLogger(__name__)


class WebSocketServer:
    """
    WebSocket server for handling client connections.

    Clients poll for messages, so the server never pushes; each request
    gets exactly one response on the same connection.
    """

    def __init__(self, service: ChatService, host: str, port: int):
        """
        Initialize the WebSocket server.

        Args:
            service: The chat service that handles requests
            host: Host address to bind to
            port: Port to listen on (0 picks a free port)
        """
        self.service = service
        self.host = host
        self.port = port
        self.clients: Set[ServerConnection] = set()
        self.server: Optional[Server] = None

    async def start(self):
        """Start the WebSocket server."""
        self.server = await serve(self.handle_client, self.host, self.port)
        if self.port == 0:
            self.port = self.server.sockets[0].getsockname()[1]
        logger.info(f"WebSocket server started on ws://{self.host}:{self.port}")

    async def stop(self):
        """Stop the WebSocket server."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            self.server = None
            logger.info("WebSocket server stopped")

    async def handle_client(self, websocket: ServerConnection):
        """
        Handle a client connection.

        Args:
            websocket: The WebSocket connection
        """
        self.clients.add(websocket)
        client_id = id(websocket)
        logger.info(f"Client {client_id} connected")

        try:
            async for message in websocket:
                await self.service.handle_message(websocket, message)
        except ConnectionClosed:
            logger.info(f"Client {client_id} disconnected")
        except Exception as e:
            logger.error(f"Error handling client {client_id}: {e}")
        finally:
            self.clients.discard(websocket)
