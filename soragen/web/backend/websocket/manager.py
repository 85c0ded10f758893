"""WebSocket connection manager for real-time updates.

Handles client connections and pushes task events to every connected
client. Delivery is best-effort; a client that falls behind re-syncs from the
``initial_data`` snapshot it receives on (re)connect.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket

if TYPE_CHECKING:
    from soragen.tasks.models import Task, TaskEvent

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Manages WebSocket connections and broadcasts task events."""

    def __init__(self):
        """Initialize the WebSocket manager."""
        self._connections: dict[str, WebSocket] = {}
        self._broadcasts: set[asyncio.Task] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Set the loop that owns the sockets.

        Task events can be raised from worker threads; they are handed to
        this loop for delivery.

        Args:
            loop: The asyncio event loop.
        """
        self._loop = loop

    async def connect(self, websocket: WebSocket, client_id: str) -> None:
        """Accept a new WebSocket connection.

        Args:
            websocket: The WebSocket connection.
            client_id: Unique client identifier.
        """
        await websocket.accept()
        self._connections[client_id] = websocket
        logger.info("Client connected: %s", client_id)

    def disconnect(self, client_id: str) -> None:
        """Handle client disconnection.

        Args:
            client_id: The client identifier.
        """
        if self._connections.pop(client_id, None) is not None:
            logger.info("Client disconnected: %s", client_id)

    async def send_snapshot(self, client_id: str, tasks: list["Task"]) -> bool:
        """Send the full task list to one client."""
        return await self.send_to_client(
            client_id,
            {"type": "initial_data", "tasks": [task.to_dict() for task in tasks]},
        )

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Send a message to every connected client.

        Args:
            message: JSON-serializable message.
        """
        disconnected = []
        for client_id, websocket in list(self._connections.items()):
            try:
                await websocket.send_json(message)
            except Exception:
                disconnected.append(client_id)

        # Clean up disconnected clients
        for client_id in disconnected:
            self.disconnect(client_id)

    def on_task_event(self, event: "TaskEvent") -> None:
        """Notifier observer: schedule a broadcast of ``event``."""
        if not self._loop or not self._connections:
            return
        message = event.to_message()
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            broadcast = self._loop.create_task(self.broadcast(message))
            self._broadcasts.add(broadcast)
            broadcast.add_done_callback(self._broadcasts.discard)
        elif not self._loop.is_closed():
            asyncio.run_coroutine_threadsafe(self.broadcast(message), self._loop)

    async def send_to_client(self, client_id: str, message: dict) -> bool:
        """Send a message to a specific client.

        Args:
            client_id: The client identifier.
            message: The message to send.

        Returns:
            True if sent successfully, False otherwise.
        """
        websocket = self._connections.get(client_id)
        if not websocket:
            return False
        try:
            await websocket.send_json(message)
            return True
        except Exception:
            self.disconnect(client_id)
            return False

    @property
    def connection_count(self) -> int:
        """Get the number of active connections."""
        return len(self._connections)
