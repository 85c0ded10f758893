"""WebSocket support for real-time task updates."""

from .manager import WebSocketManager

__all__ = ["WebSocketManager"]
